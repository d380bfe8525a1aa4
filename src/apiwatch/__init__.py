"""
apiwatch — anchor signed snapshots of HTTP API responses on a ledger.

Each configured watch job fetches one endpoint, wraps the response in a
timestamped record, signs it with Ed25519 and anchors it on a Factom chain
through the two-phase commit/reveal protocol. Jobs run concurrently and
fail independently; every failure is collected and reported once the whole
batch has settled.

Quick start::

    from apiwatch import ApiWatchSettings, Orchestrator

    report = asyncio.run(Orchestrator(ApiWatchSettings()).run("conf.json"))
    print(report.succeeded, report.failed)
"""

from __future__ import annotations

__version__ = "0.3.0"

from apiwatch.core.errors import (
    ApiWatchError,
    CommitError,
    ConfigSourceError,
    FetchError,
    RevealError,
    SigningKeyError,
    SubmissionError,
)
from apiwatch.core.settings import ApiWatchSettings
from apiwatch.execution.orchestrator import Orchestrator, RunReport
from apiwatch.models import JobDescriptor, RecordPayload, SignedEntry

__all__ = [
    "__version__",
    "ApiWatchError",
    "ApiWatchSettings",
    "CommitError",
    "ConfigSourceError",
    "FetchError",
    "JobDescriptor",
    "Orchestrator",
    "RecordPayload",
    "RevealError",
    "RunReport",
    "SignedEntry",
    "SigningKeyError",
    "SubmissionError",
]
