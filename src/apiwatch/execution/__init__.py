"""Execution layer: per-job state machine, fan-out dispatch, failure collection.

Related modules:
    submitter.py     — commit → settle → reveal against a LedgerClient
    job.py           — one watch job: fetch → build → sign → submit
    collector.py     — many-writer / one-reader failure channel
    dispatcher.py    — launches a job per descriptor, joins them all
    orchestrator.py  — run lifecycle and final report
"""

from apiwatch.execution.collector import ErrorCollector, FailureRecord
from apiwatch.execution.dispatcher import DispatchSummary, JobDispatcher
from apiwatch.execution.job import Job, JobOutcome, JobState
from apiwatch.execution.orchestrator import Orchestrator, RunReport
from apiwatch.execution.submitter import LedgerSubmitter, SubmissionPhase

__all__ = [
    "DispatchSummary",
    "ErrorCollector",
    "FailureRecord",
    "Job",
    "JobDispatcher",
    "JobOutcome",
    "JobState",
    "LedgerSubmitter",
    "Orchestrator",
    "RunReport",
    "SubmissionPhase",
]
