"""Orchestrator — lifecycle of one apiwatch run.

::

    Orchestrator(settings).run("conf.json") → RunReport
      1. JobSource.open(path)                ✗ → ConfigSourceError (fatal, raised)
      2. open shared resources               httpx client, ledger client
      3. dispatcher task                     one Job task per descriptor
      4. async for failure in collector      log each failure as it arrives
      5. await dispatcher summary            every job terminal, collector closed
      6. close resources, log run.complete

The orchestrator returns only once the dispatch loop has exhausted the job
source, every launched job has reached a terminal state, and every failure
has been read from the collector. Individual job failures never raise out
of :meth:`Orchestrator.run`.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from apiwatch import signing
from apiwatch.core.errors import SigningKeyError
from apiwatch.core.logging import get_logger
from apiwatch.core.settings import ApiWatchSettings
from apiwatch.execution.collector import ErrorCollector, FailureRecord
from apiwatch.execution.dispatcher import JobDispatcher
from apiwatch.execution.job import Job, unix_now
from apiwatch.execution.submitter import LedgerSubmitter
from apiwatch.fetch import HttpFetcher
from apiwatch.ledger.dry_run import DryRunLedgerClient
from apiwatch.ledger.factom import FactomLedgerClient
from apiwatch.ledger.protocol import LedgerClient
from apiwatch.models import CapturedResponse, JobDescriptor
from apiwatch.source import JobSource

logger = get_logger(__name__)


@dataclass
class RunReport:
    """Result of a full run: counts plus every collected failure."""

    launched: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[FailureRecord] = field(default_factory=list)
    source_error: bool = False
    strict_keys: bool = False

    @property
    def key_failures(self) -> list[FailureRecord]:
        """Failures caused by unusable signing keys."""
        return [f for f in self.failures if isinstance(f.error, SigningKeyError)]

    @property
    def exit_code(self) -> int:
        """0 unless strict key checking is on and a key failed."""
        if self.strict_keys and self.key_failures:
            return 1
        return 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "launched": self.launched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": len(self.failures),
            "source_error": self.source_error,
            "key_failures": len(self.key_failures),
        }


class Orchestrator:
    """Runs every job of a job source and reports how they ended.

    Parameters
    ----------
    settings : ApiWatchSettings, optional
        Run configuration (default: loaded from the environment).
    ledger : LedgerClient, optional
        Ledger client to use instead of the one ``settings`` selects.
        The caller keeps ownership of a ledger passed in.
    http_client : httpx.AsyncClient, optional
        Client for fetching watched endpoints; owned by the caller if given.
    fetch : callable, optional
        ``await fetch(url) -> CapturedResponse`` replacing the HTTP fetcher.
    clock, sleep, sign
        Capture timestamp source, settling-delay sleep and signing function.
    """

    def __init__(
        self,
        settings: ApiWatchSettings | None = None,
        *,
        ledger: LedgerClient | None = None,
        http_client: httpx.AsyncClient | None = None,
        fetch: Callable[[str], Awaitable[CapturedResponse]] | None = None,
        clock: Callable[[], int] = unix_now,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        sign: Callable[[str, bytes], bytes] = signing.sign,
    ) -> None:
        self.settings = settings or ApiWatchSettings()
        self._ledger = ledger
        self._http_client = http_client
        self._fetch = fetch
        self._clock = clock
        self._sleep = sleep
        self._sign = sign

    async def run(self, path: str | Path) -> RunReport:
        """Run all jobs in the job source at ``path``.

        Raises:
            ConfigSourceError: If the job source cannot be opened.
        """
        settings = self.settings
        source = JobSource.open(path)
        logger.info(
            "run.start",
            source=source.name,
            dry_run=settings.dry_run,
            settle_delay=settings.settle_delay_seconds,
            max_concurrency=settings.max_concurrency,
        )

        report = RunReport(strict_keys=settings.strict_keys)
        collector = ErrorCollector()

        async with contextlib.AsyncExitStack() as stack:
            stack.callback(source.close)
            ledger = await self._open_ledger(stack)
            fetch = self._fetch or HttpFetcher(await self._open_http_client(stack))
            submitter = LedgerSubmitter(
                ledger,
                settle_delay=settings.settle_delay_seconds,
                sleep=self._sleep,
            )

            def make_job(descriptor: JobDescriptor) -> Job:
                return Job(
                    descriptor,
                    fetch=fetch,
                    submitter=submitter,
                    sign=self._sign,
                    clock=self._clock,
                )

            dispatcher = JobDispatcher(make_job, max_concurrency=settings.max_concurrency)
            dispatch = asyncio.create_task(dispatcher.dispatch(source, collector))

            async for failure in collector:
                report.failures.append(failure)
                logger.error("run.failure", **failure.to_dict())

            summary = await dispatch

        report.launched = summary.launched
        report.succeeded = summary.succeeded
        report.failed = summary.failed
        report.source_error = summary.source_error is not None

        logger.info("run.complete", **report.to_dict())
        if report.exit_code:
            logger.error("run.strict_keys", key_failures=len(report.key_failures))
        return report

    async def _open_ledger(self, stack: contextlib.AsyncExitStack) -> LedgerClient:
        if self._ledger is not None:
            return self._ledger
        if self.settings.dry_run:
            return DryRunLedgerClient()
        return await stack.enter_async_context(
            FactomLedgerClient(
                self.settings.factomd_url,
                self.settings.walletd_url,
                timeout=self.settings.ledger_timeout_seconds,
            )
        )

    async def _open_http_client(self, stack: contextlib.AsyncExitStack) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await stack.enter_async_context(
            httpx.AsyncClient(timeout=self.settings.fetch_timeout_seconds)
        )
