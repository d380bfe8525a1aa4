"""Job Dispatcher — one concurrent task per job descriptor.

WHY
───
Watched endpoints and the ledger are slow, and each job spends most of its
life waiting (fetch, commit, the settling delay, reveal). Running jobs one
after another would make a run as long as the sum of all jobs; launching
each as its own task makes it as long as the slowest one.

ARCHITECTURE
────────────
::

    JobDispatcher(job_factory, max_concurrency=None)
      └── .dispatch(source, collector) → DispatchSummary
            for descriptor in source:          ─ one record at a time, read in a
                                               worker thread off the loop
                create_task(job.run())         ─ launched at once, not awaited
            ConfigSourceError?                 ─ reported, stop reading
            await gather(all tasks)            ─ completion barrier
            collector.close()                  ─ always, even on error

    Failed jobs report to the collector from their own task, while the
    others are still running.

``max_concurrency`` optionally caps how many jobs *run* at once with a
semaphore; every job is still launched immediately and simply waits for a
slot. By default there is no cap.

Example::

    dispatcher = JobDispatcher(lambda d: Job(d, fetch=fetcher, submitter=submitter))
    summary = await dispatcher.dispatch(JobSource.open("conf.json"), collector)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from apiwatch.core.errors import ConfigSourceError
from apiwatch.core.logging import get_logger
from apiwatch.execution.collector import ErrorCollector, FailureRecord
from apiwatch.execution.job import Job, JobOutcome
from apiwatch.models import JobDescriptor

logger = get_logger(__name__)


@dataclass
class DispatchSummary:
    """What the dispatch loop launched and how the jobs ended."""

    outcomes: list[JobOutcome] = field(default_factory=list)
    source_error: ConfigSourceError | None = None

    @property
    def launched(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "launched": self.launched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "source_error": self.source_error.message if self.source_error else None,
        }


class JobDispatcher:
    """Fan a job source out into concurrently running jobs.

    Parameters
    ----------
    job_factory : callable
        Builds a :class:`Job` for a descriptor.
    max_concurrency : int, optional
        Maximum jobs running at once (default: unbounded).
    """

    def __init__(
        self,
        job_factory: Callable[[JobDescriptor], Job],
        *,
        max_concurrency: int | None = None,
    ) -> None:
        self._job_factory = job_factory
        self._max_concurrency = max_concurrency

    async def dispatch(
        self,
        source: Iterable[JobDescriptor],
        collector: ErrorCollector,
    ) -> DispatchSummary:
        """Launch a job for every descriptor, wait for all, close the collector.

        A malformed record stops reading; it is reported to the collector
        and jobs launched before it still run to completion.
        """
        sem = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        tasks: list[asyncio.Task[JobOutcome]] = []
        summary = DispatchSummary()

        try:
            try:
                records = iter(source)
                index = 0
                while True:
                    # Reads can block (FIFO, stdin); keep them off the loop.
                    descriptor = await asyncio.to_thread(next, records, None)
                    if descriptor is None:
                        break
                    job = self._job_factory(descriptor)
                    tasks.append(
                        asyncio.create_task(
                            self._run_job(job, collector, sem),
                            name=f"apiwatch-job-{index}",
                        )
                    )
                    logger.info(
                        "dispatch.launched",
                        index=index,
                        job_id=job.job_id,
                        job=descriptor.api_method,
                    )
                    # Let the new job reach its first await before reading on.
                    await asyncio.sleep(0)
                    index += 1
            except ConfigSourceError as e:
                summary.source_error = e
                collector.report(FailureRecord(error=e))
                logger.error("dispatch.source_error", error=e.message, launched=len(tasks))

            logger.info("dispatch.source_exhausted", launched=len(tasks))
        finally:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            collector.close()

        for result in results:
            if isinstance(result, BaseException):
                raise result
            summary.outcomes.append(result)

        logger.info("dispatch.complete", **summary.to_dict())
        return summary

    async def _run_job(
        self,
        job: Job,
        collector: ErrorCollector,
        sem: asyncio.Semaphore | None,
    ) -> JobOutcome:
        if sem is None:
            outcome = await job.run()
        else:
            async with sem:
                outcome = await job.run()

        if outcome.failed and outcome.error is not None:
            collector.report(
                FailureRecord(
                    error=outcome.error,
                    job=outcome.api_method,
                    job_id=outcome.job_id,
                    failed_in=outcome.failed_in.value if outcome.failed_in else None,
                )
            )
        return outcome
