"""Error Collector — single sink for failures from concurrent jobs.

WHY
───
Jobs fail independently and in any order, and the dispatch loop can fail
on its own (a malformed record in the job source). The run is only over
when every producer has finished *and* every failure has been read.
The collector turns that into a plain ``async for``: it ends exactly when
the producer side has closed it and its buffer is empty.

ARCHITECTURE
────────────
::

    job task ──┐
    job task ──┼── .report(FailureRecord) ──► asyncio.Queue ──► async for failure in collector
    dispatch ──┘        (never blocks)                               (orchestrator)
                   .close()  ── sentinel ──►  iteration ends after the buffer drains

The queue is unbounded, so ``report`` never suspends a job. All producers
run on the same event loop; nothing is lost or delivered twice.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from apiwatch.core.errors import ApiWatchError, ErrorCategory

_CLOSED = object()


@dataclass(frozen=True)
class FailureRecord:
    """One failure flowing into the collector.

    ``job`` is the failed job's label (its API method), or ``None`` for a
    failure of the dispatch loop itself.
    """

    error: ApiWatchError
    job: str | None = None
    job_id: str | None = None
    failed_in: str | None = None

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def category(self) -> ErrorCategory:
        return self.error.category

    def to_dict(self) -> dict[str, Any]:
        """Flatten for a log line."""
        result: dict[str, Any] = {"job": self.job, **self.error.to_dict()}
        if self.job_id is not None:
            result["job_id"] = self.job_id
        if self.failed_in is not None:
            result["failed_in"] = self.failed_in
        return result


class ErrorCollector:
    """Many-writer, one-reader failure channel with an explicit close."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._drained = False
        self.reported = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def report(self, failure: FailureRecord) -> None:
        """Add a failure. Never blocks.

        Raises:
            RuntimeError: If the collector has been closed.
        """
        if self._closed:
            raise RuntimeError("error collector is closed")
        self.reported += 1
        self._queue.put_nowait(failure)

    def close(self) -> None:
        """Signal that no producer will report again. Idempotent."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[FailureRecord]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[FailureRecord]:
        while not self._drained:
            item = await self._queue.get()
            if item is _CLOSED:
                self._drained = True
                return
            yield item

    async def collect(self) -> list[FailureRecord]:
        """Wait for close and return every failure received."""
        return [failure async for failure in self]
