"""Job — one watch-and-anchor task and its state machine.

A job owns one :class:`JobDescriptor` and runs exactly once::

    CREATED → FETCHING → BUILDING → SIGNING → COMMITTING → WAITING → REVEALING → DONE
                 └──────────┴──────────┴──────────┴────────────┴──────────┴──→ FAILED

The first error ends the job in ``FAILED``; no later step runs and the job
never retries itself. :meth:`Job.run` does not raise for job failures: every
exception is caught at this boundary and returned in the
:class:`JobOutcome`, so one broken job cannot disturb the others.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from apiwatch import signing
from apiwatch.core.errors import ApiWatchError, JobError
from apiwatch.core.logging import LogContext, get_logger
from apiwatch.execution.submitter import LedgerSubmitter, SubmissionPhase
from apiwatch.models import CapturedResponse, JobDescriptor, SignedEntry
from apiwatch.record import build_record

logger = get_logger(__name__)


class InvalidTransitionError(ValueError):
    """Raised when a job is moved along an edge its state machine does not have."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid JobState transition: {current} → {target}")


class JobState(str, Enum):
    """Lifecycle states of a watch job."""

    CREATED = "created"
    FETCHING = "fetching"
    BUILDING = "building"
    SIGNING = "signing"
    COMMITTING = "committing"
    WAITING = "waiting"
    REVEALING = "revealing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


JOB_VALID_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.CREATED: frozenset({JobState.FETCHING}),
    JobState.FETCHING: frozenset({JobState.BUILDING, JobState.FAILED}),
    JobState.BUILDING: frozenset({JobState.SIGNING, JobState.FAILED}),
    JobState.SIGNING: frozenset({JobState.COMMITTING, JobState.FAILED}),
    JobState.COMMITTING: frozenset({JobState.WAITING, JobState.FAILED}),
    JobState.WAITING: frozenset({JobState.REVEALING, JobState.FAILED}),
    JobState.REVEALING: frozenset({JobState.DONE, JobState.FAILED}),
    JobState.DONE: frozenset(),  # terminal
    JobState.FAILED: frozenset(),  # terminal
}

_PHASE_STATES = {
    SubmissionPhase.COMMIT: JobState.COMMITTING,
    SubmissionPhase.SETTLE: JobState.WAITING,
    SubmissionPhase.REVEAL: JobState.REVEALING,
}


def unix_now() -> int:
    return int(time.time())


@dataclass
class JobOutcome:
    """Terminal result of one job."""

    job_id: str
    api_method: str
    chain_id: str
    state: JobState
    error: ApiWatchError | None = None
    failed_in: JobState | None = None
    history: list[JobState] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is JobState.DONE

    @property
    def failed(self) -> bool:
        return self.state is JobState.FAILED

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class Job:
    """Fetch one endpoint, sign the record, anchor it.

    Parameters
    ----------
    descriptor : JobDescriptor
        What to watch, where to anchor, which key signs, who pays.
    fetch : callable
        ``await fetch(url) -> CapturedResponse``; raises ``FetchError``.
    submitter : LedgerSubmitter
        Performs commit → settle → reveal.
    sign : callable
        ``sign(secret_key_hex, message) -> signature``; raises ``SigningKeyError``.
    clock : callable
        Returns the capture timestamp in Unix seconds.
    """

    def __init__(
        self,
        descriptor: JobDescriptor,
        *,
        fetch: Callable[[str], Awaitable[CapturedResponse]],
        submitter: LedgerSubmitter,
        sign: Callable[[str, bytes], bytes] = signing.sign,
        clock: Callable[[], int] = unix_now,
        job_id: str | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.job_id = job_id or uuid.uuid4().hex[:12]
        self._fetch = fetch
        self._submitter = submitter
        self._sign = sign
        self._clock = clock
        self.state = JobState.CREATED
        self.history: list[JobState] = [JobState.CREATED]

    def _advance(self, target: JobState) -> None:
        allowed = JOB_VALID_TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target
        self.history.append(target)
        logger.debug("job.state", state=target.value)

    def _on_phase(self, phase: SubmissionPhase) -> None:
        self._advance(_PHASE_STATES[phase])

    async def run(self) -> JobOutcome:
        """Run the job to a terminal state and return the outcome.

        Raises:
            InvalidTransitionError: If the job has already been run.
        """
        if self.state is not JobState.CREATED:
            raise InvalidTransitionError(self.state.value, JobState.FETCHING.value)

        d = self.descriptor
        outcome = JobOutcome(
            job_id=self.job_id,
            api_method=d.api_method,
            chain_id=d.chain_id,
            state=self.state,
            started_at=datetime.now(UTC),
        )

        async with LogContext(job_id=self.job_id, job=d.api_method, chain_id=d.chain_id):
            try:
                self._advance(JobState.FETCHING)
                response = await self._fetch(d.api_method)

                self._advance(JobState.BUILDING)
                content = build_record(d.api_method, response.raw_bytes, self._clock())

                self._advance(JobState.SIGNING)
                signed = SignedEntry(
                    chain_id=d.chain_id,
                    content=content,
                    signature=self._sign(d.secret_key, content),
                )

                await self._submitter.submit(signed, d.funding_address, on_phase=self._on_phase)
                self._advance(JobState.DONE)
            except Exception as e:
                error = e if isinstance(e, ApiWatchError) else JobError(
                    f"{type(e).__name__}: {e}", cause=e
                )
                error.with_context(job=d.api_method, chain_id=d.chain_id)
                outcome.failed_in = self.state
                self._advance(JobState.FAILED)
                outcome.error = error
                logger.warning(
                    "job.failed",
                    failed_in=outcome.failed_in.value,
                    error=error.message,
                    category=error.category.value,
                )
            else:
                logger.info("job.done", content_size=len(content))

        outcome.state = self.state
        outcome.history = list(self.history)
        outcome.completed_at = datetime.now(UTC)
        return outcome
