"""Ledger Submitter — two-phase commit/reveal of one signed entry.

WHY
───
The ledger only accepts a reveal once the matching commit has been seen
by the network. The submitter owns that ordering for a single job: commit,
wait out the settling delay, reveal. The delay is an ``await`` on the job's
own task, so other jobs keep running while this one waits.

ARCHITECTURE
────────────
::

    LedgerSubmitter(ledger, settle_delay=10.0)
      └── .submit(signed_entry, funding_address)
            COMMIT  ─ ledger.commit_entry(...)   ✗ → CommitError (no reveal)
            SETTLE  ─ await sleep(settle_delay)
            REVEAL  ─ ledger.reveal_entry(...)   ✗ → RevealError (commit stands)

A failed reveal is not rolled back: the entry stays committed but
unpublished and the error says so.

Example::

    submitter = LedgerSubmitter(FactomLedgerClient(...), settle_delay=10.0)
    await submitter.submit(signed, "EC2...")
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from apiwatch.core.errors import CommitError, RevealError, SubmissionError
from apiwatch.core.logging import get_logger
from apiwatch.ledger.protocol import LedgerClient
from apiwatch.models import SignedEntry

logger = get_logger(__name__)


class SubmissionPhase(str, Enum):
    """Phases of a submission, in order."""

    COMMIT = "commit"
    SETTLE = "settle"
    REVEAL = "reveal"


class LedgerSubmitter:
    """Commit, settle, reveal.

    Parameters
    ----------
    ledger : LedgerClient
        Client exposing ``commit_entry`` and ``reveal_entry``.
    settle_delay : float
        Seconds to wait between commit and reveal.
    sleep : callable
        Awaitable sleep used for the settling delay; tests pass a no-op.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        settle_delay: float = 10.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._ledger = ledger
        self._settle_delay = settle_delay
        self._sleep = sleep

    @property
    def settle_delay(self) -> float:
        return self._settle_delay

    async def submit(
        self,
        signed: SignedEntry,
        funding_address: str,
        *,
        on_phase: Callable[[SubmissionPhase], None] | None = None,
    ) -> None:
        """Anchor ``signed`` on its chain.

        Args:
            signed: Content and signature to publish.
            funding_address: Entry credit address paying for the commit.
            on_phase: Called as each phase begins.

        Raises:
            CommitError: Commit failed; nothing was revealed.
            RevealError: Reveal failed after a successful commit.
            EntryError: The entry itself is malformed.
        """
        notify = on_phase or (lambda phase: None)
        entry = signed.to_entry()

        notify(SubmissionPhase.COMMIT)
        try:
            await self._ledger.commit_entry(entry, funding_address)
        except SubmissionError:
            raise
        except Exception as e:
            raise CommitError(f"commit failed: {e}", cause=e).with_context(
                phase=SubmissionPhase.COMMIT.value, chain_id=signed.chain_id
            )

        notify(SubmissionPhase.SETTLE)
        logger.debug("submit.settle", chain_id=signed.chain_id, seconds=self._settle_delay)
        await self._sleep(self._settle_delay)

        notify(SubmissionPhase.REVEAL)
        try:
            await self._ledger.reveal_entry(entry)
        except SubmissionError:
            raise
        except Exception as e:
            raise RevealError(
                f"reveal failed after commit (entry committed but not revealed): {e}",
                cause=e,
            ).with_context(phase=SubmissionPhase.REVEAL.value, chain_id=signed.chain_id)
