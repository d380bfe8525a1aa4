"""In-memory ledger client for dry runs.

Validates and records every entry instead of sending it anywhere, so a
configuration can be exercised end to end (fetch, sign, commit, settle,
reveal) without spending entry credits.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from apiwatch.core.errors import LedgerError
from apiwatch.core.logging import get_logger
from apiwatch.ledger.entry import Entry

logger = get_logger(__name__)


@dataclass
class DryRunLedgerClient:
    """Records commits and reveals; reveal of an uncommitted entry fails."""

    commits: list[tuple[Entry, str]] = field(default_factory=list)
    reveals: list[Entry] = field(default_factory=list)

    async def commit_entry(self, entry: Entry, funding_address: str) -> None:
        entry_hash = entry.hash()
        self.commits.append((entry, funding_address))
        logger.info(
            "ledger.dry_run.commit",
            chain_id=entry.chain_id,
            entry_hash=entry_hash,
            entry_credits=entry.entry_credits(),
        )

    async def reveal_entry(self, entry: Entry) -> None:
        entry_hash = entry.hash()
        if not any(c.hash() == entry_hash for c, _ in self.commits):
            raise LedgerError(f"entry {entry_hash} was never committed")
        self.reveals.append(entry)
        logger.info("ledger.dry_run.reveal", chain_id=entry.chain_id, entry_hash=entry_hash)
