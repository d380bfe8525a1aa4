"""LedgerClient protocol definition."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from apiwatch.ledger.entry import Entry


@runtime_checkable
class LedgerClient(Protocol):
    """
    Protocol for ledger clients.

    A client exposes the two halves of the commit/reveal protocol. Each call
    either returns normally or raises; the client owns its own transport,
    timeouts and any internal retries. The caller is responsible for
    ordering (reveal only after a successful commit) and for the settling
    delay in between.
    """

    async def commit_entry(self, entry: Entry, funding_address: str) -> None:
        """
        Pay for ``entry`` from ``funding_address`` and register its hash.

        Raises:
            LedgerError: If the commit was rejected or could not be sent
        """
        ...

    async def reveal_entry(self, entry: Entry) -> None:
        """
        Publish the content of a previously committed ``entry``.

        Raises:
            LedgerError: If the reveal was rejected or could not be sent
        """
        ...
