"""Ledger collaborator: entry encoding and commit/reveal clients."""

from apiwatch.ledger.dry_run import DryRunLedgerClient
from apiwatch.ledger.entry import Entry, decode_chain_id
from apiwatch.ledger.factom import FactomLedgerClient
from apiwatch.ledger.protocol import LedgerClient

__all__ = [
    "DryRunLedgerClient",
    "Entry",
    "FactomLedgerClient",
    "LedgerClient",
    "decode_chain_id",
]
