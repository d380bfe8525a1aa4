"""Factom ledger client over JSON-RPC 2.0.

Commit and reveal go to two daemons:

- ``factom-walletd`` holds the entry credit keys. Its ``compose-entry``
  method returns a ready ``commit-entry`` request signed by the funding
  address, so no entry credit key ever passes through this process.
- ``factomd`` accepts the composed ``commit-entry`` and, after the commit
  has propagated, ``reveal-entry`` with the marshalled entry.

Both are plain HTTP POSTs of a JSON-RPC envelope; JSON-RPC ``error``
objects and transport failures surface as :class:`LedgerError`.

Example::

    async with FactomLedgerClient("http://localhost:8088/v2", "http://localhost:8089/v2") as ledger:
        await ledger.commit_entry(entry, "EC2...")
        await asyncio.sleep(10)
        await ledger.reveal_entry(entry)
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from apiwatch.core.errors import LedgerError
from apiwatch.core.logging import get_logger
from apiwatch.ledger.entry import Entry

logger = get_logger(__name__)


class FactomLedgerClient:
    """Async :class:`~apiwatch.ledger.protocol.LedgerClient` for factomd/walletd.

    Parameters
    ----------
    factomd_url : str
        factomd JSON-RPC endpoint, e.g. ``http://localhost:8088/v2``.
    walletd_url : str
        factom-walletd JSON-RPC endpoint, e.g. ``http://localhost:8089/v2``.
    client : httpx.AsyncClient, optional
        Shared HTTP client. When omitted the ledger client creates and
        owns one.
    timeout : float
        Per-request timeout in seconds for an owned client.
    """

    def __init__(
        self,
        factomd_url: str,
        walletd_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.factomd_url = factomd_url
        self.walletd_url = walletd_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count()

    async def __aenter__(self) -> FactomLedgerClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── LedgerClient ─────────────────────────────────────────────────

    async def commit_entry(self, entry: Entry, funding_address: str) -> None:
        entry_hash = entry.hash()
        composed = await self._call(
            self.walletd_url,
            "compose-entry",
            {"entry": entry.to_rpc(), "ecpub": funding_address},
        )
        try:
            commit = composed["commit"]
            method, params = commit["method"], commit["params"]
        except (KeyError, TypeError) as e:
            raise LedgerError("compose-entry returned no commit request", cause=e)

        result = await self._call(self.factomd_url, method, params)
        logger.info(
            "ledger.commit",
            chain_id=entry.chain_id,
            entry_hash=entry_hash,
            txid=_field(result, "txid"),
        )

    async def reveal_entry(self, entry: Entry) -> None:
        result = await self._call(
            self.factomd_url,
            "reveal-entry",
            {"entry": entry.marshal_binary().hex()},
        )
        logger.info(
            "ledger.reveal",
            chain_id=entry.chain_id,
            entry_hash=_field(result, "entryhash") or entry.hash(),
        )

    # ── JSON-RPC ─────────────────────────────────────────────────────

    async def _call(self, url: str, method: str, params: dict[str, Any]) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(url, json=request)
        except httpx.HTTPError as e:
            raise LedgerError(f"{method}: {e}", cause=e).with_context(url=url)

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerError(
                f"{method}: HTTP {response.status_code} with non-JSON body", cause=e
            ).with_context(url=url, http_status=response.status_code)

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            data = error.get("data") if isinstance(error, dict) else None
            if data:
                message = f"{message}: {data}"
            raise LedgerError(
                f"{method}: {message}",
                code=error.get("code") if isinstance(error, dict) else None,
            ).with_context(url=url, http_status=response.status_code)

        if response.status_code != 200 or not isinstance(body, dict) or "result" not in body:
            raise LedgerError(
                f"{method}: unexpected response (HTTP {response.status_code})"
            ).with_context(url=url, http_status=response.status_code)
        return body["result"]


def _field(result: Any, name: str) -> Any:
    return result.get(name) if isinstance(result, dict) else None
