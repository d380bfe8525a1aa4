"""
Shared pytest fixtures for apiwatch tests.

This module provides:
- Signing keys and job descriptors built from real key material
- The recording fake ledger and sleep, sharing one ordered event log
- Job source files written to a temporary directory
- httpx clients backed by ``httpx.MockTransport`` route tables
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from apiwatch import signing
from apiwatch.models import JobDescriptor
from tests._support.fakes import API_URL, CHAIN_A, EC_ADDRESS, FakeLedger, RecordingSleep


@pytest.fixture
def secret_key() -> str:
    """A fresh, valid 64-byte Ed25519 secret key (hex)."""
    return signing.generate_secret_key()


@pytest.fixture
def make_descriptor(secret_key: str) -> Callable[..., JobDescriptor]:
    """Factory for descriptors signed with ``secret_key`` unless overridden."""

    def _make(**overrides: Any) -> JobDescriptor:
        fields = {
            "api_method": API_URL,
            "chain_id": CHAIN_A,
            "secret_key": secret_key,
            "funding_address": EC_ADDRESS,
        }
        fields.update(overrides)
        return JobDescriptor(**fields)

    return _make


@pytest.fixture
def events() -> list:
    """Shared ordered event log for the ledger and sleep fakes."""
    return []


@pytest.fixture
def fake_ledger(events: list) -> FakeLedger:
    return FakeLedger(events)


@pytest.fixture
def no_sleep(events: list) -> RecordingSleep:
    return RecordingSleep(events)


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[..., Path]:
    """Write records (dicts, or raw strings for malformed input) as one job source."""

    def _write(*records: dict | str, name: str = "conf.json") -> Path:
        parts = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path = tmp_path / name
        path.write_text("\n".join(parts), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def http_client() -> Callable[..., httpx.AsyncClient]:
    """Factory for an AsyncClient answering from a ``{url: (status, body)}`` table.

    Unknown URLs fail with a connection error, like an unreachable host.
    """

    def _make(routes: dict[str, tuple[int, bytes]]) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if url not in routes:
                raise httpx.ConnectError("connection refused", request=request)
            status, body = routes[url]
            return httpx.Response(status, content=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
