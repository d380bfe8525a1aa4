"""Runtime settings for apiwatch.

Configuration is explicit, validated and environment-driven. Every field
can be set through an ``APIWATCH_``-prefixed environment variable or a
``.env`` file; the CLI overrides individual fields for a single run.

Fields
──────
settle_delay_seconds   : Pause between commit and reveal of each entry
fetch_timeout_seconds  : Timeout for the watched endpoint request
ledger_timeout_seconds : Timeout for each factomd / walletd JSON-RPC call
max_concurrency        : Cap on jobs running at once (None = no cap)
factomd_url            : factomd JSON-RPC endpoint (commit/reveal)
walletd_url            : factom-walletd JSON-RPC endpoint (compose-entry)
strict_keys            : Exit non-zero if any job had an unusable signing key
dry_run                : Record entries locally instead of submitting them
log_level              : Structlog log level
json_logs              : Force JSON (True) or console (False) log rendering

Examples:
    >>> from apiwatch.core.settings import ApiWatchSettings
    >>> ApiWatchSettings().settle_delay_seconds
    10.0
    >>> ApiWatchSettings(max_concurrency=4).max_concurrency
    4
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiWatchSettings(BaseSettings):
    """Settings shared by the orchestrator, the CLI and the ledger client."""

    model_config = SettingsConfigDict(
        env_prefix="APIWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Pipeline ─────────────────────────────────────────────────
    settle_delay_seconds: float = Field(10.0, ge=0)
    fetch_timeout_seconds: float = Field(30.0, gt=0)
    max_concurrency: int | None = Field(None, ge=1)

    # ── Ledger ───────────────────────────────────────────────────
    factomd_url: str = "http://localhost:8088/v2"
    walletd_url: str = "http://localhost:8089/v2"
    ledger_timeout_seconds: float = Field(30.0, gt=0)
    dry_run: bool = False

    # ── Failure policy ───────────────────────────────────────────
    strict_keys: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v
