"""
CLI: ``apiwatch run`` — execute every job of a job source.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError

from apiwatch.cli.utils import print_error, print_report
from apiwatch.core.errors import ConfigSourceError
from apiwatch.core.logging import configure_logging
from apiwatch.core.settings import ApiWatchSettings
from apiwatch.execution.orchestrator import Orchestrator


def run(
    config: Path = typer.Argument(..., help="Job source file (concatenated JSON records)"),
    settle_delay: float | None = typer.Option(  # noqa: UP007
        None, "--settle-delay", min=0, help="Seconds between commit and reveal"
    ),
    max_concurrency: int | None = typer.Option(  # noqa: UP007
        None, "--max-concurrency", min=1, help="Cap on jobs running at once"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Record entries locally, submit nothing"),
    strict_keys: bool = typer.Option(
        False, "--strict-keys", help="Exit 1 if any job had an unusable signing key"
    ),
    json_logs: bool | None = typer.Option(  # noqa: UP007
        None, "--json-logs/--console-logs", help="Log rendering (default: JSON unless a TTY)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR, CRITICAL"),  # noqa: UP007
) -> None:
    """Fetch, sign and anchor every job in CONFIG.

    Jobs run concurrently; a failed job is reported and the others carry on.
    Exits 1 if CONFIG cannot be opened, if a setting is invalid, or (with
    --strict-keys) if any signing key was unusable; 0 otherwise.

    Example::

        apiwatch run conf.json
        apiwatch run conf.json --dry-run --settle-delay 0
    """
    updates: dict[str, object] = {}
    if settle_delay is not None:
        updates["settle_delay_seconds"] = settle_delay
    if max_concurrency is not None:
        updates["max_concurrency"] = max_concurrency
    if dry_run:
        updates["dry_run"] = True
    if strict_keys:
        updates["strict_keys"] = True
    if json_logs is not None:
        updates["json_logs"] = json_logs
    if log_level is not None:
        updates["log_level"] = log_level

    try:
        settings = ApiWatchSettings(**updates)
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"])
            print_error(f"invalid setting {field}: {err['msg']}")
        raise typer.Exit(code=1)
    configure_logging(settings.log_level, json_format=settings.json_logs)

    try:
        report = asyncio.run(Orchestrator(settings).run(config))
    except ConfigSourceError as exc:
        print_error(exc.message)
        raise typer.Exit(code=1)

    print_report(report)
    raise typer.Exit(code=report.exit_code)
