"""
Root Typer application for the apiwatch CLI.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from apiwatch import __version__

app = Typer(
    name="apiwatch",
    help="apiwatch — anchor signed snapshots of HTTP API responses on a Factom chain.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("apiwatch")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"apiwatch {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """apiwatch CLI — run, check and key management for watch jobs."""


# ── Command registration ─────────────────────────────────────────────────

from apiwatch.cli.check import check  # noqa: E402
from apiwatch.cli.keygen import keygen  # noqa: E402
from apiwatch.cli.run import run  # noqa: E402

app.command("run")(run)
app.command("check")(check)
app.command("keygen")(keygen)
