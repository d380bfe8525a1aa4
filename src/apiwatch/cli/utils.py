"""
CLI utility helpers — consoles and report rendering.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from apiwatch.execution.orchestrator import RunReport

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error line to stderr, unwrapped so paths and keys stay intact."""
    err_console.print(f"[bold red]Error[/bold red]: {escape(message)}", soft_wrap=True)


def print_report(report: RunReport) -> None:
    """Render a run report: summary line, then one row per failure."""
    colour = "green" if not report.failures else "yellow"
    console.print(
        f"[bold {colour}]{report.launched} job(s) launched[/bold {colour}]: "
        f"{report.succeeded} succeeded, {report.failed} failed"
    )
    if report.source_error:
        console.print("[red]Job source has a malformed record; later records were not read[/red]")

    if not report.failures:
        return

    table = Table(title="Failures", show_lines=False, pad_edge=False)
    table.add_column("Job", overflow="fold")
    table.add_column("Stage")
    table.add_column("Error")
    table.add_column("Message", overflow="fold")
    for failure in report.failures:
        table.add_row(
            escape(failure.job) if failure.job else "[dim](job source)[/dim]",
            failure.failed_in or "-",
            type(failure.error).__name__,
            escape(failure.message),
        )
    console.print(table)

    if report.exit_code:
        print_error(f"{len(report.key_failures)} job(s) had an unusable signing key (--strict-keys)")
