"""
CLI: ``apiwatch check`` — validate a job source without running it.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from apiwatch import signing
from apiwatch.cli.utils import console, print_error
from apiwatch.core.errors import ConfigSourceError, EntryError, SigningKeyError
from apiwatch.ledger.entry import decode_chain_id
from apiwatch.models import JobDescriptor
from apiwatch.source import JobSource


def _problems(descriptor: JobDescriptor) -> list[str]:
    problems = []
    try:
        decode_chain_id(descriptor.chain_id)
    except EntryError as e:
        problems.append(e.message)
    try:
        signing.public_key(descriptor.secret_key)
    except SigningKeyError as e:
        problems.append(e.message)
    if not descriptor.funding_address:
        problems.append("empty ECAddr")
    return problems


def check(
    config: Path = typer.Argument(..., help="Job source file (concatenated JSON records)"),
) -> None:
    """Parse CONFIG and validate every chain id and signing key.

    Nothing is fetched or submitted. Exits 1 if the file cannot be read,
    holds a malformed record, or any job is invalid.
    """
    try:
        source = JobSource.open(config)
    except ConfigSourceError as exc:
        print_error(exc.message)
        raise typer.Exit(code=1)

    table = Table(title=str(config), show_lines=False, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("APIMethod", overflow="fold")
    table.add_column("ChainID", overflow="fold")
    table.add_column("SecKey")
    table.add_column("ECAddr", overflow="fold")
    table.add_column("Status", overflow="fold")

    invalid = 0
    malformed: ConfigSourceError | None = None
    with source:
        try:
            for index, descriptor in enumerate(source):
                problems = _problems(descriptor)
                if problems:
                    invalid += 1
                status = f"[red]{escape('; '.join(problems))}[/red]" if problems else "[green]ok[/green]"
                table.add_row(
                    str(index),
                    escape(descriptor.api_method),
                    descriptor.chain_id,
                    descriptor.masked_key,
                    descriptor.funding_address,
                    status,
                )
        except ConfigSourceError as exc:
            malformed = exc

    console.print(table)

    if malformed is not None:
        print_error(malformed.message)
        raise typer.Exit(code=1)
    if invalid:
        print_error(f"{invalid} of {source.records_read} job(s) invalid")
        raise typer.Exit(code=1)
    console.print(f"[green]{source.records_read} job(s) ok[/green]")
