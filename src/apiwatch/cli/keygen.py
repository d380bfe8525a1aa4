"""
CLI: ``apiwatch keygen`` — create an Ed25519 signing key for a job.
"""

from __future__ import annotations

import typer

from apiwatch import signing
from apiwatch.cli.utils import console


def keygen(
    json_out: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Generate a signing key.

    The secret key goes into a job's ``SecKey`` field; publish the public
    key so readers of the chain can verify the anchored records.
    """
    secret = signing.generate_secret_key()
    public = signing.public_key(secret).hex()

    if json_out:
        console.print_json(data={"secret_key": secret, "public_key": public})
        return

    console.print(f"[bold]secret_key[/bold] {secret}", soft_wrap=True)
    console.print(f"[bold]public_key[/bold] {public}", soft_wrap=True)
