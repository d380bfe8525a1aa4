"""
CLI layer for apiwatch.

A Typer application with three commands: ``run`` executes every job of a
job source, ``check`` validates a job source without touching the network,
and ``keygen`` creates signing keys. Business logic lives in
``apiwatch.execution``; this package only parses arguments and renders
results.

Entry point::

    apiwatch --help
"""

from apiwatch.cli.app import app

__all__ = ["app"]
