"""Allow ``python -m apiwatch``."""

from apiwatch.cli import app

app(prog_name="apiwatch")
