"""Allow ``python -m tlszones``."""

from tlszones.cli.main import app

app()
