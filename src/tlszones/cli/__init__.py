"""CLI module for tlszones.

Provides the command-line interface for zoning single annotation files
and whole directories of them.
"""

from __future__ import annotations

from tlszones.cli.main import app

__all__ = ["app"]
