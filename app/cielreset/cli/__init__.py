"""CLI package for cielreset.

This package contains the Typer application.
"""

from cielreset.cli.main import app

__all__ = ["app"]
