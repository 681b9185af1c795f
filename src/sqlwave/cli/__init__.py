"""
CLI layer for sqlwave.

A Typer application whose commands delegate to ``sqlwave.migrations.runner``;
this package only handles argument parsing, coloured output and tables.

Entry point::

    sqlwave --help
"""

from sqlwave.cli.app import app

__all__ = ["app"]
