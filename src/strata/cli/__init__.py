"""
CLI layer for strata.

Provides a Typer application whose commands delegate to the operations
layer (``strata.ops``).  All lifecycle logic lives in ops and core —
this package handles only terminal transport: argument parsing,
coloured output, and exit codes.

Entry point::

    strata --help
"""

from strata.cli.app import app

__all__ = ["app"]
