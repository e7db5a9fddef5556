"""
strata - storage lifecycle orchestration.

Adapter selection, database bootstrap, model discovery and association
wiring, and ledger-tracked schema migrations.
"""

__version__ = "0.1.0"

from strata.core import *  # noqa
