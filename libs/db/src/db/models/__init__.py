"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the ledger entries written by ``ledger_import``.
"""

from .ledger import Base, LedgerEntryRow

__all__ = [
    "Base",
    "LedgerEntryRow",
]
