"""ledger_import: bank statement ingestion and categorization.

Typical use::

    from ledger_import import ImportSession, load_catalogue, load_statement

    catalogue, units = load_catalogue()
    session = ImportSession.from_statement(
        load_statement("extrato.ofx"), catalogue=catalogue, units=units
    )
    entries = session.commit()

Importing the package has no side effects; logging is configured by the CLI
(or by the host application through :func:`configure_logging`).
"""

from .catalogue import load_catalogue
from .categorize import AiClassifier, AiMergeOutcome, ClassificationError, ClassificationTask
from .commit import build_ledger_entries
from .ingest.adapters.ofx_sgml import parse_records, to_staging
from .ingest.utils import decode_statement, load_statement
from .logging_setup import configure_logging
from .models import (
    CategoryCatalogue,
    Direction,
    FinalLedgerEntry,
    RawRecord,
    SettlementStatus,
    StagingItem,
)
from .patterns import PatternStore
from .session import ImportSession
from .staging import StagingStore

__all__ = [
    "AiClassifier",
    "AiMergeOutcome",
    "CategoryCatalogue",
    "ClassificationError",
    "ClassificationTask",
    "Direction",
    "FinalLedgerEntry",
    "ImportSession",
    "PatternStore",
    "RawRecord",
    "SettlementStatus",
    "StagingItem",
    "StagingStore",
    "build_ledger_entries",
    "configure_logging",
    "decode_statement",
    "load_catalogue",
    "load_statement",
    "parse_records",
    "to_staging",
]
