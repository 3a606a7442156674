"""Persistence integration for ledger_import.

Committed ledger entries are written to the shared database owned by
``libs/db`` through the ORM model ``db.models.ledger.LedgerEntryRow``. The
caller supplies the session (see ``db.client.session_scope``) and owns the
transaction.

Every call inserts; entries are never compared with earlier imports. Amounts
are stored with ``AMOUNT_SCALE`` (four) decimal places.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.ledger import AMOUNT_SCALE, LedgerEntryRow

from .logging_setup import get_logger, log_event
from .models import Direction, FinalLedgerEntry, SettlementStatus

_logger = get_logger("ledger_import.persistence")

_AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)


def _to_column_scale(d: Decimal) -> Decimal:
    # Digits past the column scale are rounded half-up rather than truncated.
    return d.quantize(_AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def _to_row(entry: FinalLedgerEntry) -> LedgerEntryRow:
    return LedgerEntryRow(
        id=entry.id,
        date=entry.date,
        amount=_to_column_scale(entry.amount),
        direction=entry.direction.value,
        description=entry.description,
        category=entry.category,
        unit=entry.unit,
        status=entry.status.value,
        created_at=entry.created_at,
    )


def save_ledger_entries(session: Session, entries: Iterable[FinalLedgerEntry]) -> int:
    """Add ``entries`` to ``session`` and flush; returns the number inserted."""

    rows = [_to_row(e) for e in entries]
    if not rows:
        return 0
    session.add_all(rows)
    session.flush()
    log_event(_logger, "persist:inserted", rows=len(rows))
    return len(rows)


def load_ledger_entries(session: Session) -> list[FinalLedgerEntry]:
    """Read every stored entry back, ordered by creation time then date."""

    stmt = select(LedgerEntryRow).order_by(LedgerEntryRow.created_at, LedgerEntryRow.date)
    return [
        FinalLedgerEntry(
            id=row.id,
            date=row.date,
            amount=row.amount,
            direction=Direction(row.direction),
            description=row.description,
            category=row.category,
            unit=row.unit,
            status=SettlementStatus(row.status),
            created_at=row.created_at,
        )
        for row in session.scalars(stmt)
    ]


__all__ = ["load_ledger_entries", "save_ledger_entries"]
