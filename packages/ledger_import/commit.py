"""Selected staging items -> final ledger entries.

There is no validation path here: whatever fields a selected item carries at
commit time (rule, AI or manual) are copied as-is. Unselected items are
dropped for good, and nothing is compared against earlier imports.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from uuid import uuid4

from .models import FinalLedgerEntry, SettlementStatus, StagingItem

COMMITTED_STATUS = SettlementStatus.PAID


def build_ledger_entries(
    items: Iterable[StagingItem],
    *,
    now: datetime | None = None,
    id_factory: Callable[[], str] | None = None,
) -> list[FinalLedgerEntry]:
    """Return one entry per selected item, in staging order.

    All entries of one commit share the same ``created_at``.
    """

    created_at = now or datetime.now(UTC)
    make_id = id_factory or (lambda: str(uuid4()))
    return [
        FinalLedgerEntry(
            id=make_id(),
            date=item.date,
            amount=item.amount,
            direction=item.direction,
            description=item.description,
            category=item.category,
            unit=item.unit or None,
            status=COMMITTED_STATUS,
            created_at=created_at,
        )
        for item in items
        if item.selected
    ]


__all__ = ["COMMITTED_STATUS", "build_ledger_entries"]
