from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Statement amounts may carry more than two decimals ("1,234" reads as 1.234).
AMOUNT_SCALE = 4


class Base(DeclarativeBase):
    pass


# ---------------------------
# Fact: ledger_entries
# ---------------------------


class LedgerEntryRow(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Kept as text: statement dates are sliced positionally and may not be
    # valid calendar dates.
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, AMOUNT_SCALE), nullable=False)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    unit: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_ledger_entries_amount_nonneg"),
        CheckConstraint(
            "direction IN ('INFLOW','OUTFLOW')", name="ck_ledger_entries_direction"
        ),
        CheckConstraint("status IN ('PAID','PENDING')", name="ck_ledger_entries_status"),
        Index("ix_ledger_entries_date", "date"),
    )
