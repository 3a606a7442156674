"""Data models for ``ledger_import``.

The statement pipeline moves through three shapes:

- :class:`RawRecord`: raw strings pulled out of one statement record block.
- :class:`StagingItem`: an editable candidate ledger entry held by a staging
  session until the human commits or cancels.
- :class:`FinalLedgerEntry`: the immutable artifact handed to persistence.

Category catalogues are owned by the caller; this package only reads them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    """Whether a transaction increases or decreases the account balance."""

    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


class SettlementStatus(StrEnum):
    PAID = "PAID"
    PENDING = "PENDING"


# ---------------------------------------------------------------------------
# Parsing and staging
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawRecord:
    """Raw field strings extracted from one statement record block.

    ``posted`` and ``amount`` are always non-empty; a block lacking either
    never becomes a record.
    """

    posted: str
    amount: str
    memo: str | None = None
    name: str | None = None
    trntype: str | None = None


@dataclass(frozen=True, slots=True)
class NormalizedFields:
    """Typed values derived from a :class:`RawRecord`.

    Attributes
    ----------
    date:
        ISO ``YYYY-MM-DD`` string read positionally from the posting date.
    amount:
        Absolute value of the signed statement amount.
    direction:
        Derived once from the sign of the statement amount.
    description:
        Memo, payee name, or a generic label; whitespace collapsed.
    """

    date: str
    amount: Decimal
    direction: Direction
    description: str


@dataclass(slots=True)
class StagingItem:
    """A reviewable candidate ledger entry.

    ``direction`` and ``amount`` are fixed at parse time; the staging store
    never edits them. ``edited`` records that a human changed the category.
    """

    id: str
    date: str
    amount: Decimal
    description: str
    direction: Direction
    category: str
    unit: str
    selected: bool = True
    edited: bool = False


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryCatalogue:
    """Caller-owned category names, one ordered list per direction."""

    inflow: tuple[str, ...]
    outflow: tuple[str, ...]
    default: str | None = "Outros"

    @classmethod
    def from_lists(
        cls,
        inflow: Sequence[str],
        outflow: Sequence[str],
        *,
        default: str | None = "Outros",
    ) -> CategoryCatalogue:
        return cls(inflow=tuple(inflow), outflow=tuple(outflow), default=default)

    def for_direction(self, direction: Direction) -> tuple[str, ...]:
        return self.inflow if direction == Direction.INFLOW else self.outflow

    def combined(self) -> list[str]:
        """Inflow then outflow names, order preserved, duplicates removed."""

        return list(dict.fromkeys((*self.inflow, *self.outflow)))


# ---------------------------------------------------------------------------
# Commit output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FinalLedgerEntry:
    """A committed ledger entry ready for the persistence layer.

    ``id`` is minted at commit time and shares nothing with the staging
    identifier the entry was built from.
    """

    id: str
    date: str
    amount: Decimal
    direction: Direction
    description: str
    category: str
    unit: str | None
    status: SettlementStatus
    created_at: datetime


__all__ = [
    "CategoryCatalogue",
    "Direction",
    "FinalLedgerEntry",
    "NormalizedFields",
    "RawRecord",
    "SettlementStatus",
    "StagingItem",
]
