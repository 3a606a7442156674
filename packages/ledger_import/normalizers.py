"""Raw statement strings -> typed values.

Amount parsing is a locale heuristic with no error signal on misreads:

- both ``.`` and ``,`` present: ``.`` is grouping, ``,`` is fractional
  (``"1.234,56"`` -> ``1234.56``);
- only ``,`` present: it is the fractional separator (``"1234,56"`` ->
  ``1234.56``; note ``"1,234"`` -> ``1.234``);
- otherwise the string is read as-is (``"1234.56"``).

The numeric value is taken from the longest leading numeric prefix, so
trailing junk (currency suffixes, stray characters) is ignored rather than
rejected.
"""

from __future__ import annotations

import html
import re
from decimal import Decimal

from .models import Direction, NormalizedFields, RawRecord

GENERIC_DESCRIPTION = "Movimentação Bancária"

_GROUPING = "."
_FRACTIONAL = ","
_NUMERIC_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")
_WS_RE = re.compile(r"\s+")


def normalize_date(raw: str) -> str:
    """Read ``YYYYMMDD...`` positionally as ``YYYY-MM-DD``.

    Time and timezone suffixes (``20240115120000[-3:BRT]``) are ignored and no
    calendar validation happens.
    """

    s = raw.strip()
    return f"{s[0:4]}-{s[4:6]}-{s[6:8]}"


def parse_amount(raw: str) -> Decimal:
    """Parse a signed statement amount (see module docstring).

    Raises ``ValueError`` only when the string holds no numeric prefix at all.
    """

    s = raw.strip()
    if _GROUPING in s and _FRACTIONAL in s:
        s = s.replace(_GROUPING, "").replace(_FRACTIONAL, ".")
    elif _FRACTIONAL in s:
        s = s.replace(_FRACTIONAL, ".")

    m = _NUMERIC_PREFIX_RE.match(s)
    if m is None:
        raise ValueError(f"invalid amount: {raw!r}")
    return Decimal(m.group(1))


def split_direction(signed: Decimal) -> tuple[Decimal, Direction]:
    """Return ``(abs(signed), direction)``; zero counts as an inflow."""

    direction = Direction.INFLOW if signed >= 0 else Direction.OUTFLOW
    return abs(signed), direction


def clean_description(memo: str | None, name: str | None) -> str:
    for candidate in (memo, name):
        if candidate is None:
            continue
        text = _WS_RE.sub(" ", html.unescape(candidate)).strip()
        if text:
            return text
    return GENERIC_DESCRIPTION


def normalize_record(record: RawRecord) -> NormalizedFields:
    amount, direction = split_direction(parse_amount(record.amount))
    return NormalizedFields(
        date=normalize_date(record.posted),
        amount=amount,
        direction=direction,
        description=clean_description(record.memo, record.name),
    )


__all__ = [
    "GENERIC_DESCRIPTION",
    "clean_description",
    "normalize_date",
    "normalize_record",
    "parse_amount",
    "split_direction",
]
