"""Adapter for bracketed-uppercase-marker bank statements (OFX 1.x SGML / OFX 2 XML).

Only the pieces needed for transaction rows are understood:

- ``<STMTTRN>`` starts a record; everything before the first one (headers,
  account metadata) is discarded.
- Inside a record, ``DTPOSTED`` and ``TRNAMT`` are required; ``MEMO``,
  ``NAME`` and ``TRNTYPE`` are optional.
- A field value runs from its opening marker to the first ``<`` (its closing
  marker, the next marker of any kind) or the end of the block, so exports
  that omit closing tags still parse.

Blocks missing a required field are dropped without error; some banks reuse
the record delimiter for non-transaction metadata.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Sequence
from functools import lru_cache
from uuid import uuid4

from ...logging_setup import get_logger, log_event
from ...models import CategoryCatalogue, RawRecord, StagingItem
from ...normalizers import normalize_record
from ...rules import DEFAULT_RULES, ClassificationRule, classify

RECORD_START = "STMTTRN"

_INTER_MARKER_WS_RE = re.compile(r">\s+<")
_RECORD_SPLIT_RE = re.compile(rf"<{RECORD_START}>", re.IGNORECASE)

_logger = get_logger("ledger_import.ingest.ofx")


@lru_cache(maxsize=32)
def _field_re(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{re.escape(tag)}(?:\s[^>]*)?>([^<]*)", re.IGNORECASE)


def split_record_blocks(text: str) -> list[str]:
    """Return the candidate record blocks of ``text`` in file order."""

    compact = _INTER_MARKER_WS_RE.sub("><", text)
    return _RECORD_SPLIT_RE.split(compact)[1:]


def extract_field(block: str, tag: str) -> str | None:
    """Return the trimmed value of ``tag`` in ``block``; ``None`` if absent or empty."""

    m = _field_re(tag).search(block)
    if m is None:
        return None
    value = m.group(1).strip()
    return value or None


def parse_records(text: str) -> list[RawRecord]:
    records: list[RawRecord] = []
    blocks = split_record_blocks(text)
    for pos, block in enumerate(blocks):
        posted = extract_field(block, "DTPOSTED")
        amount = extract_field(block, "TRNAMT")
        if posted is None or amount is None:
            log_event(
                _logger,
                "parse:block_dropped",
                level=logging.DEBUG,
                pos=pos,
                has_date=posted is not None,
                has_amount=amount is not None,
            )
            continue
        records.append(
            RawRecord(
                posted=posted,
                amount=amount,
                memo=extract_field(block, "MEMO"),
                name=extract_field(block, "NAME"),
                trntype=extract_field(block, "TRNTYPE"),
            )
        )
    log_event(_logger, "parse:done", blocks=len(blocks), records=len(records))
    return records


def iter_staging_items(
    records: Sequence[RawRecord],
    *,
    catalogue: CategoryCatalogue,
    units: Sequence[str],
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    id_factory: Callable[[], str] | None = None,
) -> Iterator[StagingItem]:
    """Normalize and rule-classify ``records`` into selected staging items."""

    make_id = id_factory or (lambda: uuid4().hex)
    default_unit = units[0] if units else ""
    for record in records:
        try:
            fields = normalize_record(record)
        except ValueError:
            log_event(
                _logger, "parse:amount_unreadable", level=logging.DEBUG, amount=record.amount
            )
            continue
        yield StagingItem(
            id=make_id(),
            date=fields.date,
            amount=fields.amount,
            description=fields.description,
            direction=fields.direction,
            category=classify(fields.description, fields.direction, catalogue, rules),
            unit=default_unit,
        )


def to_staging(
    text: str,
    *,
    catalogue: CategoryCatalogue,
    units: Sequence[str],
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    id_factory: Callable[[], str] | None = None,
) -> list[StagingItem]:
    """Statement text -> classified staging items (empty list when nothing parses)."""

    return list(
        iter_staging_items(
            parse_records(text),
            catalogue=catalogue,
            units=units,
            rules=rules,
            id_factory=id_factory,
        )
    )


__all__ = [
    "RECORD_START",
    "extract_field",
    "iter_staging_items",
    "parse_records",
    "split_record_blocks",
    "to_staging",
]
