from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_import.models import Direction, RawRecord
from ledger_import.normalizers import (
    GENERIC_DESCRIPTION,
    clean_description,
    normalize_date,
    normalize_record,
    parse_amount,
    split_direction,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.234,56", Decimal("1234.56")),
        ("1234,56", Decimal("1234.56")),
        ("1234.56", Decimal("1234.56")),
        ("-50.00", Decimal("-50.00")),
        ("50", Decimal("50")),
        # Single comma is always read as the decimal separator.
        ("1,234", Decimal("1.234")),
        ("  12.5 BRL", Decimal("12.5")),
    ],
)
def test_parse_amount_locale_heuristic(raw: str, expected: Decimal):
    assert parse_amount(raw) == expected


def test_parse_amount_rejects_text_without_number():
    with pytest.raises(ValueError):
        parse_amount("R$")


def test_split_direction_signs():
    assert split_direction(Decimal("-50.00")) == (Decimal("50.00"), Direction.OUTFLOW)
    assert split_direction(Decimal("50")) == (Decimal("50"), Direction.INFLOW)
    assert split_direction(Decimal("0")) == (Decimal("0"), Direction.INFLOW)


def test_normalize_date_slices_first_eight_characters():
    assert normalize_date("20240315093000[-3:BRT]") == "2024-03-15"
    assert normalize_date("20240315") == "2024-03-15"


def test_clean_description_prefers_memo_then_name_then_generic():
    assert clean_description("  PIX   RECEBIDO\n", "ignored") == "PIX RECEBIDO"
    assert clean_description("   ", "Padaria &amp; Cia") == "Padaria & Cia"
    assert clean_description(None, None) == GENERIC_DESCRIPTION


def test_normalize_record_outflow():
    fields = normalize_record(
        RawRecord(posted="20240102", amount="-1.000,00", memo="ALUGUEL", name=None, trntype="DEBIT")
    )
    assert fields.date == "2024-01-02"
    assert fields.amount == Decimal("1000.00")
    assert fields.direction is Direction.OUTFLOW
    assert fields.description == "ALUGUEL"
