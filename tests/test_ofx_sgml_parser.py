from __future__ import annotations

import codecs
import textwrap
from decimal import Decimal
from pathlib import Path

from ledger_import.ingest.adapters.ofx_sgml import (
    extract_field,
    parse_records,
    split_record_blocks,
    to_staging,
)
from ledger_import.ingest.utils import decode_statement, load_statement
from ledger_import.models import Direction
from ledger_import.normalizers import GENERIC_DESCRIPTION


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


def test_split_record_blocks_drops_preamble_and_is_case_insensitive():
    text = "<OFX><BANKTRANLIST>\n  <stmttrn><TRNAMT>1</stmttrn>\n<StmtTrn><TRNAMT>2"
    blocks = split_record_blocks(text)
    assert len(blocks) == 2
    assert extract_field(blocks[0], "TRNAMT") == "1"
    assert extract_field(blocks[1], "TRNAMT") == "2"


def test_split_ignores_container_marker_with_longer_name():
    text = "<STMTTRNRS><TRNUID>1<STMTTRN><TRNAMT>5"
    blocks = split_record_blocks(text)
    assert len(blocks) == 1


def test_extract_field_handles_missing_closers_and_blank_values():
    block = "<TRNTYPE>DEBIT<DTPOSTED>20240102<MEMO>   <NAME> Padaria  </STMTTRN>"
    assert extract_field(block, "trntype") == "DEBIT"
    assert extract_field(block, "DTPOSTED") == "20240102"
    assert extract_field(block, "MEMO") is None
    assert extract_field(block, "NAME") == "Padaria"
    assert extract_field(block, "TRNAMT") is None


def test_parse_records_requires_date_and_amount():
    text = _dedent(
        """
        <STMTTRN>
        <DTPOSTED>20240105
        <TRNAMT>10.00
        <MEMO>ok
        </STMTTRN>
        <STMTTRN>
        <DTPOSTED>20240106
        <MEMO>no amount
        </STMTTRN>
        <STMTTRN>
        <TRNAMT>5.00
        <MEMO>no date
        </STMTTRN>
        """
    )
    records = parse_records(text)
    assert len(records) == 1
    assert records[0].posted == "20240105"
    assert records[0].amount == "10.00"
    assert records[0].memo == "ok"
    assert records[0].name is None


def test_text_without_records_yields_empty_batch(catalogue):
    assert parse_records("not a statement at all") == []
    assert to_staging("", catalogue=catalogue, units=["Loja"]) == []


def test_sample_statement_to_staging(catalogue, units, sample_statement_path: Path):
    items = to_staging(load_statement(sample_statement_path), catalogue=catalogue, units=units)

    got = [(i.date, i.amount, i.direction, i.description, i.category) for i in items]
    assert got == [
        ("2024-01-05", Decimal("150.00"), Direction.INFLOW, "PIX RECEBIDO MARIA SILVA", "Vendas Loja"),
        ("2024-01-06", Decimal("89.90"), Direction.OUTFLOW, "ENEL DISTRIBUICAO SP", "Energia"),
        (
            "2024-01-07",
            Decimal("1320.50"),
            Direction.INFLOW,
            "IFOOD.COM AGENCIA DE RESTAURANTES",
            "iFood",
        ),
        ("2024-01-08", Decimal("45.30"), Direction.OUTFLOW, "LOJA ABC & CIA", "Outros"),
        ("2024-01-10", Decimal("12.00"), Direction.OUTFLOW, GENERIC_DESCRIPTION, "Outros"),
        ("2024-01-11", Decimal("89.90"), Direction.OUTFLOW, "ENEL DISTRIBUICAO SP", "Energia"),
    ]
    assert all(i.unit == "Mirella Doces" for i in items)
    assert all(i.selected and not i.edited for i in items)
    assert len({i.id for i in items}) == len(items)


def test_no_units_means_empty_unit(catalogue):
    items = to_staging("<STMTTRN><DTPOSTED>20240101<TRNAMT>1", catalogue=catalogue, units=[])
    assert [i.unit for i in items] == [""]


def test_unreadable_amount_drops_record(catalogue):
    text = "<STMTTRN><DTPOSTED>20240101<TRNAMT>abc<STMTTRN><DTPOSTED>20240102<TRNAMT>7"
    items = to_staging(text, catalogue=catalogue, units=["Loja"])
    assert [i.date for i in items] == ["2024-01-02"]


def test_id_factory_is_used(catalogue):
    ids = iter(["a", "b"])
    text = "<STMTTRN><DTPOSTED>20240101<TRNAMT>1<STMTTRN><DTPOSTED>20240102<TRNAMT>2"
    items = to_staging(text, catalogue=catalogue, units=[], id_factory=lambda: next(ids))
    assert [i.id for i in items] == ["a", "b"]


# ---- Decoding ----------------------------------------------------------------


def test_decode_statement_honours_cp1252_charset_header():
    payload = "CHARSET:1252\n<STMTTRN><MEMO>Água".encode("cp1252")
    assert decode_statement(payload).endswith("Água")


def test_decode_statement_prefers_utf8_and_strips_bom():
    payload = codecs.BOM_UTF8 + "<MEMO>Manutenção".encode()
    assert decode_statement(payload) == "<MEMO>Manutenção"


def test_decode_statement_falls_back_to_cp1252_for_undeclared_bytes():
    payload = "<MEMO>Salário".encode("cp1252")
    assert decode_statement(payload) == "<MEMO>Salário"
