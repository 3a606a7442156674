from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from ledger_import.catalogue import load_catalogue
from ledger_import.config import ImportSettings
from ledger_import.patterns import PatternStore, get_cache_root, normalize_pattern


# ---- Learned patterns --------------------------------------------------------


def test_normalize_pattern_strips_digits_and_punctuation():
    assert normalize_pattern("PIX ENVIADO 123.456-78 /  Frete!") == "pix enviado frete"


def test_pattern_store_round_trips_through_cache_dir(tmp_path: Path):
    assert get_cache_root() == (tmp_path / "cache").resolve()
    store = PatternStore()
    assert store.learn("Kalunga Loja 42", "Compras de Equipamentos") is True

    reloaded = PatternStore()
    assert reloaded.lookup("KALUNGA LOJA 7") == "Compras de Equipamentos"
    assert len(reloaded) == 1
    assert not list((tmp_path / "cache").glob("*.tmp"))


@pytest.mark.parametrize(
    ("description", "category"),
    [("", "Frete"), ("Loggi", ""), ("Loggi", "Outros"), ("12 ab", "Frete")],
)
def test_pattern_store_skips_uninformative_entries(description: str, category: str):
    store = PatternStore()
    assert store.learn(description, category) is False
    assert len(store) == 0


def test_pattern_store_tolerates_corrupt_file(tmp_path: Path):
    path = tmp_path / "patterns.json"
    path.write_text("{broken", encoding="utf-8")
    store = PatternStore(path)
    assert store.lookup("anything") is None
    assert store.learn("Loggi entregas", "Frete") is True
    assert json.loads(path.read_text(encoding="utf-8"))["patterns"] == {"loggi entregas": "Frete"}


# ---- Catalogue ---------------------------------------------------------------


def test_seed_catalogue_matches_shop_categories():
    cat, units = load_catalogue()
    assert units == ["Mirella Doces"]
    assert cat.default == "Outros"
    assert cat.inflow[0] == "Vendas Loja"
    assert "Energia" in cat.outflow
    combined = cat.combined()
    assert combined.count("Outros") == 1
    assert combined[: len(cat.inflow)] == list(cat.inflow)


def test_custom_catalogue_file(tmp_path: Path):
    path = tmp_path / "cat.json"
    path.write_text(
        json.dumps({"inflow": [" Vendas ", "", "Vendas"], "outflow": ["Contas"], "units": ["A", "B"]}),
        encoding="utf-8",
    )
    cat, units = load_catalogue(path)
    assert cat.inflow == ("Vendas",)
    assert cat.outflow == ("Contas",)
    assert units == ["A", "B"]


def test_malformed_catalogue_raises(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"inflow": "nope"}), encoding="utf-8")
    with pytest.raises(ValidationError):
        load_catalogue(path)


# ---- Settings ----------------------------------------------------------------


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("LEDGER_IMPORT_MODEL", "gpt-test")
    monkeypatch.setenv("LEDGER_IMPORT_AI_PAGE_SIZE", "50")
    monkeypatch.setenv("LEDGER_IMPORT_AI_CONCURRENCY", "zero")
    monkeypatch.setenv("LEDGER_IMPORT_PROTECT_MANUAL_EDITS", "yes")
    monkeypatch.setenv("LEDGER_IMPORT_CATALOGUE", str(tmp_path / "c.json"))
    monkeypatch.setenv("DATABASE_URL", "sqlite:///x.db")

    s = ImportSettings.from_env()

    assert s.model == "gpt-test"
    assert s.ai_page_size == 50
    assert s.ai_concurrency == 2
    assert s.protect_manual_edits is True
    assert s.catalogue_path == tmp_path / "c.json"
    assert s.cache_dir == tmp_path / "cache"
    assert s.database_url == "sqlite:///x.db"


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "LEDGER_IMPORT_MODEL",
        "LEDGER_IMPORT_AI_PAGE_SIZE",
        "LEDGER_IMPORT_PROTECT_MANUAL_EDITS",
        "DATABASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    s = ImportSettings.from_env()
    assert (s.model, s.ai_page_size, s.protect_manual_edits, s.database_url) == (
        "gpt-5-mini",
        200,
        False,
        None,
    )
