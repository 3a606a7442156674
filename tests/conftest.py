"""Pytest configuration for test isolation.

Learned category patterns persist under a project-relative cache directory
(``./.cache``). Tests sharing a working tree would otherwise see patterns
learned by earlier tests and skip the stubbed OpenAI call paths, so the cache
root is redirected to a per-test temporary directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from ledger_import.catalogue import load_catalogue
from ledger_import.models import CategoryCatalogue

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(autouse=True)
def _isolate_cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point ``LEDGER_IMPORT_CACHE_DIR`` at the test's own temporary directory."""

    cache_root = tmp_path / "cache"
    cache_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("LEDGER_IMPORT_CACHE_DIR", os.fspath(cache_root))


@pytest.fixture
def catalogue() -> CategoryCatalogue:
    cat, _units = load_catalogue()
    return cat


@pytest.fixture
def units() -> list[str]:
    _cat, loaded = load_catalogue()
    return loaded


@pytest.fixture
def sample_statement_path() -> Path:
    return DATA_DIR / "sample_statement.ofx"


@pytest.fixture
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make AI retries immediate."""

    import ledger_import.categorize as categorize_mod

    monkeypatch.setattr(categorize_mod, "_sleep_backoff", lambda attempt_no: None)
