"""Learned description -> category patterns.

When a human corrects a category, the normalized description is remembered
so later imports can resolve it locally before asking the AI service.

Storage layout (relative to the cache root, default ``./.cache``)::

    <cache_root>/learned_patterns.json

The cache root can be overridden with ``LEDGER_IMPORT_CACHE_DIR``. Writes go
to a ``.tmp`` sibling first and are moved into place with ``os.replace``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from .logging_setup import get_logger, log_event
from .rules import DEFAULT_CATEGORY

SCHEMA_VERSION: int = 1
_FILE_NAME = "learned_patterns.json"
_MIN_PATTERN_LEN = 3

_DIGITS_RE = re.compile(r"[0-9]")
_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")

_logger = get_logger("ledger_import.patterns")


def normalize_pattern(description: str) -> str:
    """Lower-case, drop digits and punctuation, collapse whitespace."""

    s = _DIGITS_RE.sub("", description.lower())
    s = _PUNCT_RE.sub("", s)
    return _WS_RE.sub(" ", s).strip()


def get_cache_root() -> Path:
    root = os.getenv("LEDGER_IMPORT_CACHE_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".cache").resolve()


class _PatternFile(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    schema_version: int
    patterns: dict[str, str]


class PatternStore:
    """JSON-backed mapping of normalized description to category."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else get_cache_root() / _FILE_NAME
        self._patterns: dict[str, str] | None = None

    @classmethod
    def in_dir(cls, cache_dir: Path | None) -> PatternStore:
        """Store under ``cache_dir``, or under :func:`get_cache_root` when None."""

        if cache_dir is None:
            return cls()
        return cls(Path(cache_dir).expanduser() / _FILE_NAME)

    def _load(self) -> dict[str, str]:
        if self._patterns is not None:
            return self._patterns
        patterns: dict[str, str] = {}
        if self.path.exists():
            try:
                parsed = _PatternFile.model_validate_json(self.path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                log_event(
                    _logger,
                    "patterns:load_failed",
                    level=logging.WARNING,
                    path=self.path,
                    error=e,
                )
            else:
                if parsed.schema_version == SCHEMA_VERSION:
                    patterns = dict(parsed.patterns)
        self._patterns = patterns
        return patterns

    def _write(self, patterns: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = {"schema_version": SCHEMA_VERSION, "patterns": patterns}
        tmp.write_text(json.dumps(payload, ensure_ascii=False, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    def lookup(self, description: str) -> str | None:
        return self._load().get(normalize_pattern(description))

    def learn(self, description: str, category: str) -> bool:
        """Remember ``category`` for ``description``; returns True when stored."""

        if not description or not category or category == DEFAULT_CATEGORY:
            return False
        pattern = normalize_pattern(description)
        if len(pattern) < _MIN_PATTERN_LEN:
            return False
        patterns = self._load()
        if patterns.get(pattern) == category:
            return False
        patterns[pattern] = category
        self._write(patterns)
        log_event(
            _logger, "patterns:learned", level=logging.DEBUG, pattern=pattern, category=category
        )
        return True

    def __len__(self) -> int:
        return len(self._load())


__all__ = ["PatternStore", "get_cache_root", "normalize_pattern"]
