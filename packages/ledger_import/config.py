"""Runtime settings resolved from the environment.

The CLI loads a local ``.env`` (``python-dotenv``) before calling
:meth:`ImportSettings.from_env`, so values may come from either place.
``OPENAI_API_KEY`` is read by the OpenAI SDK itself and is not mirrored here.

Variables
---------
``LEDGER_IMPORT_MODEL``                  model name for AI classification
``LEDGER_IMPORT_AI_PAGE_SIZE``           descriptions per AI request
``LEDGER_IMPORT_AI_CONCURRENCY``         AI requests in flight
``LEDGER_IMPORT_PROTECT_MANUAL_EDITS``   keep hand-edited categories on AI merge
``LEDGER_IMPORT_CATALOGUE``              path to a catalogue JSON file
``LEDGER_IMPORT_CACHE_DIR``              learned-pattern cache root
``DATABASE_URL``                         persistence target
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    return default


def _env_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw and raw.strip():
        return Path(raw.strip()).expanduser()
    return None


@dataclass(frozen=True, slots=True)
class ImportSettings:
    model: str = "gpt-5-mini"
    ai_page_size: int = 200
    ai_concurrency: int = 2
    protect_manual_edits: bool = False
    catalogue_path: Path | None = None
    cache_dir: Path | None = None
    database_url: str | None = None

    @classmethod
    def from_env(cls) -> ImportSettings:
        defaults = cls()
        return cls(
            model=(os.getenv("LEDGER_IMPORT_MODEL") or "").strip() or defaults.model,
            ai_page_size=_env_positive_int("LEDGER_IMPORT_AI_PAGE_SIZE", defaults.ai_page_size),
            ai_concurrency=_env_positive_int(
                "LEDGER_IMPORT_AI_CONCURRENCY", defaults.ai_concurrency
            ),
            protect_manual_edits=_env_bool(
                "LEDGER_IMPORT_PROTECT_MANUAL_EDITS", defaults.protect_manual_edits
            ),
            catalogue_path=_env_path("LEDGER_IMPORT_CATALOGUE"),
            cache_dir=_env_path("LEDGER_IMPORT_CACHE_DIR"),
            database_url=os.getenv("DATABASE_URL") or None,
        )


__all__ = ["ImportSettings"]
