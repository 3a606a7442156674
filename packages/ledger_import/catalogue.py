"""Category catalogue and unit list loading.

Catalogues are owned by the host application; this module only reads a JSON
snapshot of one. The packaged seed mirrors the shop's original category set::

    {"inflow": [...], "outflow": [...], "default": "Outros", "units": [...]}
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from .models import CategoryCatalogue

SEED_PATH = Path(__file__).resolve().parent / "ingest" / "seeds" / "catalogue.v1.json"


class _CatalogueFile(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    inflow: list[str]
    outflow: list[str]
    default: str | None = "Outros"
    units: list[str] = []

    @field_validator("inflow", "outflow", "units")
    @classmethod
    def _drop_blank(cls, v: list[str]) -> list[str]:
        # Trim, drop blanks, keep first occurrence order.
        return list(dict.fromkeys(s.strip() for s in v if s.strip()))


def load_catalogue(
    path: str | PathLike[str] | None = None,
) -> tuple[CategoryCatalogue, list[str]]:
    """Return ``(catalogue, units)`` from ``path`` or the packaged seed.

    Raises ``FileNotFoundError`` for a missing file and
    ``pydantic.ValidationError`` for a malformed one.
    """

    p = Path(path) if path is not None else SEED_PATH
    parsed = _CatalogueFile.model_validate_json(p.read_text(encoding="utf-8"))
    catalogue = CategoryCatalogue.from_lists(parsed.inflow, parsed.outflow, default=parsed.default)
    return catalogue, list(parsed.units)


__all__ = ["SEED_PATH", "load_catalogue"]
