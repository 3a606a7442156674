"""Prompt construction for bulk description classification.

This module builds:
- The system instructions for the classification task.
- The user content embedding the allowed categories and the descriptions as
  delimited JSON arrays.
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

BEGIN_DESCRIPTIONS = "BEGIN_DESCRIPTIONS_JSON"
END_DESCRIPTIONS = "END_DESCRIPTIONS_JSON"


def build_system_instructions() -> str:
    return (
        "You classify bank statement lines for a small Brazilian confectionery "
        "retail business. For every description choose exactly one category from "
        "the allowed list, copying its spelling exactly. Never invent categories. "
        "Output JSON only that conforms to the specified schema."
    )


def build_user_content(descriptions: Sequence[str], categories: Sequence[str]) -> str:
    """Embed the allowed categories and the descriptions between markers.

    Descriptions are serialized as a JSON array so that quoting and unicode
    survive unchanged; the model must echo each description verbatim.
    """

    categories_json = json.dumps(list(categories), ensure_ascii=False)
    descriptions_json = json.dumps(list(descriptions), ensure_ascii=False)
    return (
        f"Allowed categories: {categories_json}\n"
        "Return one result per description, echoing the description verbatim.\n"
        f"{BEGIN_DESCRIPTIONS}\n{descriptions_json}\n{END_DESCRIPTIONS}"
    )


def build_response_format(categories: Sequence[str]) -> dict[str, Any]:
    """Return the strict JSON Schema response format.

    Schema shape::

        {"results": [{"description": str, "category": <enum of categories>}]}
    """

    names = [c for c in dict.fromkeys(s.strip() for s in categories) if c]
    if not names:
        raise ValueError("categories must contain at least one non-blank name")

    return {
        "type": "json_schema",
        "name": "statement_categories",
        "schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "description": {"type": "string"},
                            "category": {"type": "string", "enum": names},
                        },
                        "required": ["description", "category"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
        "strict": True,
    }


__all__ = [
    "BEGIN_DESCRIPTIONS",
    "END_DESCRIPTIONS",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
]
