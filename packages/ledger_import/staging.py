"""In-memory staging store for one import session.

Every operation is synchronous and total: unknown identifiers, non-editable
fields, and blank bulk categories are ignored (logged at DEBUG) instead of
raising. Nothing here talks to persistence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Literal, get_args

from .logging_setup import get_logger, log_event
from .models import StagingItem

EditableField = Literal["date", "description", "category", "unit"]
EDITABLE_FIELDS: frozenset[str] = frozenset(get_args(EditableField))

_logger = get_logger("ledger_import.staging")


class StagingStore:
    """Ordered, editable, selectable batch of :class:`StagingItem`."""

    def __init__(self) -> None:
        self._items: list[StagingItem] = []
        self._by_id: dict[str, StagingItem] = {}

    # ---- Lifecycle -----------------------------------------------------------

    def load(self, items: Iterable[StagingItem]) -> None:
        """Replace the batch; every loaded item starts selected."""

        self._items = list(items)
        for item in self._items:
            item.selected = True
        self._by_id = {item.id: item for item in self._items}

    def clear(self) -> None:
        self._items = []
        self._by_id = {}

    # ---- Views ---------------------------------------------------------------

    @property
    def items(self) -> Sequence[StagingItem]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> StagingItem | None:
        return self._by_id.get(item_id)

    def selected_items(self) -> list[StagingItem]:
        return [i for i in self._items if i.selected]

    def distinct_descriptions(self) -> list[str]:
        """Descriptions in first-seen order, without repeats."""

        return list(dict.fromkeys(i.description for i in self._items))

    # ---- Selection -----------------------------------------------------------

    def toggle_selection(self, item_id: str) -> None:
        item = self._by_id.get(item_id)
        if item is None:
            log_event(_logger, "staging:toggle_unknown", level=logging.DEBUG, id=item_id)
            return
        item.selected = not item.selected

    def select_all(self, selected: bool) -> None:
        for item in self._items:
            item.selected = selected

    # ---- Edits ---------------------------------------------------------------

    def update_field(self, item_id: str, field: str, value: str) -> None:
        """Set ``date``, ``description``, ``category`` or ``unit`` on one item."""

        if field not in EDITABLE_FIELDS:
            log_event(_logger, "staging:field_not_editable", level=logging.DEBUG, field=field)
            return
        item = self._by_id.get(item_id)
        if item is None:
            log_event(_logger, "staging:update_unknown", level=logging.DEBUG, id=item_id)
            return
        setattr(item, field, value)
        if field == "category":
            item.edited = True

    def bulk_apply_category(self, name: str) -> int:
        """Set ``category`` on every selected item; returns how many changed."""

        if not name or not name.strip():
            return 0
        count = 0
        for item in self._items:
            if item.selected:
                item.category = name
                item.edited = True
                count += 1
        log_event(_logger, "staging:bulk_apply", category=name, items=count)
        return count

    def apply_categories(
        self,
        category_by_description: Mapping[str, str],
        *,
        protect_manual_edits: bool = False,
    ) -> int:
        """Overwrite ``category`` on every item whose description is a key.

        Hand-edited items are overwritten too unless ``protect_manual_edits``
        is set. Items whose description is absent from the mapping keep their
        category. Returns the number of items whose category changed.
        """

        changed = 0
        for item in self._items:
            new = category_by_description.get(item.description)
            if new is None:
                continue
            if protect_manual_edits and item.edited:
                continue
            if item.category != new:
                changed += 1
            item.category = new
        return changed


__all__ = ["EDITABLE_FIELDS", "EditableField", "StagingStore"]
