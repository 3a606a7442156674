"""One import session: statement in, ledger entries out.

An :class:`ImportSession` owns a single :class:`StagingStore`. The store is
created from a statement, mutated freely by the reviewer and the AI merge,
and closed by :meth:`ImportSession.commit` or :meth:`ImportSession.cancel`.
Once closed, staging operations are no-ops and a late AI result has nothing
to apply to.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime

from .categorize import (
    AiClassifier,
    AiMergeOutcome,
    ClassificationTask,
    merge_classification,
    start_classification,
)
from .commit import build_ledger_entries
from .ingest.adapters.ofx_sgml import to_staging
from .logging_setup import get_logger, log_event
from .models import CategoryCatalogue, Direction, FinalLedgerEntry, StagingItem
from .patterns import PatternStore
from .rules import DEFAULT_RULES, ClassificationRule, match_category_name
from .staging import StagingStore

_logger = get_logger("ledger_import.session")


class ImportSession:
    def __init__(
        self,
        items: Sequence[StagingItem],
        *,
        catalogue: CategoryCatalogue,
        units: Sequence[str] = (),
    ) -> None:
        self.catalogue = catalogue
        self.units = list(units)
        self.store = StagingStore()
        self.store.load(items)
        self._closed = False
        self._task: ClassificationTask | None = None

    @classmethod
    def from_statement(
        cls,
        text: str,
        *,
        catalogue: CategoryCatalogue,
        units: Sequence[str] = (),
        rules: Sequence[ClassificationRule] = DEFAULT_RULES,
        id_factory: Callable[[], str] | None = None,
    ) -> ImportSession:
        items = to_staging(
            text, catalogue=catalogue, units=units, rules=rules, id_factory=id_factory
        )
        log_event(_logger, "session:staged", items=len(items))
        return cls(items, catalogue=catalogue, units=units)

    # ---- State ---------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def items(self) -> Sequence[StagingItem]:
        return self.store.items

    def __len__(self) -> int:
        return len(self.store)

    @property
    def ai_task(self) -> ClassificationTask | None:
        """The outstanding AI task, if one was started and not yet applied."""

        return self._task

    def category_for(self, name: str, direction: Direction | None = None) -> str | None:
        """Catalogue spelling of ``name`` (case-insensitive), or None if unlisted.

        With ``direction`` only that direction's list counts; without it any
        category in the catalogue does.
        """

        names = (
            self.catalogue.combined()
            if direction is None
            else self.catalogue.for_direction(direction)
        )
        return match_category_name(name.strip(), names)

    # ---- Staging operations --------------------------------------------------

    def toggle_selection(self, item_id: str) -> None:
        if not self._closed:
            self.store.toggle_selection(item_id)

    def select_all(self, selected: bool) -> None:
        if not self._closed:
            self.store.select_all(selected)

    def update_field(self, item_id: str, field: str, value: str) -> None:
        if not self._closed:
            self.store.update_field(item_id, field, value)

    def bulk_apply_category(self, name: str) -> int:
        if self._closed:
            return 0
        return self.store.bulk_apply_category(name)

    # ---- AI ------------------------------------------------------------------

    def start_ai_classification(self, classifier: AiClassifier) -> ClassificationTask:
        """Start classifying the batch's distinct descriptions in the background.

        At most one task is outstanding per session; starting a new one
        abandons the previous task. A closed session submits nothing and
        returns an already cancelled task.
        """

        if self._closed:
            return ClassificationTask.abandoned()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = start_classification(
            classifier, self.store.distinct_descriptions(), self.catalogue.combined()
        )
        return self._task

    def apply_ai_result(
        self,
        task: ClassificationTask,
        *,
        timeout: float | None = None,
        protect_manual_edits: bool = False,
    ) -> AiMergeOutcome:
        if self._closed:
            log_event(_logger, "session:ai_result_discarded", reason="closed")
            return AiMergeOutcome(applied=0)
        outcome = merge_classification(
            self.store, task, timeout=timeout, protect_manual_edits=protect_manual_edits
        )
        if task is self._task and task.done():
            self._task = None
        return outcome

    def classify_with_ai(
        self,
        classifier: AiClassifier,
        *,
        timeout: float | None = None,
        protect_manual_edits: bool = False,
    ) -> AiMergeOutcome:
        if self._closed:
            return AiMergeOutcome(applied=0)
        task = self.start_ai_classification(classifier)
        return self.apply_ai_result(
            task, timeout=timeout, protect_manual_edits=protect_manual_edits
        )

    # ---- Closing -------------------------------------------------------------

    def commit(
        self,
        *,
        now: datetime | None = None,
        patterns: PatternStore | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> list[FinalLedgerEntry]:
        """Build entries from the selected items and close the session.

        Hand-edited committed items teach ``patterns`` when one is given.
        Committing a closed session returns an empty list.
        """

        if self._closed:
            return []
        selected = self.store.selected_items()
        entries = build_ledger_entries(selected, now=now, id_factory=id_factory)
        if patterns is not None:
            learned = sum(
                1
                for item in selected
                if item.edited and patterns.learn(item.description, item.category)
            )
            log_event(_logger, "session:patterns_learned", count=learned)
        log_event(_logger, "session:committed", entries=len(entries), staged=len(self.store))
        self._close()
        return entries

    def cancel(self) -> None:
        if self._closed:
            return
        log_event(_logger, "session:cancelled", staged=len(self.store))
        self._close()

    def _close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.store.clear()
        self._closed = True


__all__ = ["ImportSession"]
