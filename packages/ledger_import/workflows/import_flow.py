"""Workflow orchestrator for the end-to-end statement import.

Composes decoding, staging, optional AI classification, optional bulk
category, the optional interactive review, commit and optional persistence
behind one importable call. The CLI is a thin wrapper around
:func:`import_statement`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from os import PathLike

from prompt_toolkit import PromptSession

from ..catalogue import load_catalogue
from ..categorize import AiClassifier, AiMergeOutcome
from ..config import ImportSettings
from ..ingest.utils import load_statement
from ..logging_setup import get_logger, log_event
from ..models import CategoryCatalogue, FinalLedgerEntry
from ..patterns import PatternStore
from ..session import ImportSession

_logger = get_logger("ledger_import.workflows.import_flow")


@dataclass(slots=True)
class ImportResult:
    staged: int
    committed: bool
    entries: list[FinalLedgerEntry] = field(default_factory=list)
    persisted: int = 0
    ai_outcome: AiMergeOutcome | None = None


def import_statement(
    path: str | PathLike[str],
    *,
    settings: ImportSettings | None = None,
    catalogue: CategoryCatalogue | None = None,
    units: Sequence[str] | None = None,
    use_ai: bool = False,
    classifier: AiClassifier | None = None,
    bulk_category: str | None = None,
    review: bool = False,
    prompt_session: PromptSession | None = None,
    persist: bool = False,
    patterns: PatternStore | None = None,
    on_progress: Callable[[str], None] | None = None,
    now: datetime | None = None,
) -> ImportResult:
    """End-to-end: statement file -> staging -> (AI, bulk, review) -> commit.

    Parameters
    ----------
    path:
        OFX/SGML statement file.
    settings:
        Runtime settings; defaults to :meth:`ImportSettings.from_env`.
    catalogue / units:
        Override the catalogue and unit list; otherwise loaded from
        ``settings.catalogue_path`` or the packaged seed.
    use_ai / classifier:
        Run one AI classification before review. ``classifier`` defaults to an
        :class:`AiClassifier` built from ``settings``.
    bulk_category:
        Category applied to every selected row before review; names outside
        the catalogue are reported and skipped.
    review / prompt_session:
        Run the interactive terminal review; cancelling it discards the batch.
    persist:
        Insert committed entries into ``settings.database_url`` (or
        ``DATABASE_URL``).
    on_progress:
        Optional callable receiving short status lines (e.g. ``print``).
    """

    cfg = settings or ImportSettings.from_env()
    if catalogue is None:
        catalogue, loaded_units = load_catalogue(cfg.catalogue_path)
        if units is None:
            units = loaded_units
    store = patterns if patterns is not None else PatternStore.in_dir(cfg.cache_dir)

    text = load_statement(path)
    session = ImportSession.from_statement(text, catalogue=catalogue, units=units or ())
    staged = len(session)
    if not staged:
        if on_progress:
            on_progress("No transactions found in statement.")
        session.cancel()
        return ImportResult(staged=0, committed=False)
    if on_progress:
        on_progress(f"Staged {staged} transaction(s).")

    ai_outcome: AiMergeOutcome | None = None
    clf = classifier
    if use_ai or review:
        clf = clf or AiClassifier(
            model=cfg.model,
            page_size=cfg.ai_page_size,
            concurrency=cfg.ai_concurrency,
            patterns=store,
        )
    if use_ai and clf is not None:
        if on_progress:
            on_progress("Classifying descriptions with AI...")
        ai_outcome = session.classify_with_ai(clf, protect_manual_edits=cfg.protect_manual_edits)
        if on_progress:
            on_progress(ai_outcome.failure or f"AI updated {ai_outcome.applied} row(s).")

    if bulk_category:
        name = session.category_for(bulk_category)
        if name is None:
            if on_progress:
                on_progress(f"Unknown category: {bulk_category}")
        else:
            changed = session.bulk_apply_category(name)
            if on_progress:
                on_progress(f"Applied '{name}' to {changed} row(s).")

    if review:
        # Local import keeps the non-interactive path free of terminal setup.
        from ..term_ui import review_staging

        accepted = review_staging(
            session,
            prompt_session=prompt_session,
            classifier=clf,
            protect_manual_edits=cfg.protect_manual_edits,
            echo=on_progress or print,
        )
        if not accepted:
            session.cancel()
            if on_progress:
                on_progress("Import cancelled; nothing was committed.")
            return ImportResult(staged=staged, committed=False, ai_outcome=ai_outcome)

    entries = session.commit(now=now, patterns=store)
    result = ImportResult(staged=staged, committed=True, entries=entries, ai_outcome=ai_outcome)
    if on_progress:
        on_progress(f"Committed {len(entries)} of {staged} transaction(s).")

    if persist and entries:
        from db.client import ensure_schema, session_scope

        from ..persistence import save_ledger_entries

        ensure_schema(database_url=cfg.database_url)
        with session_scope(database_url=cfg.database_url) as db_session:
            result.persisted = save_ledger_entries(db_session, entries)
        if on_progress:
            on_progress(f"Saved {result.persisted} entries to the database.")

    log_event(
        _logger,
        "import:done",
        staged=staged,
        committed=len(entries),
        persisted=result.persisted,
    )
    return result


__all__ = ["ImportResult", "import_statement"]
