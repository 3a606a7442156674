"""AI classification adapter for staged statement lines.

Public API:
    - :class:`AiClassifier`: description batch -> ``{description: category}``
    - :class:`ClassificationTask` / :func:`start_classification`: run a
      classification in the background and observe its state
    - :func:`merge_classification`: apply a finished task to a staging store,
      all or nothing

No side effects occur at import time (no client creation, no logging handler
attachment, no environment reads).
"""

from __future__ import annotations

import json
import logging
import random
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Literal

from openai import OpenAI
from openai.types.responses import ResponseTextConfigParam
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from . import prompting
from .logging_setup import get_logger, log_event
from .patterns import PatternStore
from .pmap import p_map
from .staging import StagingStore

# ---- Tunables (private) ------------------------------------------------------

_MODEL: str = "gpt-5-mini"
_PAGE_SIZE_DEFAULT: int = 200
_CONCURRENCY: int = 2
_MAX_ATTEMPTS: int = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20

_logger = get_logger("ledger_import.categorize")


class ClassificationError(RuntimeError):
    """The AI collaborator failed (transport, decoding, or rejection)."""


# ---- Response parsing --------------------------------------------------------


class _ResultItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Descriptions are lookup keys and must match the request byte for byte.
    description: str
    category: str

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str) -> str:
        return v.strip()


class _ResultBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[_ResultItem]


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON mapping from an OpenAI Responses SDK result.

    Prefer ``resp.output_text``; fall back to ``resp.output[0].content[0].text``.
    Raise ``ValueError`` if text cannot be located or JSON decoding fails.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None)
        if output:
            content = getattr(output[0], "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    # Some SDKs expose text as an object with a ``value`` string.
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")
    return decoded


def parse_category_mapping(body: Mapping[str, Any]) -> dict[str, str]:
    """Validate the ``{"results": [...]}`` body and return description -> category.

    The first result wins when a description repeats.
    """

    try:
        parsed = _ResultBody.model_validate(body)
    except ValidationError as e:
        raise ValueError(f"Invalid response: {e.error_count()} validation error(s)") from e
    out: dict[str, str] = {}
    for item in parsed.results:
        out.setdefault(item.description, item.category)
    return out


def _canonicalize(
    raw: Mapping[str, str],
    *,
    requested: Iterable[str],
    categories: Sequence[str],
) -> dict[str, str]:
    """Keep requested descriptions whose category resolves into ``categories``.

    Category names are matched exactly, then case-insensitively; anything else
    is treated as unresolved and dropped.
    """

    requested_set = set(requested)
    exact = set(categories)
    folded = {c.casefold(): c for c in reversed(categories)}
    out: dict[str, str] = {}
    for description, category in raw.items():
        if description not in requested_set:
            continue
        if category in exact:
            out[description] = category
            continue
        match = folded.get(category.casefold())
        if match is None:
            log_event(
                _logger,
                "classify:unknown_category",
                level=logging.WARNING,
                description=description,
                category=category,
            )
            continue
        out[description] = match
    return out


# ---- Retry helpers -----------------------------------------------------------


def _create_client() -> OpenAI:
    return OpenAI()


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


# ---- Classifier --------------------------------------------------------------


class AiClassifier:
    """Classify distinct descriptions through the OpenAI Responses API.

    Descriptions already known to ``patterns`` are resolved locally and never
    sent. The remainder is split into pages of ``page_size`` and sent with at
    most ``concurrency`` requests in flight; a failed page fails the whole
    classification.
    """

    def __init__(
        self,
        *,
        model: str = _MODEL,
        page_size: int = _PAGE_SIZE_DEFAULT,
        concurrency: int = _CONCURRENCY,
        patterns: PatternStore | None = None,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self.model = model
        self.page_size = page_size
        self.concurrency = concurrency
        self.patterns = patterns
        self._client_factory = client_factory

    def classify(self, descriptions: Iterable[str], categories: Sequence[str]) -> dict[str, str]:
        distinct = list(dict.fromkeys(d for d in descriptions if d))
        if not distinct:
            return {}

        resolved: dict[str, str] = {}
        pending: list[str] = []
        for description in distinct:
            learned = self.patterns.lookup(description) if self.patterns else None
            if learned is not None and learned in categories:
                resolved[description] = learned
            else:
                pending.append(description)

        log_event(
            _logger,
            "classify:start",
            descriptions=len(distinct),
            learned=len(resolved),
            pending=len(pending),
        )
        if not pending:
            return resolved

        system_instructions = prompting.build_system_instructions()
        text_cfg = ResponseTextConfigParam(format=prompting.build_response_format(categories))
        pages = [
            (k, pending[base : base + self.page_size])
            for k, base in enumerate(range(0, len(pending), self.page_size))
        ]

        def _map_page(page: tuple[int, list[str]]) -> dict[str, str]:
            page_index, page_descriptions = page
            raw = self._classify_page(
                page_index,
                page_descriptions,
                categories=categories,
                system_instructions=system_instructions,
                text_cfg=text_cfg,
            )
            return _canonicalize(raw, requested=page_descriptions, categories=categories)

        for page_result in p_map(pages, _map_page, concurrency=self.concurrency):
            resolved.update(page_result)
        return resolved

    def _classify_page(
        self,
        page_index: int,
        page_descriptions: list[str],
        *,
        categories: Sequence[str],
        system_instructions: str,
        text_cfg: ResponseTextConfigParam,
    ) -> dict[str, str]:
        user_content = prompting.build_user_content(page_descriptions, categories)
        log_event(
            _logger, "classify:page_llm", page_index=page_index, descriptions=len(page_descriptions)
        )

        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                client = (self._client_factory or _create_client)()
                resp = client.responses.create(
                    model=self.model,
                    instructions=system_instructions,
                    input=user_content,
                    text=text_cfg,
                )
                mapping = parse_category_mapping(_extract_response_json_mapping(resp))
                log_event(
                    _logger,
                    "classify:page_done",
                    page_index=page_index,
                    results=len(mapping),
                    latency_ms=(time.perf_counter() - t0) * 1000.0,
                )
                return mapping
            except Exception as e:  # noqa: BLE001 - every failure maps to ClassificationError
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                    log_event(
                        _logger,
                        "classify:page_failed_terminal",
                        level=logging.ERROR,
                        page_index=page_index,
                        latency_ms=dt_ms,
                        error=e,
                    )
                    raise ClassificationError(
                        f"AI classification failed for page {page_index}: {e}"
                    ) from e
                log_event(
                    _logger,
                    "classify:page_retry",
                    level=logging.WARNING,
                    page_index=page_index,
                    latency_ms=dt_ms,
                    error=e,
                    attempt=attempt,
                )
                _sleep_backoff(attempt)
                attempt += 1


# ---- Background task ---------------------------------------------------------

TaskStatus = Literal["pending", "succeeded", "failed", "cancelled"]


class ClassificationTask:
    """Handle on one outstanding classification request.

    ``cancel()`` abandons the task: a request already on the wire still runs
    to completion, but its result is never applied.
    """

    def __init__(self, future: Future[dict[str, str]]) -> None:
        self._future = future
        self._abandoned = False

    @classmethod
    def abandoned(cls) -> ClassificationTask:
        """A task that was never submitted and reports ``cancelled``."""

        future: Future[dict[str, str]] = Future()
        future.cancel()
        task = cls(future)
        task._abandoned = True
        return task

    @property
    def status(self) -> TaskStatus:
        if self._abandoned or self._future.cancelled():
            return "cancelled"
        if not self._future.done():
            return "pending"
        return "failed" if self._future.exception() is not None else "succeeded"

    def done(self) -> bool:
        return self._abandoned or self._future.done()

    def cancel(self) -> None:
        self._abandoned = True
        self._future.cancel()

    def wait(self, timeout: float | None = None) -> dict[str, str]:
        """Block for the mapping; raises ``ClassificationError`` on failure."""

        return self._future.result(timeout=timeout)


def start_classification(
    classifier: AiClassifier,
    descriptions: Sequence[str],
    categories: Sequence[str],
    *,
    executor: ThreadPoolExecutor | None = None,
) -> ClassificationTask:
    """Submit ``classifier.classify`` to a worker thread and return its handle."""

    own_executor = executor is None
    pool = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="ai-classify")
    future = pool.submit(classifier.classify, list(descriptions), list(categories))
    if own_executor:
        # Lets the submitted call finish while releasing the worker afterwards.
        pool.shutdown(wait=False)
    return ClassificationTask(future)


# ---- Merge -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AiMergeOutcome:
    """Result of applying a classification task to a staging store.

    ``failure`` carries one human-readable notice when nothing was applied
    because the collaborator failed.
    """

    applied: int
    failure: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def merge_classification(
    store: StagingStore,
    task: ClassificationTask,
    *,
    timeout: float | None = None,
    protect_manual_edits: bool = False,
) -> AiMergeOutcome:
    """Wait for ``task`` and apply its mapping to ``store`` by description.

    Any failure leaves ``store`` untouched and is reported through
    ``AiMergeOutcome.failure``.
    """

    if task.status == "cancelled":
        return AiMergeOutcome(applied=0)
    try:
        mapping = task.wait(timeout=timeout)
    except TimeoutError:
        return AiMergeOutcome(
            applied=0,
            failure="AI classification is still running; no categories were changed.",
        )
    except Exception as e:  # noqa: BLE001 - any collaborator failure degrades to no-op
        log_event(_logger, "classify:merge_skipped", level=logging.ERROR, error=e)
        return AiMergeOutcome(
            applied=0,
            failure=f"AI classification failed; no categories were changed ({e}).",
        )
    if task.status == "cancelled":
        return AiMergeOutcome(applied=0)

    applied = store.apply_categories(mapping, protect_manual_edits=protect_manual_edits)
    log_event(_logger, "classify:merged", mapped=len(mapping), changed=applied)
    return AiMergeOutcome(applied=applied)


__all__ = [
    "AiClassifier",
    "AiMergeOutcome",
    "ClassificationError",
    "ClassificationTask",
    "TaskStatus",
    "merge_classification",
    "parse_category_mapping",
    "start_classification",
]
