"""Ordered, bounded-concurrency map over a thread pool.

Used to send classification pages to the AI service with a small number of
requests in flight. Results keep input order. The first mapper error cancels
work that has not started yet and is re-raised unchanged, so callers see the
same exception type the mapper raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls running."""

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = list(iterable)
    if not items:
        return []
    if len(items) == 1:
        # Single page: no pool needed.
        return [mapper(items[0])]

    results: dict[int, OutT] = {}
    pending = iter(enumerate(items))

    with ThreadPoolExecutor(max_workers=min(concurrency, len(items))) as pool:
        index_of: dict[Future[OutT], int] = {}

        def _submit_next() -> None:
            nxt = next(pending, None)
            if nxt is not None:
                idx, item = nxt
                index_of[pool.submit(mapper, item)] = idx

        for _ in range(concurrency):
            _submit_next()

        while index_of:
            done, _ = wait(list(index_of), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = index_of.pop(fut)
                exc = fut.exception()
                if exc is not None:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise exc
                results[idx] = fut.result()
                _submit_next()

    return [results[i] for i in range(len(items))]


__all__ = ["p_map"]
