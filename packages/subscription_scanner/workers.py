"""Order-preserving bounded thread pool for per-page work.

``map_ordered(items, fn, concurrency=N)`` runs ``fn`` over ``items`` with at
most ``N`` calls in flight and returns the results in input order, whatever
order the calls complete in. ``concurrency=1`` runs inline without a pool.

The first failing call propagates its exception; work that has not started
yet is cancelled.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

MAX_WORKERS = 16


def map_ordered(
    items: Iterable[InT],
    fn: Callable[[InT], OutT],
    *,
    concurrency: int = 1,
    thread_name_prefix: str = "scan-page",
) -> list[OutT]:
    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    if concurrency == 1:
        return [fn(item) for item in items]

    it = enumerate(items)
    results: dict[int, OutT] = {}
    future_to_idx: dict[Future[OutT], int] = {}

    with ThreadPoolExecutor(
        max_workers=min(concurrency, MAX_WORKERS), thread_name_prefix=thread_name_prefix
    ) as pool:

        def _submit() -> bool:
            try:
                idx, item = next(it)
            except StopIteration:
                return False
            future_to_idx[pool.submit(fn, item)] = idx
            return True

        for _ in range(concurrency):
            if not _submit():
                break

        # future_to_idx only ever holds in-flight futures
        while future_to_idx:
            done, _ = wait(set(future_to_idx), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
                _submit()

    return [results[i] for i in range(len(results))]


__all__ = ["MAX_WORKERS", "map_ordered"]
