"""
Partition helpers shared by the aggregation stages.

Stages group edges into independent partitions, reduce each partition with
a pure function and collect the results in ascending key order, so output
is identical whatever the number of worker threads.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
R = TypeVar("R")


def group_by(items: Iterable[V], key: Callable[[V], K]) -> dict[K, list[V]]:
    """Group items by key, preserving input order inside each group."""
    groups: dict[K, list[V]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return dict(groups)


def run_partitioned(
    groups: Mapping[K, list[V]],
    reducer: Callable[[K, list[V]], R | None],
    concurrency: int,
) -> list[R]:
    """
    Apply reducer to every (key, rows) partition and return results sorted by key.

    Empty partitions and partitions whose reducer returns None are omitted.
    """
    keys = sorted(k for k, rows in groups.items() if rows)  # type: ignore[type-var]
    results: dict[K, R] = {}
    if concurrency == 1 or len(keys) <= 1:
        for k in keys:
            out = reducer(k, groups[k])
            if out is not None:
                results[k] = out
    else:
        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            futures = {executor.submit(reducer, k, groups[k]): k for k in keys}
            for fut in as_completed(futures):
                out = fut.result()
                if out is not None:
                    results[futures[fut]] = out
    return [results[k] for k in keys if k in results]


def safe_ratio(numerator: float, denominator: float) -> float | None:
    """numerator / denominator, or None when the denominator is zero."""
    if not denominator:
        return None
    return numerator / denominator
