# distkit/core/workers.py

"""
Bounded worker pool for independent per-file units of work.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], R],
    max_workers: int,
) -> List[R]:
    """
    Run ``worker`` over ``items`` with at most ``max_workers`` threads.

    Every submitted unit is allowed to finish; there is no hard cancellation.
    Once all units are done the first exception observed (in completion order)
    is re-raised. Results are returned in input order.
    """
    items = list(items)
    if not items:
        return []

    results: Dict[int, R] = {}
    first_error: Optional[BaseException] = None

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        future_map = {executor.submit(worker, item): idx for idx, item in enumerate(items)}
        for fut in as_completed(future_map):
            error = fut.exception()
            if error is not None:
                if first_error is None:
                    first_error = error
                continue
            results[future_map[fut]] = fut.result()

    if first_error is not None:
        raise first_error
    return [results[i] for i in range(len(items))]
