"""
Bounded fan-out for single-item lookups.

Used by the video-detail endpoints: a request may name many links, and each
link is one upstream call. Calls run concurrently in batches of BATCH_SIZE with
a fixed pause between batches so upstreams are not hammered.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from src.config import BATCH_DELAY, BATCH_SIZE
from src.log import get_logger

T = TypeVar("T")
R = TypeVar("R")

logger = get_logger("batch")


def _safe_call(fetch: Callable[[T], Optional[R]], item: T) -> Optional[R]:
    try:
        return fetch(item)
    except Exception as e:
        logger.warning(f"[batch] Lookup failed for {item!r}: {e}")
        return None


def fetch_in_batches(
    items: Sequence[T],
    fetch: Callable[[T], Optional[R]],
    batch_size: int = BATCH_SIZE,
    delay: float = BATCH_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> List[R]:
    """
    Run fetch() over items, batch_size at a time.

    Results keep input order. Lookups that return None or raise are dropped;
    one failure never fails the batch. There is no cancellation: a started
    batch runs to completion, bounded only by each call's own timeout.

    Args:
        items: Inputs to look up (links, ids).
        fetch: Single-item lookup; returns None when nothing was found.
        batch_size: Maximum concurrent lookups.
        delay: Seconds to pause between batches (not after the last one).
        sleep: Injectable sleep, for tests.

    Returns:
        Non-None results in input order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: List[R] = []
    if not items:
        return results

    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            batch_results = list(executor.map(lambda item: _safe_call(fetch, item), batch))
            results.extend(r for r in batch_results if r is not None)

            if start + batch_size < len(items) and delay > 0:
                sleep(delay)

    return results
