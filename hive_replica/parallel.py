"""Bounded parallel execution for independent per-location work."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def log_progress(completed: int, total: int, current_item: str) -> None:
    """Log progress at debug level.

    Args:
        completed: Number of items completed.
        total: Total number of items.
        current_item: Name/identifier of the current item being processed.
    """
    logger.debug(f"[{completed}/{total}] Completed: {current_item}")


def run_parallel(
    func: Callable[[T], R],
    items: list[T],
    max_workers: int = 4,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> list[R | Exception]:
    """Run a function across items on a bounded thread pool.

    Every item is attempted; one item failing never cancels the others.
    Threads suit the work, which is blocking I/O (S3, HDFS, metastore calls).

    Args:
        func: Function to call for each item. Signature: func(item) -> result
        items: List of items to process.
        max_workers: Maximum number of concurrent workers. 1 runs items
            sequentially in the calling thread, in order.
        progress_callback: Optional callback for progress updates.
            Signature: callback(completed, total, current_item_description)
            Defaults to log_progress().

    Returns:
        List of results, in completion order. An item whose call raised
        contributes the Exception instead of a result.
    """
    if not items:
        return []

    results: list[R | Exception] = []
    total = len(items)
    callback = progress_callback or log_progress

    if max_workers <= 1:
        for completed, item in enumerate(items, start=1):
            try:
                results.append(func(item))
                callback(completed, total, str(item))
            except Exception as e:
                results.append(e)
                callback(completed, total, f"{item} (FAILED: {e})")
        return results

    completed = 0
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_item = {executor.submit(func, item): item for item in items}

        for future in as_completed(future_to_item):
            item = future_to_item[future]
            completed += 1

            try:
                results.append(future.result())
                callback(completed, total, str(item))
            except Exception as e:
                results.append(e)
                callback(completed, total, f"{item} (FAILED: {e})")

    return results
