"""Run blocking calls with an upper time bound."""

from __future__ import annotations

import concurrent.futures
from typing import Callable, TypeVar

T = TypeVar("T")


def get_with_timeout(func: Callable[[], T], timeout_seconds: float) -> T:
    """Call ``func`` in a worker thread and wait at most ``timeout_seconds``.

    Raises ``TimeoutError`` when the deadline passes. The worker is abandoned,
    not killed; blocking docker calls have no cancellation hook.
    """
    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="bc-timeout"
    )
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout_seconds)
    except concurrent.futures.TimeoutError as e:
        future.cancel()
        raise TimeoutError(
            f"Operation did not complete within {timeout_seconds:.1f}s"
        ) from e
    finally:
        executor.shutdown(wait=False)
