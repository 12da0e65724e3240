"""Run a blocking stage call under a wall-clock deadline."""

import concurrent.futures
from collections.abc import Callable
from typing import TypeVar

from receipt_processor.core.exceptions import StageTimeoutError

T = TypeVar("T")


def call_with_deadline(func: Callable[..., T], timeout: float | None, *args: object, stage: str = "stage") -> T:
    """Call func(*args) and return its result, or raise StageTimeoutError after timeout seconds.

    A timeout of None or <= 0 calls func directly. On timeout the worker thread is abandoned, not
    killed: the underlying call runs on until it returns, but the request no longer waits for it.
    """
    if not timeout or timeout <= 0:
        return func(*args)
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{stage}-deadline")
    future = executor.submit(func, *args)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as exc:
        if future.done():
            raise
        msg = f"{stage} deadline exceeded after {timeout:g}s"
        raise StageTimeoutError(msg) from exc
    finally:
        executor.shutdown(wait=False)
