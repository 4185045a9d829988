"""Shared IO executor used for uploads and background reloads."""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Callable, Any

_logger = logging.getLogger(__name__)

_max_workers = int(os.getenv("TASK_QUEUE_MAX_WORKERS", "4") or 4)
_executor = ThreadPoolExecutor(max_workers=_max_workers, thread_name_prefix="fusion-io")


def get_executor() -> ThreadPoolExecutor:
    return _executor


def submit_io_task(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
    """Submit a blocking IO task to the shared executor.

    Failures are logged from the done callback; callers that need the
    result still get the exception from ``future.result()``.
    """

    future = _executor.submit(func, *args, **kwargs)

    def _log_outcome(fut: Future) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc:
            _logger.error("Background task %s failed: %s", getattr(func, '__name__', func), exc, exc_info=exc)

    future.add_done_callback(_log_outcome)
    return future
