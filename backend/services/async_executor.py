"""
Async executor for blocking SDK and image work.

Pillow resizing/encoding and the Resend SDK are synchronous; they run in a
thread pool so the event loop keeps serving requests while an upload's
derivatives are produced or an email is delivered.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

# Shared executor for blocking operations; sized for a few concurrent uploads
_executor: ThreadPoolExecutor | None = None
_MAX_WORKERS = 4


def get_executor() -> ThreadPoolExecutor:
    """Lazy-initialize thread pool executor."""
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=_MAX_WORKERS, thread_name_prefix="blocking_")
        logger.info(f"Thread pool executor initialized (max_workers={_MAX_WORKERS})")
    return _executor


T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking (synchronous) function in the thread pool.

    Use for: Pillow resize/encode, Resend email delivery.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        get_executor(),
        functools.partial(func, *args, **kwargs),
    )


def shutdown_executor() -> None:
    """Shutdown the thread pool on app lifecycle end."""
    global _executor
    if _executor:
        _executor.shutdown(wait=True)
        _executor = None
        logger.info("Thread pool executor shutdown")
