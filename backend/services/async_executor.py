"""
Thread pool for the synchronous Stripe SDK.

stripe-python performs blocking HTTP calls; checkout initiation hands them to
a small pool so the event loop keeps serving webhooks and callbacks.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from config import settings

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None

T = TypeVar("T")


def get_executor() -> ThreadPoolExecutor:
    """Lazy-initialize the provider thread pool."""
    global _executor
    if _executor is None:
        workers = settings.provider_executor_workers
        _executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="stripe_")
        logger.info(f"Provider executor started (max_workers={workers})")
    return _executor


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Await `func(*args, **kwargs)` on the provider thread pool."""
    loop = asyncio.get_running_loop()
    call = functools.partial(func, *args, **kwargs)
    return await loop.run_in_executor(get_executor(), call)


def shutdown_executor() -> None:
    """Stop the pool; in-flight provider calls are allowed to finish."""
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=True)
        _executor = None
        logger.info("Provider executor stopped")
