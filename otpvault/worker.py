"""
Background worker pool for key derivation, encryption and file I/O.

The pool is process-wide and must be started once with ``init_worker_pool``
before any async engine operation runs; nothing creates it implicitly.
"""

import asyncio
import functools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from . import config

logger = logging.getLogger(__name__)

T = TypeVar('T')

_pool: Optional[ThreadPoolExecutor] = None
_pool_lock = threading.Lock()


def init_worker_pool(max_workers: int = config.WORKER_POOL_SIZE) -> None:
    """Start the pool. Raises RuntimeError if it is already running."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            raise RuntimeError("Worker pool already initialized")
        _pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="otpvault-worker")
        logger.debug(f"Worker pool started with {max_workers} threads")


def shutdown_worker_pool(wait: bool = True) -> None:
    """Stop the pool. Work already started runs to completion."""
    global _pool
    with _pool_lock:
        pool, _pool = _pool, None
    if pool is not None:
        pool.shutdown(wait=wait)
        logger.debug("Worker pool stopped")


def is_running() -> bool:
    return _pool is not None


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run ``func`` on the worker pool and await its result.

    Cancelling the awaiting task does not stop ``func`` once it has started.
    """
    pool = _pool
    if pool is None:
        raise RuntimeError("Worker pool is not initialized; call init_worker_pool() first")
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(pool, functools.partial(func, *args, **kwargs))
