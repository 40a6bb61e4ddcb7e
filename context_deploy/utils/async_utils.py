# context_deploy/utils/async_utils.py
"""Asynchronous operation utilities"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Coroutine, List, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion from synchronous code

    Inside a running event loop the coroutine gets its own loop on a worker
    thread, so synchronous API calls also work from async callers.

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def retry_async(coro_func: Callable[..., Coroutine[Any, Any, T]],
                      *args,
                      max_attempts: int = 3,
                      delay: float = 1.0,
                      backoff: float = 2.0,
                      max_delay: float = 30.0,
                      exceptions: tuple = (Exception,),
                      **kwargs) -> T:
    """
    Retry async operation with exponential backoff

    Args:
        coro_func: Coroutine function
        *args: Function arguments
        max_attempts: Maximum attempts
        delay: Initial delay between retries
        backoff: Backoff multiplier
        max_delay: Upper bound for a single delay
        exceptions: Exceptions to catch
        **kwargs: Function keyword arguments

    Returns:
        Function result

    Raises:
        Last exception if all attempts fail
    """
    current_delay = delay

    for attempt in range(max_attempts):
        try:
            return await coro_func(*args, **kwargs)
        except exceptions as e:
            if attempt >= max_attempts - 1:
                raise
            logger.debug(f"Attempt {attempt + 1}/{max_attempts} failed: {e}; retrying in {current_delay:.2f}s")
            await asyncio.sleep(current_delay)
            current_delay = min(current_delay * backoff, max_delay)


class BoundedWorkerPool:
    """Async task pool with a fixed concurrency bound and a join barrier

    Tasks start as soon as they are submitted but at most ``max_workers``
    run at once. ``join()`` waits for every submitted task and returns the
    results in submission order, with exceptions returned in place.
    """

    def __init__(self, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.semaphore = asyncio.Semaphore(max_workers)
        self.tasks: List[asyncio.Task] = []
        self._active = 0
        self.peak_active = 0

    def submit(self, coro_func: Callable[..., Coroutine[Any, Any, T]], *args, **kwargs) -> asyncio.Task:
        """Submit a coroutine function to the pool"""

        async def wrapped():
            async with self.semaphore:
                self._active += 1
                self.peak_active = max(self.peak_active, self._active)
                try:
                    return await coro_func(*args, **kwargs)
                finally:
                    self._active -= 1

        task = asyncio.create_task(wrapped())
        self.tasks.append(task)
        return task

    async def join(self) -> List[Any]:
        """Wait for all submitted tasks to complete"""
        results = await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()
        return results
