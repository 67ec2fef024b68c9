# crafters_toolbox/utils/async_utils.py
"""Asynchronous operation utilities"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Coroutine, Optional, TypeVar

from ..api.exceptions import PipelineCancelledError

T = TypeVar('T')


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run async coroutine in sync context

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    loop = None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop
        pass

    if loop and loop.is_running():
        # Already in async context, create new thread
        import threading

        result = None
        exception = None

        def run_in_thread():
            nonlocal result, exception
            try:
                result = asyncio.run(coro)
            except Exception as e:
                exception = e

        thread = threading.Thread(target=run_in_thread)
        thread.start()
        thread.join()

        if exception:
            raise exception
        return result
    else:
        return asyncio.run(coro)


def sync_to_async(func: Callable[..., T]) -> Callable[..., Coroutine[Any, Any, T]]:
    """
    Decorator to convert sync function to async

    The wrapped function runs in the default executor so blocking
    filesystem work does not stall other tasks.

    Args:
        func: Sync function

    Returns:
        Async wrapper function
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    return wrapper


async def with_soft_timeout(awaitable: Awaitable[T],
                            timeout: float,
                            on_timeout: Callable[[], None]) -> T:
    """
    Await a task, calling ``on_timeout`` once if it runs longer than ``timeout``

    The underlying operation is not cancelled; it keeps running and its
    result is returned when it finishes.

    Args:
        awaitable: Operation to await
        timeout: Seconds before ``on_timeout`` fires
        on_timeout: Callback invoked on expiry

    Returns:
        Result of the operation
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        on_timeout()
    return await task


class CancellationToken:
    """Cooperative cancellation flag shared by a batch of pipelines"""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation"""
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise PipelineCancelledError if cancellation was requested"""
        if self._event.is_set():
            raise PipelineCancelledError(self.reason or "cancelled")

    async def wait(self) -> None:
        """Wait until cancellation is requested"""
        await self._event.wait()
