"""
Async helpers shared by the task scheduler and the stream processor.
"""

import asyncio
import contextlib
import inspect
from collections.abc import AsyncGenerator, AsyncIterator, Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from .exceptions import log_and_suppress_async_exceptions, log_and_suppress_exceptions

T = TypeVar("T")


@contextlib.asynccontextmanager
async def thread_pool_executor(
    max_workers: int | None = None,
    thread_name_prefix: str = "patch-parser",
) -> AsyncGenerator[ThreadPoolExecutor, None]:
    """
    Async context manager for ThreadPoolExecutor.

    Args:
        max_workers: Maximum number of worker threads
        thread_name_prefix: Prefix for worker thread names

    Usage:
        async with thread_pool_executor(4) as executor:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(executor, cpu_bound_func, arg)
    """
    executor = ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix=thread_name_prefix
    )
    try:
        yield executor
    finally:
        executor.shutdown(wait=True)


async def run_in_executor(
    executor: ThreadPoolExecutor, func: Callable[..., T], *args: Any
) -> T:
    """Run a synchronous callable on the given executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, func, *args)


async def aiter_source(source: Any) -> AsyncIterator[Any]:
    """
    Iterate an async or sync iterable from async code.

    Raises:
        TypeError: If source is neither iterable nor async iterable
    """
    if hasattr(source, "__aiter__"):
        async for item in source:
            yield item
    elif isinstance(source, Iterable):
        for item in source:
            yield item
    else:
        raise TypeError(
            f"Expected an iterable or async iterable, got {type(source).__name__}"
        )


@log_and_suppress_async_exceptions(message="Failed to release stream source")
async def _aclose_source(source: Any) -> None:
    result = source.aclose()
    if inspect.isawaitable(result):
        await result


@log_and_suppress_exceptions(message="Failed to release stream source")
def _close_source(source: Any) -> None:
    source.close()


async def release_source(source: Any) -> None:
    """Call aclose() or close() on a stream source, if it has one."""
    if hasattr(source, "aclose"):
        await _aclose_source(source)
    elif hasattr(source, "close"):
        _close_source(source)
