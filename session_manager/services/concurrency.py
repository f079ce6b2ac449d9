"""
Best-effort concurrent fan-out helpers.

All engine I/O is issued as independent awaitables and joined with
settle_all(), which waits for every operation to finish and reports a value
or an exception per operation. One slow or failing file never cancels or
blocks its siblings.

Blocking filesystem calls are moved onto the event loop's default executor
so they overlap instead of serializing the loop.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

__all__ = ['run_blocking', 'settle_all', 'value_or']

T = TypeVar('T')
D = TypeVar('D')


async def run_blocking(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking callable on the default executor and await its result."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


async def settle_all(aws: Iterable[Awaitable[T]]) -> list[T | BaseException]:
    """
    Await every operation and collect one outcome per operation, in input order.

    Never short-circuits: an exception in one operation is returned in its
    slot rather than raised, and all other operations still run to completion.

    Args:
        aws: Awaitables (coroutines, tasks or futures)

    Returns:
        List of values or exceptions, aligned with the input order
    """
    return list(await asyncio.gather(*aws, return_exceptions=True))


def value_or(outcome: T | BaseException, default: D) -> T | D:
    """Value of a settled outcome, or default when the operation failed."""
    if isinstance(outcome, BaseException):
        return default
    return outcome
