"""Concurrent sub-operations inside a command action."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable


async def fan_out(*operations: Awaitable[Any]) -> list[Any]:
    """Run *operations* concurrently and wait for every one of them.

    Siblings of a failing operation are neither cancelled nor rolled back:
    all of them run to completion first. If any failed, the exception of
    the earliest-launched failing operation is raised.

    Returns:
        The results, in the order the operations were passed.
    """
    if not operations:
        return []
    results = await asyncio.gather(*operations, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
