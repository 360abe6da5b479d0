"""Concurrency helpers shared by providers and the aggregator."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any


async def join_all(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and wait for every one of them to settle.

    Unlike a plain ``asyncio.gather`` this never returns early: a branch that
    fails first does not abandon its siblings. Once all branches are done the
    first failure (in argument order) is raised, otherwise the results are
    returned in argument order.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
