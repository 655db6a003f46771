"""Run independent middlewares concurrently."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from typing import Any

from framekit.core.types import FramesMiddleware, NextFunction

logger = logging.getLogger(__name__)


async def gather_cancelling(*coros: Coroutine[Any, Any, Any]) -> list[Any]:
    """Run ``coros`` concurrently and return their results in order.

    The first failure cancels the remaining coroutines and is re-raised as is.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as e:
        raise e.exceptions[0] from None
    return [task.result() for task in tasks]


def concurrent_middleware(*middlewares: FramesMiddleware) -> FramesMiddleware:
    """Combine ``middlewares`` so they run concurrently on the same context.

    Each wrapped middleware receives a ``next`` that only records its context
    patch. Once all of them finished, the patches are merged in listed order
    (later keys win) and the outer ``next`` is called exactly once. The wrapped
    middlewares must not depend on each other's patches, and each must call
    ``next`` or return, otherwise the whole group waits on it. The first
    failing middleware cancels the others and its error propagates.

    Raises:
        ValueError: If no middleware is given
    """
    if not middlewares:
        raise ValueError("No middlewares provided")

    if len(middlewares) == 1:
        return middlewares[0]

    async def run_concurrently(context: Mapping[str, Any], next_: NextFunction) -> Any:
        patches: list[Mapping[str, Any] | None] = [None] * len(middlewares)

        def recorder(position: int) -> NextFunction:
            async def record(patch: Mapping[str, Any] | None = None) -> None:
                patches[position] = patch

            return record

        await gather_cancelling(
            *(middleware(context, recorder(i)) for i, middleware in enumerate(middlewares))
        )

        merged: dict[str, Any] = {}
        for patch in patches:
            if patch:
                merged.update(patch)

        logger.debug("Concurrent middlewares finished, merged keys: %s", sorted(merged))
        return await next_(merged)

    return run_concurrently


__all__ = ["concurrent_middleware", "gather_cancelling"]
