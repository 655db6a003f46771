"""Onion-style composition of async middlewares.

Each middleware has the shape ``async (context, next) -> result``. Calling
``await next(patch)`` runs the rest of the chain with a *new* context built as
``{**context, **patch}``; the caller's own context is left untouched. A
middleware that returns without calling ``next`` ends the chain and its return
value becomes the result.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from framekit.core.types import FramesMiddleware


def compose_middleware(
    middlewares: Sequence[FramesMiddleware],
) -> Callable[[Mapping[str, Any]], Awaitable[Any]]:
    """Compose ``middlewares`` into a single callable taking the initial context.

    Raises:
        ValueError: If no middleware is given
    """
    if not middlewares:
        raise ValueError("Please provide at least one middleware function")

    chain = tuple(middlewares)

    async def dispatch(index: int, context: Mapping[str, Any]) -> Any:
        middleware = chain[index]

        async def next_(patch: Mapping[str, Any] | None = None) -> Any:
            if index + 1 >= len(chain):
                return None
            next_context = {**context, **patch} if patch else dict(context)
            return await dispatch(index + 1, next_context)

        return await middleware(context, next_)

    async def composed(context: Mapping[str, Any]) -> Any:
        return await dispatch(0, context)

    return composed


__all__ = ["compose_middleware"]
