import asyncio

import pytest

from framekit.core.compose import compose_middleware
from framekit.middleware.concurrent import concurrent_middleware


def _recording(name, calls):
    async def middleware(ctx, next_):
        calls.append(f"{name}:in")
        result = await next_({name: True})
        calls.append(f"{name}:out")
        return result

    return middleware


@pytest.mark.unit
@pytest.mark.asyncio
async def test_compose_runs_in_onion_order_and_applies_patches():
    calls: list[str] = []
    seen: dict = {}

    async def handler(ctx, next_):
        seen.update(ctx)
        return "done"

    composed = compose_middleware(
        [_recording("a", calls), _recording("b", calls), _recording("c", calls), handler]
    )

    result = await composed({"start": 1})

    assert result == "done"
    assert calls == ["a:in", "b:in", "c:in", "c:out", "b:out", "a:out"]
    assert seen == {"start": 1, "a": True, "b": True, "c": True}


@pytest.mark.unit
def test_compose_without_middlewares_fails_immediately():
    with pytest.raises(ValueError, match="at least one middleware"):
        compose_middleware([])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_patches_do_not_leak_into_caller_context():
    observed: dict = {}

    async def outer(ctx, next_):
        result = await next_({"inner": True})
        observed["outer_ctx"] = dict(ctx)
        return result

    async def inner(ctx, next_):
        observed["inner_ctx"] = dict(ctx)
        return "ok"

    initial = {"x": 1}
    await compose_middleware([outer, inner])(initial)

    assert observed["outer_ctx"] == {"x": 1}
    assert observed["inner_ctx"] == {"x": 1, "inner": True}
    assert initial == {"x": 1}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_middleware_not_calling_next_halts_the_chain():
    reached = []

    async def stop(ctx, next_):
        return "stopped"

    async def never(ctx, next_):
        reached.append(True)
        return "never"

    assert await compose_middleware([stop, never])({}) == "stopped"
    assert reached == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_next_past_the_last_middleware_returns_none():
    async def last(ctx, next_):
        return await next_({"x": 1})

    assert await compose_middleware([last])({}) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_middleware_merges_disjoint_patches():
    order: list[str] = []
    seen: dict = {}

    async def slow(ctx, next_):
        await asyncio.sleep(0.02)
        order.append("slow")
        await next_({"test1": True})

    async def fast(ctx, next_):
        order.append("fast")
        await next_({"test2": True})

    async def handler(ctx, next_):
        seen.update(ctx)
        return "done"

    composed = compose_middleware([concurrent_middleware(slow, fast), handler])

    assert await composed({}) == "done"
    assert order == ["fast", "slow"]
    assert seen == {"test1": True, "test2": True}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_middleware_later_patch_wins_and_outer_next_called_once():
    outer_calls = []

    async def first(ctx, next_):
        await next_({"key": "first", "a": 1})

    async def second(ctx, next_):
        await asyncio.sleep(0)
        await next_({"key": "second"})

    async def silent(ctx, next_):
        return None

    async def outer_next(patch=None):
        outer_calls.append(patch)
        return "result"

    combined = concurrent_middleware(first, silent, second)
    result = await combined({"initial": True}, outer_next)

    assert result == "result"
    assert outer_calls == [{"key": "second", "a": 1}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_middlewares_share_the_starting_context():
    contexts = []

    async def record(ctx, next_):
        contexts.append(ctx)
        await next_({"patched": len(contexts)})

    async def outer_next(patch=None):
        return patch

    await concurrent_middleware(record, record)({"shared": 1}, outer_next)

    assert contexts == [{"shared": 1}, {"shared": 1}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failing_concurrent_middleware_cancels_the_others():
    started = asyncio.Event()
    cancelled = asyncio.Event()
    outer_calls = []

    async def slow(ctx, next_):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        await next_({"slow": True})

    async def failing(ctx, next_):
        await started.wait()
        raise ValueError("lookup failed")

    async def outer_next(patch=None):
        outer_calls.append(patch)

    with pytest.raises(ValueError, match="lookup failed"):
        await concurrent_middleware(slow, failing)({}, outer_next)

    assert cancelled.is_set()
    assert outer_calls == []


@pytest.mark.unit
def test_concurrent_middleware_with_one_middleware_returns_it_unchanged():
    async def only(ctx, next_):
        return await next_()

    assert concurrent_middleware(only) is only


@pytest.mark.unit
def test_concurrent_middleware_without_middlewares_fails():
    with pytest.raises(ValueError, match="No middlewares provided"):
        concurrent_middleware()
