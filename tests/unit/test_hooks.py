"""Unit tests for the hook registry."""
import pytest

from bizberry_sdk.services.hooks import HookRegistry


@pytest.mark.asyncio
async def test_call_hook_runs_callbacks_in_order():
    registry = HookRegistry()
    registry.add_hook("h", lambda x: x + 1)

    async def doubled(x):
        return x * 2

    registry.add_hook("h", doubled)

    assert await registry.call_hook("h", 5) == [6, 10]


@pytest.mark.asyncio
async def test_call_hook_without_callbacks():
    assert await HookRegistry().call_hook("missing") == []


@pytest.mark.asyncio
async def test_override_replaces_callbacks():
    registry = HookRegistry()
    registry.add_hook("h", lambda: "old")
    registry.add_hook("h", lambda: "new", override=True)

    assert await registry.call_hook("h") == ["new"]


@pytest.mark.asyncio
async def test_callback_exceptions_propagate():
    registry = HookRegistry()

    def broken():
        raise RuntimeError("nope")

    registry.add_hook("h", broken)

    with pytest.raises(RuntimeError):
        await registry.call_hook("h")


def test_del_hook():
    registry = HookRegistry()

    def callback():
        return None

    registry.add_hook("h", callback)
    assert registry.has_hook("h")

    registry.del_hook("h", callback)
    assert not registry.has_hook("h")

    # unknown names and callbacks are ignored
    registry.del_hook("h", callback)
    registry.del_hook("other", callback)
