"""Tests for hook invocation."""

import asyncio

import pytest

from treeknobs.hooks import call_hook, should_proceed


class TestShouldProceed:
    """Only an explicit False vetoes."""

    @pytest.mark.asyncio
    async def test_no_hook(self):
        assert await should_proceed(None, {"id": 1}) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, True, 0, "", [], "no"])
    async def test_sync_values_proceed(self, value):
        assert await should_proceed(lambda item: value, {"id": 1}) is True

    @pytest.mark.asyncio
    async def test_sync_false_vetoes(self):
        assert await should_proceed(lambda item: False, {"id": 1}) is False

    @pytest.mark.asyncio
    async def test_async_false_vetoes(self):
        async def hook(item):
            await asyncio.sleep(0)
            return False

        assert await should_proceed(hook, {"id": 1}) is False

    @pytest.mark.asyncio
    async def test_async_none_proceeds(self):
        async def hook(item):
            return None

        assert await should_proceed(hook, {"id": 1}) is True

    @pytest.mark.asyncio
    async def test_future_result(self):
        future = asyncio.get_running_loop().create_future()
        future.set_result(False)
        assert await should_proceed(lambda item: future, {"id": 1}) is False


class TestCallHook:
    """Arguments go through and values come back."""

    @pytest.mark.asyncio
    async def test_passes_arguments(self):
        seen = []
        await call_hook(lambda *args: seen.append(args), 1, "move", None)
        assert seen == [(1, "move", None)]

    @pytest.mark.asyncio
    async def test_returns_async_value(self):
        async def factory(parent, depth, width):
            return {"id": width}

        assert await call_hook(factory, None, -1, 3) == {"id": 3}

    @pytest.mark.asyncio
    async def test_exceptions_propagate(self):
        def hook(item):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await call_hook(hook, {})
