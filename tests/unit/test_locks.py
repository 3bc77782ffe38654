"""Unit tests for KeyedLock."""

from __future__ import annotations

import asyncio

import pytest

from personagraph.locks import KeyedLock


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self):
        lock = KeyedLock()
        events = []

        async def worker(name: str):
            async with lock.acquire("k"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        lock = KeyedLock()
        both_inside = asyncio.Event()
        inside = 0

        async def worker(key: str):
            nonlocal inside
            async with lock.acquire(key):
                inside += 1
                if inside == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1)

        await asyncio.gather(worker("x"), worker("y"))
        assert both_inside.is_set()

    @pytest.mark.asyncio
    async def test_idle_keys_are_released(self):
        lock = KeyedLock()
        async with lock.acquire("k"):
            assert lock.locked("k")
            assert len(lock) == 1
        assert len(lock) == 0
        assert not lock.locked("k")

    @pytest.mark.asyncio
    async def test_released_on_exception(self):
        lock = KeyedLock()
        with pytest.raises(ValueError):
            async with lock.acquire("k"):
                raise ValueError("x")
        assert len(lock) == 0
