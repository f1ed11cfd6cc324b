# tests/test_scope_lock.py
from __future__ import annotations

import asyncio

import pytest

from services.scope_lock import ScopeLocks, partnership_scope, user_scope


def test_scope_keys():
    assert user_scope("42") == "user:42"
    assert partnership_scope("7") == "partnership:7"


@pytest.mark.asyncio
async def test_same_scope_is_serialized():
    locks = ScopeLocks()
    order: list[str] = []

    async def writer(name: str) -> None:
        async with locks.hold("user:1"):
            order.append(f"{name}-start")
            await asyncio.sleep(0.01)
            order.append(f"{name}-end")

    await asyncio.gather(writer("a"), writer("b"))

    assert order == ["a-start", "a-end", "b-start", "b-end"]


@pytest.mark.asyncio
async def test_different_scopes_overlap():
    locks = ScopeLocks()
    inside = asyncio.Event()

    async def first() -> None:
        async with locks.hold("user:1"):
            inside.set()
            await asyncio.sleep(0.01)

    async def second() -> None:
        await inside.wait()
        async with locks.hold("user:2"):
            assert locks.is_held("user:1")

    await asyncio.gather(first(), second())


@pytest.mark.asyncio
async def test_hold_many_skips_none_and_duplicates():
    locks = ScopeLocks()
    async with locks.hold_many("user:1", None, "user:1", "partnership:9"):
        assert locks.is_held("user:1")
        assert locks.is_held("partnership:9")
    assert not locks.is_held("user:1")
    assert not locks.is_held("partnership:9")


@pytest.mark.asyncio
async def test_registry_is_released():
    locks = ScopeLocks()
    async with locks.hold("user:1"):
        pass
    assert locks._locks == {}
