# services/scope_lock.py
"""
Per-scope mutual exclusion for memory writers inside one process.

Keys look like `user:<id>` or `partnership:<id>`. Callers that need
several scopes pass them user-first so two runs never wait on each other
in opposite order. Nothing here reaches other processes; confidence
writes stay safe there because MemoryStore applies them per row
(`adjust_confidence`, and `update(expected_updated_at=...)` for decay).
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager


def user_scope(user_id) -> str:
    return f"user:{user_id}"


def partnership_scope(partnership_id) -> str:
    return f"partnership:{partnership_id}"


class ScopeLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._refs: dict[str, int] = {}

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._refs[key] = self._refs.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._refs[key] -= 1
            if self._refs[key] == 0:
                # nobody waiting; drop it so the registry doesn't grow per user forever
                del self._refs[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold_many(self, *keys: str | None) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            seen: set[str] = set()
            for key in keys:
                if key and key not in seen:
                    seen.add(key)
                    await stack.enter_async_context(self.hold(key))
            yield


scope_locks = ScopeLocks()
