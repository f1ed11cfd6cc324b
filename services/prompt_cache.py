# services/prompt_cache.py
"""
In-process cache for assembled companion system prompts.

Entries are keyed by a hash of the raw inputs (profile summary, memory
ids and confidences, ...), live for `ttl_seconds`, and the least recently
used entry is evicted past `max_entries`. Every store write calls
`invalidate()` through the store hooks, so a cached prompt never outlives
the memories it was built from.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedPrompt:
    prompt: str
    cache_hit: bool


def cache_key(key_parts: list) -> str:
    raw = json.dumps(key_parts, sort_keys=True, default=str, ensure_ascii=False)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class PromptCache:
    def __init__(
        self,
        max_entries: int = 200,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_build(self, key_parts: list, build: Callable[[], str]) -> CachedPrompt:
        key = cache_key(key_parts)
        now = self._clock()

        entry = self._entries.get(key)
        if entry is not None:
            prompt, created_at = entry
            if now - created_at < self.ttl_seconds:
                self._entries.move_to_end(key)
                return CachedPrompt(prompt=prompt, cache_hit=True)
            del self._entries[key]

        prompt = build()
        self._entries[key] = (prompt, now)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return CachedPrompt(prompt=prompt, cache_hit=False)

    def invalidate(self) -> None:
        if self._entries:
            logger.debug("prompt cache cleared (%d entries)", len(self._entries))
        self._entries.clear()
