# scripts/run_memory_maintenance.py
"""
Run the memory maintenance sweep once, in-process.
For schedulers that prefer a command over the HTTP cron route.
Run: python scripts/run_memory_maintenance.py
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys

from api.app.config import get_settings
from db.engine import dispose_engine
from db.session import get_session_factory
from services.memory_maintenance import run_memory_maintenance
from services.memory_policy import MemoryPolicy
from services.memory_store import MemoryStores
from services.observability import record_event
from services.openai_llm import OpenAICompletionService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


async def main() -> int:
    sessions = get_session_factory()
    try:
        stats = await run_memory_maintenance(
            MemoryStores.from_session_factory(sessions),
            OpenAICompletionService(),
            policy=MemoryPolicy.from_settings(get_settings()),
        )
        await record_event(
            sessions,
            "memory_maintenance",
            "warning" if stats.failures else "info",
            source="maintenance",
            metadata=stats.as_dict(),
        )
    finally:
        await dispose_engine()

    print(json.dumps(stats.as_dict(), indent=2))
    return 1 if stats.failures else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
