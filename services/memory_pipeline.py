# services/memory_pipeline.py
"""
Glue between an inbound chat turn and the extraction path.

The API records the turn, asks `evaluate_turn` whether extraction should
run, and if so hands the work off without waiting for it.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field

from ai.extraction_trigger import cadence_signal, importance_signals, should_extract

logger = logging.getLogger(__name__)

# Strong references to in-flight tasks; the event loop only keeps weak ones.
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class TurnDecision:
    run: bool
    cadence: bool = False
    signals: list[str] = field(default_factory=list)


def evaluate_turn(user_turn_count: int, latest_text: str | None, cadence: int) -> TurnDecision:
    on_cadence = cadence_signal(user_turn_count, cadence)
    signals = importance_signals(latest_text) if user_turn_count > 0 else []
    return TurnDecision(
        run=should_extract(user_turn_count, latest_text, cadence),
        cadence=on_cadence,
        signals=signals,
    )


def _log_outcome(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning("background task %s cancelled", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        logger.error("background task %s failed: %s", task.get_name(), exc, exc_info=exc)


def spawn_background(coro: Coroutine, name: str | None = None) -> asyncio.Task:
    """Schedule `coro` on the running loop; the caller does not await it."""
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_log_outcome)
    return task


def pending_background_tasks() -> set[asyncio.Task]:
    return set(_background_tasks)


async def drain_background_tasks(timeout: float | None = None) -> None:
    """Wait for in-flight extractions, used on shutdown so no write is cut off mid-flight."""
    tasks = pending_background_tasks()
    if not tasks:
        return
    logger.info("waiting on %d background task(s)", len(tasks))
    await asyncio.wait(tasks, timeout=timeout)
