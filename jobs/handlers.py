# jobs/handlers.py
"""
Job handlers for each job type.
Hardened for:
- short DB transactions (the memory stores open their own)
- trace id
- no duplicate writes on retry
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from db.session import get_session_factory
from jobs.queue import EXTRACT_MEMORIES, MEMORY_MAINTENANCE
from services.memory_extraction import run_extraction_for_turn
from services.memory_maintenance import run_memory_maintenance
from services.memory_policy import MemoryPolicy
from services.memory_store import MemoryStores
from services.observability import record_event
from services.openai_llm import OpenAICompletionService

logger = logging.getLogger(__name__)


class RetryableJobError(RuntimeError):
    """Nothing was written; the job can safely run again."""


def _stores() -> MemoryStores:
    return MemoryStores.from_session_factory(get_session_factory())


async def handle_extract_memories(db: AsyncSession, payload: dict) -> dict:
    conversation_id = uuid.UUID(payload["conversation_id"])
    user_id = uuid.UUID(payload["user_id"])
    trace_id = payload.get("trace_id") or uuid.uuid4().hex

    batch = await run_extraction_for_turn(
        _stores(),
        OpenAICompletionService(),
        conversation_id,
        user_id,
        policy=MemoryPolicy.from_settings(get_settings()),
        trace_id=trace_id,
    )

    # provider / parse failures happen before any write, so a retry is safe;
    # partial write failures are reported instead, a rerun would duplicate the successes
    if batch.error and not batch.writes:
        raise RetryableJobError(batch.error)

    if batch.failed_writes:
        await record_event(
            get_session_factory(),
            "memory_extraction_partial",
            "warning",
            source="worker",
            trace_id=trace_id,
            metadata={
                "conversation_id": str(conversation_id),
                "failed": [{"kind": w.kind, "description": w.description, "error": w.error} for w in batch.failed_writes],
            },
        )

    return {"trace_id": trace_id, **batch.summary()}


async def handle_memory_maintenance(db: AsyncSession, payload: dict) -> dict:
    trace_id = payload.get("trace_id") or uuid.uuid4().hex
    stats = await run_memory_maintenance(
        _stores(),
        OpenAICompletionService(),
        policy=MemoryPolicy.from_settings(get_settings()),
        trace_id=trace_id,
    )
    await record_event(
        get_session_factory(),
        "memory_maintenance",
        "warning" if stats.failures else "info",
        source="worker",
        trace_id=trace_id,
        metadata=stats.as_dict(),
    )
    return {"trace_id": trace_id, **stats.as_dict()}


HANDLERS = {
    EXTRACT_MEMORIES: handle_extract_memories,
    MEMORY_MAINTENANCE: handle_memory_maintenance,
}
