# tests/test_job_queue.py
"""
Tests for the job queue and the memory job handlers.

These tests verify the queue interface without requiring a real database.
For full integration tests (skip-locked claiming, scope_key exclusion),
use a PostgreSQL test container.
"""
from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from jobs.handlers import HANDLERS, RetryableJobError, handle_extract_memories, handle_memory_maintenance
from jobs.queue import EXTRACT_MEMORIES, MEMORY_MAINTENANCE, LOCK_TIMEOUT_SECONDS, enqueue, fail_job, retry_delay
from models.job import Job
from services.memory_extraction import ExtractionBatch, WriteOutcome
from services.memory_maintenance import MaintenanceStats


def _make_job(**kwargs) -> Job:
    defaults = dict(
        id=uuid.uuid4(),
        job_type=EXTRACT_MEMORIES,
        status="processing",
        payload={"conversation_id": str(uuid.uuid4()), "user_id": str(uuid.uuid4())},
        attempts=1,
        max_attempts=3,
        locked_by="worker-abc",
        trace_id=uuid.uuid4(),
    )
    defaults.update(kwargs)
    return Job(**defaults)


def _db() -> MagicMock:
    db = MagicMock()
    db.flush = AsyncMock()
    return db


def _extraction_payload() -> dict:
    return {"conversation_id": str(uuid.uuid4()), "user_id": str(uuid.uuid4()), "trace_id": "abc123"}


def test_handlers_cover_memory_job_types():
    assert set(HANDLERS) == {EXTRACT_MEMORIES, MEMORY_MAINTENANCE}


@pytest.mark.asyncio
async def test_enqueue_carries_scope_key_and_trace():
    db = _db()
    job = await enqueue(db, EXTRACT_MEMORIES, {"user_id": "u"}, scope_key="user:u")

    db.add.assert_called_once_with(job)
    assert job.scope_key == "user:u"
    assert job.trace_id is not None
    assert job.max_attempts == 3


@pytest.mark.asyncio
async def test_fail_job_schedules_retry_with_backoff():
    job = _make_job(attempts=2, max_attempts=3)
    await fail_job(_db(), job, "provider down")

    assert job.status == "pending"
    assert job.locked_by is None
    assert job.error == "provider down"
    assert job.run_after is not None


@pytest.mark.asyncio
async def test_fail_job_permanent_failure():
    job = _make_job(job_type=MEMORY_MAINTENANCE, attempts=1, max_attempts=1)
    await fail_job(_db(), job, "boom")
    assert job.status == "failed"
    assert job.locked_at is None


@pytest.mark.asyncio
async def test_fail_job_without_retry_fails_immediately():
    job = _make_job(attempts=1, max_attempts=3)
    await fail_job(_db(), job, "bad payload", retry=False)
    assert job.status == "failed"
    assert job.error == "bad payload"


def test_retry_delay_doubles_and_is_capped():
    assert retry_delay(1) == timedelta(seconds=10)
    assert retry_delay(2) == timedelta(seconds=20)
    assert retry_delay(20) == timedelta(seconds=LOCK_TIMEOUT_SECONDS)


@pytest.mark.asyncio
async def test_extract_handler_returns_summary():
    batch = ExtractionBatch(trace_id="abc123", writes=[WriteOutcome("personal_memory", "personal: Likes jazz")])
    with patch("jobs.handlers._stores"), \
         patch("jobs.handlers.OpenAICompletionService"), \
         patch("jobs.handlers.run_extraction_for_turn", new=AsyncMock(return_value=batch)) as run, \
         patch("jobs.handlers.record_event", new=AsyncMock()) as record:
        result = await handle_extract_memories(MagicMock(), _extraction_payload())

    assert result["trace_id"] == "abc123"
    assert result["personal"] == 1
    assert run.call_args.kwargs["trace_id"] == "abc123"
    record.assert_not_awaited()


@pytest.mark.asyncio
async def test_extract_handler_retries_when_nothing_was_written():
    batch = ExtractionBatch(trace_id="abc123", error="ProviderError: completion timed out")
    with patch("jobs.handlers._stores"), \
         patch("jobs.handlers.OpenAICompletionService"), \
         patch("jobs.handlers.run_extraction_for_turn", new=AsyncMock(return_value=batch)):
        with pytest.raises(RetryableJobError):
            await handle_extract_memories(MagicMock(), _extraction_payload())


@pytest.mark.asyncio
async def test_extract_handler_reports_partial_failures_without_retry():
    batch = ExtractionBatch(
        trace_id="abc123",
        writes=[
            WriteOutcome("personal_memory", "personal: Likes jazz"),
            WriteOutcome("insight", "insight: Shared humor", ok=False, error="PersistenceError: insert failed"),
        ],
    )
    with patch("jobs.handlers._stores"), \
         patch("jobs.handlers.OpenAICompletionService"), \
         patch("jobs.handlers.get_session_factory"), \
         patch("jobs.handlers.run_extraction_for_turn", new=AsyncMock(return_value=batch)), \
         patch("jobs.handlers.record_event", new=AsyncMock()) as record:
        result = await handle_extract_memories(MagicMock(), _extraction_payload())

    assert result["failed"] == 1
    record.assert_awaited_once()
    assert record.call_args.args[1] == "memory_extraction_partial"
    assert record.call_args.kwargs["metadata"]["failed"][0]["kind"] == "insight"


@pytest.mark.asyncio
async def test_maintenance_handler_records_stats():
    stats = MaintenanceStats(decayed=4, deactivated=1, users_processed=3, failures=1)
    with patch("jobs.handlers._stores"), \
         patch("jobs.handlers.OpenAICompletionService"), \
         patch("jobs.handlers.get_session_factory"), \
         patch("jobs.handlers.run_memory_maintenance", new=AsyncMock(return_value=stats)), \
         patch("jobs.handlers.record_event", new=AsyncMock()) as record:
        result = await handle_memory_maintenance(MagicMock(), {"trace_id": "t1"})

    assert result == {"trace_id": "t1", **stats.as_dict()}
    assert record.call_args.args[1:] == ("memory_maintenance", "warning")
