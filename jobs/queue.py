# jobs/queue.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone, timedelta

from sqlalchemy import select, update, or_, and_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from models.job import Job

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 300
RETRY_BASE_SECONDS = 10

EXTRACT_MEMORIES = "EXTRACT_MEMORIES"
MEMORY_MAINTENANCE = "MEMORY_MAINTENANCE"
MAINTENANCE_SCOPE = "maintenance"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def enqueue(
    db: AsyncSession,
    job_type: str,
    payload: dict,
    max_attempts: int = 3,
    scope_key: str | None = None,
    trace_id: uuid.UUID | None = None,
) -> Job:
    job = Job(
        job_type=job_type,
        payload=payload,
        max_attempts=max_attempts,
        scope_key=scope_key,
        trace_id=trace_id or uuid.uuid4(),
    )
    db.add(job)
    await db.flush()
    logger.info("Enqueued job %s [%s] scope=%s", job.id, job.job_type, scope_key or "-")
    return job


async def dequeue(
    db: AsyncSession,
    worker_id: str,
    job_types: list[str] | None = None,
) -> Job | None:
    """
    Claims next runnable job.
    Also recovers stale processing jobs.
    A job is skipped while another job with the same scope_key is processing.
    """

    now = utcnow()
    stale_cutoff = now - timedelta(seconds=LOCK_TIMEOUT_SECONDS)

    running = aliased(Job)
    scope_busy = exists().where(
        running.scope_key == Job.scope_key,
        running.id != Job.id,
        running.status == "processing",
        running.locked_at > stale_cutoff,
    )

    stmt = (
        select(Job)
        .where(
            or_(
                # Normal pending jobs ready to run
                and_(
                    Job.status == "pending",
                    Job.run_after <= now,
                ),
                # Stale locked jobs
                and_(
                    Job.status == "processing",
                    Job.locked_at <= stale_cutoff,
                ),
            ),
            or_(Job.scope_key.is_(None), ~scope_busy),
        )
        .order_by(Job.created_at.asc())
        .limit(1)
        .with_for_update(skip_locked=True)
    )

    if job_types:
        stmt = stmt.where(Job.job_type.in_(job_types))

    result = await db.execute(stmt)
    job = result.scalar_one_or_none()

    if job is None:
        return None

    job.status = "processing"
    job.locked_by = worker_id
    job.locked_at = now
    job.attempts += 1

    await db.flush()

    logger.info(
        "Worker %s claimed job %s [%s] trace=%s",
        worker_id,
        job.id,
        job.job_type,
        job.trace_id,
    )

    return job


async def has_open_job(db: AsyncSession, job_type: str, scope_key: str) -> bool:
    """True if a pending or processing job of this type already covers the scope."""
    stmt = select(
        exists().where(
            Job.job_type == job_type,
            Job.scope_key == scope_key,
            Job.status.in_(("pending", "processing")),
        )
    )
    return bool((await db.execute(stmt)).scalar())


async def complete_job(
    db: AsyncSession,
    job_id: uuid.UUID,
    result: dict | None = None,
) -> None:
    await db.execute(
        update(Job)
        .where(Job.id == job_id)
        .values(status="complete", result=result or {}, error=None, locked_by=None, locked_at=None)
    )
    logger.info("Job %s completed %s", job_id, result or {})


def retry_delay(attempts: int) -> timedelta:
    # 10s, 20s, 40s ... capped at the stale-lock window
    return timedelta(seconds=min(RETRY_BASE_SECONDS * 2 ** (attempts - 1), LOCK_TIMEOUT_SECONDS))


async def fail_job(
    db: AsyncSession,
    job: Job,
    error: str,
    retry: bool = True,
) -> None:
    """
    Release the claim and either schedule another attempt or mark the job failed.
    `retry=False` fails it immediately (bad payload, unknown type).
    """
    job.error = error
    job.locked_by = None
    job.locked_at = None

    if retry and job.attempts < job.max_attempts:
        delay = retry_delay(job.attempts)
        job.status = "pending"
        job.run_after = utcnow() + delay
        logger.warning(
            "Job %s [%s] attempt %d/%d failed, retry in %ds trace=%s",
            job.id, job.job_type, job.attempts, job.max_attempts, delay.total_seconds(), job.trace_id,
        )
    else:
        job.status = "failed"
        logger.error(
            "Job %s [%s] failed after %d attempt(s) trace=%s",
            job.id, job.job_type, job.attempts, job.trace_id,
        )

    await db.flush()
