# worker/main.py
"""
Background worker: polls the job queue and dispatches to handlers.
"""
from __future__ import annotations

import asyncio
import logging
import platform
import traceback
import uuid

from api.app.config import get_settings
from db.engine import dispose_engine
from db.session import get_db
from jobs.handlers import HANDLERS
from jobs.queue import complete_job, dequeue, fail_job
from services.observability import log_event

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("worker")


PAYLOAD_ERRORS = (KeyError, ValueError)

WORKER_ID = f"worker-{platform.node()}-{uuid.uuid4().hex[:8]}"


async def run_once() -> bool:
    """Claim and run a single job. Returns False when the queue had nothing runnable."""
    async for db in get_db():
        job = await dequeue(db, worker_id=WORKER_ID, job_types=list(HANDLERS))
        if job is None:
            return False

        # commit the claim so other workers see the scope as busy while we run
        await db.commit()

        handler = HANDLERS.get(job.job_type)
        if handler is None:
            await fail_job(db, job, f"Unknown job type: {job.job_type}", retry=False)
            await db.commit()
            return True

        try:
            result = await handler(db, job.payload)
            await complete_job(db, job.id, result)
            await db.commit()

        except Exception as exc:
            tb = traceback.format_exc()

            # Revert any partial writes from the handler
            await db.rollback()
            await db.refresh(job)

            # a malformed payload will not get better on retry
            await fail_job(db, job, f"{exc}\n{tb}", retry=not isinstance(exc, PAYLOAD_ERRORS))

            await log_event(
                db,
                "job_failed",
                "error",
                source="worker",
                trace_id=str(job.trace_id),
                metadata={
                    "job_id": str(job.id),
                    "job_type": job.job_type,
                    "attempts": job.attempts,
                    "error": str(exc),
                },
            )

            # Persist failure record + event
            await db.commit()
    return True


async def run_loop() -> None:
    settings = get_settings()
    logger.info(
        "Worker %s starting (poll=%.1fs, types=%s)",
        WORKER_ID,
        settings.worker_poll_interval,
        ",".join(HANDLERS),
    )

    try:
        while True:
            try:
                if await run_once():
                    continue  # drain the queue before sleeping
            except Exception as exc:
                logger.exception("Worker loop error: %s", exc)

            await asyncio.sleep(settings.worker_poll_interval)
    finally:
        await dispose_engine()


def main() -> None:
    asyncio.run(run_loop())


if __name__ == "__main__":
    main()
