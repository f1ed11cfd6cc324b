# api/app/routes/maintenance.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_session, require_cron_secret
from api.app.schemas.maintenance import MaintenanceEnqueued
from jobs.queue import MAINTENANCE_SCOPE, MEMORY_MAINTENANCE, enqueue, has_open_job
from services.observability import log_event

router = APIRouter(tags=["maintenance"], dependencies=[Depends(require_cron_secret)])


@router.post("/cron/memory-maintenance", response_model=MaintenanceEnqueued)
async def trigger_memory_maintenance(db: AsyncSession = Depends(get_session)):
    """Called by the external scheduler; the sweep itself runs on the worker."""
    trace_id = uuid.uuid4().hex

    if await has_open_job(db, MEMORY_MAINTENANCE, MAINTENANCE_SCOPE):
        return MaintenanceEnqueued(trace_id=trace_id, status="already_queued")

    job = await enqueue(
        db,
        MEMORY_MAINTENANCE,
        {"trace_id": trace_id},
        max_attempts=1,
        scope_key=MAINTENANCE_SCOPE,
    )
    await log_event(db, "memory_maintenance_queued", "info", source="api", trace_id=trace_id, metadata={
        "job_id": str(job.id),
    })
    return MaintenanceEnqueued(job_id=job.id, trace_id=trace_id, status="queued")
