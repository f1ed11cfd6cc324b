# api/app/schemas/maintenance.py
from __future__ import annotations

import uuid

from pydantic import BaseModel


class MaintenanceEnqueued(BaseModel):
    ok: bool = True
    job_id: uuid.UUID | None = None
    trace_id: str
    status: str  # queued | already_queued
