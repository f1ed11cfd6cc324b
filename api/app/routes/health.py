# api/app/routes/health.py
from __future__ import annotations

from fastapi import APIRouter

from services.memory_pipeline import pending_background_tasks

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": "companion-memory",
        "background_extractions": len(pending_background_tasks()),
    }
