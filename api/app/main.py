# api/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.app.middleware.auth import RequestLoggingMiddleware
from api.app.routes import conversations, health, maintenance, memories
from db.engine import dispose_engine
from services.errors import MemoryServiceError
from services.memory_pipeline import drain_background_tasks

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # let in-flight extractions finish their writes before the pool goes away
    await drain_background_tasks(timeout=30)
    await dispose_engine()


app = FastAPI(
    title="Companion Memory API",
    description="Long-term memory for a relationship companion",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(MemoryServiceError)
async def memory_service_error_handler(request: Request, exc: MemoryServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


app.include_router(health.router)
app.include_router(conversations.router, prefix="/v1")
app.include_router(memories.router, prefix="/v1")
app.include_router(maintenance.router, prefix="/v1")
