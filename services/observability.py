# services/observability.py
"""
Structured event logging to the events table.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.event import Event

logger = logging.getLogger(__name__)


async def log_event(
    db: AsyncSession,
    event_type: str,
    level: str = "info",
    source: str | None = None,
    message: str | None = None,
    metadata: dict | None = None,
    trace_id: str | None = None,
) -> Event:
    """Persist a structured event log entry in the caller's transaction."""
    event = Event(
        event_type=event_type,
        level=level,
        source=source,
        message=message,
        trace_id=trace_id,
        metadata_=metadata,
    )
    db.add(event)
    await db.flush()
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        "[%s] trace=%s %s %s",
        event_type,
        trace_id or "-",
        message or "",
        metadata or {},
    )
    return event


async def record_event(
    sessions: async_sessionmaker[AsyncSession],
    event_type: str,
    level: str = "info",
    **fields,
) -> None:
    """
    Same as log_event but in its own transaction, for background paths.
    A failure to record is logged and swallowed: the event is
    bookkeeping, not part of the work it describes.
    """
    try:
        async with sessions() as db:
            async with db.begin():
                await log_event(db, event_type, level, **fields)
    except SQLAlchemyError as exc:
        logger.warning("could not record event %s: %s", event_type, exc)
