# api/app/schemas/conversation.py
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    role: Literal["user", "assistant"] = "user"
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message_id: uuid.UUID
    conversation_id: uuid.UUID
    user_turn_count: int
    extraction_scheduled: bool
    extraction_signals: list[str] = []
    trace_id: str | None = None


class ConversationCreate(BaseModel):
    title: str | None = None


class ConversationResponse(BaseModel):
    id: uuid.UUID
    title: str | None = None
