# api/app/schemas/memory.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PersonalMemoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category: str
    content: str
    confidence: float
    created_at: datetime
    updated_at: datetime


class SharedMemoryOut(PersonalMemoryOut):
    about_user_id: uuid.UUID | None = None


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category: str
    title: str
    content: str
    confidence: float
    about_user_id: uuid.UUID | None = None
    updated_at: datetime


class MemoryListResponse(BaseModel):
    partnership_id: uuid.UUID | None = None
    personal: list[PersonalMemoryOut]
    shared: list[SharedMemoryOut]
    insights: list[InsightOut]


class MemoryRef(BaseModel):
    id: uuid.UUID
    type: str  # personal | shared


class MemoryActionRequest(MemoryRef):
    action: str  # confirm | wrong


class MemoryActionResponse(BaseModel):
    confidence: float
    deactivated: bool


class PromptContextResponse(BaseModel):
    prompt: str
    cache_hit: bool
    personal_count: int
    shared_count: int
    insight_count: int
