# models/insight.py
from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import Boolean, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class InsightCategory(str, Enum):
    EMOTIONAL_NEED = "emotional_need"
    COMMUNICATION = "communication"
    APPRECIATION = "appreciation"
    CONFLICT_STYLE = "conflict_style"
    GROWTH_AREA = "growth_area"
    STRENGTH = "strength"
    GIFT_RELEVANT = "gift_relevant"


class SharedInsight(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "shared_insights"

    partnership_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("partnerships.id"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    about_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)  # short dashboard label
    content: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=1.0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
