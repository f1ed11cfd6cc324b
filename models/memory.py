# models/memory.py
from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import Boolean, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class PersonalCategory(str, Enum):
    PREFERENCE = "preference"
    EMOTIONAL_NEED = "emotional_need"
    IMPORTANT_DATE = "important_date"
    GROWTH_MOMENT = "growth_moment"
    PATTERN = "pattern"
    GOAL = "goal"
    GENERAL = "general"


class SharedCategory(str, Enum):
    PREFERENCE = "preference"
    EMOTIONAL_NEED = "emotional_need"
    IMPORTANT_DATE = "important_date"
    GIFT_IDEA = "gift_idea"
    GROWTH_MOMENT = "growth_moment"
    PATTERN = "pattern"
    GENERAL = "general"


class PersonalMemory(Base, UUIDPrimaryKey, TimestampMixin):
    """One fact about a single user, visible across all of their chats."""

    __tablename__ = "personal_memories"

    kind = "personal"
    scope_field = "user_id"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(64), default=PersonalCategory.GENERAL.value)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=1.0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    source_message_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("messages.id"), nullable=True
    )

    @property
    def scope_id(self) -> uuid.UUID:
        return self.user_id


class SharedMemory(Base, UUIDPrimaryKey, TimestampMixin):
    """One fact owned by a partnership. about_user_id=None means the relationship itself."""

    __tablename__ = "shared_memories"

    kind = "shared"
    scope_field = "partnership_id"

    partnership_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("partnerships.id"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(64), default=SharedCategory.GENERAL.value)
    about_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=1.0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    source_message_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("messages.id"), nullable=True
    )

    @property
    def scope_id(self) -> uuid.UUID:
        return self.partnership_id
