# models/partnership.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey

PARTNERSHIP_STATUSES = ("pending", "active", "dissolved")


class Partnership(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "partnerships"

    user_a: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    # null until the invited partner accepts
    user_b: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    invite_code: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | active | dissolved
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def has_member(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.user_a, self.user_b)

    def partner_of(self, user_id: uuid.UUID) -> uuid.UUID | None:
        if self.user_a == user_id:
            return self.user_b
        if self.user_b == user_id:
            return self.user_a
        return None
