# models/user_profile.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDPrimaryKey

# keys of the JSONB personality summary
LIST_SUMMARY_FIELDS = (
    "traits",
    "emotional_tendencies",
    "communication_preferences",
    "values",
    "stress_responses",
    "boundaries",
)


class UserProfile(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "user_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # traits, emotional_tendencies, ..., humor (str), notes (str)
    memory_summary: Mapped[dict | None] = mapped_column(JSONB, default=dict)

    user = relationship("User", back_populates="user_profile")
