# models/partner_profile.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class PartnerProfile(Base, UUIDPrimaryKey, TimestampMixin):
    """AI-built profile of a partner who has not linked an account yet."""

    __tablename__ = "partner_profiles"

    owner_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    partnership_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("partnerships.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    traits: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    relational_tendencies: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    important_truths: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    ai_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(32), default="ai_generated")  # ai_generated | partner_account
