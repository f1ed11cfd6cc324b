"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── users ──
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        *_timestamps(),
    )

    # ── partnerships ──
    op.create_table(
        "partnerships",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_a", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_b", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("invite_code", sa.String(64), unique=True, nullable=True),
        sa.Column("status", sa.String(16), server_default="pending"),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_partnerships_user_a", "partnerships", ["user_a"])
    op.create_index("ix_partnerships_user_b", "partnerships", ["user_b"])

    # ── conversations / messages ──
    op.create_table(
        "conversations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(512), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("conversation_id", UUID(as_uuid=True), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])

    # ── personal_memories ──
    op.create_table(
        "personal_memories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category", sa.String(64), server_default="general"),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("confidence", sa.Float, server_default="1.0"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("source_message_id", UUID(as_uuid=True), sa.ForeignKey("messages.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_personal_memories_confidence"),
    )
    op.create_index("ix_personal_memories_user_id", "personal_memories", ["user_id"])
    op.create_index(
        "ix_personal_memories_active", "personal_memories", ["user_id"],
        postgresql_where=sa.text("is_active"),
    )

    # ── shared_memories ──
    op.create_table(
        "shared_memories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("partnership_id", UUID(as_uuid=True), sa.ForeignKey("partnerships.id"), nullable=False),
        sa.Column("category", sa.String(64), server_default="general"),
        sa.Column("about_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("confidence", sa.Float, server_default="1.0"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("source_message_id", UUID(as_uuid=True), sa.ForeignKey("messages.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_shared_memories_confidence"),
    )
    op.create_index("ix_shared_memories_partnership_id", "shared_memories", ["partnership_id"])

    # ── shared_insights ──
    op.create_table(
        "shared_insights",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("partnership_id", UUID(as_uuid=True), sa.ForeignKey("partnerships.id"), nullable=False),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("about_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("confidence", sa.Float, server_default="1.0"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_shared_insights_partnership_id", "shared_insights", ["partnership_id"])

    # ── user_profiles / partner_profiles ──
    op.create_table(
        "user_profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("memory_summary", JSONB, server_default="{}"),
        *_timestamps(),
    )
    op.create_table(
        "partner_profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("partnership_id", UUID(as_uuid=True), sa.ForeignKey("partnerships.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("traits", JSONB, nullable=True),
        sa.Column("relational_tendencies", JSONB, nullable=True),
        sa.Column("important_truths", JSONB, nullable=True),
        sa.Column("ai_notes", sa.Text, nullable=True),
        sa.Column("source", sa.String(32), server_default="ai_generated"),
        *_timestamps(),
    )
    op.create_index("ix_partner_profiles_owner_user_id", "partner_profiles", ["owner_user_id"])

    # ── jobs ──
    op.create_table(
        "jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("job_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending"),
        sa.Column("payload", JSONB, server_default="{}"),
        sa.Column("result", JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("attempts", sa.Integer, server_default="0"),
        sa.Column("max_attempts", sa.Integer, server_default="3"),
        sa.Column("locked_by", sa.String(128), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("run_after", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("trace_id", UUID(as_uuid=True), nullable=False),
        sa.Column("scope_key", sa.String(128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_jobs_status_pending", "jobs", ["status"], postgresql_where=sa.text("status = 'pending'"))
    op.create_index("ix_jobs_scope_key", "jobs", ["scope_key"])

    # ── events ──
    op.create_table(
        "events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("event_type", sa.String(128), nullable=False),
        sa.Column("level", sa.String(16), server_default="info"),
        sa.Column("source", sa.String(128), nullable=True),
        sa.Column("trace_id", sa.String(64), nullable=True),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("metadata", JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_event_type", "events", ["event_type"])


def downgrade() -> None:
    for table in [
        "events", "jobs", "partner_profiles", "user_profiles",
        "shared_insights", "shared_memories", "personal_memories",
        "messages", "conversations", "partnerships", "users",
    ]:
        op.drop_table(table)
