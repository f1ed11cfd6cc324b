# services/memory_store.py
"""
Persistence for the memory subsystem.

Every operation runs in its own short transaction taken from the session
factory, so concurrent fan-out writes never share an AsyncSession and a
failed write never rolls back its siblings. SQLAlchemy failures surface
as PersistenceError. There is deliberately no hard-delete operation.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, case, distinct, func, or_, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.base import utcnow
from models.conversation import Conversation
from models.insight import SharedInsight
from models.memory import PersonalMemory, SharedMemory
from models.message import Message
from models.partner_profile import PartnerProfile
from models.partnership import Partnership
from models.user_profile import UserProfile
from services.errors import PersistenceError
from services.memory_policy import clamp_confidence
from services.profile_merge import merge_partner_fields, merge_personality_summary

logger = logging.getLogger(__name__)

WriteHook = Callable[[], None]


class _SessionBound:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        hooks: list[WriteHook] | None = None,
    ) -> None:
        self._sessions = sessions
        self._hooks = hooks if hooks is not None else []

    @asynccontextmanager
    async def _transaction(self, operation: str, **context) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as db:
                async with db.begin():
                    yield db
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{operation} failed", context=context) from exc

    def _notify(self) -> None:
        for hook in self._hooks:
            hook()


class MemoryStore(_SessionBound):
    """CRUD + soft delete for one memory family (personal or shared)."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        model: type[PersonalMemory] | type[SharedMemory],
        hooks: list[WriteHook] | None = None,
    ) -> None:
        super().__init__(sessions, hooks)
        self.model = model

    @property
    def kind(self) -> str:
        return self.model.kind

    def _scope_column(self):
        return getattr(self.model, self.model.scope_field)

    async def fetch_active(self, scope_id: uuid.UUID) -> list:
        stmt = (
            select(self.model)
            .where(self._scope_column() == scope_id, self.model.is_active.is_(True))
            .order_by(self.model.category.asc(), self.model.created_at.desc())
        )
        async with self._transaction(f"fetch active {self.kind} memories", scope_id=scope_id) as db:
            return list((await db.execute(stmt)).scalars().all())

    async def get(self, memory_id: uuid.UUID):
        async with self._transaction(f"load {self.kind} memory", memory_id=memory_id) as db:
            return await db.get(self.model, memory_id)

    async def insert(
        self,
        *,
        scope_id: uuid.UUID,
        category: str,
        content: str,
        confidence: float = 1.0,
        about_user_id: uuid.UUID | None = None,
        source_message_id: uuid.UUID | None = None,
    ):
        values = {
            self.model.scope_field: scope_id,
            "category": category,
            "content": content.strip(),
            "confidence": clamp_confidence(confidence),
            "is_active": True,
            "source_message_id": source_message_id,
        }
        if self.model is SharedMemory:
            values["about_user_id"] = about_user_id

        async with self._transaction(f"insert {self.kind} memory", scope_id=scope_id) as db:
            record = self.model(**values)
            db.add(record)
            await db.flush()
        self._notify()
        return record

    async def update(
        self,
        memory_id: uuid.UUID,
        *,
        confidence: float | None = None,
        is_active: bool | None = None,
        content: str | None = None,
        category: str | None = None,
        expected_updated_at: datetime | None = None,
    ) -> bool:
        """
        Write absolute values. With `expected_updated_at` the write only lands
        if nobody touched the row since it was read; returns whether it landed.
        """
        values: dict = {"updated_at": utcnow()}
        if confidence is not None:
            values["confidence"] = clamp_confidence(confidence)
        if is_active is not None:
            values["is_active"] = is_active
        if content is not None:
            values["content"] = content
        if category is not None:
            values["category"] = category

        stmt = update(self.model).where(self.model.id == memory_id)
        if expected_updated_at is not None:
            stmt = stmt.where(self.model.updated_at == expected_updated_at)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        async with self._transaction(f"update {self.kind} memory", memory_id=memory_id) as db:
            result = await db.execute(stmt)
        if result.rowcount == 0:
            if expected_updated_at is None:
                logger.warning("update matched no %s memory id=%s", self.kind, memory_id)
            else:
                logger.info("stale write skipped on %s memory id=%s", self.kind, memory_id)
            return False
        self._notify()
        return True

    async def adjust_confidence(
        self,
        memory_id: uuid.UUID,
        delta: float,
        *,
        floor: float,
        reactivate: bool = False,
    ) -> tuple[float, bool] | None:
        """
        Shift confidence by `delta` inside one UPDATE, so two concurrent
        adjustments both count. Clamped to [0, 1]. Unless `reactivate`, the
        row stays active only while the new value is at or above `floor`
        (an inactive row never comes back). Returns (confidence, is_active),
        or None when the id matches nothing.
        """
        adjusted = func.greatest(0.0, func.least(1.0, self.model.confidence + delta))
        active = true() if reactivate else and_(self.model.is_active, adjusted >= floor)
        stmt = (
            update(self.model)
            .where(self.model.id == memory_id)
            .values(confidence=adjusted, is_active=active, updated_at=utcnow())
            .returning(self.model.confidence, self.model.is_active)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction(f"adjust {self.kind} memory confidence", memory_id=memory_id) as db:
            row = (await db.execute(stmt)).one_or_none()
        if row is None:
            logger.warning("confidence adjustment matched no %s memory id=%s", self.kind, memory_id)
            return None
        self._notify()
        return float(row.confidence), bool(row.is_active)

    async def active_scope_ids(self, limit: int) -> list[uuid.UUID]:
        """Distinct owners that still hold at least one active record."""
        stmt = (
            select(distinct(self._scope_column()))
            .where(self.model.is_active.is_(True))
            .limit(limit)
        )
        async with self._transaction(f"list {self.kind} memory scopes") as db:
            return list((await db.execute(stmt)).scalars().all())


class InsightStore(_SessionBound):
    async def fetch_active(self, partnership_id: uuid.UUID) -> list[SharedInsight]:
        stmt = (
            select(SharedInsight)
            .where(SharedInsight.partnership_id == partnership_id, SharedInsight.is_active.is_(True))
            .order_by(SharedInsight.category.asc(), SharedInsight.created_at.desc())
        )
        async with self._transaction("fetch active insights", partnership_id=partnership_id) as db:
            return list((await db.execute(stmt)).scalars().all())

    async def insert(
        self,
        *,
        partnership_id: uuid.UUID,
        category: str,
        title: str,
        content: str,
        confidence: float = 1.0,
        about_user_id: uuid.UUID | None = None,
    ) -> SharedInsight:
        async with self._transaction("insert insight", partnership_id=partnership_id) as db:
            insight = SharedInsight(
                partnership_id=partnership_id,
                category=category,
                about_user_id=about_user_id,
                title=title.strip(),
                content=content.strip(),
                confidence=clamp_confidence(confidence),
                is_active=True,
            )
            db.add(insight)
            await db.flush()
        self._notify()
        return insight

    async def update(
        self,
        insight_id: uuid.UUID,
        *,
        title: str | None = None,
        content: str | None = None,
        confidence: float | None = None,
        is_active: bool | None = None,
    ) -> None:
        values: dict = {"updated_at": utcnow()}
        if title is not None:
            values["title"] = title
        if content is not None:
            values["content"] = content
        if confidence is not None:
            values["confidence"] = clamp_confidence(confidence)
        if is_active is not None:
            values["is_active"] = is_active

        stmt = update(SharedInsight).where(SharedInsight.id == insight_id).values(**values)
        async with self._transaction("update insight", insight_id=insight_id) as db:
            await db.execute(stmt)
        self._notify()


class ProfileStore(_SessionBound):
    async def get_summary(self, user_id: uuid.UUID) -> dict:
        stmt = select(UserProfile.memory_summary).where(UserProfile.user_id == user_id)
        async with self._transaction("load personality summary", user_id=user_id) as db:
            summary = (await db.execute(stmt)).scalar_one_or_none()
        return summary or {}

    async def merge_personality(self, user_id: uuid.UUID, observations: dict) -> dict:
        """Merge new observations into the summary under a row lock."""
        stmt = select(UserProfile).where(UserProfile.user_id == user_id).with_for_update()
        async with self._transaction("merge personality summary", user_id=user_id) as db:
            profile = (await db.execute(stmt)).scalar_one_or_none()
            if profile is None:
                profile = UserProfile(user_id=user_id, memory_summary={})
                db.add(profile)
            # assign a new dict so the JSONB column is flagged dirty
            profile.memory_summary = merge_personality_summary(profile.memory_summary, observations)
            merged = profile.memory_summary
        self._notify()
        return merged

    async def get_partner_profile(self, owner_user_id: uuid.UUID) -> PartnerProfile | None:
        stmt = (
            select(PartnerProfile)
            .where(PartnerProfile.owner_user_id == owner_user_id, PartnerProfile.source == "ai_generated")
            .order_by(PartnerProfile.updated_at.desc())
            .limit(1)
        )
        async with self._transaction("load partner profile", owner_user_id=owner_user_id) as db:
            return (await db.execute(stmt)).scalar_one_or_none()

    async def upsert_partner_profile(self, owner_user_id: uuid.UUID, observations: dict) -> PartnerProfile:
        stmt = (
            select(PartnerProfile)
            .where(PartnerProfile.owner_user_id == owner_user_id, PartnerProfile.source == "ai_generated")
            .order_by(PartnerProfile.updated_at.desc())
            .limit(1)
            .with_for_update()
        )
        async with self._transaction("upsert partner profile", owner_user_id=owner_user_id) as db:
            profile = (await db.execute(stmt)).scalar_one_or_none()
            if profile is None:
                profile = PartnerProfile(owner_user_id=owner_user_id, source="ai_generated")
                db.add(profile)
                existing: dict = {}
            else:
                existing = {
                    "name": profile.name,
                    "traits": profile.traits,
                    "relational_tendencies": profile.relational_tendencies,
                    "important_truths": profile.important_truths,
                    "ai_notes": profile.ai_notes,
                }
            for key, value in merge_partner_fields(existing, observations).items():
                setattr(profile, key, value)
            await db.flush()
        self._notify()
        return profile


class PartnershipStore(_SessionBound):
    async def get(self, partnership_id: uuid.UUID) -> Partnership | None:
        async with self._transaction("load partnership", partnership_id=partnership_id) as db:
            return await db.get(Partnership, partnership_id)

    async def find_for_user(self, user_id: uuid.UUID) -> Partnership | None:
        """The user's current partnership: active first, then pending. Dissolved ones are ignored."""
        stmt = (
            select(Partnership)
            .where(
                or_(Partnership.user_a == user_id, Partnership.user_b == user_id),
                Partnership.status.in_(("active", "pending")),
            )
            .order_by(case((Partnership.status == "active", 0), else_=1), Partnership.created_at.desc())
            .limit(1)
        )
        async with self._transaction("find partnership", user_id=user_id) as db:
            return (await db.execute(stmt)).scalar_one_or_none()

    async def list_active(self, limit: int) -> list[Partnership]:
        stmt = (
            select(Partnership)
            .where(Partnership.status == "active", Partnership.user_b.is_not(None))
            .order_by(Partnership.created_at.asc())
            .limit(limit)
        )
        async with self._transaction("list active partnerships") as db:
            return list((await db.execute(stmt)).scalars().all())


class ConversationStore(_SessionBound):
    async def get(self, conversation_id: uuid.UUID) -> Conversation | None:
        async with self._transaction("load conversation", conversation_id=conversation_id) as db:
            return await db.get(Conversation, conversation_id)

    async def create(self, user_id: uuid.UUID, title: str | None = None) -> Conversation:
        async with self._transaction("create conversation", user_id=user_id) as db:
            conversation = Conversation(user_id=user_id, title=title)
            db.add(conversation)
            await db.flush()
        return conversation

    async def add_message(
        self,
        conversation_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        content: str,
    ) -> Message:
        async with self._transaction("add message", conversation_id=conversation_id) as db:
            message = Message(conversation_id=conversation_id, user_id=user_id, role=role, content=content)
            db.add(message)
            await db.flush()
        return message

    async def recent_messages(self, conversation_id: uuid.UUID, limit: int) -> list[Message]:
        """Last `limit` messages in chronological order."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
        )
        async with self._transaction("load recent messages", conversation_id=conversation_id) as db:
            rows = list((await db.execute(stmt)).scalars().all())
        return list(reversed(rows))

    async def count_user_turns(self, conversation_id: uuid.UUID) -> int:
        stmt = select(func.count(Message.id)).where(
            Message.conversation_id == conversation_id, Message.role == "user"
        )
        async with self._transaction("count user turns", conversation_id=conversation_id) as db:
            return int((await db.execute(stmt)).scalar_one())


@dataclass
class MemoryStores:
    """Everything the memory services read and write, bundled for injection."""

    personal: MemoryStore
    shared: MemoryStore
    insights: InsightStore
    profiles: ProfileStore
    partnerships: PartnershipStore
    conversations: ConversationStore
    hooks: list[WriteHook] = field(default_factory=list)

    @classmethod
    def from_session_factory(
        cls,
        sessions: async_sessionmaker[AsyncSession],
        hooks: list[WriteHook] | None = None,
    ) -> "MemoryStores":
        hooks = hooks if hooks is not None else []
        return cls(
            personal=MemoryStore(sessions, PersonalMemory, hooks),
            shared=MemoryStore(sessions, SharedMemory, hooks),
            insights=InsightStore(sessions, hooks),
            profiles=ProfileStore(sessions, hooks),
            partnerships=PartnershipStore(sessions),
            conversations=ConversationStore(sessions),
            hooks=hooks,
        )

    def memory_store(self, memory_type: str) -> MemoryStore:
        return self.personal if memory_type == "personal" else self.shared
