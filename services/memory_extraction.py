# services/memory_extraction.py
"""
Memory extraction: one completion call per triggered turn, then a
fan-out of writes into the profile and memory stores.

Write order:
  1. contradictions are resolved one at a time (they may touch the same record)
  2. personality merge, partner profile, memory and insight inserts run
     concurrently; each write commits on its own, so one failure never
     undoes its siblings

The result is an ExtractionBatch that records every attempted write, so
partial failure is visible to the caller and can be retried.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass, field

from ai.prompts.memory_extraction import MEMORY_EXTRACTION, build_extraction_user_message
from services.conflict_resolver import ConflictResolution, resolve_conflict
from services.errors import ParseError, ProviderError
from services.extraction_schema import ExtractionPayload, Rejection, parse_extraction
from services.memory_context import ExtractionContext, assemble_context
from services.memory_policy import DEFAULT_POLICY, MemoryPolicy
from services.openai_llm import CompletionService, parse_json_object
from services.scope_lock import ScopeLocks, partnership_scope, scope_locks, user_scope

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 1.0


@dataclass
class WriteOutcome:
    kind: str  # personality | partner_profile | conflict | personal_memory | shared_memory | insight
    description: str
    ok: bool = True
    error: str | None = None
    record_id: uuid.UUID | None = None


@dataclass
class ExtractionBatch:
    trace_id: str = ""
    writes: list[WriteOutcome] = field(default_factory=list)
    conflicts: list[ConflictResolution] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def failed_writes(self) -> list[WriteOutcome]:
        return [w for w in self.writes if not w.ok]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed_writes

    def count(self, kind: str) -> int:
        return sum(1 for w in self.writes if w.kind == kind and w.ok)

    def summary(self) -> dict:
        return {
            "personality": self.count("personality"),
            "partner_profile": self.count("partner_profile"),
            "personal": self.count("personal_memory"),
            "shared": self.count("shared_memory"),
            "insights": self.count("insight"),
            "conflicts": len(self.conflicts),
            "rejected": len(self.rejected),
            "failed": len(self.failed_writes),
        }


def resolve_subject(about: str | None, user_id: uuid.UUID, partner_id: uuid.UUID | None) -> uuid.UUID | None:
    if about == "current":
        return user_id
    if about == "partner":
        return partner_id
    return None


async def _guarded(kind: str, description: str, write: Awaitable, trace_id: str) -> WriteOutcome:
    try:
        result = await write
    except Exception as exc:
        logger.error("trace=%s %s write failed (%s): %s", trace_id, kind, description, exc)
        return WriteOutcome(kind=kind, description=description, ok=False, error=str(exc))
    return WriteOutcome(kind=kind, description=description, record_id=getattr(result, "id", None))


async def _resolve_contradictions(
    stores,
    payload: ExtractionPayload,
    ctx: ExtractionContext,
    batch: ExtractionBatch,
    policy: MemoryPolicy,
) -> None:
    claims = [e.contradicts for e in payload.personal_memories if e.contradicts]
    if ctx.active_partnership is not None:
        claims += [e.contradicts for e in payload.shared_memories if e.contradicts]

    for target in claims:
        try:
            resolution = await resolve_conflict(stores, target, ctx.personal, ctx.shared, policy)
        except Exception as exc:
            logger.error("trace=%s conflict resolution failed for %r: %s", batch.trace_id, target[:80], exc)
            batch.writes.append(WriteOutcome(kind="conflict", description=target, ok=False, error=str(exc)))
            continue
        if resolution is not None:
            batch.conflicts.append(resolution)
            batch.writes.append(WriteOutcome(kind="conflict", description=target, record_id=resolution.memory_id))


def _plan_writes(stores, payload: ExtractionPayload, ctx: ExtractionContext, batch: ExtractionBatch) -> list[Awaitable]:
    trace_id = batch.trace_id
    writes: list[Awaitable] = []
    partnership = ctx.active_partnership

    if payload.personality is not None:
        writes.append(
            _guarded(
                "personality",
                "merge personality summary",
                stores.profiles.merge_personality(ctx.user_id, payload.personality.model_dump(exclude_none=True)),
                trace_id,
            )
        )

    if payload.partner is not None:
        if partnership is None:
            writes.append(
                _guarded(
                    "partner_profile",
                    payload.partner.name,
                    stores.profiles.upsert_partner_profile(ctx.user_id, payload.partner.model_dump(exclude_none=True)),
                    trace_id,
                )
            )
        else:
            batch.dropped.append("partner_profile: partner has a linked account")

    for entry in payload.personal_memories:
        writes.append(
            _guarded(
                "personal_memory",
                entry.content,
                stores.personal.insert(
                    scope_id=ctx.user_id,
                    category=entry.category.value,
                    content=entry.content,
                    confidence=entry.confidence if entry.confidence is not None else DEFAULT_CONFIDENCE,
                ),
                trace_id,
            )
        )

    if partnership is None:
        if payload.shared_memories:
            batch.dropped.append(f"shared_memories: {len(payload.shared_memories)} without an active partnership")
        if payload.insights:
            batch.dropped.append(f"insights: {len(payload.insights)} without an active partnership")
        return writes

    partner_id = ctx.partner_id
    for entry in payload.shared_memories:
        writes.append(
            _guarded(
                "shared_memory",
                entry.content,
                stores.shared.insert(
                    scope_id=partnership.id,
                    category=entry.category.value,
                    content=entry.content,
                    confidence=entry.confidence if entry.confidence is not None else DEFAULT_CONFIDENCE,
                    about_user_id=resolve_subject(entry.about, ctx.user_id, partner_id),
                ),
                trace_id,
            )
        )

    for entry in payload.insights:
        writes.append(
            _guarded(
                "insight",
                entry.title,
                stores.insights.insert(
                    partnership_id=partnership.id,
                    category=entry.category.value,
                    title=entry.title,
                    content=entry.content,
                    confidence=entry.confidence if entry.confidence is not None else DEFAULT_CONFIDENCE,
                    about_user_id=resolve_subject(entry.about, ctx.user_id, partner_id),
                ),
                trace_id,
            )
        )
    return writes


async def run_memory_extraction(
    stores,
    completion: CompletionService,
    ctx: ExtractionContext,
    *,
    policy: MemoryPolicy = DEFAULT_POLICY,
    trace_id: str | None = None,
) -> ExtractionBatch:
    """Call the completion service once and apply what it found."""
    batch = ExtractionBatch(trace_id=trace_id or uuid.uuid4().hex)

    messages = [
        {"role": "system", "content": MEMORY_EXTRACTION},
        {"role": "user", "content": build_extraction_user_message(ctx.conversation_text, ctx.memory_digest)},
    ]
    try:
        text = await completion.complete(messages, temperature=policy.extraction_temperature)
        payload = parse_extraction(parse_json_object(text))
    except (ProviderError, ParseError) as exc:
        logger.warning("trace=%s memory extraction abandoned conversation=%s: %s", batch.trace_id, ctx.conversation_id, exc)
        batch.error = str(exc)
        return batch

    batch.rejected = payload.rejected
    if payload.is_empty():
        logger.info("trace=%s memory extraction found nothing new", batch.trace_id)
        return batch

    await _resolve_contradictions(stores, payload, ctx, batch, policy)

    writes = _plan_writes(stores, payload, ctx, batch)
    if writes:
        batch.writes.extend(await asyncio.gather(*writes))

    for note in batch.dropped:
        logger.info("trace=%s dropped %s", batch.trace_id, note)
    return batch


async def run_extraction_for_turn(
    stores,
    completion: CompletionService,
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    policy: MemoryPolicy = DEFAULT_POLICY,
    locks: ScopeLocks = scope_locks,
    trace_id: str | None = None,
) -> ExtractionBatch:
    """
    Top of the extraction path: never raises.

    Anything that goes wrong is logged with the trace id and reported on
    the returned batch, so the chat reply is never affected.
    """
    trace_id = trace_id or uuid.uuid4().hex
    logger.info("trace=%s start memory extraction conversation=%s user=%s", trace_id, conversation_id, user_id)
    try:
        partnership = await stores.partnerships.find_for_user(user_id)
        shared_key = partnership_scope(partnership.id) if partnership is not None and partnership.is_active else None

        async with locks.hold_many(user_scope(user_id), shared_key):
            ctx = await assemble_context(stores, conversation_id, user_id, partnership, policy.history_turns)
            if not ctx.conversation_lines:
                return ExtractionBatch(trace_id=trace_id)
            batch = await run_memory_extraction(stores, completion, ctx, policy=policy, trace_id=trace_id)
    except Exception as exc:
        logger.exception("trace=%s memory extraction failed conversation=%s: %s", trace_id, conversation_id, exc)
        return ExtractionBatch(trace_id=trace_id, error=str(exc))

    logger.info("trace=%s memory extraction complete conversation=%s %s", trace_id, conversation_id, batch.summary())
    return batch
