# services/memory_decay.py
"""
Confidence decay: old memories slowly lose confidence unless reinforced.

Records younger than the grace period are untouched. Older ones lose
`rate` per day beyond the grace period, measured from `updated_at`.
Every write bumps `updated_at`, so an immediate rerun finds the record
inside its grace period again and leaves it alone.

A memory at 0.9 untouched for 37 days: 0.9 - (37 - 7) * 0.005 = 0.75.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from models.base import utcnow
from services.memory_policy import DEFAULT_POLICY, MemoryPolicy

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class DecayDecision:
    outcome: str  # unchanged | decayed | deactivated
    confidence: float


@dataclass
class DecayResult:
    decayed: int = 0
    deactivated: int = 0
    skipped: int = 0

    def __iadd__(self, other: "DecayResult") -> "DecayResult":
        self.decayed += other.decayed
        self.deactivated += other.deactivated
        self.skipped += other.skipped
        return self


def compute_decay(
    confidence: float,
    updated_at: datetime,
    now: datetime,
    policy: MemoryPolicy = DEFAULT_POLICY,
) -> DecayDecision:
    days_since_update = (now - updated_at).total_seconds() / SECONDS_PER_DAY
    if days_since_update < policy.decay_grace_days:
        return DecayDecision("unchanged", confidence)

    decay_amount = (days_since_update - policy.decay_grace_days) * policy.decay_rate_per_day
    new_confidence = max(0.0, confidence - decay_amount)

    if abs(new_confidence - confidence) < policy.decay_epsilon:
        return DecayDecision("unchanged", confidence)
    if policy.below_floor(new_confidence):
        return DecayDecision("deactivated", new_confidence)
    return DecayDecision("decayed", new_confidence)


async def _decay_pool(store, records: list, now: datetime, policy: MemoryPolicy) -> DecayResult:
    result = DecayResult()
    for record in records:
        decision = compute_decay(record.confidence, record.updated_at, now, policy)
        if decision.outcome == "unchanged":
            continue
        deactivate = decision.outcome == "deactivated"
        # the value was computed from this read; a confirm or penalty since then wins
        written = await store.update(
            record.id,
            confidence=decision.confidence,
            is_active=not deactivate,
            expected_updated_at=record.updated_at,
        )
        if not written:
            result.skipped += 1
        elif deactivate:
            result.deactivated += 1
        else:
            result.decayed += 1
    return result


async def run_confidence_decay(
    stores,
    user_id: uuid.UUID,
    partnership_id: uuid.UUID | None = None,
    *,
    now: datetime | None = None,
    policy: MemoryPolicy = DEFAULT_POLICY,
) -> DecayResult:
    """Age every active personal memory of the user and, if given, the partnership's shared ones."""
    now = now or utcnow()
    result = DecayResult()

    personal = await stores.personal.fetch_active(user_id)
    result += await _decay_pool(stores.personal, personal, now, policy)

    if partnership_id is not None:
        shared = await stores.shared.fetch_active(partnership_id)
        result += await _decay_pool(stores.shared, shared, now, policy)

    logger.info(
        "[memory-decay] user=%s: %d decayed, %d deactivated, %d skipped as stale",
        user_id,
        result.decayed,
        result.deactivated,
        result.skipped,
    )
    return result
