# services/memory_maintenance.py
"""
Periodic memory maintenance, run once a day by an external scheduler.

  1. confidence decay for every user holding an active personal memory
     (plus their active partnership's shared pool)
  2. insight regeneration for every active partnership, from user_a's side

Each user and each partnership is its own unit: a failure is logged,
counted and the sweep moves on.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass

from services.insight_regeneration import regenerate_insights
from services.memory_decay import run_confidence_decay
from services.memory_policy import DEFAULT_POLICY, MemoryPolicy
from services.openai_llm import CompletionService
from services.scope_lock import ScopeLocks, partnership_scope, scope_locks, user_scope

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceStats:
    decayed: int = 0
    deactivated: int = 0
    insights_created: int = 0
    insights_deactivated: int = 0
    users_processed: int = 0
    partnerships_processed: int = 0
    failures: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


async def _decay_user(stores, user_id: uuid.UUID, stats: MaintenanceStats, policy: MemoryPolicy, locks: ScopeLocks) -> None:
    partnership = await stores.partnerships.find_for_user(user_id)
    partnership_id = partnership.id if partnership is not None and partnership.is_active else None

    keys = [user_scope(user_id)]
    if partnership_id is not None:
        keys.append(partnership_scope(partnership_id))

    async with locks.hold_many(*keys):
        result = await run_confidence_decay(stores, user_id, partnership_id, policy=policy)

    stats.decayed += result.decayed
    stats.deactivated += result.deactivated


async def _regenerate_partnership(
    stores,
    completion: CompletionService,
    partnership,
    stats: MaintenanceStats,
    policy: MemoryPolicy,
    locks: ScopeLocks,
) -> None:
    async with locks.hold(partnership_scope(partnership.id)):
        result = await regenerate_insights(
            stores,
            completion,
            partnership.user_a,
            partnership.id,
            partnership.user_b,
            policy=policy,
        )
    stats.insights_created += result.created
    stats.insights_deactivated += result.deactivated


async def run_memory_maintenance(
    stores,
    completion: CompletionService,
    *,
    policy: MemoryPolicy = DEFAULT_POLICY,
    locks: ScopeLocks = scope_locks,
    trace_id: str | None = None,
) -> MaintenanceStats:
    trace_id = trace_id or uuid.uuid4().hex
    stats = MaintenanceStats()

    user_ids = await stores.personal.active_scope_ids(policy.maintenance_user_limit)
    for user_id in user_ids:
        try:
            await _decay_user(stores, user_id, stats, policy, locks)
        except Exception as exc:
            stats.failures += 1
            logger.exception("trace=%s [memory-maintenance] decay failed user=%s: %s", trace_id, user_id, exc)
            continue
        stats.users_processed += 1

    partnerships = await stores.partnerships.list_active(policy.maintenance_partnership_limit)
    for partnership in partnerships:
        try:
            await _regenerate_partnership(stores, completion, partnership, stats, policy, locks)
        except Exception as exc:
            stats.failures += 1
            logger.exception(
                "trace=%s [memory-maintenance] insight regeneration failed partnership=%s: %s",
                trace_id,
                partnership.id,
                exc,
            )
            continue
        stats.partnerships_processed += 1

    logger.info("trace=%s [memory-maintenance] complete: %s", trace_id, stats.as_dict())
    return stats
