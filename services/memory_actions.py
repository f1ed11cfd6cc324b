# services/memory_actions.py
"""
Actions a user takes on their own memories from the profile screen.

  confirm → +boost (capped at 1.0) and the memory is active again
  wrong   → -penalty (floored at 0.0); deactivated once below the floor
  delete  → soft delete, the row stays for audit

Personal memories belong to their user. Shared memories belong to the
partnership, so either partner may act on them. A memory outside the
caller's scope is reported as not found.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from services.errors import MemoryNotFound, ValidationError
from services.memory_policy import DEFAULT_POLICY, MemoryPolicy

logger = logging.getLogger(__name__)

MEMORY_TYPES = ("personal", "shared")
ACTIONS = ("confirm", "wrong")


@dataclass
class ActionResult:
    memory_id: uuid.UUID
    memory_type: str
    confidence: float
    deactivated: bool


@dataclass
class MemoryListing:
    personal: list = field(default_factory=list)
    shared: list = field(default_factory=list)
    insights: list = field(default_factory=list)
    partnership_id: uuid.UUID | None = None


def _check_type(memory_type: str) -> None:
    if memory_type not in MEMORY_TYPES:
        raise ValidationError(
            f"memory_type must be one of {', '.join(MEMORY_TYPES)}",
            context={"memory_type": memory_type},
        )


async def _load_owned(stores, user_id: uuid.UUID, memory_id: uuid.UUID, memory_type: str):
    _check_type(memory_type)
    record = await stores.memory_store(memory_type).get(memory_id)
    if record is None:
        raise MemoryNotFound("Memory not found", context={"memory_id": str(memory_id)})

    if memory_type == "personal":
        owned = record.user_id == user_id
    else:
        partnership = await stores.partnerships.get(record.partnership_id)
        owned = partnership is not None and partnership.has_member(user_id)

    if not owned:
        # same answer as a missing id, so foreign ids can't be discovered
        raise MemoryNotFound("Memory not found", context={"memory_id": str(memory_id)})
    return record


async def apply_memory_action(
    stores,
    user_id: uuid.UUID,
    memory_id: uuid.UUID,
    memory_type: str,
    action: str,
    *,
    policy: MemoryPolicy = DEFAULT_POLICY,
) -> ActionResult:
    if action not in ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(ACTIONS)}", context={"action": action})

    record = await _load_owned(stores, user_id, memory_id, memory_type)
    previous = record.confidence
    store = stores.memory_store(memory_type)

    # relative adjustment, so a decay sweep or contradiction landing at the same time is not lost
    if action == "confirm":
        adjusted = await store.adjust_confidence(memory_id, policy.confirm_boost, floor=policy.floor, reactivate=True)
    else:
        # a user-deleted memory stays deleted even if "wrong" is pressed on it
        adjusted = await store.adjust_confidence(memory_id, -policy.wrong_penalty, floor=policy.floor)
    if adjusted is None:
        raise MemoryNotFound("Memory not found", context={"memory_id": str(memory_id)})
    confidence, is_active = adjusted

    logger.info(
        "memory action %s on %s memory=%s by user=%s: %.2f -> %.2f",
        action,
        memory_type,
        memory_id,
        user_id,
        previous,
        confidence,
    )
    return ActionResult(
        memory_id=memory_id,
        memory_type=memory_type,
        confidence=confidence,
        deactivated=not is_active,
    )


async def delete_memory(stores, user_id: uuid.UUID, memory_id: uuid.UUID, memory_type: str) -> None:
    await _load_owned(stores, user_id, memory_id, memory_type)
    await stores.memory_store(memory_type).update(memory_id, is_active=False)
    logger.info("memory soft-deleted %s memory=%s by user=%s", memory_type, memory_id, user_id)


async def list_memories(stores, user_id: uuid.UUID) -> MemoryListing:
    listing = MemoryListing(personal=await stores.personal.fetch_active(user_id))
    partnership = await stores.partnerships.find_for_user(user_id)
    if partnership is not None and partnership.is_active:
        listing.partnership_id = partnership.id
        listing.shared = await stores.shared.fetch_active(partnership.id)
        listing.insights = await stores.insights.fetch_active(partnership.id)
    return listing
