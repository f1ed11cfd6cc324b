# services/conflict_resolver.py
"""
Resolve a "contradicts" claim from the extraction call.

Matching contract (first match wins, exactly one record per claim):
  1. exact match on trimmed, case-insensitive content, personal pool
     first, then shared, each in the order the store returned it
  2. otherwise the highest token-overlap (Jaccard) score at or above the
     similarity threshold; ties keep the same personal-then-shared order

A claim that matches nothing is a no-op.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from services.memory_policy import DEFAULT_POLICY, MemoryPolicy

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def normalize(text: str | None) -> str:
    return (text or "").strip().lower()


def tokenize(text: str | None) -> set[str]:
    return set(_TOKEN_RE.findall(normalize(text)))


def token_similarity(a: str | None, b: str | None) -> float:
    ta, tb = tokenize(a), tokenize(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


@dataclass
class ConflictMatch:
    record: Any
    memory_type: str  # personal | shared
    score: float
    exact: bool


@dataclass
class ConflictResolution:
    memory_id: Any
    memory_type: str
    previous_confidence: float
    confidence: float
    deactivated: bool
    exact: bool


def find_conflict_target(
    target: str,
    personal: list,
    shared: list,
    similarity_threshold: float = DEFAULT_POLICY.similarity_threshold,
) -> ConflictMatch | None:
    wanted = normalize(target)
    if not wanted:
        return None

    pools = [("personal", r) for r in personal if r.is_active] + [("shared", r) for r in shared if r.is_active]

    for memory_type, record in pools:
        if normalize(record.content) == wanted:
            return ConflictMatch(record=record, memory_type=memory_type, score=1.0, exact=True)

    if similarity_threshold <= 0 or similarity_threshold > 1:
        return None

    best: ConflictMatch | None = None
    for memory_type, record in pools:
        score = token_similarity(target, record.content)
        # strict > keeps the earliest candidate on ties
        if score >= similarity_threshold and (best is None or score > best.score):
            best = ConflictMatch(record=record, memory_type=memory_type, score=score, exact=False)
    return best


async def resolve_conflict(
    stores,
    target: str,
    personal: list,
    shared: list,
    policy: MemoryPolicy = DEFAULT_POLICY,
) -> ConflictResolution | None:
    match = find_conflict_target(target, personal, shared, policy.similarity_threshold)
    if match is None:
        logger.info("contradiction target not found, skipping: %r", target[:80])
        return None

    record = match.record
    previous = record.confidence
    adjusted = await stores.memory_store(match.memory_type).adjust_confidence(
        record.id, -policy.contradiction_penalty, floor=policy.floor
    )
    if adjusted is None:
        logger.warning("contradiction target %s memory=%s vanished before the penalty", match.memory_type, record.id)
        return None
    new_confidence, still_active = adjusted
    deactivate = not still_active

    # keep the loaded pool in step so later claims in the same batch see it
    record.confidence = new_confidence
    record.is_active = still_active

    logger.info(
        "contradiction resolved %s memory=%s %.2f -> %.2f%s (%s)",
        match.memory_type,
        record.id,
        previous,
        new_confidence,
        " deactivated" if deactivate else "",
        "exact" if match.exact else f"similarity={match.score:.2f}",
    )
    return ConflictResolution(
        memory_id=record.id,
        memory_type=match.memory_type,
        previous_confidence=previous,
        confidence=new_confidence,
        deactivated=deactivate,
        exact=match.exact,
    )
