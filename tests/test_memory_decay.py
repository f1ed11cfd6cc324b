# tests/test_memory_decay.py
"""Tests for confidence decay: grace period, floor, idempotent reruns."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from models.base import utcnow
from services.conflict_resolver import resolve_conflict
from services.memory_actions import apply_memory_action
from services.memory_decay import _decay_pool, compute_decay, run_confidence_decay
from services.memory_policy import MemoryPolicy
from tests.fakes import days_ago

POLICY = MemoryPolicy()


def test_decay_after_grace_period():
    now = utcnow()
    decision = compute_decay(0.9, days_ago(37, now), now, POLICY)
    assert decision.outcome == "decayed"
    assert decision.confidence == pytest.approx(0.75)


def test_decay_deactivates_below_floor():
    now = utcnow()
    decision = compute_decay(0.32, days_ago(67, now), now, POLICY)
    assert decision.outcome == "deactivated"
    assert decision.confidence == pytest.approx(0.02)


def test_inside_grace_period_unchanged():
    now = utcnow()
    decision = compute_decay(0.8, days_ago(3, now), now, POLICY)
    assert decision.outcome == "unchanged"
    assert decision.confidence == 0.8


def test_tiny_change_is_skipped():
    now = utcnow()
    # 7.1 days → 0.0005 of decay, under the write threshold
    decision = compute_decay(0.8, days_ago(7.1, now), now, POLICY)
    assert decision.outcome == "unchanged"


def test_floor_is_strict():
    now = utcnow()
    # 0.5 - 34 * 0.005 = 0.33 stays; 0.5 - 47 * 0.005 = 0.265 goes
    assert compute_decay(0.5, days_ago(41, now), now, POLICY).outcome == "decayed"
    assert compute_decay(0.5, days_ago(54, now), now, POLICY).outcome == "deactivated"


def test_confidence_never_negative():
    now = utcnow()
    decision = compute_decay(0.1, days_ago(400, now), now, POLICY)
    assert decision.confidence == 0.0


def test_decay_is_monotonic_in_age():
    now = utcnow()
    values = [compute_decay(0.9, days_ago(d, now), now, POLICY).confidence for d in (10, 20, 40, 80)]
    assert values == sorted(values, reverse=True)


@pytest.mark.asyncio
async def test_run_decay_over_personal_and_shared(stores, user_id, partnership, policy):
    fresh = stores.personal.add(user_id, "Plays guitar", confidence=0.8, age_days=3)
    aging = stores.personal.add(user_id, "Drinks oat milk", confidence=0.9, age_days=37)
    fading = stores.shared.add(partnership.id, "Sunday brunch ritual", confidence=0.32, age_days=67)

    result = await run_confidence_decay(stores, user_id, partnership.id, policy=policy)

    assert result.decayed == 1
    assert result.deactivated == 1
    assert fresh.confidence == 0.8
    assert aging.confidence == pytest.approx(0.75)
    assert aging.is_active is True
    assert fading.is_active is False


@pytest.mark.asyncio
async def test_shared_pool_untouched_without_partnership(stores, user_id, partnership, policy):
    old_shared = stores.shared.add(partnership.id, "Sunday brunch ritual", confidence=0.9, age_days=60)
    await run_confidence_decay(stores, user_id, None, policy=policy)
    assert old_shared.confidence == 0.9


@pytest.mark.asyncio
async def test_rerun_same_day_is_noop(stores, user_id, policy):
    record = stores.personal.add(user_id, "Drinks oat milk", confidence=0.9, age_days=37)

    first = await run_confidence_decay(stores, user_id, policy=policy)
    after_first = record.confidence
    second = await run_confidence_decay(stores, user_id, policy=policy)

    assert first.decayed == 1
    assert second.decayed == 0
    assert second.deactivated == 0
    assert record.confidence == after_first
    assert len(stores.personal.updates) == 1


@pytest.mark.asyncio
async def test_threshold_boundary_scenario(stores, user_id, policy):
    # both land near the floor after 9 days (0.01 of decay)
    below = stores.personal.add(user_id, "a", confidence=0.30, age_days=9)
    above = stores.personal.add(user_id, "b", confidence=0.32, age_days=9)

    result = await run_confidence_decay(stores, user_id, policy=policy)

    assert below.confidence == pytest.approx(0.29)
    assert below.is_active is False
    assert above.confidence == pytest.approx(0.31)
    assert above.is_active is True
    assert result.deactivated == 1
    assert result.decayed == 1


def _snapshot(records):
    # detached copies, the way a separate session would have loaded them
    return [SimpleNamespace(id=r.id, confidence=r.confidence, updated_at=r.updated_at) for r in records]


@pytest.mark.asyncio
async def test_confirm_during_sweep_is_not_overwritten(stores, user_id, policy):
    record = stores.personal.add(user_id, "Drinks oat milk", confidence=0.9, age_days=37)
    loaded = _snapshot(await stores.personal.fetch_active(user_id))

    await apply_memory_action(stores, user_id, record.id, "personal", "confirm", policy=policy)
    result = await _decay_pool(stores.personal, loaded, utcnow(), policy)

    assert record.confidence == 1.0
    assert result.decayed == 0
    assert result.skipped == 1


@pytest.mark.asyncio
async def test_contradiction_during_sweep_is_not_overwritten(stores, user_id, policy):
    record = stores.personal.add(user_id, "Prefers tea", confidence=0.9, age_days=37)
    loaded = _snapshot(await stores.personal.fetch_active(user_id))

    await resolve_conflict(stores, "prefers tea", [record], [], policy)
    await _decay_pool(stores.personal, loaded, utcnow(), policy)

    assert record.confidence == pytest.approx(0.5)
    assert record.is_active is True
