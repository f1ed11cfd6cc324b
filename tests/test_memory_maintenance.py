# tests/test_memory_maintenance.py
from __future__ import annotations

import uuid

import pytest

from services.memory_maintenance import run_memory_maintenance
from tests.fakes import FakeCompletion


@pytest.mark.asyncio
async def test_sweep_decays_users_and_regenerates_partnerships(stores, user_id, partner_id, partnership, policy, locks):
    stores.personal.add(user_id, "Drinks oat milk", confidence=0.9, age_days=37)
    stores.personal.add(partner_id, "Runs every morning", confidence=0.32, age_days=67)
    completion = FakeCompletion({
        "new_insights": [{"category": "strength", "title": "Routines", "content": "Both value routine"}],
    })

    stats = await run_memory_maintenance(stores, completion, policy=policy, locks=locks)

    assert stats.users_processed == 2
    assert stats.decayed == 1
    assert stats.deactivated == 1
    assert stats.partnerships_processed == 1
    assert stats.insights_created == 1
    assert stats.failures == 0
    # regeneration runs from user_a's side
    prompt = completion.last_user_message
    assert "Drinks oat milk" in prompt


@pytest.mark.asyncio
async def test_one_failing_user_does_not_abort_sweep(stores, user_id, policy, locks):
    broken = uuid.uuid4()
    stores.personal.add(broken, "Will fail", confidence=0.9, age_days=40)
    healthy = stores.personal.add(user_id, "Will decay", confidence=0.9, age_days=37)
    stores.partnerships.fail_lookup_for.add(broken)

    stats = await run_memory_maintenance(stores, FakeCompletion(), policy=policy, locks=locks)

    assert stats.failures == 1
    assert stats.users_processed == 1
    assert healthy.confidence == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_failing_partnership_is_counted(stores, policy, locks):
    first = stores.partnerships.add(uuid.uuid4(), uuid.uuid4())
    second = stores.partnerships.add(uuid.uuid4(), uuid.uuid4())
    stores.shared.add(first.id, "Cook together")
    stores.shared.add(second.id, "Travel every summer")
    stores.insights.fail_fetch_for.add(first.id)
    completion = FakeCompletion({})

    stats = await run_memory_maintenance(stores, completion, policy=policy, locks=locks)

    assert stats.failures == 1
    assert stats.partnerships_processed == 1
    assert len(completion.calls) == 1


@pytest.mark.asyncio
async def test_pending_partnership_is_not_regenerated(stores, user_id, policy, locks):
    stores.partnerships.add(user_id, None, status="pending")
    stores.personal.add(user_id, "Likes jazz")
    completion = FakeCompletion()

    stats = await run_memory_maintenance(stores, completion, policy=policy, locks=locks)

    assert stats.partnerships_processed == 0
    assert completion.calls == []


@pytest.mark.asyncio
async def test_stats_serialize(stores, policy, locks):
    stats = await run_memory_maintenance(stores, FakeCompletion(), policy=policy, locks=locks)
    assert stats.as_dict() == {
        "decayed": 0,
        "deactivated": 0,
        "insights_created": 0,
        "insights_deactivated": 0,
        "users_processed": 0,
        "partnerships_processed": 0,
        "failures": 0,
    }
