# tests/test_insight_regeneration.py
from __future__ import annotations

import pytest

from services.errors import ProviderError
from services.insight_regeneration import regenerate_insights
from tests.fakes import FakeCompletion


@pytest.mark.asyncio
async def test_no_memories_means_no_call(stores, user_id, partner_id, partnership, policy):
    completion = FakeCompletion({"new_insights": [{"category": "strength", "title": "x", "content": "y"}]})
    result = await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)
    assert (result.created, result.deactivated) == (0, 0)
    assert completion.calls == []


@pytest.mark.asyncio
async def test_outdated_deactivated_and_new_created(stores, user_id, partner_id, partnership, policy):
    stores.shared.add(partnership.id, "They now cook together on weekends", category="pattern")
    stale = stores.insights.add(partnership.id, "Avoids Conflict", "Shuts down during arguments", category="conflict_style")
    kept = stores.insights.add(partnership.id, "Shared humor", "Jokes defuse tension", category="strength")

    completion = FakeCompletion({
        "outdated_insights": ["  avoids conflict "],
        "new_insights": [
            {
                "category": "appreciation",
                "title": "Acts of service",
                "content": "Cooking together makes them feel close",
                "about": "partner",
                "confidence": 0.7,
            },
        ],
    })

    result = await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)

    assert result.deactivated == 1
    assert result.created == 1
    assert stale.is_active is False
    assert kept.is_active is True
    created = [i for i in stores.insights.records.values() if i.title == "Acts of service"][0]
    assert created.about_user_id == partner_id
    assert created.confidence == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_prompt_lists_memories_and_insights(stores, user_id, partner_id, partnership, policy):
    stores.personal.add(user_id, "Needs quiet time after work", category="emotional_need", confidence=0.8)
    stores.insights.add(partnership.id, "Shared humor", "Jokes defuse tension")
    completion = FakeCompletion({})

    await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)

    prompt = completion.last_user_message
    assert "[personal/emotional_need] Needs quiet time after work (confidence: 0.80)" in prompt
    assert '"Shared humor"' in prompt


@pytest.mark.asyncio
async def test_provider_failure_reports_zero(stores, user_id, partner_id, partnership, policy):
    stores.personal.add(user_id, "Needs quiet time after work")
    completion = FakeCompletion(ProviderError("503"))
    result = await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)
    assert (result.created, result.deactivated) == (0, 0)


@pytest.mark.asyncio
async def test_invalid_new_insight_skipped(stores, user_id, partner_id, partnership, policy):
    stores.personal.add(user_id, "Needs quiet time after work")
    completion = FakeCompletion({
        "new_insights": [
            {"category": "horoscope", "title": "Stars", "content": "Aligned"},
            {"category": "growth_area", "title": "Listening", "content": "Working on listening", "about": "relationship"},
        ],
    })
    result = await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)
    assert result.created == 1
    (insight,) = stores.insights.records.values()
    assert insight.about_user_id is None
    assert insight.confidence == 1.0


@pytest.mark.asyncio
async def test_outdated_title_retires_only_the_first_match(stores, user_id, partner_id, partnership, policy):
    stores.shared.add(partnership.id, "They now cook together on weekends")
    stores.insights.add(partnership.id, "Avoids conflict", "Shuts down during arguments", category="conflict_style")
    stores.insights.add(partnership.id, "Avoids conflict", "Changes the subject", category="conflict_style")
    first, second = await stores.insights.fetch_active(partnership.id)

    completion = FakeCompletion({"outdated_insights": ["Avoids conflict"]})
    result = await regenerate_insights(stores, completion, user_id, partnership.id, partner_id, policy=policy)

    assert result.deactivated == 1
    assert first.is_active is False
    assert second.is_active is True
