# tests/test_prompt_builder.py
"""Layered companion prompt assembly and the cached per-user build."""
from __future__ import annotations

import uuid

import pytest

from ai.prompt_builder import CompanionPromptContext, build_companion_prompt
from services.companion_prompt import build_prompt_for_user
from services.memory_context import format_memory_section, PERSONAL_LABELS
from services.prompt_cache import PromptCache
from tests.fakes import make_stores


def test_build_includes_bot_name():
    prompt = build_companion_prompt(CompanionPromptContext(bot_name="Orbit"))
    assert "You are Orbit" in prompt


def test_build_without_memories_skips_memory_layers():
    prompt = build_companion_prompt(CompanionPromptContext())
    assert "MEMORY RULES" not in prompt
    assert "THINGS YOU REMEMBER" not in prompt


def test_build_includes_personality_summary():
    ctx = CompanionPromptContext(
        user_name="Dana",
        personality_summary={"traits": ["curious", "warm"], "humor": "dry", "notes": "Night owl"},
    )
    prompt = build_companion_prompt(ctx)
    assert "Name: Dana" in prompt
    assert "Traits: curious, warm" in prompt
    assert "Humor: dry" in prompt
    assert "Notes: Night owl" in prompt


def test_build_includes_partner_profile():
    ctx = CompanionPromptContext(partner_profile={"name": "Avi", "traits": ["calm"], "ai_notes": None})
    prompt = build_companion_prompt(ctx)
    assert "THEIR PARTNER" in prompt
    assert "Name: Avi" in prompt
    assert "Traits: calm" in prompt


def test_memory_section_groups_and_flags_uncertain():
    stores = make_stores()
    user_id = uuid.uuid4()
    stores.personal.add(user_id, "Likes jazz", category="preference", confidence=0.9)
    stores.personal.add(user_id, "Maybe allergic to cats", category="general", confidence=0.5)
    records = sorted(stores.personal.records.values(), key=lambda r: r.category)

    section = format_memory_section("THINGS YOU REMEMBER ABOUT THEM", records, PERSONAL_LABELS)

    assert "General:\n- Maybe allergic to cats (uncertain)" in section
    assert "Preferences:\n- Likes jazz" in section
    assert "Likes jazz (uncertain)" not in section


def test_format_memory_section_empty():
    assert format_memory_section("X", [], PERSONAL_LABELS) == ""


def test_build_includes_shared_layers():
    stores = make_stores()
    partnership_id = uuid.uuid4()
    shared = stores.shared.add(partnership_id, "Met at a wedding", category="important_date")
    insight = stores.insights.add(partnership_id, "Shared humor", "Jokes defuse tension", confidence=0.6)
    prompt = build_companion_prompt(CompanionPromptContext(shared_memories=[shared], insights=[insight]))
    assert "MEMORY RULES" in prompt
    assert "Important Dates:\n- Met at a wedding" in prompt
    assert "- Shared humor: Jokes defuse tension (uncertain)" in prompt


@pytest.mark.asyncio
async def test_build_prompt_for_user_caches_until_a_write(stores, user_id, partnership):
    cache = PromptCache()
    stores.hooks.append(cache.invalidate)
    stores.personal.add(user_id, "Likes jazz", category="preference")

    first = await build_prompt_for_user(stores, cache, user_id)
    second = await build_prompt_for_user(stores, cache, user_id)
    assert first.cache_hit is False
    assert second.cache_hit is True
    assert first.prompt == second.prompt

    await stores.personal.insert(scope_id=user_id, category="goal", content="Run a marathon")
    third = await build_prompt_for_user(stores, cache, user_id)
    assert third.cache_hit is False
    assert "Run a marathon" in third.prompt
    assert third.personal_count == 2


@pytest.mark.asyncio
async def test_build_prompt_for_user_uses_partner_profile_without_partnership(stores, user_id):
    await stores.profiles.upsert_partner_profile(user_id, {"name": "Avi", "traits": ["calm"]})
    built = await build_prompt_for_user(stores, PromptCache(), user_id)
    assert "Name: Avi" in built.prompt
    assert built.shared_count == 0


@pytest.mark.asyncio
async def test_build_prompt_for_user_names_the_user(stores, user_id):
    cache = PromptCache()
    built = await build_prompt_for_user(stores, cache, user_id, user_name="Dana")
    renamed = await build_prompt_for_user(stores, cache, user_id, user_name="Noa")
    assert "ABOUT THE PERSON YOU'RE TALKING TO:\nName: Dana" in built.prompt
    assert renamed.cache_hit is False
    assert "Name: Noa" in renamed.prompt
