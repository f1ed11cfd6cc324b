# tests/test_memory_context.py
from __future__ import annotations

import pytest

from services.memory_context import assemble_context, build_memory_digest, format_turn


async def _conversation(stores, user_id, turns):
    conversation = await stores.conversations.create(user_id)
    for role, content in turns:
        await stores.conversations.add_message(conversation.id, user_id, role, content)
    return conversation


def test_format_turn():
    assert format_turn("user", "  hi there \n") == "USER: hi there"


@pytest.mark.asyncio
async def test_context_keeps_recent_non_empty_turns_in_order(stores, user_id):
    turns = [("user", f"message {i}") for i in range(20)] + [("assistant", "   ")]
    conversation = await _conversation(stores, user_id, turns)

    ctx = await assemble_context(stores, conversation.id, user_id, None, history_limit=5)

    assert ctx.conversation_lines == [f"USER: message {i}" for i in range(16, 20)]
    assert ctx.conversation_text.startswith("USER: message 16\n\nUSER: message 17")


@pytest.mark.asyncio
async def test_context_loads_shared_only_for_active_partnership(stores, user_id, partner_id):
    pending = stores.partnerships.add(user_id, None, status="pending")
    stores.shared.add(pending.id, "Should not show")
    stores.personal.add(user_id, "Likes jazz", category="preference")
    conversation = await _conversation(stores, user_id, [("user", "hi")])

    ctx = await assemble_context(stores, conversation.id, user_id, pending)

    assert [m.content for m in ctx.personal] == ["Likes jazz"]
    assert ctx.shared == []
    assert ctx.active_partnership is None
    assert ctx.partner_id is None


@pytest.mark.asyncio
async def test_context_with_active_partnership(stores, user_id, partner_id, partnership):
    stores.shared.add(partnership.id, "Met at a wedding", category="important_date")
    stores.shared.add(partnership.id, "Old news", is_active=False)
    conversation = await _conversation(stores, user_id, [("user", "hi")])

    ctx = await assemble_context(stores, conversation.id, user_id, partnership)

    assert [m.content for m in ctx.shared] == ["Met at a wedding"]
    assert ctx.partner_id == partner_id
    assert "[shared/important_date] Met at a wedding" in ctx.memory_digest


def test_digest_lists_personal_before_shared(stores, user_id, partnership):
    personal = [stores.personal.add(user_id, "Likes jazz", category="preference")]
    shared = [stores.shared.add(partnership.id, "Cook on Fridays", category="pattern")]
    assert build_memory_digest(personal, shared) == (
        "[personal/preference] Likes jazz\n[shared/pattern] Cook on Fridays"
    )
