# services/companion_prompt.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from ai.prompt_builder import CompanionPromptContext, build_companion_prompt
from services.prompt_cache import PromptCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanionPrompt:
    prompt: str
    cache_hit: bool
    personal_count: int
    shared_count: int
    insight_count: int


def _fingerprint(records: list) -> list:
    return [(str(r.id), round(r.confidence, 3)) for r in records]


async def build_prompt_for_user(
    stores,
    cache: PromptCache,
    user_id: uuid.UUID,
    bot_name: str = "Nova",
    user_name: str | None = None,
) -> CompanionPrompt:
    """Load everything the chat layer's system prompt needs and assemble it, cached."""
    summary = await stores.profiles.get_summary(user_id)
    personal = await stores.personal.fetch_active(user_id)

    shared: list = []
    insights: list = []
    partner: dict | None = None
    partnership = await stores.partnerships.find_for_user(user_id)
    if partnership is not None and partnership.is_active:
        shared = await stores.shared.fetch_active(partnership.id)
        insights = await stores.insights.fetch_active(partnership.id)
    else:
        profile = await stores.profiles.get_partner_profile(user_id)
        if profile is not None:
            partner = {
                "name": profile.name,
                "traits": profile.traits,
                "relational_tendencies": profile.relational_tendencies,
                "important_truths": profile.important_truths,
                "ai_notes": profile.ai_notes,
            }

    ctx = CompanionPromptContext(
        bot_name=bot_name,
        user_name=user_name,
        personality_summary=summary,
        partner_profile=partner,
        personal_memories=personal,
        shared_memories=shared,
        insights=insights,
    )
    key_parts = [
        str(user_id),
        bot_name,
        user_name,
        summary,
        partner,
        _fingerprint(personal),
        _fingerprint(shared),
        _fingerprint(insights),
    ]
    cached = cache.get_or_build(key_parts, lambda: build_companion_prompt(ctx))
    logger.debug("companion prompt user=%s cache_hit=%s", user_id, cached.cache_hit)
    return CompanionPrompt(
        prompt=cached.prompt,
        cache_hit=cached.cache_hit,
        personal_count=len(personal),
        shared_count=len(shared),
        insight_count=len(insights),
    )
