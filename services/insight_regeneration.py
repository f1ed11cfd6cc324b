# services/insight_regeneration.py
"""
Re-evaluate a partnership's insights against its current memories.

One completion call per partnership: it names insights that are now
outdated (the first active insight with that exact title is deactivated)
and proposes new ones. Nothing happens when the partnership holds no
active memories at all.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from ai.prompts.insight_regeneration import INSIGHT_EVALUATOR_SYSTEM, build_regeneration_prompt
from services.conflict_resolver import normalize
from services.errors import ParseError, ProviderError
from services.extraction_schema import parse_regeneration
from services.memory_extraction import DEFAULT_CONFIDENCE, resolve_subject
from services.memory_policy import DEFAULT_POLICY, MemoryPolicy
from services.openai_llm import CompletionService, parse_json_object

logger = logging.getLogger(__name__)


@dataclass
class RegenerationResult:
    created: int = 0
    deactivated: int = 0


async def regenerate_insights(
    stores,
    completion: CompletionService,
    user_id: uuid.UUID,
    partnership_id: uuid.UUID,
    partner_id: uuid.UUID | None,
    *,
    policy: MemoryPolicy = DEFAULT_POLICY,
) -> RegenerationResult:
    result = RegenerationResult()

    personal = await stores.personal.fetch_active(user_id)
    shared = await stores.shared.fetch_active(partnership_id)
    if not personal and not shared:
        return result

    insights = await stores.insights.fetch_active(partnership_id)

    messages = [
        {"role": "system", "content": INSIGHT_EVALUATOR_SYSTEM},
        {"role": "user", "content": build_regeneration_prompt(personal, shared, insights)},
    ]
    try:
        text = await completion.complete(messages, temperature=policy.regeneration_temperature)
        payload = parse_regeneration(parse_json_object(text))
    except (ProviderError, ParseError) as exc:
        logger.warning("[insight-regen] partnership=%s skipped: %s", partnership_id, exc)
        return result

    outdated = {normalize(title) for title in payload.outdated_titles}
    for insight in insights:
        title = normalize(insight.title)
        # one outdated title retires one insight, the first in store order
        if title in outdated:
            outdated.discard(title)
            await stores.insights.update(insight.id, is_active=False)
            result.deactivated += 1

    for entry in payload.new_insights:
        await stores.insights.insert(
            partnership_id=partnership_id,
            category=entry.category.value,
            title=entry.title,
            content=entry.content,
            confidence=entry.confidence if entry.confidence is not None else DEFAULT_CONFIDENCE,
            about_user_id=resolve_subject(entry.about, user_id, partner_id),
        )
        result.created += 1

    logger.info(
        "[insight-regen] partnership=%s: %d created, %d deactivated",
        partnership_id,
        result.created,
        result.deactivated,
    )
    return result
