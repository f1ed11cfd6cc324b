# ai/prompt_builder.py
"""
Assembles the layered companion system prompt from persona, personality
summary, partner profile, memories and insights.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from ai.prompts.companion_core import COMPANION_CORE, MEMORY_GUIDANCE
from models.user_profile import LIST_SUMMARY_FIELDS
from services.memory_context import PERSONAL_LABELS, SHARED_LABELS, UNCERTAIN_BELOW, format_memory_section


@dataclass
class CompanionPromptContext:
    bot_name: str = "Nova"
    user_name: str | None = None
    personality_summary: dict = field(default_factory=dict)
    partner_profile: dict | None = None
    personal_memories: list = field(default_factory=list)
    shared_memories: list = field(default_factory=list)
    insights: list = field(default_factory=list)


def _summary_block(summary: dict, user_name: str | None) -> str:
    lines: list[str] = []
    if user_name:
        lines.append(f"Name: {user_name}")
    for key in LIST_SUMMARY_FIELDS:
        values = summary.get(key) or []
        if values:
            lines.append(f"{key.replace('_', ' ').title()}: {', '.join(values)}")
    if summary.get("humor"):
        lines.append(f"Humor: {summary['humor']}")
    if summary.get("notes"):
        lines.append(f"Notes: {summary['notes']}")
    if not lines:
        return ""
    return "ABOUT THE PERSON YOU'RE TALKING TO:\n" + "\n".join(lines)


def _partner_block(profile: dict | None) -> str:
    if not profile or not profile.get("name"):
        return ""
    lines = [f"Name: {profile['name']}"]
    for key in ("traits", "relational_tendencies", "important_truths"):
        values = profile.get(key) or []
        if values:
            lines.append(f"{key.replace('_', ' ').title()}: {', '.join(values)}")
    if profile.get("ai_notes"):
        lines.append(f"Notes: {profile['ai_notes']}")
    return "THEIR PARTNER (as described to you):\n" + "\n".join(lines)


def _insight_block(insights: list) -> str:
    if not insights:
        return ""
    lines = ["RELATIONSHIP INSIGHTS:"]
    for insight in insights:
        tag = " (uncertain)" if insight.confidence < UNCERTAIN_BELOW else ""
        lines.append(f"- {insight.title}: {insight.content}{tag}")
    return "\n".join(lines)


def build_companion_prompt(ctx: CompanionPromptContext) -> str:
    """Build the full system prompt from all layers; empty layers are left out."""
    sections: list[str] = [COMPANION_CORE.format(bot_name=ctx.bot_name)]

    has_memory = ctx.personal_memories or ctx.shared_memories or ctx.insights
    if has_memory:
        sections.append(MEMORY_GUIDANCE)

    for block in (
        _summary_block(ctx.personality_summary, ctx.user_name),
        _partner_block(ctx.partner_profile),
        format_memory_section("THINGS YOU REMEMBER ABOUT THEM", ctx.personal_memories, PERSONAL_LABELS),
        format_memory_section("SHARED RELATIONSHIP MEMORIES", ctx.shared_memories, SHARED_LABELS),
        _insight_block(ctx.insights),
    ):
        if block:
            sections.append(block)

    return "\n\n".join(sections)
