# services/memory_context.py
"""
Gather what the extraction call needs: recent turns and a digest of
what is already known, so the model can avoid re-deriving old facts.
The digest is advisory context only; nothing filters on it.
"""
from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field

from models.memory import PersonalCategory, SharedCategory
from models.partnership import Partnership

DEFAULT_HISTORY_TURNS = 15
UNCERTAIN_BELOW = 0.7

PERSONAL_LABELS: dict[str, str] = {
    PersonalCategory.PREFERENCE.value: "Preferences",
    PersonalCategory.EMOTIONAL_NEED.value: "Emotional Needs",
    PersonalCategory.IMPORTANT_DATE.value: "Important Dates",
    PersonalCategory.GROWTH_MOMENT.value: "Growth Moments",
    PersonalCategory.PATTERN.value: "Patterns",
    PersonalCategory.GOAL.value: "Goals",
    PersonalCategory.GENERAL.value: "General",
}

SHARED_LABELS: dict[str, str] = {
    SharedCategory.PREFERENCE.value: "Preferences",
    SharedCategory.EMOTIONAL_NEED.value: "Emotional Needs",
    SharedCategory.IMPORTANT_DATE.value: "Important Dates",
    SharedCategory.GIFT_IDEA.value: "Gift Ideas",
    SharedCategory.GROWTH_MOMENT.value: "Growth Moments",
    SharedCategory.PATTERN.value: "Patterns",
    SharedCategory.GENERAL.value: "General",
}


@dataclass
class ExtractionContext:
    conversation_id: uuid.UUID
    user_id: uuid.UUID
    partnership: Partnership | None
    conversation_lines: list[str] = field(default_factory=list)
    personal: list = field(default_factory=list)
    shared: list = field(default_factory=list)

    @property
    def active_partnership(self) -> Partnership | None:
        if self.partnership is not None and self.partnership.is_active:
            return self.partnership
        return None

    @property
    def partner_id(self) -> uuid.UUID | None:
        partnership = self.active_partnership
        return partnership.partner_of(self.user_id) if partnership else None

    @property
    def conversation_text(self) -> str:
        return "\n\n".join(self.conversation_lines)

    @property
    def memory_digest(self) -> str:
        return build_memory_digest(self.personal, self.shared)


def format_turn(role: str, content: str) -> str:
    return f"{role.upper()}: {content.strip()}"


def build_memory_digest(personal: list, shared: list) -> str:
    lines = [f"[personal/{m.category}] {m.content}" for m in personal]
    lines += [f"[shared/{m.category}] {m.content}" for m in shared]
    return "\n".join(lines)


async def assemble_context(
    stores,
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
    partnership: Partnership | None,
    history_limit: int = DEFAULT_HISTORY_TURNS,
) -> ExtractionContext:
    ctx = ExtractionContext(conversation_id=conversation_id, user_id=user_id, partnership=partnership)

    messages = await stores.conversations.recent_messages(conversation_id, history_limit)
    ctx.conversation_lines = [
        format_turn(m.role, m.content) for m in messages if m.content and m.content.strip()
    ]

    ctx.personal = await stores.personal.fetch_active(user_id)
    if ctx.active_partnership is not None:
        ctx.shared = await stores.shared.fetch_active(ctx.active_partnership.id)
    return ctx


def format_memory_section(title: str, records: list, labels: dict[str, str]) -> str:
    """Group records by category for a system prompt; low-confidence items are flagged."""
    if not records:
        return ""

    grouped: OrderedDict[str, list] = OrderedDict()
    for record in records:
        grouped.setdefault(record.category, []).append(record)

    lines = [f"{title}:"]
    for category, items in grouped.items():
        lines.append("")
        lines.append(f"{labels.get(category, category.replace('_', ' ').title())}:")
        for item in items:
            tag = " (uncertain)" if item.confidence < UNCERTAIN_BELOW else ""
            lines.append(f"- {item.content}{tag}")
    return "\n".join(lines)
