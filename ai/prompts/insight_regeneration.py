"""Prompt for re-evaluating partnership insights against current memories."""

INSIGHT_EVALUATOR_SYSTEM = "You are an insight evaluation system for a relationship-focused AI companion."

INSIGHT_REGENERATION = """Given the current active memories and the existing insights, determine:
1. Which existing insights are now OUTDATED (contradicted by newer memories or no longer supported)
2. What NEW insights can be derived from the current memories

CURRENT ACTIVE MEMORIES:
{memory_lines}

EXISTING INSIGHTS:
{insight_lines}

Return a JSON object:
{{
  "outdated_insights": ["exact title of outdated insight", ...],
  "new_insights": [
    {{
      "category": "emotional_need" | "communication" | "appreciation" | "conflict_style" | "growth_area" | "strength" | "gift_relevant",
      "title": "short label",
      "content": "the insight",
      "about": "current" | "partner" | "relationship",
      "confidence": 0-1
    }}
  ]
}}

Rules:
- Only mark insights outdated if memories clearly contradict them.
- Only create insights that are genuinely new (not already existing).
- Be conservative; quality over quantity.
- Return ONLY valid JSON, no markdown fences.
"""


def format_memory_line(scope: str, record) -> str:
    return f"- [{scope}/{record.category}] {record.content} (confidence: {record.confidence:.2f})"


def format_insight_line(insight) -> str:
    return f'- [{insight.category}] "{insight.title}": {insight.content} (confidence: {insight.confidence:.2f})'


def build_regeneration_prompt(personal: list, shared: list, insights: list) -> str:
    memory_lines = [format_memory_line("personal", m) for m in personal]
    memory_lines += [format_memory_line("shared", m) for m in shared]
    insight_lines = [format_insight_line(i) for i in insights]
    return INSIGHT_REGENERATION.format(
        memory_lines="\n".join(memory_lines),
        insight_lines="\n".join(insight_lines) or "(none)",
    )
