from ai.prompts.companion_core import COMPANION_CORE, MEMORY_GUIDANCE
from ai.prompts.insight_regeneration import INSIGHT_EVALUATOR_SYSTEM, INSIGHT_REGENERATION
from ai.prompts.memory_extraction import MEMORY_EXTRACTION

__all__ = [
    "COMPANION_CORE",
    "MEMORY_GUIDANCE",
    "INSIGHT_EVALUATOR_SYSTEM",
    "INSIGHT_REGENERATION",
    "MEMORY_EXTRACTION",
]
