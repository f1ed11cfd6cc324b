# services/memory_policy.py
from __future__ import annotations

from dataclasses import dataclass

from api.app.config import Settings


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class MemoryPolicy:
    """Tunables of the confidence model and extraction cadence."""

    floor: float = 0.3
    decay_rate_per_day: float = 0.005
    decay_grace_days: float = 7.0
    decay_epsilon: float = 0.001
    contradiction_penalty: float = 0.4
    similarity_threshold: float = 0.8
    confirm_boost: float = 0.2
    wrong_penalty: float = 0.3
    cadence: int = 3
    history_turns: int = 15
    extraction_temperature: float = 0.3
    regeneration_temperature: float = 0.3
    maintenance_user_limit: int = 500
    maintenance_partnership_limit: int = 200

    def below_floor(self, confidence: float) -> bool:
        return confidence < self.floor

    @classmethod
    def from_settings(cls, settings: Settings) -> "MemoryPolicy":
        return cls(
            floor=settings.memory_confidence_floor,
            decay_rate_per_day=settings.memory_decay_rate_per_day,
            decay_grace_days=settings.memory_decay_grace_days,
            decay_epsilon=settings.memory_decay_epsilon,
            contradiction_penalty=settings.memory_contradiction_penalty,
            similarity_threshold=settings.memory_similarity_threshold,
            confirm_boost=settings.memory_confirm_boost,
            wrong_penalty=settings.memory_wrong_penalty,
            cadence=settings.extraction_cadence,
            history_turns=settings.extraction_history_turns,
            extraction_temperature=settings.extraction_temperature,
            regeneration_temperature=settings.regeneration_temperature,
            maintenance_user_limit=settings.maintenance_user_limit,
            maintenance_partnership_limit=settings.maintenance_partnership_limit,
        )


DEFAULT_POLICY = MemoryPolicy()
