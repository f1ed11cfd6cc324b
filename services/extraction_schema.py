# services/extraction_schema.py
"""
Typed contract for what the completion service returns.

Each list entry is validated on its own: a malformed entry (unknown
category, unknown subject reference, empty content) becomes a recorded
ValidationError instead of a stored row, and its siblings still go through.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from models.insight import InsightCategory
from models.memory import PersonalCategory, SharedCategory
from services.errors import ValidationError
from services.memory_policy import clamp_confidence

logger = logging.getLogger(__name__)

Subject = Literal["current", "partner", "relationship"]


class _Entry(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator("content", "title", check_fields=False)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("confidence", check_fields=False)
    @classmethod
    def _clamp(cls, value: float | None) -> float | None:
        return None if value is None else clamp_confidence(value)

    @field_validator("contradicts", check_fields=False)
    @classmethod
    def _blank_is_none(cls, value: str | None) -> str | None:
        return value or None


class PersonalMemoryEntry(_Entry):
    category: PersonalCategory
    content: str
    confidence: float | None = None
    contradicts: str | None = None


class SharedMemoryEntry(_Entry):
    category: SharedCategory
    content: str
    about: Subject | None = None
    confidence: float | None = None
    contradicts: str | None = None


class InsightEntry(_Entry):
    category: InsightCategory
    title: str
    content: str
    about: Subject | None = None
    confidence: float | None = None


class PersonalityObservations(BaseModel):
    model_config = ConfigDict(extra="ignore")

    traits: list[str] | None = None
    emotional_tendencies: list[str] | None = None
    communication_preferences: list[str] | None = None
    values: list[str] | None = None
    stress_responses: list[str] | None = None
    humor: str | None = None
    boundaries: list[str] | None = None
    notes: str | None = None

    def is_empty(self) -> bool:
        return not any(self.model_dump(exclude_none=True).values())


class PartnerObservations(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str
    traits: list[str] | None = None
    relational_tendencies: list[str] | None = None
    important_truths: list[str] | None = None
    ai_notes: str | None = None


@dataclass
class Rejection:
    section: str
    index: int
    error: ValidationError


@dataclass
class ExtractionPayload:
    personality: PersonalityObservations | None = None
    partner: PartnerObservations | None = None
    personal_memories: list[PersonalMemoryEntry] = field(default_factory=list)
    shared_memories: list[SharedMemoryEntry] = field(default_factory=list)
    insights: list[InsightEntry] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)

    def is_empty(self) -> bool:
        return (
            self.personality is None
            and self.partner is None
            and not self.personal_memories
            and not self.shared_memories
            and not self.insights
        )


@dataclass
class RegenerationPayload:
    outdated_titles: list[str] = field(default_factory=list)
    new_insights: list[InsightEntry] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)


def _validate_list(section: str, raw, model: type[BaseModel], rejected: list[Rejection]) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        rejected.append(Rejection(section, -1, ValidationError(f"{section} is not a list")))
        return []
    entries = []
    for index, item in enumerate(raw):
        try:
            entries.append(model.model_validate(item))
        except pydantic.ValidationError as exc:
            rejected.append(
                Rejection(
                    section,
                    index,
                    ValidationError(f"invalid {section} entry", context={"errors": exc.error_count(), "index": index}),
                )
            )
    return entries


def _validate_object(section: str, raw, model: type[BaseModel], rejected: list[Rejection]):
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as exc:
        rejected.append(Rejection(section, -1, ValidationError(f"invalid {section}", context={"errors": exc.error_count()})))
        return None


def parse_extraction(data: dict) -> ExtractionPayload:
    rejected: list[Rejection] = []
    personality = _validate_object("user_profile", data.get("user_profile"), PersonalityObservations, rejected)
    if personality is not None and personality.is_empty():
        personality = None
    payload = ExtractionPayload(
        personality=personality,
        partner=_validate_object("partner_profile", data.get("partner_profile"), PartnerObservations, rejected),
        personal_memories=_validate_list("personal_memories", data.get("personal_memories"), PersonalMemoryEntry, rejected),
        shared_memories=_validate_list("shared_memories", data.get("shared_memories"), SharedMemoryEntry, rejected),
        insights=_validate_list("insights", data.get("insights"), InsightEntry, rejected),
        rejected=rejected,
    )
    for rejection in rejected:
        logger.warning("extraction entry rejected section=%s index=%d: %s", rejection.section, rejection.index, rejection.error)
    return payload


def parse_regeneration(data: dict) -> RegenerationPayload:
    rejected: list[Rejection] = []
    raw_titles = data.get("outdated_insights") or []
    titles = [t.strip() for t in raw_titles if isinstance(t, str) and t.strip()] if isinstance(raw_titles, list) else []
    new_insights = _validate_list("new_insights", data.get("new_insights"), InsightEntry, rejected)
    for rejection in rejected:
        logger.warning("regeneration entry rejected index=%d: %s", rejection.index, rejection.error)
    return RegenerationPayload(outdated_titles=titles, new_insights=new_insights, rejected=rejected)
