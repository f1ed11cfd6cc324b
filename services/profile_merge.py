# services/profile_merge.py
"""
Merge rules for the profile aggregates the extraction call feeds.

Lists are order-preserving deduplicated unions, scalar fields are
overwritten when the new value is present, free-text notes are appended.
"""
from __future__ import annotations

from models.user_profile import LIST_SUMMARY_FIELDS

PARTNER_LIST_FIELDS = ("traits", "relational_tendencies", "important_truths")


def merge_unique(existing: list[str] | None, new: list[str] | None) -> list[str] | None:
    if not new:
        return existing
    merged: list[str] = []
    seen: set[str] = set()
    for item in [*(existing or []), *new]:
        if not isinstance(item, str):
            continue
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            merged.append(item)
    return merged


def append_text(existing: str | None, new: str | None) -> str | None:
    if not new or not new.strip():
        return existing
    if not existing:
        return new.strip()
    return f"{existing}\n{new.strip()}"


def merge_personality_summary(existing: dict | None, observations: dict) -> dict:
    existing = dict(existing or {})
    merged: dict = {}
    for key in LIST_SUMMARY_FIELDS:
        value = merge_unique(existing.get(key), observations.get(key))
        if value is not None:
            merged[key] = value
    humor = observations.get("humor") or existing.get("humor")
    if humor:
        merged["humor"] = humor
    notes = append_text(existing.get("notes"), observations.get("notes"))
    if notes:
        merged["notes"] = notes
    return merged


def merge_partner_fields(existing: dict, observations: dict) -> dict:
    """Return the column values for an AI-built partner profile after merging."""
    merged = {"name": observations.get("name") or existing.get("name")}
    for key in PARTNER_LIST_FIELDS:
        merged[key] = merge_unique(existing.get(key), observations.get(key))
    merged["ai_notes"] = append_text(existing.get("ai_notes"), observations.get("ai_notes"))
    return merged
