# tests/test_profile_merge.py
from __future__ import annotations

from services.profile_merge import append_text, merge_partner_fields, merge_personality_summary, merge_unique


def test_merge_unique_preserves_order_and_dedupes():
    assert merge_unique(["warm", "curious"], ["curious", " direct ", ""]) == ["warm", "curious", "direct"]


def test_merge_unique_without_new_keeps_existing():
    assert merge_unique(["warm"], None) == ["warm"]
    assert merge_unique(None, []) is None


def test_append_text():
    assert append_text(None, " first ") == "first"
    assert append_text("first", "second") == "first\nsecond"
    assert append_text("first", "   ") == "first"


def test_personality_summary_union():
    existing = {"traits": ["warm"], "humor": "dry", "notes": "Night owl"}
    merged = merge_personality_summary(existing, {"traits": ["warm", "stubborn"], "values": ["honesty"], "notes": "Loves maps"})
    assert merged["traits"] == ["warm", "stubborn"]
    assert merged["values"] == ["honesty"]
    assert merged["humor"] == "dry"
    assert merged["notes"] == "Night owl\nLoves maps"


def test_personality_summary_humor_overwritten():
    merged = merge_personality_summary({"humor": "dry"}, {"humor": "silly"})
    assert merged == {"humor": "silly"}


def test_partner_fields_keep_name_when_missing():
    existing = {"name": "Avi", "traits": ["calm"], "ai_notes": None}
    merged = merge_partner_fields(existing, {"traits": ["playful"], "important_truths": ["Lost his father young"]})
    assert merged["name"] == "Avi"
    assert merged["traits"] == ["calm", "playful"]
    assert merged["important_truths"] == ["Lost his father young"]
    assert merged["relational_tendencies"] is None
    assert merged["ai_notes"] is None
