# tests/test_extraction_trigger.py
"""Tests for the per-turn extraction trigger."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from ai.extraction_trigger import cadence_signal, importance_signals, should_extract
from services.memory_pipeline import evaluate_turn


@pytest.mark.parametrize("count", [1, 4, 7, 10])
def test_cadence_turns_fire(count):
    assert should_extract(count, "just chatting") is True


@pytest.mark.parametrize("count", [2, 3, 5, 6])
def test_off_cadence_plain_turn_does_not_fire(count):
    assert should_extract(count, "what's the weather like") is False


def test_zero_turns_never_fires():
    assert should_extract(0, "my partner and I broke up") is False
    assert cadence_signal(0) is False


def test_importance_fires_off_cadence():
    assert should_extract(5, "My girlfriend's birthday is next week") is True


def test_custom_cadence():
    assert cadence_signal(6, cadence=5) is True
    assert cadence_signal(5, cadence=5) is False


@pytest.mark.parametrize(
    "text,signal",
    [
        ("I'm so stressed lately", "strong_emotion"),
        ("my husband never listens", "partner"),
        ("Our anniversary is in May", "relationship"),
        ("My name is Dana", "name"),
        ("I just started at a new job", "workplace"),
        ("I was diagnosed with ADHD last year", "diagnosis"),
        ("please remember that I hate surprises", "remember"),
        ("I don't feel safe at home", "unsafe"),
    ],
)
def test_english_patterns(text, signal):
    assert signal in importance_signals(text)


@pytest.mark.parametrize(
    "text,signal",
    [
        ("בן הזוג שלי לא מקשיב לי", "partner"),
        ("אני מרגישה לבד", "unsafe"),
        ("קוראים לי נועה", "name"),
        ("התחלתי לעבוד במקום חדש", "workplace"),
        ("יש לי יום הולדת מחר", "birthday"),
    ],
)
def test_hebrew_patterns(text, signal):
    assert signal in importance_signals(text)


def test_no_signals_for_small_talk():
    assert importance_signals("lol ok") == []
    assert importance_signals("") == []
    assert importance_signals(None) == []


def test_signals_are_deduplicated():
    hits = importance_signals("my wife and my boyfriend")
    assert hits.count("partner") == 1


def test_evaluate_turn_reports_reasons():
    decision = evaluate_turn(5, "I hate my job, I'm so overwhelmed", cadence=3)
    assert decision.run is True
    assert decision.cadence is False
    assert "strong_emotion" in decision.signals

    quiet = evaluate_turn(2, "ok", cadence=3)
    assert quiet.run is False
    assert quiet.signals == []


def test_evaluate_turn_defers_to_should_extract():
    with patch("services.memory_pipeline.should_extract", return_value=False) as rule:
        decision = evaluate_turn(4, "ok", cadence=3)
    rule.assert_called_once_with(4, "ok", 3)
    assert decision.run is False
    assert decision.cadence is True


@pytest.mark.parametrize("count,text", [(0, "I'm so stressed"), (1, "hey"), (2, "ok"), (5, "my wife says hi")])
def test_evaluate_turn_agrees_with_should_extract(count, text):
    assert evaluate_turn(count, text, cadence=3).run is should_extract(count, text, cadence=3)
