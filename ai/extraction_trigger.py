# ai/extraction_trigger.py
"""
Decide, per inbound user turn, whether memory extraction runs now.

Two independent signals, OR'd together:
  cadence    → turns 1, 4, 7, ... (every `cadence` user turns, starting at the first)
  importance → the latest turn matches a high-salience pattern

Importance patterns cover English and Hebrew, the two languages the
companion is used in.
"""
from __future__ import annotations

import re

DEFAULT_CADENCE = 3

# ── Pattern definitions (name, regex) ──

_ENGLISH_PATTERNS: list[tuple[str, str]] = [
    ("partner", r"\b(?:my\s+)?(?:partner|boyfriend|girlfriend|husband|wife|fianc[eé]e?|spouse|bf|gf)\b"),
    ("relationship", r"\b(?:relationship|anniversary|our\s+first\s+date|we\s+(?:broke\s+up|got\s+engaged|got\s+married|moved\s+in))\b"),
    ("strong_emotion", r"\bi\s*(?:['’]m|\s+am)?\s*(?:really\s+|so\s+)?(?:love|hate|stressed|anxious|scared|afraid|depressed|lonely|heartbroken|overwhelmed)\b"),
    ("unsafe", r"\bi\s+(?:don['’]?t\s+)?feel\s+(?:unsafe|safe|alone|ignored|hurt|unloved|disrespected)\b"),
    ("name", r"\bmy\s+name\s+is\b|\bcall\s+me\b"),
    ("workplace", r"\bi\s+(?:work\s+(?:at|for|as)|just\s+started\s+(?:at|a\s+new\s+job)|got\s+(?:a|the)\s+job|got\s+fired|quit\s+my\s+job)\b"),
    ("birthday", r"\b(?:my|his|her|their)\s+birthday\b|\bborn\s+on\b"),
    ("diagnosis", r"\b(?:diagnosed\s+with|my\s+(?:therapist|doctor|diagnosis)|i\s+have\s+(?:adhd|anxiety|depression|autism|ptsd))\b"),
    ("remember", r"\b(?:remember\s+(?:this|that)|don['’]?t\s+forget|keep\s+in\s+mind|note\s+that)\b"),
]

_HEBREW_PATTERNS: list[tuple[str, str]] = [
    ("partner", r"(?:בן\s+הזוג|בת\s+הזוג|בן\s+זוגי|בת\s+זוגי|החבר\s+שלי|החברה\s+שלי|בעלי|אשתי|ארוס(?:ה)?\s+שלי)"),
    ("relationship", r"(?:מערכת\s+היחסים|הזוגיות|יום\s+השנה|נפרדנו|התארסנו|התחתנו)"),
    ("strong_emotion", r"(?:אני\s+(?:אוהב|אוהבת|שונא|שונאת|לחוץ|לחוצה|בלחץ|מפחד|מפחדת|בודד|בודדה|עצוב|עצובה))"),
    ("unsafe", r"(?:אני\s+)?(?:מרגיש|מרגישה)\s+(?:לא\s+)?(?:בטוח|בטוחה|לבד|פגוע|פגועה)"),
    ("name", r"(?:קוראים\s+לי|השם\s+שלי)"),
    ("workplace", r"(?:אני\s+עובד(?:ת)?\s+ב|התחלתי\s+לעבוד|פוטרתי|התפטרתי)"),
    ("birthday", r"(?:יום\s+הולדת|נולדתי)"),
    ("diagnosis", r"(?:אובחנתי|אבחנה|הפסיכולוג(?:ית)?\s+שלי|המטפל(?:ת)?\s+שלי)"),
    ("remember", r"(?:תזכור|תזכרי|אל\s+תשכח|אל\s+תשכחי|שים\s+לב\s+ש)"),
]

_COMPILED: list[tuple[str, re.Pattern[str]]] = [
    (name, re.compile(pattern, re.IGNORECASE))
    for name, pattern in (*_ENGLISH_PATTERNS, *_HEBREW_PATTERNS)
]


def cadence_signal(user_turn_count: int, cadence: int = DEFAULT_CADENCE) -> bool:
    if user_turn_count <= 0:
        return False
    return (user_turn_count - 1) % max(cadence, 1) == 0


def importance_signals(text: str | None) -> list[str]:
    """Names of the importance patterns the text matches (deduplicated, in order)."""
    t = (text or "").strip()
    if not t:
        return []
    hits: list[str] = []
    for name, pattern in _COMPILED:
        if name not in hits and pattern.search(t):
            hits.append(name)
    return hits


def should_extract(user_turn_count: int, latest_text: str | None, cadence: int = DEFAULT_CADENCE) -> bool:
    if user_turn_count <= 0:
        return False
    return cadence_signal(user_turn_count, cadence) or bool(importance_signals(latest_text))
