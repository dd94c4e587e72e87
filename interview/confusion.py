"""Detect replies that signal confusion or refusal rather than an answer."""
from __future__ import annotations

import re
from typing import Optional

from .parsers import normalize

SHORTHAND_REPLIES = frozenset({"a", "b", "c", "d", "e", "y", "n"})

CONFUSION_PHRASES = (
    "idk",
    "i dont know",
    "dont know",
    "not sure",
    "confused",
    "can you repeat",
    "repeat that",
    "what do you mean",
    "wdym",
    "wym",
    "huh",
    "skip",
    "prefer not to say",
    "n a",
    "na",
)

_CONFUSION = re.compile(r"\b(?:" + "|".join(re.escape(p) for p in CONFUSION_PHRASES) + r")\b")
_QUESTION_MARKS = re.compile(r"^\?+$")


def looks_confused(text: Optional[str]) -> bool:
    """True for empty input, a known confusion phrase, or a reply made only of ``?``.

    Single-letter choices, y/n and the numbers 1-10 are always treated as answers.
    """

    raw = str(text or "").strip()
    sample = normalize(raw)
    if not sample:
        return True
    if len(raw) == 1 and (raw.lower() in SHORTHAND_REPLIES or raw in "123456789"):
        return False
    if raw == "10":
        return False
    if _CONFUSION.search(sample):
        return True
    return bool(_QUESTION_MARKS.match(raw))


__all__ = ["CONFUSION_PHRASES", "looks_confused"]
