"""Free-text answer parsers.

Every parser is total over strings: it returns a typed value or ``None`` when
the reply cannot be interpreted. None of them raise.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Union

Number = Union[int, float]

_APOSTROPHES = re.compile(r"['’]")
_DISALLOWED = re.compile(r"[^a-z0-9\s$+\-]")
_SPACES = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Lowercase, fold apostrophes, drop punctuation other than ``$+-``, collapse spaces."""

    sample = _APOSTROPHES.sub("", str(text or "").lower())
    sample = _DISALLOWED.sub(" ", sample)
    return _SPACES.sub(" ", sample).strip()


def _lower(text: Optional[str]) -> str:
    # keeps decimal points, which normalize() strips
    return _SPACES.sub(" ", str(text or "").lower().replace(",", "")).strip()


def _has(pattern: str, text: str) -> bool:
    return re.search(pattern, text) is not None


def _whole(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


# ----------------------------------------------------------------------
# Numbers
# ----------------------------------------------------------------------
_MONEY = re.compile(r"(-)?\s*\$?\s*(\d{1,7})(\.\d{1,2})?")


def parse_money(text: Optional[str]) -> Optional[Number]:
    """First money-looking number in the reply: ``"$1,200.50"`` -> ``1200.5``."""

    match = _MONEY.search(str(text or "").replace(",", ""))
    if not match:
        return None
    value = float(match.group(2) + (match.group(3) or ""))
    if match.group(1):
        value = -value
    return _whole(value)


def parse_minutes(text: Optional[str]) -> Optional[int]:
    """Commute length in minutes: hours are multiplied by 60, bare numbers are minutes."""

    t = _lower(text)
    if not t:
        return None
    total: Optional[float] = None
    hours = re.search(r"(\d{1,2}(?:\.\d+)?)\s*(?:hours?|hrs?)\b", t)
    if hours:
        total = float(hours.group(1)) * 60
    elif _has(r"\bhalf (?:an|a) hour\b", t):
        total = 30
    elif _has(r"\b(?:an|a|one) (?:hour|hr)\b", t):
        total = 60
    minutes = re.search(r"(\d{1,3})\s*(?:minutes?|mins?)\b", t)
    if minutes:
        total = (total or 0) + int(minutes.group(1))
    if total is None:
        bare = re.search(r"\b(\d{1,3})\b", t)
        if bare:
            total = int(bare.group(1))
    return int(round(total)) if total is not None else None


def parse_months(text: Optional[str]) -> Optional[int]:
    """Tenure in months: years are multiplied by 12, bare numbers are months."""

    t = _lower(text)
    if not t:
        return None
    total: Optional[float] = None
    years = re.search(r"(\d{1,2}(?:\.\d+)?)\s*(?:years?|yrs?)\b", t)
    if years:
        total = float(years.group(1)) * 12
    elif _has(r"\b(?:a|one) (?:year|yr)\b", t):
        total = 12
    months = re.search(r"(\d{1,3})\s*(?:months?|mos?)\b", t)
    if months:
        total = (total or 0) + int(months.group(1))
    elif total is None and _has(r"\b(?:a|one) month\b", t):
        total = 1
    if total is None:
        bare = re.search(r"\b(\d{1,3})\b", t)
        if bare:
            total = int(bare.group(1))
    return int(round(total)) if total is not None else None


def parse_credit_importance(text: Optional[str]) -> Optional[int]:
    for sample in (str(text or "").strip(), normalize(text)):
        match = re.search(r"\b(10|[1-9])\b", sample)
        if match:
            return int(match.group(1))
    return None


# ----------------------------------------------------------------------
# Yes / no
# ----------------------------------------------------------------------
_STRONG_YES = r"\b(yes|yep|yeah|yup|ya|sure|correct|absolutely|definitely)\b"
_NO = r"\b(no|nope|nah|never|dont|do not|not|none|havent|have not)\b"
_WEAK_YES = r"\b(i do|i have|i got)\b"


def parse_yes_no(text: Optional[str]) -> Optional[bool]:
    raw = str(text or "").strip().lower()
    if raw == "y":
        return True
    if raw == "n":
        return False
    t = normalize(text)
    if not t:
        return None
    if _has(_STRONG_YES, t):
        return True
    if _has(_NO, t):
        return False
    if _has(_WEAK_YES, t):
        return True
    return None


# ----------------------------------------------------------------------
# Enumerations
# ----------------------------------------------------------------------
def parse_pay_frequency(text: Optional[str]) -> Optional[str]:
    t = normalize(text)
    if not t:
        return None
    if _has(r"\bbi ?-?weekly\b|\bevery (?:two|2|other) weeks?\b|\b(?:two|2) weeks\b", t):
        return "biweekly"
    if _has(r"\bweekly\b|\bweek\b|\bevery (?:friday|thursday)\b", t):
        return "weekly"
    if _has(r"\bmonthly\b|\bmonth\b", t):
        return "monthly"
    return None


def parse_residence_type(text: Optional[str]) -> Optional[str]:
    t = normalize(text)
    if _has(r"\brent(?:ing|er|ed|s)?\b|\bapartment\b|\blease\b", t):
        return "rent"
    if _has(r"\b(own|owner|homeowner|mortgage|bought)\b", t):
        return "own"
    if _has(r"\b(family|parents?|mom|dad|mother|father|relatives?|grandparents?|grandma|grandpa)\b", t):
        return "family"
    return None


def parse_eat_out_frequency(text: Optional[str]) -> Optional[str]:
    t = normalize(text)
    if not t:
        return None
    if _has(r"\b(never|none|no|zero|0)\b", t):
        return "never"
    number = re.search(r"\b(\d{1,2})\b", t)
    if number:
        count = int(number.group(1))
        if count <= 0:
            return "never"
        if count <= 2:
            return "1-2"
        if count <= 5:
            return "3-5"
        return "6+"
    if _has(r"\b(once|twice|few|some|couple)\b", t):
        return "1-2"
    if _has(r"\b(often|a lot|daily|every day|everyday)\b", t):
        return "6+"
    if "grocer" in t:
        # answering with groceries means they cook at home
        return "never"
    return None


def parse_license_state(text: Optional[str]) -> Optional[bool]:
    """``True`` for in-state, ``False`` for out-of-state.

    Falls back to yes/no where "yes" reads as in-state.
    """

    t = normalize(text)
    if _has(r"\bout of state\b|\bout-of-state\b|\b(?:different|another|other) state\b", t):
        return False
    if _has(r"\bin state\b|\bin-state\b|\binstate\b|\b(?:same|this) state\b", t):
        return True
    return parse_yes_no(text)


# ----------------------------------------------------------------------
# Multiple choice
# ----------------------------------------------------------------------
# a letter or digit counts only when it stands alone, so "A vehicle that..." is not option A
_STANDS_ALONE = r"(?=\s*$|\s*[).:,\-])"
_LETTER = re.compile(r"^\s*(?:OPTION\s+|CHOICE\s+)?\(?([A-E])" + _STANDS_ALONE)
_DIGIT = re.compile(r"^\s*([1-5])" + _STANDS_ALONE)
_DIGIT_LETTERS = {"1": "A", "2": "B", "3": "C", "4": "D", "5": "E"}


def parse_choice_letter(text: Optional[str], allowed: Iterable[str]) -> Optional[str]:
    """Leading letter (or digit 1-5 mapped onto A-E) restricted to ``allowed``."""

    raw = str(text or "").strip().upper()
    if not raw:
        return None
    allowed_set = {letter.upper() for letter in allowed}
    match = _LETTER.match(raw)
    if match:
        letter = match.group(1)
        return letter if letter in allowed_set else None
    digit = _DIGIT.match(raw)
    if digit:
        letter = _DIGIT_LETTERS[digit.group(1)]
        return letter if letter in allowed_set else None
    return None


def parse_choice_text(text: Optional[str], labels: Dict[str, str]) -> Optional[str]:
    """Letter whose option text the reply repeats; ``None`` unless exactly one option fits."""

    t = normalize(text)
    if len(t) < 4:
        return None
    hits = []
    for letter, label in labels.items():
        option = normalize(label)
        if option in t or t in option:
            hits.append(letter)
    return hits[0] if len(hits) == 1 else None


_SCENARIO_PHRASES = (
    ("A", r"\btake responsibility\b|\bget (?:it|the car) (?:fixed|repaired)\b|\bfix it\b|\brepair it\b"),
    ("B", r"\bcall\b.*\b(?:dealership|you|us|shop|see if)\b"),
    ("C", r"\bdrive until\b|\btow(?:ed|ing)?\b|\bkeep driving\b|\buntil it dies\b"),
    ("D", r"\bgive the car back\b|\breturn (?:it|the car)\b|\bbring it back\b|\bgive it back\b"),
)


def parse_scenario_choice(text: Optional[str]) -> Optional[str]:
    """A-D letter for the repair scenario, also recognizing common paraphrases."""

    letter = parse_choice_letter(text, "ABCD")
    if letter:
        return letter
    t = normalize(text)
    if not t:
        return None
    for choice, pattern in _SCENARIO_PHRASES:
        if _has(pattern, t):
            return choice
    return None


def parse_free_text(text: Optional[str], min_length: int = 2) -> Optional[str]:
    value = str(text or "").strip()
    return value if len(value) >= min_length else None


__all__ = [
    "normalize",
    "parse_choice_letter",
    "parse_choice_text",
    "parse_credit_importance",
    "parse_eat_out_frequency",
    "parse_free_text",
    "parse_license_state",
    "parse_minutes",
    "parse_money",
    "parse_months",
    "parse_pay_frequency",
    "parse_residence_type",
    "parse_scenario_choice",
    "parse_yes_no",
]
