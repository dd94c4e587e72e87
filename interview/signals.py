"""Advisory warning tags derived from collected facts."""
from __future__ import annotations

from typing import Iterable, Iterator, List

from config.signals import match_job_signals

from .facts import Facts

SHORT_TENURE_MONTHS = 6
LOW_DOWN_PAYMENT = 800


class WarningSet:
    """Insertion-ordered set of warning tags compared by value."""

    def __init__(self, tags: Iterable[str] = ()):
        self._tags: List[str] = []
        self.update(tags)

    def add(self, tag: str) -> bool:
        tag = (tag or "").strip()
        if not tag or tag in self._tags:
            return False
        self._tags.append(tag)
        return True

    def update(self, tags: Iterable[str]) -> None:
        for tag in tags:
            self.add(tag)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, WarningSet):
            return self._tags == other._tags
        return NotImplemented

    def __repr__(self) -> str:
        return f"WarningSet({self._tags!r})"

    def to_list(self) -> List[str]:
        return list(self._tags)


def job_signal_warnings(facts: Facts) -> List[str]:
    return match_job_signals(facts.job_title, facts.employer_name)


def turn_warnings(facts: Facts) -> List[str]:
    """Tenure, down payment and license tags recomputed after every answered turn."""

    tags: List[str] = []
    if facts.license_state_match is False:
        tags.append("license_out_of_state")
    if facts.employment_months is not None and facts.employment_months < SHORT_TENURE_MONTHS:
        tags.append("short_job_time")
    if facts.residence_months is not None and facts.residence_months < SHORT_TENURE_MONTHS:
        tags.append("short_residence_time")
    if facts.down_payment is not None and facts.down_payment < LOW_DOWN_PAYMENT:
        tags.append("low_down_payment")
    return tags


def merge_warnings(facts: Facts, tags: Iterable[str]) -> Facts:
    warnings = WarningSet(facts.warnings)
    warnings.update(tags)
    return facts.model_copy(update={"warnings": warnings.to_list()})


__all__ = [
    "WarningSet",
    "job_signal_warnings",
    "merge_warnings",
    "turn_warnings",
]
