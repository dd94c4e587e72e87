"""YAML-driven employment signal keywords and matching helpers."""
from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .settings import settings

DEFAULT_CONFIG_PATH = str(Path(__file__).resolve().parent / "job_signals.yaml")

DEFAULT_SIGNALS: Dict[str, dict] = {
    "job_management_signal": {
        "fields": ["title"],
        "keywords": ["manager", "supervisor", "lead", "foreman", "director", "owner", "gm", "general manager"],
    },
    "job_skilled_trade_signal": {
        "fields": ["title"],
        "keywords": [
            "nurse", "rn", "lpn", "engineer", "technician", "mechanic",
            "electrician", "plumber", "hvac", "welder", "driver", "cdl",
        ],
    },
    "job_gig_signal": {
        "fields": ["title", "employer"],
        "keywords": [
            "uber", "lyft", "doordash", "instacart", "gig", "freelance",
            "self employed", "self-employed", "contractor",
        ],
    },
    "job_temp_or_parttime_signal": {
        "fields": ["title"],
        "keywords": ["temp", "seasonal", "season", "part time", "part-time", "agency"],
    },
    "job_low_wage_employer_signal": {
        "fields": ["employer"],
        "keywords": [
            "chipotle", "mcdonald", "walmart", "dollar tree", "dollar general",
            "burger king", "taco bell", "wendy", "subway",
        ],
    },
    "job_low_wage_title_signal": {
        "fields": ["title"],
        "keywords": ["cashier", "crew", "server", "host", "dishwasher", "stock", "associate"],
    },
}


def config_path() -> str:
    return os.environ.get("SIGNALS_CONFIG") or settings.SIGNALS_CONFIG or DEFAULT_CONFIG_PATH


@dataclass
class SignalRule:
    """One warning tag and the keywords that raise it."""

    tag: str
    fields: List[str]
    keywords: List[str]


def _load_yaml(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class SignalEngine:
    """Match employment text against keyword lists loaded from YAML."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config_path()
        self._mtime = 0.0
        self._config: dict = {}
        self._rules: List[SignalRule] = []
        self.reload_if_changed(force=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def reload_if_changed(self, force: bool = False) -> None:
        """Reload YAML configuration when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            cfg = {
                "version": 1,
                "normalizers": ["fold_apostrophes", "to_lower", "strip_punctuation", "collapse_spaces"],
                "signals": DEFAULT_SIGNALS,
            }
            self._mtime = time.time()

        self._config = cfg
        rules: List[SignalRule] = []
        for tag, values in (cfg.get("signals") or {}).items():
            values = values or {}
            rules.append(
                SignalRule(
                    tag=tag,
                    fields=list(values.get("fields") or ["title"]),
                    keywords=[self._normalize(str(word)) for word in values.get("keywords") or []],
                )
            )
        self._rules = rules

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------
    def _normalize(self, text: str) -> str:
        ops = self._config.get("normalizers", [])
        sample = text or ""
        if "fold_apostrophes" in ops:
            sample = re.sub(r"['’]", "", sample)
        if "to_lower" in ops:
            sample = sample.lower()
        if "strip_punctuation" in ops:
            sample = re.sub(r"[^a-z0-9\s$+\-]", " ", sample)
        if "collapse_spaces" in ops:
            sample = re.sub(r"\s+", " ", sample)
        return sample.strip()

    def tags(self) -> List[str]:
        return [rule.tag for rule in self._rules]

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def match(self, title: Optional[str], employer: Optional[str]) -> List[str]:
        """Return signal tags whose keywords appear in the title or employer text."""

        self.reload_if_changed()
        texts = {
            "title": self._normalize(title or ""),
            "employer": self._normalize(employer or ""),
        }
        hits: List[str] = []
        for rule in self._rules:
            samples = [texts[name] for name in rule.fields if texts.get(name)]
            if any(word and word in sample for word in rule.keywords for sample in samples):
                hits.append(rule.tag)
        return hits


_engine: Optional[SignalEngine] = None


def signal_engine() -> SignalEngine:
    global _engine
    if _engine is None or _engine.path != config_path():
        _engine = SignalEngine()
    return _engine


def match_job_signals(title: Optional[str], employer: Optional[str]) -> List[str]:
    """Convenience wrapper returning the current engine's matches."""

    return signal_engine().match(title, employer)


__all__ = [
    "SignalEngine",
    "SignalRule",
    "match_job_signals",
    "signal_engine",
]
