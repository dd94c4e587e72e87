"""Risk scoring of a finished interview.

The score itself comes from an external language model bound under
``RISK_KEY``. Everything around it is deterministic: the prompt, the payload,
and the coercion of whatever the model returns into exactly two pros and two
cons, each short, with pros free of any financial wording.
"""
from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from textwrap import dedent
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from config import RISK_KEY, bind_model, get_model, load_route
from llm_gateway import bind_route
from observability import log_event, span, total_ms
from storage.assessments import load_assessment, save_risk_result

logger = logging.getLogger(__name__)

Risk = Literal["low", "medium", "high"]

NOT_PROVIDED = "Not provided"
MAX_ITEM_CHARS = 140
DEFAULT_NUMERIC = 50

FINANCIAL_TERMS = (
    "income",
    "paycheck",
    "salary",
    "wages",
    "bills",
    "expenses",
    "afford",
    "affordability",
    "pti",
    "bti",
    "ratio",
    "budget",
    "payment",
    "down payment",
    "cash down",
    "rent",
    "utilities",
    "electric",
    "water",
    "wifi",
    "phone bill",
    "subscription",
    "groceries",
    "eat out",
)


class RiskModelUnavailableError(RuntimeError):
    """No language model is bound for risk scoring."""


class RawRiskAnalysis(BaseModel):  # Whatever the model returned, before coercion
    model_config = ConfigDict(extra="ignore")

    risk_score: Optional[Any] = None
    risk_score_numeric: Optional[Any] = None
    result_summary: Optional[Any] = None
    pros: Optional[Any] = None
    cons: Optional[Any] = None
    reasoning: Optional[Any] = None


class RiskAnalysis(BaseModel):
    risk_score: Risk = "medium"
    risk_score_numeric: int = DEFAULT_NUMERIC
    result_summary: str = NOT_PROVIDED
    pros: List[str] = Field(default_factory=lambda: [NOT_PROVIDED, NOT_PROVIDED])
    cons: List[str] = Field(default_factory=lambda: [NOT_PROVIDED, NOT_PROVIDED])
    reasoning: str = NOT_PROVIDED

    def as_analysis(self) -> Dict[str, Any]:
        """The structured block stored under ``facts.analysis``."""

        return {
            "result_summary": self.result_summary,
            "pros": list(self.pros),
            "cons": list(self.cons),
            "risk_score_numeric": self.risk_score_numeric,
        }

    def reasoning_text(self) -> str:
        return "\n".join(
            [
                f"Summary: {self.result_summary}",
                "",
                "Pros:",
                f"- {self.pros[0]}",
                f"- {self.pros[1]}",
                "",
                "Cons:",
                f"- {self.cons[0]}",
                f"- {self.cons[1]}",
                "",
                "Details:",
                self.reasoning,
            ]
        )


SYSTEM_PROMPT = dedent(
    """
    You are Vetta's risk analyst for Buy Here Pay Here dealerships.
    Return ONLY valid JSON (no markdown).

    Goal: give a clear result summary + exactly 2 pros + exactly 2 cons based on the applicant facts and transcript.

    JSON schema:
    {
      "risk_score": "low" | "medium" | "high",
      "risk_score_numeric": number,        // 0-100 (higher = safer)
      "result_summary": string,            // 2-4 sentences, plain English
      "pros": [string, string],            // exactly 2, concise
      "cons": [string, string],            // exactly 2, concise
      "reasoning": string                  // 4-10 bullet lines or short paragraphs
    }

    CRITICAL RULES:
    1) Pros must be NON-FINANCIAL ONLY.
       - Do NOT mention: income, paycheck, salary, wages, bills, affordability, PTI/BTI, debt, rent amount, utilities amounts,
         down payment, cash down, "can afford", "budget", "payment amount".
       - Pros should be about stability + responsibility + intent + communication + verification + trust signals.
       Examples of valid Pros:
       - "Consistent job tenure and clear employer details"
       - "Strong responsibility mindset in the repair scenario"
       - "Has a support system to stay on track"
       - "License in-state and commute is reasonable"
       - "Vehicle purpose aligns with work/responsibilities"
       - "Provides a reachable reference contact"

    2) Cons CAN be financial or non-financial.

    3) If you do not have enough non-financial positives, write "Not provided" but still return exactly 2 pros.

    STYLE:
    - Pros/Cons must be grounded in facts/transcript.
    - Pros/Cons must be <= 140 characters each.
    - Keep language dealership-friendly.
    """
).strip()


# ----------------------------------------------------------------------
# Coercion
# ----------------------------------------------------------------------
def hard_limit(text: Any, limit: int = MAX_ITEM_CHARS) -> str:
    value = str(text if text is not None else "").strip()
    if len(value) <= limit:
        return value
    return value[: limit - 1].rstrip() + "…"


def is_financial(text: str) -> bool:
    lowered = (text or "").lower()
    return any(term in lowered for term in FINANCIAL_TERMS)


def coerce_risk(value: Any) -> Risk:
    text = str(value or "").strip().lower()
    return text if text in ("low", "medium", "high") else "medium"  # type: ignore[return-value]


def coerce_numeric(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return DEFAULT_NUMERIC
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_NUMERIC
    if not math.isfinite(number):
        return DEFAULT_NUMERIC
    return int(round(max(0.0, min(100.0, number))))


def _text_or_default(value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    return text or NOT_PROVIDED


def coerce_pair(value: Any) -> Tuple[str, str]:
    items = list(value) if isinstance(value, (list, tuple)) else []
    first = _text_or_default(items[0] if len(items) > 0 else None)
    second = _text_or_default(items[1] if len(items) > 1 else None)
    return first, second


def non_financial_pros(pros: Tuple[str, str]) -> List[str]:
    kept = [item for item in (hard_limit(p) for p in pros) if item and not is_financial(item)]
    kept = kept[:2]
    while len(kept) < 2:
        kept.append(NOT_PROVIDED)
    return kept


def coerce_analysis(raw: Any) -> RiskAnalysis:
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    data = RawRiskAnalysis.model_validate(raw if isinstance(raw, dict) else {})
    pros = non_financial_pros(coerce_pair(data.pros))
    cons = [hard_limit(item) for item in coerce_pair(data.cons)]
    return RiskAnalysis(
        risk_score=coerce_risk(data.risk_score),
        risk_score_numeric=coerce_numeric(data.risk_score_numeric),
        result_summary=_text_or_default(data.result_summary),
        pros=pros,
        cons=cons,
        reasoning=_text_or_default(data.reasoning),
    )


# ----------------------------------------------------------------------
# Scoring
# ----------------------------------------------------------------------
def build_payload(
    facts: Dict[str, Any],
    answers: List[Dict[str, Any]],
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "customer": {"name": customer_name, "phone": customer_phone},
        "facts": facts if isinstance(facts, dict) else {},
        "transcript": answers if isinstance(answers, list) else [],
    }


def analyze(
    assessment_id: str,
    *,
    facts: Optional[Dict[str, Any]] = None,
    answers: Optional[List[Dict[str, Any]]] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
) -> RiskAnalysis:
    """Score an assessment and persist the outcome.

    Caller-supplied facts and transcript win when non-empty; otherwise the
    stored ones are used.

    Raises:
        KeyError: unknown assessment.
        RiskModelUnavailableError: nothing is bound under ``RISK_KEY``.
        LlmGatewayError: the model call failed.
    """

    events: List[Dict[str, Any]] = []
    assessment = load_assessment(assessment_id)
    use_facts = facts if facts else assessment.facts
    use_answers = answers if answers else assessment.answers
    payload = build_payload(
        use_facts,
        use_answers,
        customer_name if customer_name is not None else assessment.customer_name,
        customer_phone if customer_phone is not None else assessment.customer_phone,
    )

    try:
        model = get_model(RISK_KEY)
    except KeyError as exc:
        raise RiskModelUnavailableError(str(exc)) from exc
    with span(events, "risk_model"):
        raw = model(SYSTEM_PROMPT, json.dumps(payload, indent=2, default=str))
    result = coerce_analysis(raw)

    saved = save_risk_result(
        assessment.id,
        risk_score=result.risk_score,
        risk_score_numeric=result.risk_score_numeric,
        reasoning=result.reasoning_text(),
        analysis=result.as_analysis(),
        facts=facts or None,
    )
    log_event(
        "risk",
        saved.id,
        risk_score=result.risk_score,
        status=saved.status,
        version=saved.version,
        ms=total_ms(events),
    )
    return result


def bind_risk_model(config_path: Path) -> None:
    """Bind the configured LLM route as the risk analyst."""

    route = load_route(config_path, RISK_KEY)
    bind_model(RISK_KEY, bind_route(route, RawRiskAnalysis))
    logger.info("Risk analyst bound to route=%s model=%s", route.name, route.model)


__all__ = [
    "FINANCIAL_TERMS",
    "RawRiskAnalysis",
    "RiskAnalysis",
    "RiskModelUnavailableError",
    "SYSTEM_PROMPT",
    "analyze",
    "bind_risk_model",
    "build_payload",
    "coerce_analysis",
    "hard_limit",
    "is_financial",
]
