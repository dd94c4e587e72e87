from __future__ import annotations  # FastAPI server for dealership applicant assessments

import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from api.routes import router as interview_router
from config.settings import settings
from llm_gateway import LlmGatewayError
from reports import generate_assessment_report_pdf
from services.risk import RiskModelUnavailableError, analyze, bind_risk_model
from storage.assessments import (
    Assessment,
    SessionConflictError,
    create_assessment,
    list_assessments,
    load_assessment,
    merge_progress,
    save_intro,
)
from storage.dealers import DealerSettings, create_dealer, load_dealer_settings, resolve_dealer, upsert_dealer_settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent


def _config_path() -> Path:  # LLM config path, relative paths anchored at the repo root
    path = Path(settings.LLM_CONFIG_PATH)
    return path if path.is_absolute() else ROOT / path


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Create schema and bind the risk model on startup
    migrate(settings.DB_PATH)
    config_path = _config_path()
    if config_path.exists():
        bind_risk_model(config_path)
    else:
        logger.warning("LLM config %s not found; risk scoring is disabled", config_path)
    yield


app = FastAPI(title="Dealer Risk Interview API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interview_router)


class StartAssessmentRequest(BaseModel):  # Start payload from QR/link landing or dealer device
    dealer: str
    kind: Literal["device", "link", "qr"] = "device"
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    customer_name: Optional[str] = None
    customerPhone: Optional[str] = None


class StartAssessmentResponse(BaseModel):  # Created assessment reference
    ok: bool = True
    assessmentId: str
    dealerId: str
    mode: str
    status: str
    flow: str
    created_at: str


class IntroRequest(BaseModel):  # Applicant header captured before the interview
    assessmentId: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    vehicleType: Optional[str] = None
    vehicleSpecific: Optional[str] = None


class ProgressRequest(BaseModel):  # Client-side progress snapshot
    assessmentId: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)
    answers: Optional[List[Dict[str, Any]]] = None
    status: Optional[Literal["started", "in_progress", "interview_complete", "completed"]] = None
    version: Optional[int] = Field(default=None, ge=0)


class AnalyzeRiskRequest(BaseModel):  # Risk scoring payload
    assessmentId: Optional[str] = None
    dealer: Optional[str] = None
    dealerName: Optional[str] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)
    answers: List[Dict[str, Any]] = Field(default_factory=list)


class AnalyzeRiskResponse(BaseModel):  # Coerced scoring outcome
    ok: bool = True
    assessmentId: str
    risk_score: str
    risk_score_numeric: int
    result_summary: str
    pros: List[str]
    cons: List[str]
    reasoning: str


class CreateDealerRequest(BaseModel):  # Dealer registration payload
    name: str
    slug: Optional[str] = None


class DealerSettingsUpdate(BaseModel):  # Partial dealer settings update
    logo_url: Optional[str] = None
    theme_color: Optional[str] = None
    contact_email: Optional[str] = None
    max_pti_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    require_valid_driver_license: Optional[bool] = None
    min_down_payment: Optional[float] = Field(default=None, ge=0)
    min_residence_months: Optional[int] = Field(default=None, ge=0)
    min_employment_months: Optional[int] = Field(default=None, ge=0)


def _resolve_dealer_or_404(key: str) -> Dict[str, Any]:  # Dealer lookup mapped to HTTP errors
    try:
        return resolve_dealer(key)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Dealer not found") from exc


def _load_assessment_or_404(assessment_id: str) -> Assessment:  # Assessment lookup mapped to HTTP errors
    try:
        return load_assessment(assessment_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc


def _customer_name(payload: StartAssessmentRequest) -> Optional[str]:  # firstName/lastName or customer_name
    parts = [part.strip() for part in (payload.firstName or "", payload.lastName or "") if part and part.strip()]
    if parts:
        return " ".join(parts)
    return (payload.customer_name or "").strip() or None


@app.post("/api/start-assessment", response_model=StartAssessmentResponse)
def start_assessment(payload: StartAssessmentRequest) -> StartAssessmentResponse:  # Create a fresh assessment
    dealer = _resolve_dealer_or_404(payload.dealer)
    mode = "qr" if payload.kind in ("link", "qr") else "device"
    assessment = create_assessment(
        dealer["id"],
        mode=mode,
        customer_name=_customer_name(payload),
        customer_phone=(payload.customerPhone or "").strip() or None,
    )
    return StartAssessmentResponse(
        assessmentId=assessment.id,
        dealerId=dealer["id"],
        mode=assessment.mode,
        status=assessment.status,
        flow=assessment.flow,
        created_at=assessment.created_at,
    )


@app.post("/api/assessments/intro")
def save_assessment_intro(payload: IntroRequest) -> Dict[str, Any]:  # Store applicant header
    assessment_id = (payload.assessmentId or "").strip()
    name = (payload.customerName or "").strip()
    phone = (payload.customerPhone or "").strip()
    vehicle = (payload.vehicleType or "").strip()
    if not assessment_id:
        raise HTTPException(status_code=400, detail="Missing assessmentId")
    if not name or not phone:
        raise HTTPException(status_code=400, detail="Missing customer name or phone")
    if not vehicle:
        raise HTTPException(status_code=400, detail="Missing vehicle type")
    try:
        save_intro(assessment_id, name, phone, vehicle, (payload.vehicleSpecific or "").strip() or None)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc
    return {"ok": True}


@app.post("/api/assessments/progress")
def save_assessment_progress(payload: ProgressRequest) -> Dict[str, Any]:  # Merge client progress snapshot
    assessment_id = (payload.assessmentId or "").strip()
    if not assessment_id:
        raise HTTPException(status_code=400, detail="Missing assessmentId")
    try:
        merge_progress(assessment_id, payload.facts, payload.answers, payload.status, payload.version)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc
    except SessionConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"ok": True}


@app.get("/api/assessments/{assessment_id}", response_model=Assessment)
def fetch_assessment(assessment_id: str) -> Assessment:  # Full assessment record for the dashboard
    return _load_assessment_or_404(assessment_id)


@app.get("/api/dealers/{dealer}/assessments")
def fetch_dealer_assessments(dealer: str, limit: int = Query(default=50, ge=1, le=500)) -> Dict[str, Any]:  # Newest first
    record = _resolve_dealer_or_404(dealer)
    rows = list_assessments(record["id"], limit=limit)
    return {"ok": True, "dealerId": record["id"], "assessments": [row.model_dump() for row in rows]}


@app.post("/api/analyze-risk", response_model=AnalyzeRiskResponse)
def analyze_risk(payload: AnalyzeRiskRequest) -> AnalyzeRiskResponse:  # Score an assessment via the risk model
    assessment_id = (payload.assessmentId or "").strip()
    if not assessment_id:
        raise HTTPException(status_code=400, detail="Missing assessmentId")
    try:
        result = analyze(
            assessment_id,
            facts=payload.facts,
            answers=payload.answers,
            customer_name=payload.customerName,
            customer_phone=payload.customerPhone,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc
    except RiskModelUnavailableError as exc:
        logger.error("Risk model unavailable: %s", exc)
        raise HTTPException(status_code=503, detail="Risk scoring is not configured") from exc
    except LlmGatewayError as exc:
        logger.exception("Risk analysis LLM request failed")
        raise HTTPException(status_code=502, detail=f"LLM request failed: {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error during risk analysis")
        raise HTTPException(status_code=500, detail="Unable to analyze risk") from exc
    return AnalyzeRiskResponse(
        assessmentId=assessment_id,
        risk_score=result.risk_score,
        risk_score_numeric=result.risk_score_numeric,
        result_summary=result.result_summary,
        pros=result.pros,
        cons=result.cons,
        reasoning=result.reasoning_text(),
    )


@app.get("/api/assessments/{assessment_id}/report.pdf")
def fetch_assessment_report_pdf(assessment_id: str) -> Response:  # Download the assessment as PDF
    assessment = _load_assessment_or_404(assessment_id)
    dealer_name: Optional[str] = None
    try:
        dealer_name = resolve_dealer(assessment.dealer_id)["name"]
    except KeyError:
        logger.warning("Assessment %s references unknown dealer %s", assessment.id, assessment.dealer_id)
    dealer_settings = load_dealer_settings(assessment.dealer_id)
    payload = generate_assessment_report_pdf(
        assessment,
        dealer_name=dealer_name,
        theme_color=dealer_settings.theme_color,
    )
    safe_customer = _safe_slug(assessment.customer_name or "")
    filename = f"{assessment.id}-{safe_customer or 'applicant'}-assessment.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)


@app.post("/api/dealers", status_code=201)
def register_dealer(payload: CreateDealerRequest) -> Dict[str, Any]:  # Persist a new dealer
    try:
        dealer = create_dealer(name=payload.name, slug=payload.slug)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "dealer": dealer}


@app.get("/api/dealer-settings")
def fetch_dealer_settings(dealer: Optional[str] = None) -> Dict[str, Any]:  # Branding and preferences, defaults when unknown
    key = (dealer or "").strip()
    if not key or key == "demo":
        return {"mode": "demo", "dealer_name": None, "dealer_id": None, **DealerSettings().model_dump()}
    try:
        record = resolve_dealer(key)
    except KeyError:
        return {"mode": "public", "dealer_name": None, "dealer_id": None, **DealerSettings().model_dump()}
    stored = load_dealer_settings(record["id"])
    return {"mode": "public", "dealer_name": record["name"], "dealer_id": record["id"], **stored.model_dump()}


@app.put("/api/dealer-settings/{dealer}")
def update_dealer_settings(dealer: str, payload: DealerSettingsUpdate) -> Dict[str, Any]:  # Merge settings update
    record = _resolve_dealer_or_404(dealer)
    stored = upsert_dealer_settings(record["id"], **payload.model_dump(exclude_none=True))
    return {"ok": True, "dealer_id": record["id"], **stored.model_dump()}


def _safe_slug(value: str) -> str:  # Sanitize value for filenames
    if not value:
        return ""
    lowered = value.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", lowered)
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug
