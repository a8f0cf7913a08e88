# server/main.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response, status
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from cycle import __version__, export, insights, stats
from cycle.errors import CorruptEncoding, EncodingRejected, PersistFailed
from cycle.log_symptoms import log_symptoms
from cycle.period_schema import FlowIntensity, PeriodRecord, SymptomType
from db import repository as repo

app = FastAPI(title="PeriodTrack API", version=__version__)

# --- CORS (configurable) ---
def _parse_cors_origins(env_val: str | None):
    """
    Parse comma-separated origins. If env is None or '*', return ['*'] (dev).
    Otherwise, return a cleaned list like ['https://app.example.com'].
    """
    if not env_val or env_val.strip() == "*":
        return ["*"]
    parts = [p.strip() for p in env_val.split(",")]
    return [p for p in parts if p] or ["*"]

_CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,   # using Bearer token; no cookies needed
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)
if _CORS_ORIGINS == ["*"]:
    logger.warning("CORS is permissive ('*'). Restrict it in production via CORS_ORIGINS.")
else:
    logger.info("CORS allowed origins: %s", _CORS_ORIGINS)

# --- Simple Bearer token auth ---
security = HTTPBearer(auto_error=False)
API_TOKEN = os.getenv("API_TOKEN")

def auth_guard(creds: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    """
    Enforce optional Bearer token authentication.

    Open when API_TOKEN is unset; otherwise the incoming Bearer token must
    equal API_TOKEN or the request fails with 401.
    """
    if not API_TOKEN:
        return True
    if creds is None or creds.scheme.lower() != "bearer" or creds.credentials != API_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return True

# --- Request bodies ---
class SymptomLogRequest(BaseModel):
    symptoms: List[str]


class PeriodCreate(BaseModel):
    start_date: str
    end_date: Optional[str] = None
    flow: Optional[str] = None
    mood: Optional[str] = None
    symptoms: Optional[List[str]] = None


class PeriodUpdate(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    flow: Optional[str] = None
    mood: Optional[str] = None
    symptoms: Optional[List[str]] = None

# --- Helpers ---
def _bad_request(exc: Exception) -> HTTPException:
    if isinstance(exc, ValidationError):
        detail = "; ".join(err["msg"] for err in exc.errors())
    else:
        detail = str(exc)
    return HTTPException(status_code=400, detail=detail)


def _store_error(exc: Exception) -> HTTPException:
    """Map core errors to HTTP errors the client can act on."""
    if isinstance(exc, PersistFailed):
        return HTTPException(status_code=503, detail="Save failed")
    if isinstance(exc, CorruptEncoding):
        logger.error("Stored symptoms unreadable: %s", exc)
        return HTTPException(status_code=409, detail="Stored symptoms are unreadable")
    return _bad_request(exc)


def _all_periods() -> List[PeriodRecord]:
    try:
        return repo.list_periods()
    except CorruptEncoding as exc:
        raise _store_error(exc) from exc


# --- Routes ---
@app.get("/health")
def health():
    return {"ok": True}


@app.get("/symptoms/options")
def symptom_options(_auth=Depends(auth_guard)):
    """Known symptom and flow labels for pickers."""
    return {
        "symptoms": [s.value for s in SymptomType],
        "flows": [f.value for f in FlowIntensity],
    }


@app.post("/symptoms", response_model=PeriodRecord)
def api_log_symptoms(payload: SymptomLogRequest, _auth=Depends(auth_guard)):
    """Attach the selected symptoms to today's period, creating it if needed."""
    if not payload.symptoms:
        raise HTTPException(status_code=400, detail="Select at least one symptom.")
    try:
        saved = log_symptoms(payload.symptoms)
    except (PersistFailed, CorruptEncoding, EncodingRejected) as exc:
        raise _store_error(exc) from exc
    return saved


@app.get("/periods", response_model=List[PeriodRecord])
def api_list_periods(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    _auth=Depends(auth_guard),
):
    try:
        return repo.list_periods(limit=limit)
    except CorruptEncoding as exc:
        raise _store_error(exc) from exc


@app.post("/periods", response_model=PeriodRecord, status_code=201)
def api_create_period(payload: PeriodCreate, _auth=Depends(auth_guard)):
    try:
        record = PeriodRecord.model_validate(payload.model_dump(exclude_none=True))
        return repo.add_period(record)
    except (ValidationError, ValueError, EncodingRejected, PersistFailed) as exc:
        raise _store_error(exc) from exc


@app.get("/periods/{period_id}", response_model=PeriodRecord)
def api_get_period(period_id: str, _auth=Depends(auth_guard)):
    try:
        record = repo.get_period(period_id)
    except CorruptEncoding as exc:
        raise _store_error(exc) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="Period not found")
    return record


@app.patch("/periods/{period_id}", response_model=PeriodRecord)
def api_update_period(period_id: str, payload: PeriodUpdate, _auth=Depends(auth_guard)):
    """Edit a period. Only fields present in the body are changed."""
    changes = payload.model_dump(exclude_unset=True)
    try:
        record = repo.update_period(period_id, **changes)
    except (ValidationError, ValueError, EncodingRejected, CorruptEncoding, PersistFailed) as exc:
        raise _store_error(exc) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="Period not found")
    return record


@app.delete("/periods/{period_id}", status_code=204)
def api_delete_period(period_id: str, _auth=Depends(auth_guard)):
    try:
        deleted = repo.delete_period(period_id)
    except PersistFailed as exc:
        raise _store_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Period not found")
    return Response(status_code=204)


@app.get("/summary")
def api_summary(_auth=Depends(auth_guard)):
    """Cycle statistics over all tracked periods."""
    records = _all_periods()
    now = datetime.now(timezone.utc)
    summary = stats.summarize(records, now)
    summary["current_phase"] = insights.current_phase(records, now).value
    return summary


@app.get("/insights")
def api_insights(_auth=Depends(auth_guard)):
    """Prediction, fertile window, cycle phase and irregularity alerts."""
    records = _all_periods()
    now = datetime.now(timezone.utc)
    history = insights.analyze_history(records)
    prediction = insights.predict_next_period(records, now)
    window = insights.fertile_window(records, now)
    phase = insights.current_phase(records, now)
    return {
        "current_cycle_day": stats.current_cycle_day(records, now),
        "phase": phase.value,
        "phase_description": phase.short_description,
        "statistics": history.model_dump() if history else None,
        "is_regular": history.is_regular if history else None,
        "prediction": prediction.model_dump(mode="json") if prediction else None,
        "fertile_window": window.model_dump(mode="json") if window else None,
        "alerts": [a.model_dump(mode="json") for a in insights.detect_irregularities(records, now)],
    }


@app.get("/export")
def api_export(_auth=Depends(auth_guard)):
    """All periods and statistics as a downloadable JSON document."""
    records = _all_periods()
    now = datetime.now(timezone.utc)
    return Response(
        content=export.export_json(records, now),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export.export_filename(now)}"'},
    )


@app.get("/export/summary", response_class=PlainTextResponse)
def api_export_summary(_auth=Depends(auth_guard)):
    """Plain-text overview for sharing."""
    return export.generate_summary(_all_periods(), datetime.now(timezone.utc))
