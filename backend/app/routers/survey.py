# app/routers/survey.py
from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

from app import config
from app.services.record_store import StorageError
from app.services.survey import SurveyService, SurveyValidationError

router = APIRouter(prefix="/api", tags=["survey"])


# ---------- Helpers ----------

def get_survey_service(request: Request) -> SurveyService:
    return request.app.state.survey_service


def get_client_ip(request: Request) -> str:
    """
    Best-effort client origin. Forwarded headers are trusted only when
    TRUST_PROXY_HEADERS is on, i.e. behind a reverse proxy that sets them.
    """
    if config.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded and forwarded.split(",")[0].strip():
            return forwarded.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# ---------- Routes ----------

@router.post("/surveys", status_code=201)
def submit_survey(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    service: SurveyService = Depends(get_survey_service),
):
    """Accept one respondent's answers."""
    ip: Optional[str] = get_client_ip(request) if config.RECORD_CLIENT_IP else None
    try:
        service.submit(payload, ip=ip)
    except SurveyValidationError as e:
        return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": e.errors})
    except StorageError:
        return JSONResponse(status_code=500, content={"message": "Storage failure, please retry later"})
    return {"message": "Submission accepted"}
