# app/routers/stats.py
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from app.routers.survey import get_survey_service
from app.services.aggregator import AggregationResult
from app.services.auth import require_dashboard_auth
from app.services.record_store import StorageError
from app.services.survey import SurveyService
from app.util.logging import logger

router = APIRouter(prefix="/api", tags=["stats"], dependencies=[Depends(require_dashboard_auth)])


# ---------- Models ----------

class SubmissionRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submitted_at: Optional[str] = Field(default=None, alias="submittedAt")
    ip: str = "unknown"


class StatsOut(AggregationResult):
    submissions: List[SubmissionRef]


# ---------- Routes ----------

@router.get("/stats", response_model=StatsOut)
def get_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: SurveyService = Depends(get_survey_service),
):
    """Aggregated statistics plus the most recent submissions, newest first."""
    try:
        body: Dict[str, Any] = service.stats(start_date, end_date)
    except StorageError as e:
        logger.log_storage_failure("stats.read", e.__cause__ or e)
        return JSONResponse(status_code=500, content={"message": "Failed to build statistics"})
    return body


@router.get("/download")
def download(
    format: str = Query("csv"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: SurveyService = Depends(get_survey_service),
):
    """Export the (optionally date-filtered) records as CSV or JSON."""
    try:
        content, media_type, filename = service.export(format, start_date, end_date)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"message": str(e)})
    except StorageError as e:
        logger.log_storage_failure("download.read", e.__cause__ or e)
        return JSONResponse(status_code=500, content={"message": "Download failed"})

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
