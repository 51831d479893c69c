"""Analytics API endpoints."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.config import get_settings
from src.core.rate_limiter import limiter, rate_limit
from src.features.auth.dependencies import AuthenticatedClinic, get_current_clinic

from .models import (
    DashboardMetrics,
    ResponseTimeFilters,
    ResponseTimeRequest,
    ResponseTimeResult,
)
from .response_time import calculate_response_time
from .service import AnalyticsService, ClinicNotFoundError, get_analytics_service

router = APIRouter(prefix="/api", tags=["analytics"])


def _validate_window(start: datetime | None, end: datetime | None) -> None:
    """Reject inverted or overly long windows. An open end means now."""
    if start is None:
        return
    if end is None:
        now = datetime.now(timezone.utc) if start.tzinfo else datetime.utcnow()
        end = max(start, now)
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must both include a timezone or both omit it",
        )
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )

    max_days = get_settings().max_window_days
    if end - start > timedelta(days=max_days):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Window must not exceed {max_days} days",
        )


@router.post("/analytics/response-time", response_model=ResponseTimeResult)
@limiter.limit(rate_limit)
async def compute_response_time(request: Request, body: ResponseTimeRequest):
    """
    Calculate response time statistics for the supplied messages.

    Stateless: nothing is read from or written to storage.
    """
    return calculate_response_time(body.messages, body.business_hours, body.filters)


@router.get("/clinics/me/response-time", response_model=ResponseTimeResult)
@limiter.limit(rate_limit)
async def get_clinic_response_time(
    request: Request,
    start: datetime | None = None,
    end: datetime | None = None,
    include_human: bool = Query(default=True),
    include_assistant: bool = Query(default=True),
    business_hours_only: bool = Query(default=False),
    clinic: AuthenticatedClinic = Depends(get_current_clinic),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Get response time statistics of the authenticated clinic.

    Args:
        start: Only messages created at or after this moment (optional)
        end: Only messages created at or before this moment (optional)
        include_human: Count operator replies
        include_assistant: Count assistant replies
        business_hours_only: Only count replies sent during business hours
    """
    _validate_window(start, end)
    filters = ResponseTimeFilters(
        include_human=include_human,
        include_assistant=include_assistant,
        business_hours_only=business_hours_only,
    )
    try:
        return await service.get_response_time(clinic.clinic_id, start, end, filters)
    except ClinicNotFoundError:
        raise HTTPException(status_code=404, detail="Clinic not found")


@router.get("/clinics/me/dashboard", response_model=DashboardMetrics)
@limiter.limit(rate_limit)
async def get_clinic_dashboard(
    request: Request,
    start: datetime | None = None,
    end: datetime | None = None,
    clinic: AuthenticatedClinic = Depends(get_current_clinic),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Get complete dashboard metrics of the authenticated clinic.

    Returns lead, appointment, conversion and revenue metrics plus
    response time statistics for the window.
    """
    _validate_window(start, end)
    try:
        return await service.get_dashboard_metrics(clinic.clinic_id, start, end)
    except ClinicNotFoundError:
        raise HTTPException(status_code=404, detail="Clinic not found")
