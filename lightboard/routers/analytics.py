"""
Video analytics router — dashboard summary and CSV export.

  GET /analytics/summary  → enriched events + summary for a window
  GET /analytics/export   → the same events as a CSV download

Both take optional ISO ``start``/``end`` (default: the last
ANALYTICS_DEFAULT_DAYS days) and an IANA ``tz`` that decides which calendar
day an event falls on. A store failure is answered with 503 and an empty
result so the dashboard can show its error state and offer a retry.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.config import settings
from lightboard.core.database import get_db
from lightboard.core.errors import DataAccessError
from lightboard.core.limiter import get_role_limit, limiter
from lightboard.core.logging import get_logger
from lightboard.core.security import Permission, TokenPayload, require_permission
from lightboard.services.analytics_service import (
    AnalyticsResult,
    ViewWindow,
    export_csv,
    export_filename,
    fetch_and_summarize,
)

router = APIRouter()
logger = get_logger(__name__)


def resolve_window(
    start: datetime | None = Query(default=None, description="Window start (inclusive)"),
    end: datetime | None = Query(default=None, description="Window end (inclusive)"),
) -> ViewWindow:
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=settings.ANALYTICS_DEFAULT_DAYS)
    return ViewWindow(start=start, end=end)


def resolve_timezone(
    tz: str | None = Query(default=None, description="IANA time zone for daily grouping"),
) -> ZoneInfo:
    name = tz or settings.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown time zone: {name}",
        )


def _unavailable() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Analytics are temporarily unavailable", "events": [], "summary": None},
    )


@router.get(
    "/summary",
    response_model=AnalyticsResult,
    responses={503: {"description": "Event store unavailable"}},
    summary="Video analytics summary for a time window",
)
@limiter.limit(get_role_limit)
async def analytics_summary(
    request: Request,
    window: ViewWindow = Depends(resolve_window),
    tz: ZoneInfo = Depends(resolve_timezone),
    current_user: TokenPayload = Depends(require_permission(Permission.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await fetch_and_summarize(db, window, tz)
    except DataAccessError:
        return _unavailable()


@router.get(
    "/export",
    responses={503: {"description": "Event store unavailable"}},
    summary="Export view events as CSV",
)
@limiter.limit("10/minute")
async def analytics_export(
    request: Request,
    window: ViewWindow = Depends(resolve_window),
    tz: ZoneInfo = Depends(resolve_timezone),
    current_user: TokenPayload = Depends(require_permission(Permission.EXPORT_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await fetch_and_summarize(db, window, tz)
    except DataAccessError:
        return _unavailable()

    filename = export_filename(window)
    logger.warning(
        "analytics.export_started",
        operator_id=current_user.sub,
        rows=len(result.events),
        filename=filename,
    )
    return Response(
        content=export_csv(result.events, tz),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
