
from fastapi import APIRouter, Depends, Path

from keepmeontrack.api.deps import get_tracker
from keepmeontrack.domain.dates import utcnow
from keepmeontrack.schemas.dashboard import CalendarMonth, DashboardSummary
from keepmeontrack.services.tracker import GoalTracker

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(tracker: GoalTracker = Depends(get_tracker)):
    return await tracker.dashboard_summary(utcnow())


@router.get("/calendar/{year}/{month}", response_model=CalendarMonth)
async def get_calendar(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    tracker: GoalTracker = Depends(get_tracker),
):
    return await tracker.calendar_month(year, month)
