# habitflow/routers/analytics.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from .. import analytics
from ..analytics.dates import today as _today
from ..dependencies import get_stores
from ..schemas.analytics import (CategoryShareResponse, DashboardResponse, DayPointResponse, DayStatusResponse,
                                 HabitCompletionResponse, HabitStreakResponse, MonthSummaryResponse,
                                 StreaksResponse, WeekPointResponse)
from ..schemas.common import envelope
from ..stores import Stores

router = APIRouter(
    prefix="/api/analytics",
    tags=["Analytics"],
)


@router.get("/dashboard")
def get_dashboard(stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    return envelope(DashboardResponse.model_validate(analytics.dashboard(snapshot.habits, snapshot.entries)))


@router.get("/series")
def get_series(days: int = Query(30, ge=1, le=365), stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    points = analytics.window_series(days, snapshot.habits, snapshot.entries)
    return envelope([DayPointResponse.model_validate(p) for p in points], count=True)


@router.get("/weekly")
def get_weekly_trend(weeks: int = Query(4, ge=1, le=52), stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    points = analytics.weekly_trend(snapshot.habits, snapshot.entries, weeks=weeks)
    return envelope([WeekPointResponse.model_validate(p) for p in points], count=True)


@router.get("/habits")
def get_habit_stats(stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    stats = analytics.per_habit_stats(snapshot.habits, snapshot.entries)
    return envelope([HabitCompletionResponse.model_validate(s) for s in stats], count=True)


@router.get("/categories")
def get_category_distribution(stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    shares = analytics.category_distribution(snapshot.habits, snapshot.entries)
    return envelope([CategoryShareResponse.model_validate(s) for s in shares], count=True)


@router.get("/calendar")
def get_calendar(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    habit_id: Optional[UUID] = Query(None, alias="habitId"),
    stores: Stores = Depends(get_stores),
):
    today = _today()
    year = year or today.year
    month = month or today.month
    filter_id = stores.habits.require(str(habit_id)).id if habit_id else None

    snapshot = stores.snapshot()
    days = analytics.month_calendar(year, month, snapshot.habits, snapshot.entries, filter_id)
    summary = analytics.month_summary(year, month, snapshot.habits, snapshot.entries, filter_id)
    return envelope({
        "days": [DayStatusResponse.model_validate(d) for d in days],
        "summary": MonthSummaryResponse.model_validate(summary),
    })


@router.get("/streaks")
def get_streaks(stores: Stores = Depends(get_stores)):
    snapshot = stores.snapshot()
    week_starts_on = stores.settings.load().week_starts_on
    habits = [
        HabitStreakResponse(
            habit_id=habit.id,
            name=habit.name,
            current_streak=analytics.current_streak(habit.id, snapshot.entries),
            longest_streak=analytics.longest_streak(habit.id, snapshot.entries),
            week_progress=analytics.week_progress(habit.id, snapshot.entries, week_starts_on=week_starts_on),
        )
        for habit in snapshot.habits
    ]
    return envelope(StreaksResponse(
        perfect_day_streak=analytics.perfect_day_streak(snapshot.habits, snapshot.entries),
        habits=habits,
    ))
