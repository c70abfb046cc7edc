# habitflow/routers/ai.py
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from ..analytics.dates import today as _today
from ..analytics.streaks import current_streak
from ..dependencies import get_ai_service, get_stores
from ..errors import ValidationError
from ..schemas.ai import AIStatusResponse, InsightRequest, MotivationRequest, MotivationResponse, SuggestionRequest
from ..schemas.common import envelope
from ..services.ai import HabitAIService
from ..stores import Stores

router = APIRouter(
    prefix="/api/ai",
    tags=["AI"],
)


def _habit_progress(stores: Stores, habit_id: str):
    """Name, current streak and 30-day completion rate of a stored habit."""
    habit = stores.habits.require(habit_id)
    today = _today()
    recent = stores.entries.find_by_habit(habit.id, start_date=today - timedelta(days=30))
    rate = stores.entries.completion_stats(habit.id, today=today).completion_rate
    return habit.name, current_streak(habit.id, recent, today=today), rate


@router.get("/status")
def ai_status(ai: HabitAIService = Depends(get_ai_service)):
    return envelope(AIStatusResponse(
        enabled=ai.enabled,
        current_model=ai.current_model,
        models=list(ai.config.models),
        failures=ai.model_stats(),
    ))


@router.post("/suggestions")
async def habit_suggestions(
    body: Optional[SuggestionRequest] = None,
    stores: Stores = Depends(get_stores),
    ai: HabitAIService = Depends(get_ai_service),
):
    body = body or SuggestionRequest()
    snapshot = await run_in_threadpool(stores.snapshot)
    suggestions = await ai.generate_suggestions(snapshot.habits, snapshot.entries, body.max_suggestions)
    return envelope(suggestions, count=True)


@router.post("/insights")
async def habit_insights(
    body: Optional[InsightRequest] = None,
    stores: Stores = Depends(get_stores),
    ai: HabitAIService = Depends(get_ai_service),
):
    body = body or InsightRequest()
    snapshot = await run_in_threadpool(stores.snapshot)
    insights = await ai.generate_insights(snapshot.habits, snapshot.entries, body.timeframe, body.analysis_type)
    return envelope(insights, count=True)


@router.post("/motivation")
async def motivation(
    body: MotivationRequest,
    stores: Stores = Depends(get_stores),
    ai: HabitAIService = Depends(get_ai_service),
):
    if body.habit_id:
        habit_name, streak, rate = await run_in_threadpool(_habit_progress, stores, body.habit_id)
    elif body.habit_name:
        habit_name, streak, rate = body.habit_name, body.streak or 0, body.completion_rate or 0.0
    else:
        raise ValidationError("Either habitId or habitName is required")

    message = await ai.generate_motivation(habit_name, streak, rate)
    return envelope(MotivationResponse(message=message, habit_name=habit_name, streak=streak, completion_rate=rate))


@router.post("/test")
async def test_connection(ai: HabitAIService = Depends(get_ai_service)):
    return envelope({"connected": await ai.test_connection(), "model": ai.current_model})
