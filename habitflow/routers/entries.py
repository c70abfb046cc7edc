# habitflow/routers/entries.py
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..analytics.dates import today as _today
from ..analytics.streaks import current_streak
from ..dependencies import get_entry_store
from ..errors import NotFoundError, ValidationError
from ..records import EntryInput
from ..schemas.common import envelope
from ..schemas.entry import (CompletionStatsResponse, EntryBulk, EntryCreate, EntryResponse, EntryToggle,
                             EntryUpdate, ExportEntryResponse)
from ..schemas.habit import HabitResponse
from ..stores.base import EntryStore

router = APIRouter(
    prefix="/api/entries",
    tags=["Entries"],
)


def _entries(records):
    return [EntryResponse.model_validate(e) for e in records]


def _parse_habit_ids(value: Optional[str]):
    if not value:
        return None
    try:
        return [str(UUID(part.strip())) for part in value.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("Invalid habit ID format in habitIds")


@router.get("")
def list_entries(
    habit_id: Optional[UUID] = Query(None, alias="habitId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    completed: Optional[bool] = Query(None),
    entries: EntryStore = Depends(get_entry_store),
):
    if habit_id is not None:
        records = entries.find_by_habit(str(habit_id), start_date=start_date, end_date=end_date, completed=completed)
    elif start_date and end_date:
        records = entries.find_by_date_range(start_date, end_date)
    else:
        raise ValidationError("Either habitId or both startDate and endDate are required")
    return envelope(_entries(records), count=True)


@router.get("/export")
def export_entries(habit_ids: Optional[str] = Query(None, alias="habitIds"),
                   entries: EntryStore = Depends(get_entry_store)):
    rows = [ExportEntryResponse.from_row(row) for row in entries.export(_parse_habit_ids(habit_ids))]
    return envelope(rows, count=True, exportedAt=datetime.now(timezone.utc).isoformat())


@router.get("/habits/{habit_id}")
def list_habit_entries(
    habit_id: UUID,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    completed: Optional[bool] = Query(None),
    entries: EntryStore = Depends(get_entry_store),
):
    habit = entries.habits.require(str(habit_id))
    records = entries.find_by_habit(habit.id, start_date=start_date, end_date=end_date, completed=completed)
    return envelope(_entries(records), count=True, habit=HabitResponse.model_validate(habit))


@router.get("/habits/{habit_id}/stats")
def habit_completion_stats(
    habit_id: UUID,
    days: int = Query(30, ge=1, le=365),
    entries: EntryStore = Depends(get_entry_store),
):
    habit = entries.habits.require(str(habit_id))
    today = _today()
    stats = entries.completion_stats(habit.id, days=days, today=today)
    recent = entries.find_by_habit(habit.id, start_date=today - timedelta(days=30))
    return envelope(CompletionStatsResponse(
        total_days=stats.total_days,
        completed_days=stats.completed_days,
        completion_rate=stats.completion_rate,
        last_completed_date=stats.last_completed_date,
        current_streak=current_streak(habit.id, recent, today=today),
        habit=HabitResponse.model_validate(habit),
    ))


@router.get("/habits/{habit_id}/{day}")
def get_entry(habit_id: UUID, day: date, entries: EntryStore = Depends(get_entry_store)):
    entry = entries.get(str(habit_id), day)
    if entry is None:
        raise NotFoundError("Entry not found for this habit and date")
    return envelope(EntryResponse.model_validate(entry))


@router.post("", status_code=status.HTTP_201_CREATED)
def save_entry(body: EntryCreate, entries: EntryStore = Depends(get_entry_store)):
    entry = entries.upsert(str(body.habit_id), body.date, body.completed)
    return envelope(EntryResponse.model_validate(entry), message="Entry saved successfully")


@router.post("/toggle")
def toggle_entry(body: EntryToggle, entries: EntryStore = Depends(get_entry_store)):
    entry = entries.toggle(str(body.habit_id), body.date)
    return envelope(EntryResponse.model_validate(entry), message="Entry toggled successfully")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def bulk_save_entries(body: EntryBulk, entries: EntryStore = Depends(get_entry_store)):
    saved = entries.bulk_upsert(
        EntryInput(habit_id=str(item.habit_id), date=item.date, completed=item.completed)
        for item in body.entries
    )
    return envelope(_entries(saved), count=True, message="Entries saved successfully")


@router.put("/habits/{habit_id}/{day}")
def update_entry(habit_id: UUID, day: date, body: EntryUpdate, entries: EntryStore = Depends(get_entry_store)):
    entry = entries.upsert(str(habit_id), day, body.completed)
    return envelope(EntryResponse.model_validate(entry), message="Entry updated successfully")


@router.delete("/habits/{habit_id}/{day}")
def delete_entry(habit_id: UUID, day: date, entries: EntryStore = Depends(get_entry_store)):
    if not entries.delete(str(habit_id), day):
        raise NotFoundError("Entry not found")
    return envelope(message="Entry deleted successfully")
