# habitflow/schemas/entry.py
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from .common import CamelModel
from .habit import HabitResponse


class EntryCreate(CamelModel):
    habit_id: UUID
    date: date
    completed: bool


class EntryUpdate(CamelModel):
    completed: bool


class EntryToggle(CamelModel):
    habit_id: UUID
    date: date


class EntryBulk(CamelModel):
    entries: List[EntryCreate] = Field(..., min_length=1)


class EntryResponse(CamelModel):
    id: str
    habit_id: str
    date: date
    completed: bool
    completed_at: Optional[datetime] = None


class ExportEntryResponse(EntryResponse):
    habit_name: str
    habit_category: str

    @classmethod
    def from_row(cls, row) -> "ExportEntryResponse":
        entry = EntryResponse.model_validate(row.entry)
        return cls(**entry.model_dump(), habit_name=row.habit_name, habit_category=row.habit_category)


class CompletionStatsResponse(CamelModel):
    total_days: int
    completed_days: int
    completion_rate: float
    last_completed_date: Optional[date] = None
    current_streak: int
    habit: HabitResponse
