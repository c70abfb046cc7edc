# habitflow/records.py
"""
Backend-neutral snapshots of habits and entries.

Both store implementations return these instead of ORM rows or raw JSON so
the analytics code and the HTTP layer never depend on which backend is wired in.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass(frozen=True)
class HabitRecord:
    id: str
    name: str
    category: str
    color: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class EntryRecord:
    id: str
    habit_id: str
    date: date
    completed: bool
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class EntryInput:
    habit_id: str
    date: date
    completed: bool


@dataclass(frozen=True)
class HabitStats:
    habit: HabitRecord
    total_entries: int
    completed_entries: int
    completion_rate: float


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int


@dataclass(frozen=True)
class CompletionStats:
    total_days: int
    completed_days: int
    completion_rate: float
    last_completed_date: Optional[date]


@dataclass(frozen=True)
class ExportRow:
    entry: EntryRecord
    habit_name: str
    habit_category: str


@dataclass
class Snapshot:
    """Habits and entries read together for derived views."""
    habits: List[HabitRecord] = field(default_factory=list)
    entries: List[EntryRecord] = field(default_factory=list)
