# habitflow/stores/base.py
"""
Store contracts shared by the relational and the local-file backends.

Callers pick an implementation once at start-up and then only talk to these
interfaces. Single-record writes either apply or leave prior state untouched;
reads never mutate.
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaError

from ..analytics.aggregation import percentage
from ..analytics.dates import today as _today
from ..errors import HabitFlowError, NotFoundError, ValidationError
from ..records import (CategoryCount, CompletionStats, EntryInput, EntryRecord, ExportRow,
                       HabitRecord, HabitStats, Snapshot)
from ..schemas.settings import UserSettings

logger = logging.getLogger(__name__)

HEX_COLOR_RE = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)

HABIT_FIELDS = ("name", "description", "category", "color", "is_active")


def validate_habit_fields(fields: Dict[str, object], partial: bool = False) -> None:
    """Raise ``ValidationError`` listing every field that breaks a format rule."""
    problems = []

    if not partial or "name" in fields:
        name = fields.get("name")
        if not isinstance(name, str) or not name.strip() or len(name) > 255:
            problems.append({"field": "name", "message": "Name must be between 1 and 255 characters"})

    if fields.get("description") is not None:
        description = fields["description"]
        if not isinstance(description, str) or len(description) > 1000:
            problems.append({"field": "description", "message": "Description must be less than 1000 characters"})

    if not partial or "category" in fields:
        category = fields.get("category")
        if not isinstance(category, str) or not category.strip() or len(category) > 100:
            problems.append({"field": "category", "message": "Category must be between 1 and 100 characters"})

    if not partial or "color" in fields:
        color = fields.get("color")
        if not isinstance(color, str) or not HEX_COLOR_RE.match(color):
            problems.append({"field": "color", "message": "Color must be a valid hex color (e.g., #FF0000)"})

    if "is_active" in fields and not isinstance(fields["is_active"], bool):
        problems.append({"field": "isActive", "message": "isActive must be a boolean"})

    if problems:
        raise ValidationError("Invalid habit data", details=problems)


def check_update_fields(fields: Dict[str, object]) -> Dict[str, object]:
    unknown = sorted(set(fields) - set(HABIT_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown habit fields: {', '.join(unknown)}")
    if not fields:
        raise ValidationError("No fields to update")
    validate_habit_fields(fields, partial=True)
    return fields


def dedupe_entries(items: Iterable[EntryInput]) -> List[EntryInput]:
    """Collapse repeated (habit, date) keys so the last occurrence wins, keeping first-seen order."""
    latest: Dict[Tuple[str, date], EntryInput] = {}
    for item in items:
        key = (item.habit_id, item.date)
        latest.pop(key, None)
        latest[key] = item
    return list(latest.values())


class HabitStore(ABC):
    """Owns habit definitions."""

    @abstractmethod
    def create(self, name: str, category: str, color: str, description: Optional[str] = None,
               is_active: bool = True) -> HabitRecord:
        ...

    @abstractmethod
    def find_all(self, is_active: Optional[bool] = None, category: Optional[str] = None) -> List[HabitRecord]:
        """Habits matching the filters, newest first."""

    @abstractmethod
    def find_by_id(self, habit_id: str) -> Optional[HabitRecord]:
        ...

    @abstractmethod
    def update(self, habit_id: str, **fields) -> Optional[HabitRecord]:
        ...

    @abstractmethod
    def soft_delete(self, habit_id: str) -> Optional[HabitRecord]:
        ...

    @abstractmethod
    def hard_delete(self, habit_id: str) -> bool:
        """Remove the habit and all of its entries."""

    @abstractmethod
    def with_stats(self, window_days: int = 30, today: Optional[date] = None) -> List[HabitStats]:
        """Active habits with entry counts over the trailing window."""

    @abstractmethod
    def categories(self) -> List[CategoryCount]:
        ...

    @abstractmethod
    def ping(self) -> bool:
        """True when the underlying storage can be reached."""

    def bulk_create(self, items: Sequence[Dict[str, object]]) -> Tuple[List[HabitRecord], List[Dict[str, str]]]:
        """Create each habit on its own; failures are reported per item instead of aborting."""
        created, errors = [], []
        for item in items:
            try:
                created.append(self.create(**item))
            except HabitFlowError as e:
                errors.append({"habit": str(item.get("name")), "error": e.message})
        return created, errors

    def require(self, habit_id: str) -> HabitRecord:
        habit = self.find_by_id(habit_id)
        if habit is None:
            raise NotFoundError("Habit not found")
        return habit


class EntryStore(ABC):
    """Owns completion entries; one per (habit, date)."""

    def __init__(self, habits: HabitStore):
        self.habits = habits

    @abstractmethod
    def upsert(self, habit_id: str, day: date, completed: bool) -> EntryRecord:
        ...

    @abstractmethod
    def get(self, habit_id: str, day: date) -> Optional[EntryRecord]:
        ...

    @abstractmethod
    def find_by_habit(self, habit_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None,
                      completed: Optional[bool] = None) -> List[EntryRecord]:
        """Entries of one habit, newest date first."""

    @abstractmethod
    def find_by_date_range(self, start_date: date, end_date: date,
                           habit_ids: Optional[Sequence[str]] = None) -> List[EntryRecord]:
        ...

    @abstractmethod
    def find_all(self) -> List[EntryRecord]:
        ...

    @abstractmethod
    def delete(self, habit_id: str, day: date) -> bool:
        ...

    @abstractmethod
    def _write_bulk(self, items: List[EntryInput]) -> List[EntryRecord]:
        ...

    def toggle(self, habit_id: str, day: date) -> EntryRecord:
        """Flip the completion state; a missing entry counts as incomplete."""
        existing = self.get(habit_id, day)
        return self.upsert(habit_id, day, not (existing is not None and existing.completed))

    def bulk_upsert(self, items: Iterable[EntryInput]) -> List[EntryRecord]:
        items = list(items)
        if not items:
            return []
        habit_ids = list(dict.fromkeys(item.habit_id for item in items))
        missing = [habit_id for habit_id in habit_ids if self.habits.find_by_id(habit_id) is None]
        if missing:
            raise NotFoundError(f"Habits not found: {', '.join(missing)}")
        return self._write_bulk(items)

    def completion_stats(self, habit_id: str, days: int = 30, today: Optional[date] = None) -> CompletionStats:
        since = (today or _today()) - timedelta(days=days)
        recorded = self.find_by_habit(habit_id, start_date=since)
        done = [e for e in recorded if e.completed]
        return CompletionStats(
            total_days=len(recorded),
            completed_days=len(done),
            completion_rate=percentage(len(done), len(recorded)),
            last_completed_date=max((e.date for e in done), default=None),
        )

    def export(self, habit_ids: Optional[Sequence[str]] = None) -> List[ExportRow]:
        habits = {h.id: h for h in self.habits.find_all()}
        wanted = set(habit_ids) if habit_ids else None
        rows = [
            ExportRow(entry=e, habit_name=habits[e.habit_id].name, habit_category=habits[e.habit_id].category)
            for e in self.find_all()
            if e.habit_id in habits and (wanted is None or e.habit_id in wanted)
        ]
        rows.sort(key=lambda row: row.habit_name)
        rows.sort(key=lambda row: row.entry.date, reverse=True)
        return rows


def take_snapshot(habits: HabitStore, entries: EntryStore, active_only: bool = True) -> Snapshot:
    return Snapshot(
        habits=habits.find_all(is_active=True if active_only else None),
        entries=entries.find_all(),
    )


class SettingsStore(ABC):
    """Persists the single user's settings record."""

    @abstractmethod
    def load(self) -> UserSettings:
        """Stored settings merged over defaults; defaults when nothing is stored."""

    @abstractmethod
    def save(self, settings: UserSettings) -> UserSettings:
        ...


def settings_from_dict(data: Optional[Dict[str, object]]) -> UserSettings:
    if not data:
        return UserSettings()
    try:
        return UserSettings.model_validate(data)
    except SchemaError as e:
        logger.warning("Stored settings are invalid, using defaults: %s", e)
        return UserSettings()
