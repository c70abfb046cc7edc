# habitflow/stores/local.py
"""
File-backed key-value implementation of the store contracts.

The layout is the one a browser client keeps in local storage: a
``habits`` list, a ``habit_entries`` list and a ``habit-tracker-settings``
object, all kept in one JSON document.
"""
import json
import logging
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..analytics.aggregation import percentage
from ..analytics.dates import format_date, parse_date
from ..analytics.dates import today as _today
from ..errors import NotFoundError, StorageError, ValidationError
from ..records import CategoryCount, EntryInput, EntryRecord, HabitRecord, HabitStats
from ..schemas.settings import UserSettings
from .base import (EntryStore, HabitStore, SettingsStore, check_update_fields, dedupe_entries,
                   settings_from_dict, validate_habit_fields)

logger = logging.getLogger(__name__)

HABITS_KEY = "habits"
ENTRIES_KEY = "habit_entries"
SETTINGS_KEY = "habit-tracker-settings"

HABIT_CATEGORIES = (
    "Health",
    "Fitness",
    "Mindfulness",
    "Productivity",
    "Learning",
    "Finance",
    "Social",
    "Home",
    "Creative",
    "Other",
)

_CAMEL_FIELDS = {"is_active": "isActive"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class LocalStorage:
    """A small key-value store persisted as one JSON object."""

    def __init__(self, path):
        self.path = Path(path)
        self.file_lock = threading.RLock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read %s: %s", self.path, e)
            raise StorageError(f"Failed to read local data file {self.path}") from e
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".habitflow-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Failed to write %s: %s", self.path, e)
            raise StorageError(f"Failed to write local data file {self.path}") from e

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, Any]]:
        """
        Read-modify-write of the whole document under the file lock.

        The yielded dict is written back when the block exits normally; an
        exception inside the block leaves the file untouched.
        """
        with self.file_lock:
            data = self._load()
            yield data
            self._save(data)

    def get_item(self, key: str, default: Any = None) -> Any:
        with self.file_lock:
            return self._load().get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        with self.transaction() as data:
            data[key] = value

    def remove_item(self, key: str) -> None:
        with self.file_lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def has_item(self, key: str) -> bool:
        with self.file_lock:
            return key in self._load()

    def ping(self) -> bool:
        try:
            self.get_item(HABITS_KEY)
        except StorageError:
            return False
        return os.access(self.path if self.path.exists() else self.path.parent, os.W_OK)


def _habit_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = data.get(HABITS_KEY, [])
    return [i for i in items if isinstance(i, dict) and "id" in i] if isinstance(items, list) else []


def _entry_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = data.get(ENTRIES_KEY, [])
    return [i for i in items if isinstance(i, dict) and "habitId" in i] if isinstance(items, list) else []


def _habit_from_dict(item: Dict[str, Any]) -> HabitRecord:
    return HabitRecord(
        id=str(item["id"]),
        name=item.get("name", ""),
        description=item.get("description"),
        category=item.get("category", "Other"),
        color=item.get("color", "#3b82f6"),
        is_active=bool(item.get("isActive", True)),
        created_at=_parse_iso_datetime(item.get("createdAt")),
        updated_at=_parse_iso_datetime(item.get("updatedAt")),
    )


def _entry_from_dict(item: Dict[str, Any]) -> EntryRecord:
    return EntryRecord(
        id=str(item["id"]),
        habit_id=str(item["habitId"]),
        date=parse_date(item["date"]),
        completed=bool(item.get("completed")),
        completed_at=_parse_iso_datetime(item.get("completedAt")),
        created_at=_parse_iso_datetime(item.get("createdAt")),
    )


def _sort_key_created(item: Dict[str, Any]) -> str:
    return item.get("createdAt") or ""


class LocalHabitStore(HabitStore):
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def _items(self) -> List[Dict[str, Any]]:
        with self.storage.file_lock:
            return _habit_items(self.storage._load())

    def _check_category(self, category) -> None:
        if category not in HABIT_CATEGORIES:
            raise ValidationError(
                "Invalid habit data",
                details=[{"field": "category", "message": f"Category must be one of: {', '.join(HABIT_CATEGORIES)}"}],
            )

    def create(self, name, category, color, description=None, is_active=True) -> HabitRecord:
        validate_habit_fields({
            "name": name, "category": category, "color": color,
            "description": description, "is_active": is_active,
        })
        self._check_category(category)
        now = _now_iso()
        item = {
            "id": str(uuid.uuid4()),
            "name": name,
            "description": description,
            "category": category,
            "color": color,
            "isActive": is_active,
            "createdAt": now,
            "updatedAt": now,
        }
        with self.storage.transaction() as data:
            data[HABITS_KEY] = _habit_items(data) + [item]
        return _habit_from_dict(item)

    def find_all(self, is_active=None, category=None) -> List[HabitRecord]:
        items = self._items()
        if is_active is not None:
            items = [i for i in items if bool(i.get("isActive", True)) == is_active]
        if category:
            items = [i for i in items if i.get("category") == category]
        items.sort(key=_sort_key_created, reverse=True)
        return [_habit_from_dict(i) for i in items]

    def find_by_id(self, habit_id) -> Optional[HabitRecord]:
        for item in self._items():
            if item["id"] == habit_id:
                return _habit_from_dict(item)
        return None

    def _modify(self, habit_id, changes: Dict[str, Any]) -> Optional[HabitRecord]:
        with self.storage.transaction() as data:
            items = _habit_items(data)
            match = next((item for item in items if item["id"] == habit_id), None)
            if match is None:
                return None
            match.update(changes, updatedAt=_now_iso())
            data[HABITS_KEY] = items
        return _habit_from_dict(match)

    def update(self, habit_id, **fields) -> Optional[HabitRecord]:
        check_update_fields(fields)
        if "category" in fields:
            self._check_category(fields["category"])
        return self._modify(habit_id, {_CAMEL_FIELDS.get(key, key): value for key, value in fields.items()})

    def soft_delete(self, habit_id) -> Optional[HabitRecord]:
        return self._modify(habit_id, {"isActive": False})

    def hard_delete(self, habit_id) -> bool:
        """Drop the habit and its entries in a single write."""
        with self.storage.transaction() as data:
            items = _habit_items(data)
            remaining = [i for i in items if i["id"] != habit_id]
            if len(remaining) == len(items):
                return False
            data[HABITS_KEY] = remaining
            data[ENTRIES_KEY] = [e for e in _entry_items(data) if e["habitId"] != habit_id]
        return True

    def with_stats(self, window_days=30, today=None) -> List[HabitStats]:
        since = (today or _today()) - timedelta(days=window_days)
        with self.storage.file_lock:
            data = self.storage._load()
        entries = [_entry_from_dict(e) for e in _entry_items(data)]
        habits = [_habit_from_dict(h) for h in sorted(_habit_items(data), key=_sort_key_created, reverse=True)]
        stats = []
        for habit in habits:
            if not habit.is_active:
                continue
            recent = [e for e in entries if e.habit_id == habit.id and e.date >= since]
            done = sum(1 for e in recent if e.completed)
            stats.append(HabitStats(
                habit=habit,
                total_entries=len(recent),
                completed_entries=done,
                completion_rate=percentage(done, len(recent)),
            ))
        return stats

    def categories(self) -> List[CategoryCount]:
        counts: Dict[str, int] = {}
        for habit in self.find_all(is_active=True):
            counts[habit.category] = counts.get(habit.category, 0) + 1
        ordered = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
        return [CategoryCount(category=c, count=n) for c, n in ordered]

    def ping(self) -> bool:
        return self.storage.ping()


def _apply_entry(items: List[Dict[str, Any]], habit_id: str, day: date, completed: bool) -> Dict[str, Any]:
    """Update the (habit, date) item in ``items`` or append a new one."""
    key = format_date(day)
    now = _now_iso()
    for item in items:
        if item["habitId"] == habit_id and item["date"] == key:
            item["completed"] = completed
            item["completedAt"] = now if completed else None
            return item
    item = {
        "id": str(uuid.uuid4()),
        "habitId": habit_id,
        "date": key,
        "completed": completed,
        "completedAt": now if completed else None,
        "createdAt": now,
    }
    items.append(item)
    return item


class LocalEntryStore(EntryStore):
    def __init__(self, storage: LocalStorage, habits: LocalHabitStore):
        super().__init__(habits)
        self.storage = storage

    def _items(self) -> List[Dict[str, Any]]:
        with self.storage.file_lock:
            return _entry_items(self.storage._load())

    def _records(self) -> List[EntryRecord]:
        return [_entry_from_dict(i) for i in self._items()]

    def _write(self, items: List[EntryInput]) -> List[EntryRecord]:
        with self.storage.transaction() as data:
            known = {h["id"] for h in _habit_items(data)}
            missing = sorted({item.habit_id for item in items} - known)
            if missing:
                raise NotFoundError("Habit not found" if len(items) == 1 else f"Habits not found: {', '.join(missing)}")
            entries = _entry_items(data)
            written = [_apply_entry(entries, item.habit_id, item.date, item.completed) for item in items]
            data[ENTRIES_KEY] = entries
        return [_entry_from_dict(item) for item in written]

    def upsert(self, habit_id, day, completed) -> EntryRecord:
        return self._write([EntryInput(habit_id=habit_id, date=day, completed=completed)])[0]

    def _write_bulk(self, items: List[EntryInput]) -> List[EntryRecord]:
        return self._write(dedupe_entries(items))

    def get(self, habit_id, day) -> Optional[EntryRecord]:
        key = format_date(day)
        for item in self._items():
            if item["habitId"] == habit_id and item["date"] == key:
                return _entry_from_dict(item)
        return None

    def find_by_habit(self, habit_id, start_date=None, end_date=None, completed=None) -> List[EntryRecord]:
        entries = [e for e in self._records() if e.habit_id == habit_id]
        if start_date:
            entries = [e for e in entries if e.date >= start_date]
        if end_date:
            entries = [e for e in entries if e.date <= end_date]
        if completed is not None:
            entries = [e for e in entries if e.completed == completed]
        return sorted(entries, key=lambda e: e.date, reverse=True)

    def find_by_date_range(self, start_date, end_date, habit_ids: Optional[Sequence[str]] = None) -> List[EntryRecord]:
        wanted = set(habit_ids) if habit_ids else None
        entries = [
            e for e in self._records()
            if start_date <= e.date <= end_date and (wanted is None or e.habit_id in wanted)
        ]
        entries.sort(key=lambda e: e.habit_id)
        entries.sort(key=lambda e: e.date, reverse=True)
        return entries

    def find_all(self) -> List[EntryRecord]:
        entries = self._records()
        entries.sort(key=lambda e: e.habit_id)
        entries.sort(key=lambda e: e.date, reverse=True)
        return entries

    def delete(self, habit_id, day: date) -> bool:
        key = format_date(day)
        with self.storage.transaction() as data:
            items = _entry_items(data)
            remaining = [i for i in items if not (i["habitId"] == habit_id and i["date"] == key)]
            if len(remaining) == len(items):
                return False
            data[ENTRIES_KEY] = remaining
        return True


class LocalSettingsStore(SettingsStore):
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self) -> UserSettings:
        return settings_from_dict(self.storage.get_item(SETTINGS_KEY))

    def save(self, settings: UserSettings) -> UserSettings:
        self.storage.set_item(SETTINGS_KEY, settings.model_dump(by_alias=True))
        return settings
