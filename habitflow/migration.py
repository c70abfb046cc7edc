# habitflow/migration.py
"""
One-shot copy of local-file data into the relational backend.

Habits are re-created through the target Habit Store, old ids are mapped to the
new ones by name and category, and the mapped entries go in as one bulk upsert.
A ``migratedToDatabase`` marker makes later runs no-ops until the local data is
restored from the backup written alongside it.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .analytics.dates import parse_date
from .errors import HabitFlowError
from .records import EntryInput, HabitRecord
from .stores.base import EntryStore, HabitStore
from .stores.local import ENTRIES_KEY, HABITS_KEY, SETTINGS_KEY, LocalStorage

logger = logging.getLogger(__name__)

MIGRATED_KEY = "migratedToDatabase"
MIGRATION_DATE_KEY = "migrationDate"
BACKUP_KEY = "localDataBackup"


@dataclass
class PartResult:
    success: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class MigrationResult:
    success: bool
    message: str
    habits: PartResult = field(default_factory=PartResult)
    entries: PartResult = field(default_factory=PartResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "details": {"habits": asdict(self.habits), "entries": asdict(self.entries)},
        }


def map_habit_ids(old_habits: Iterable[Dict[str, Any]], new_habits: Sequence[HabitRecord]) -> Dict[str, str]:
    """Map each old habit id to the id of the target habit with the same name and category."""
    by_key = {(h.name, h.category): h.id for h in new_habits}
    mapping = {}
    for habit in old_habits:
        new_id = by_key.get((habit.get("name"), habit.get("category")))
        if new_id is not None and habit.get("id") is not None:
            mapping[str(habit["id"])] = new_id
    return mapping


def copy_habits(habit_store: HabitStore, habits: Iterable[Dict[str, Any]]) -> PartResult:
    result = PartResult()
    for habit in habits:
        name = habit.get("name")
        try:
            habit_store.create(
                name=name,
                category=habit.get("category"),
                color=habit.get("color"),
                description=habit.get("description"),
                is_active=habit.get("isActive", True),
            )
            result.success += 1
        except HabitFlowError as e:
            result.errors.append(f'Failed to migrate habit "{name}": {e.message}')
    return result


def copy_entries(entry_store: EntryStore, entries: Iterable[Dict[str, Any]], mapping: Dict[str, str]) -> PartResult:
    result = PartResult()
    mapped = []
    for entry in entries:
        habit_id = mapping.get(str(entry.get("habitId")))
        if habit_id is None:
            continue
        try:
            mapped.append(EntryInput(habit_id=habit_id, date=parse_date(entry.get("date")),
                                     completed=bool(entry.get("completed"))))
        except HabitFlowError as e:
            result.errors.append(f"Skipped entry: {e.message}")

    if not mapped:
        return result
    try:
        result.success = len(entry_store.bulk_upsert(mapped))
    except HabitFlowError as e:
        result.errors.append(f"Failed to migrate entries: {e.message}")
    return result


def copy_data(habit_store: HabitStore, entry_store: EntryStore, habits: Sequence[Dict[str, Any]],
              entries: Sequence[Dict[str, Any]]) -> Tuple[PartResult, PartResult]:
    habit_result = copy_habits(habit_store, habits)
    mapping = map_habit_ids(habits, habit_store.find_all())
    return habit_result, copy_entries(entry_store, entries, mapping)


def summarize(habits: PartResult, entries: PartResult, verb: str = "migrated") -> MigrationResult:
    errors = habits.errors + entries.errors
    if not errors:
        message = f"Successfully {verb} {habits.success} habits and {entries.success} entries."
    else:
        message = (f"Completed with some errors. {verb.capitalize()} {habits.success} habits and "
                   f"{entries.success} entries. {len(errors)} errors occurred.")
    return MigrationResult(success=not errors, message=message, habits=habits, entries=entries)


class LocalToDatabaseMigration:
    def __init__(self, local: LocalStorage, habit_store: HabitStore, entry_store: EntryStore):
        self.local = local
        self.habit_store = habit_store
        self.entry_store = entry_store

    def _local_data(self) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], Optional[Dict[str, Any]]]:
        habits = self.local.get_item(HABITS_KEY) or []
        entries = self.local.get_item(ENTRIES_KEY) or []
        return list(habits), list(entries), self.local.get_item(SETTINGS_KEY)

    def needs_migration(self) -> bool:
        has_data = bool(self.local.get_item(HABITS_KEY) or self.local.get_item(ENTRIES_KEY))
        return has_data and not self.local.get_item(MIGRATED_KEY)

    def migrate(self) -> MigrationResult:
        if not self.habit_store.ping():
            return MigrationResult(False, "Cannot connect to database. Please check the database settings.")
        if self.local.get_item(MIGRATED_KEY):
            return MigrationResult(True, "Data already migrated.")

        habits, entries, settings = self._local_data()
        if not habits:
            return MigrationResult(True, "No data to migrate.")

        logger.info("Migrating %d habits and %d entries to the database", len(habits), len(entries))
        habit_result, entry_result = copy_data(self.habit_store, self.entry_store, habits, entries)

        now = datetime.now(timezone.utc).isoformat()
        self.local.set_item(MIGRATED_KEY, True)
        self.local.set_item(MIGRATION_DATE_KEY, now)
        self.local.set_item(BACKUP_KEY, {
            "habits": habits,
            "entries": entries,
            "settings": settings,
            "migratedAt": now,
        })

        result = summarize(habit_result, entry_result, verb="migrated")
        logger.info(result.message)
        return result

    def clear_local_data(self) -> None:
        for key in (HABITS_KEY, ENTRIES_KEY):
            self.local.remove_item(key)

    def restore_from_backup(self) -> bool:
        backup = self.local.get_item(BACKUP_KEY)
        if not isinstance(backup, dict):
            return False
        self.local.set_item(HABITS_KEY, backup.get("habits") or [])
        self.local.set_item(ENTRIES_KEY, backup.get("entries") or [])
        if backup.get("settings"):
            self.local.set_item(SETTINGS_KEY, backup["settings"])
        self.local.remove_item(MIGRATED_KEY)
        self.local.remove_item(MIGRATION_DATE_KEY)
        logger.info("Restored local data from migration backup")
        return True

    def status(self) -> Dict[str, Any]:
        return {
            "hasMigrated": bool(self.local.get_item(MIGRATED_KEY)),
            "migrationDate": self.local.get_item(MIGRATION_DATE_KEY),
            "hasBackup": self.local.has_item(BACKUP_KEY),
            "needsMigration": self.needs_migration(),
        }
