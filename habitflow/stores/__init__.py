# habitflow/stores/__init__.py
from dataclasses import dataclass

from sqlalchemy.orm import Session

from .base import EntryStore, HabitStore, SettingsStore, take_snapshot
from .local import LocalEntryStore, LocalHabitStore, LocalSettingsStore, LocalStorage
from .sql import SqlEntryStore, SqlHabitStore, SqlSettingsStore


@dataclass
class Stores:
    habits: HabitStore
    entries: EntryStore
    settings: SettingsStore

    def snapshot(self, active_only: bool = True):
        return take_snapshot(self.habits, self.entries, active_only=active_only)


def sql_stores(db: Session) -> Stores:
    habits = SqlHabitStore(db)
    return Stores(habits=habits, entries=SqlEntryStore(db, habits), settings=SqlSettingsStore(db))


def local_stores(storage: LocalStorage) -> Stores:
    habits = LocalHabitStore(storage)
    return Stores(habits=habits, entries=LocalEntryStore(storage, habits), settings=LocalSettingsStore(storage))
