# habitflow/dependencies.py
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, Request

from .services.ai import HabitAIService
from .services.reminders import ReminderService
from .stores import Stores, local_stores, sql_stores
from .stores.base import EntryStore, HabitStore, SettingsStore


@contextmanager
def open_stores(state) -> Iterator[Stores]:
    """Stores for the configured backend; SQL sessions are closed on exit."""
    if state.settings.backend == "local":
        yield local_stores(state.local_storage)
        return

    db = state.session_factory()
    try:
        yield sql_stores(db)
    finally:
        db.close()


def get_stores(request: Request) -> Iterator[Stores]:
    with open_stores(request.app.state) as stores:
        yield stores


def get_habit_store(stores: Stores = Depends(get_stores)) -> HabitStore:
    return stores.habits


def get_entry_store(stores: Stores = Depends(get_stores)) -> EntryStore:
    return stores.entries


def get_settings_store(stores: Stores = Depends(get_stores)) -> SettingsStore:
    return stores.settings


def get_ai_service(request: Request) -> HabitAIService:
    return request.app.state.ai_service


def get_reminders(request: Request) -> Optional[ReminderService]:
    return getattr(request.app.state, "reminders", None)
