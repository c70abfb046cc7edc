# habitflow/routers/settings.py
from typing import Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_reminders, get_settings_store
from ..schemas.common import envelope
from ..schemas.settings import SettingsUpdate
from ..services.reminders import ReminderService
from ..services.settings import reset_settings, update_settings
from ..stores.base import SettingsStore

router = APIRouter(
    prefix="/api/settings",
    tags=["Settings"],
)


@router.get("")
def get_user_settings(store: SettingsStore = Depends(get_settings_store)):
    return envelope(store.load())


@router.put("")
def update_user_settings(
    body: SettingsUpdate,
    store: SettingsStore = Depends(get_settings_store),
    reminders: Optional[ReminderService] = Depends(get_reminders),
):
    on_change = reminders.schedule if reminders is not None else None
    return envelope(update_settings(store, body, on_change=on_change), message="Settings updated successfully")


@router.post("/reset")
def reset_user_settings(
    store: SettingsStore = Depends(get_settings_store),
    reminders: Optional[ReminderService] = Depends(get_reminders),
):
    settings = reset_settings(store)
    if reminders is not None:
        reminders.schedule(settings)
    return envelope(settings, message="Settings reset to defaults")
