# habitflow/services/backup.py
"""JSON backups of habits, entries and settings, and restoring them into any backend."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from ..errors import ValidationError
from ..migration import MigrationResult, copy_data, summarize
from ..schemas.common import dump
from ..schemas.entry import EntryResponse
from ..schemas.habit import HabitResponse
from ..stores import Stores
from ..stores.base import settings_from_dict

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


def export_backup(stores: Stores) -> Dict[str, Any]:
    return {
        "habits": dump([HabitResponse.model_validate(h) for h in stores.habits.find_all()]),
        "entries": dump([EntryResponse.model_validate(e) for e in stores.entries.find_all()]),
        "settings": dump(stores.settings.load()),
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "version": BACKUP_VERSION,
    }


def import_backup(stores: Stores, data: Dict[str, Any]) -> MigrationResult:
    if not isinstance(data, dict):
        raise ValidationError("Backup must be a JSON object")
    habits = data.get("habits") or []
    entries = data.get("entries") or []
    if not isinstance(habits, list) or not isinstance(entries, list):
        raise ValidationError("Backup habits and entries must be lists")

    habit_result, entry_result = copy_data(stores.habits, stores.entries, habits, entries)
    if data.get("settings"):
        stores.settings.save(settings_from_dict(data["settings"]))

    result = summarize(habit_result, entry_result, verb="imported")
    logger.info(result.message)
    return result
