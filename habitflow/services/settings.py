# habitflow/services/settings.py
import logging
from typing import Callable, Optional

from ..schemas.settings import SettingsUpdate, UserSettings
from ..stores.base import SettingsStore

logger = logging.getLogger(__name__)


def merge_settings(old: UserSettings, partial: SettingsUpdate) -> UserSettings:
    """Return a new settings record with only the supplied fields replaced."""
    changes = partial.model_dump(exclude_unset=True, exclude_none=True)
    return UserSettings.model_validate({**old.model_dump(), **changes})


def update_settings(store: SettingsStore, partial: SettingsUpdate,
                    on_change: Optional[Callable[[UserSettings], None]] = None) -> UserSettings:
    current = store.load()
    merged = merge_settings(current, partial)
    if merged == current:
        return current
    saved = store.save(merged)
    logger.info("Settings updated: %s", ", ".join(sorted(partial.model_dump(exclude_unset=True))))
    if on_change is not None:
        on_change(saved)
    return saved


def reset_settings(store: SettingsStore) -> UserSettings:
    return store.save(UserSettings())
