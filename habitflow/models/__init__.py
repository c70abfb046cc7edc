from .habit import Habit, HabitEntry, new_id, utcnow
from .settings import DEFAULT_USER_ID, UserSettingsRow

__all__ = ["Habit", "HabitEntry", "UserSettingsRow", "DEFAULT_USER_ID", "new_id", "utcnow"]
