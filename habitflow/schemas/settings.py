# habitflow/schemas/settings.py
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

Theme = Literal["light", "dark", "system"]
WeekStart = Literal["sunday", "monday"]
View = Literal["habits", "analytics", "history"]
ReminderFrequency = Literal["none", "daily", "weekly"]
ColorScheme = Literal["default", "colorful", "minimal", "high-contrast"]


class UserSettings(BaseModel):
    theme: Theme = "system"
    notifications: bool = True
    notification_time: str = Field("09:00", pattern=TIME_PATTERN)
    sound_enabled: bool = True
    week_starts_on: WeekStart = "monday"
    default_view: View = "habits"
    animations_enabled: bool = True
    auto_backup: bool = False
    streak_goal: int = Field(7, ge=1, le=365)
    daily_goal: int = Field(100, ge=1, le=100)
    reminder_frequency: ReminderFrequency = "daily"
    color_scheme: ColorScheme = "default"
    compact_mode: bool = False
    show_motivational_quotes: bool = True
    private_mode: bool = False

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class SettingsUpdate(BaseModel):
    theme: Optional[Theme] = None
    notifications: Optional[bool] = None
    notification_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    sound_enabled: Optional[bool] = None
    week_starts_on: Optional[WeekStart] = None
    default_view: Optional[View] = None
    animations_enabled: Optional[bool] = None
    auto_backup: Optional[bool] = None
    streak_goal: Optional[int] = Field(None, ge=1, le=365)
    daily_goal: Optional[int] = Field(None, ge=1, le=100)
    reminder_frequency: Optional[ReminderFrequency] = None
    color_scheme: Optional[ColorScheme] = None
    compact_mode: Optional[bool] = None
    show_motivational_quotes: Optional[bool] = None
    private_mode: Optional[bool] = None

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }
