from .aggregation import (category_distribution, daily_completion_rate, dashboard, month_calendar,
                          month_summary, monthly_calendar_status, per_habit_stats, percentage,
                          week_progress, weekly_trend, window_series)
from .streaks import current_streak, longest_streak, perfect_day_streak

__all__ = [
    "category_distribution",
    "current_streak",
    "daily_completion_rate",
    "dashboard",
    "longest_streak",
    "month_calendar",
    "month_summary",
    "monthly_calendar_status",
    "per_habit_stats",
    "percentage",
    "perfect_day_streak",
    "week_progress",
    "weekly_trend",
    "window_series",
]
