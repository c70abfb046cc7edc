# habitflow/schemas/analytics.py
from datetime import date
from typing import List

from .common import CamelModel


class DayPointResponse(CamelModel):
    date: date
    completed_count: int
    total_habits: int
    rate_percent: float


class WeekPointResponse(CamelModel):
    label: str
    start: date
    end: date
    completion: float


class HabitCompletionResponse(CamelModel):
    habit_id: str
    name: str
    category: str
    color: str
    completed: int
    total: int
    completion_rate: float
    current_streak: int
    longest_streak: int


class CategoryShareResponse(CamelModel):
    category: str
    completed: int
    color: str


class DayStatusResponse(CamelModel):
    date: date
    status: str
    percentage: int
    completed: int
    total: int


class MonthSummaryResponse(CamelModel):
    year: int
    month: int
    percentage: int
    total_completions: int
    total_possible: int
    perfect_days: int


class DashboardResponse(CamelModel):
    total_habits: int
    completed_today: int
    completion_rate: int
    weekly_completion: int
    best_category: str
    perfect_day_streak: int
    total_completions: int
    average_daily: float
    best_streak: int


class HabitStreakResponse(CamelModel):
    habit_id: str
    name: str
    current_streak: int
    longest_streak: int
    week_progress: float


class StreaksResponse(CamelModel):
    perfect_day_streak: int
    habits: List[HabitStreakResponse]
