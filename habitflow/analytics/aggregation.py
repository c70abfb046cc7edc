# habitflow/analytics/aggregation.py
"""
Time-windowed statistics over habit and entry snapshots.

Every function here is pure: it reads the sequences it is given, never mutates
them and returns zero-valued results for empty inputs.
"""
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from ..records import EntryRecord, HabitRecord
from .dates import days_back, month_days, week_dates
from .dates import today as _today
from .streaks import (best_perfect_run, completed_by_date, completed_dates, current_streak,
                      longest_streak, perfect_day_streak)

PERFECT = "perfect"
GREAT = "great"
GOOD = "good"
PARTIAL = "partial"
POOR = "poor"
NONE = "none"
COMPLETED = "completed"
NOT_COMPLETED = "not-completed"


@dataclass(frozen=True)
class DayPoint:
    date: date
    completed_count: int
    total_habits: int
    rate_percent: float


@dataclass(frozen=True)
class WeekPoint:
    label: str
    start: date
    end: date
    completion: float


@dataclass(frozen=True)
class HabitCompletion:
    habit_id: str
    name: str
    category: str
    color: str
    completed: int
    total: int
    completion_rate: float
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class CategoryShare:
    category: str
    completed: int
    color: str


@dataclass(frozen=True)
class DayStatus:
    date: date
    status: str
    percentage: int
    completed: int
    total: int


@dataclass(frozen=True)
class MonthSummary:
    year: int
    month: int
    percentage: int
    total_completions: int
    total_possible: int
    perfect_days: int


@dataclass(frozen=True)
class Dashboard:
    total_habits: int
    completed_today: int
    completion_rate: int
    weekly_completion: int
    best_category: str
    perfect_day_streak: int
    total_completions: int
    average_daily: float
    best_streak: int


def percentage(part: float, whole: float, digits: int = 2) -> float:
    """``part / whole * 100`` rounded; an empty denominator reports 0."""
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, digits)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completed_count(day: date, habits: Sequence[HabitRecord], entries: Iterable[EntryRecord]) -> int:
    ids = {h.id for h in habits}
    return sum(1 for e in entries if e.date == day and e.completed and e.habit_id in ids)


def daily_completion_rate(day: date, habits: Sequence[HabitRecord], entries: Iterable[EntryRecord]) -> float:
    if not habits:
        return 0.0
    return percentage(completed_count(day, habits, entries), len(habits))


def window_series(days: int, habits: Sequence[HabitRecord], entries: Iterable[EntryRecord],
                  today: Optional[date] = None) -> Iterator[DayPoint]:
    """Yield one point per day for the last ``days`` days, oldest first."""
    ids = {h.id for h in habits}
    by_date = completed_by_date(entries)
    total = len(ids)
    for day in days_back(today or _today(), days):
        done = len(by_date.get(day, set()) & ids)
        yield DayPoint(date=day, completed_count=done, total_habits=total, rate_percent=percentage(done, total))


def weekly_trend(habits: Sequence[HabitRecord], entries: Iterable[EntryRecord], weeks: int = 4,
                 today: Optional[date] = None) -> List[WeekPoint]:
    """Average completion of each of the last ``weeks`` 7-day windows, oldest first."""
    end_day = today or _today()
    ids = {h.id for h in habits}
    by_date = completed_by_date(entries)
    points = []
    for index in range(weeks - 1, -1, -1):
        end = end_day - timedelta(days=7 * index)
        start = end - timedelta(days=6)
        done = sum(len(by_date.get(day, set()) & ids) for day in days_back(end, 7))
        points.append(WeekPoint(
            label=f"Week {weeks - index}",
            start=start,
            end=end,
            completion=percentage(done, len(ids) * 7),
        ))
    return points


def per_habit_stats(habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                    today: Optional[date] = None) -> List[HabitCompletion]:
    """Completion rate per habit over the entries actually recorded for it."""
    stats = []
    for habit in habits:
        recorded = [e for e in entries if e.habit_id == habit.id]
        done = sum(1 for e in recorded if e.completed)
        stats.append(HabitCompletion(
            habit_id=habit.id,
            name=habit.name,
            category=habit.category,
            color=habit.color,
            completed=done,
            total=len(recorded),
            completion_rate=percentage(done, len(recorded)),
            current_streak=current_streak(habit.id, recorded, today=today),
            longest_streak=longest_streak(habit.id, recorded),
        ))
    return stats


def category_distribution(habits: Sequence[HabitRecord], entries: Sequence[EntryRecord]) -> List[CategoryShare]:
    """Completed entries grouped by category; colour comes from the first habit seen."""
    counts: Dict[str, int] = {}
    colors: Dict[str, str] = {}
    for habit in habits:
        done = sum(1 for e in entries if e.habit_id == habit.id and e.completed)
        counts[habit.category] = counts.get(habit.category, 0) + done
        colors.setdefault(habit.category, habit.color)
    return [CategoryShare(category=c, completed=n, color=colors[c]) for c, n in counts.items()]


def classify(pct: float) -> str:
    if pct >= 100:
        return PERFECT
    if pct >= 80:
        return GREAT
    if pct >= 60:
        return GOOD
    if pct > 0:
        return PARTIAL
    return POOR


def monthly_calendar_status(day: date, habits: Sequence[HabitRecord], entries: Iterable[EntryRecord],
                            habit_id: Optional[str] = None) -> DayStatus:
    if habit_id is not None:
        done = day in completed_dates(entries, habit_id)
        return DayStatus(
            date=day,
            status=COMPLETED if done else NOT_COMPLETED,
            percentage=100 if done else 0,
            completed=int(done),
            total=1,
        )

    total = len(habits)
    if total == 0:
        return DayStatus(date=day, status=NONE, percentage=0, completed=0, total=0)

    done = completed_count(day, habits, entries)
    pct = done * 100.0 / total
    return DayStatus(date=day, status=classify(pct), percentage=round_half_up(pct), completed=done, total=total)


def month_calendar(year: int, month: int, habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                   habit_id: Optional[str] = None) -> List[DayStatus]:
    return [monthly_calendar_status(day, habits, entries, habit_id) for day in month_days(year, month)]


def month_summary(year: int, month: int, habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                  habit_id: Optional[str] = None) -> MonthSummary:
    days = month_days(year, month)
    ids = {habit_id} if habit_id is not None else {h.id for h in habits}
    month_entries = [
        e for e in entries
        if e.completed and e.habit_id in ids and e.date.year == year and e.date.month == month
    ]
    total_possible = len(days) * (1 if habit_id is not None else len(habits))
    statuses = month_calendar(year, month, habits, month_entries, habit_id)
    target = COMPLETED if habit_id is not None else PERFECT
    return MonthSummary(
        year=year,
        month=month,
        percentage=round_half_up(percentage(len(month_entries), total_possible)),
        total_completions=len(month_entries),
        total_possible=total_possible,
        perfect_days=sum(1 for s in statuses if s.status == target),
    )


def week_progress(habit_id: str, entries: Iterable[EntryRecord], today: Optional[date] = None,
                  week_starts_on: str = "sunday") -> float:
    """Share of the current calendar week on which the habit was completed."""
    done = completed_dates(entries, habit_id)
    week = week_dates(today or _today(), week_starts_on)
    return percentage(sum(1 for day in week if day in done), len(week))


def dashboard(habits: Sequence[HabitRecord], entries: Sequence[EntryRecord], today: Optional[date] = None,
              window_days: int = 30) -> Dashboard:
    day = today or _today()
    ids = {h.id for h in habits}
    completed_today = completed_count(day, habits, entries)

    by_date = completed_by_date(entries)
    week_done = sum(len(by_date.get(d, set()) & ids) for d in days_back(day, 7))

    categories = sorted(category_distribution(habits, entries), key=lambda share: -share.completed)
    series = list(window_series(window_days, habits, entries, today=day))

    return Dashboard(
        total_habits=len(habits),
        completed_today=completed_today,
        completion_rate=round_half_up(percentage(completed_today, len(habits))),
        weekly_completion=round_half_up(percentage(week_done, len(habits) * 7)),
        best_category=categories[0].category if categories else "None",
        perfect_day_streak=perfect_day_streak(habits, entries, today=day),
        total_completions=sum(1 for e in entries if e.completed and e.habit_id in ids),
        average_daily=round(sum(p.rate_percent for p in series) / len(series), 2) if series else 0.0,
        best_streak=best_perfect_run(p.rate_percent for p in series),
    )
