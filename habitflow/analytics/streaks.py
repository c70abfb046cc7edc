# habitflow/analytics/streaks.py
"""
Streak calculations over entry snapshots.

Current streaks scan back from today with a bounded lookback, so a habit
completed every day for two months still reports ``lookback`` days. Only the
longest-run helpers look at the whole history.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, Optional, Sequence, Set

from ..records import EntryRecord, HabitRecord
from .dates import today as _today

DEFAULT_LOOKBACK_DAYS = 30


def completed_dates(entries: Iterable[EntryRecord], habit_id: Optional[str] = None) -> Set[date]:
    return {
        e.date for e in entries
        if e.completed and (habit_id is None or e.habit_id == habit_id)
    }


def completed_by_date(entries: Iterable[EntryRecord]) -> Dict[date, Set[str]]:
    """Map each date to the ids of habits completed on it."""
    result: Dict[date, Set[str]] = {}
    for entry in entries:
        if entry.completed:
            result.setdefault(entry.date, set()).add(entry.habit_id)
    return result


def current_streak(habit_id: str, entries: Iterable[EntryRecord], today: Optional[date] = None,
                   lookback: int = DEFAULT_LOOKBACK_DAYS) -> int:
    """Consecutive completed days ending today; a missing entry breaks the run."""
    done = completed_dates(entries, habit_id)
    cursor = today or _today()
    streak = 0
    for _ in range(lookback):
        if cursor not in done:
            break
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def perfect_day_streak(habits: Sequence[HabitRecord], entries: Iterable[EntryRecord],
                       today: Optional[date] = None, lookback: int = DEFAULT_LOOKBACK_DAYS) -> int:
    """Consecutive days, back from today, on which every active habit was completed."""
    active_ids = {h.id for h in habits if h.is_active}
    if not active_ids:
        return 0

    by_date = completed_by_date(entries)
    cursor = today or _today()
    streak = 0
    for _ in range(lookback):
        if not active_ids <= by_date.get(cursor, set()):
            break
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def longest_streak(habit_id: str, entries: Iterable[EntryRecord]) -> int:
    dates = sorted(completed_dates(entries, habit_id))
    if not dates:
        return 0

    longest = 1
    current_run = 1
    for idx in range(1, len(dates)):
        if dates[idx] == dates[idx - 1] + timedelta(days=1):
            current_run += 1
        else:
            longest = max(longest, current_run)
            current_run = 1
    return max(longest, current_run)


def best_perfect_run(rates: Iterable[float]) -> int:
    """Longest run of 100% days in a chronological sequence of daily rates."""
    best = 0
    run = 0
    for rate in rates:
        if rate >= 100:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best
