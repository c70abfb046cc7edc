# habitflow/services/reminders.py
"""Daily or weekly habit reminders driven by APScheduler."""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Sequence

from apscheduler.triggers.cron import CronTrigger

from ..analytics.dates import today as _today
from ..errors import HabitFlowError
from ..records import EntryRecord, HabitRecord, Snapshot
from ..schemas.settings import UserSettings

logger = logging.getLogger(__name__)

JOB_ID = "habit-reminders"

WEEK_START_CRON_DAY = {"monday": "mon", "sunday": "sun"}


@dataclass(frozen=True)
class Reminder:
    habit_id: str
    title: str
    body: str


def pending_habits(habits: Sequence[HabitRecord], entries: Sequence[EntryRecord],
                   day: Optional[date] = None) -> List[HabitRecord]:
    """Active habits with no completed entry on ``day``."""
    day = day or _today()
    done = {e.habit_id for e in entries if e.date == day and e.completed}
    return [h for h in habits if h.is_active and h.id not in done]


def build_reminder(habit: HabitRecord) -> Reminder:
    return Reminder(habit_id=habit.id, title="Habit Reminder", body=f'Time to work on "{habit.name}"!')


def log_notifier(reminder: Reminder) -> None:
    logger.info("%s: %s", reminder.title, reminder.body)


def reminder_trigger(settings: UserSettings) -> Optional[CronTrigger]:
    if not settings.notifications or settings.reminder_frequency == "none":
        return None
    hour, minute = (int(part) for part in settings.notification_time.split(":"))
    if settings.reminder_frequency == "weekly":
        return CronTrigger(day_of_week=WEEK_START_CRON_DAY[settings.week_starts_on], hour=hour, minute=minute)
    return CronTrigger(hour=hour, minute=minute)


class ReminderService:
    def __init__(self, scheduler, settings_loader: Callable[[], UserSettings],
                 snapshot_loader: Callable[[], Snapshot],
                 notifier: Callable[[Reminder], None] = log_notifier):
        self.scheduler = scheduler
        self.settings_loader = settings_loader
        self.snapshot_loader = snapshot_loader
        self.notifier = notifier

    def schedule(self, settings: Optional[UserSettings] = None) -> bool:
        """(Re)register the reminder job for ``settings``; returns False when reminders are off."""
        settings = settings or self.settings_loader()
        trigger = reminder_trigger(settings)
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)
        if trigger is None:
            logger.info("Habit reminders disabled")
            return False
        self.scheduler.add_job(self.send_reminders, trigger, id=JOB_ID, replace_existing=True)
        logger.info("Habit reminders scheduled %s at %s", settings.reminder_frequency, settings.notification_time)
        return True

    def send_reminders(self, day: Optional[date] = None) -> List[Reminder]:
        try:
            snapshot = self.snapshot_loader()
        except HabitFlowError as e:
            logger.error("Failed to load habits for reminders: %s", e.message)
            return []

        reminders = [build_reminder(h) for h in pending_habits(snapshot.habits, snapshot.entries, day)]
        for reminder in reminders:
            self.notifier(reminder)
        if reminders:
            logger.info("Sent %d habit reminders", len(reminders))
        else:
            logger.info("No pending habits to remind")
        return reminders
