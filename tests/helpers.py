import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from habitflow import models  # noqa: F401
from habitflow.config import AIConfig, Settings
from habitflow.database import Base, build_engine
from habitflow.records import EntryRecord, HabitRecord


def memory_database():
    """Fresh in-memory SQLite engine with every table created, plus a session factory bound to it."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_settings(**overrides) -> Settings:
    values = {"backend": "sql", "reminders_enabled": False, "ai": AIConfig(api_key=None)}
    values.update(overrides)
    return Settings(**values)


def habit(name="Read", category="Learning", color="#3B82F6", is_active=True, habit_id=None) -> HabitRecord:
    return HabitRecord(
        id=habit_id or str(uuid.uuid4()),
        name=name,
        category=category,
        color=color,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
    )


def entry(habit_id, day: date, completed=True) -> EntryRecord:
    return EntryRecord(
        id=str(uuid.uuid4()),
        habit_id=habit_id,
        date=day,
        completed=completed,
        completed_at=datetime.now(timezone.utc) if completed else None,
    )


def days_ago(n: int, today: date = None) -> date:
    return (today or date.today()) - timedelta(days=n)
