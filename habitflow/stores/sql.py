# habitflow/stores/sql.py
"""SQLAlchemy implementation of the store contracts."""
import logging
from contextlib import contextmanager
from datetime import date, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import and_, case, func, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..analytics.aggregation import percentage
from ..analytics.dates import today as _today
from ..errors import ConflictError, StorageError
from ..models import DEFAULT_USER_ID, Habit, HabitEntry, UserSettingsRow, new_id, utcnow
from ..records import CategoryCount, EntryInput, EntryRecord, HabitRecord, HabitStats
from ..schemas.settings import UserSettings
from .base import (EntryStore, HabitStore, SettingsStore, check_update_fields, dedupe_entries,
                   settings_from_dict, validate_habit_fields)

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "A habit with this name already exists"

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def to_habit_record(habit: Habit) -> HabitRecord:
    return HabitRecord(
        id=habit.id,
        name=habit.name,
        description=habit.description,
        category=habit.category,
        color=habit.color,
        is_active=habit.is_active,
        created_at=habit.created_at,
        updated_at=habit.updated_at,
    )


def to_entry_record(entry: HabitEntry) -> EntryRecord:
    return EntryRecord(
        id=entry.id,
        habit_id=entry.habit_id,
        date=entry.date,
        completed=entry.completed,
        completed_at=entry.completed_at,
        created_at=entry.created_at,
    )


class SqlStoreMixin:
    db: Session

    @contextmanager
    def _guard(self, action: str, conflict_message: Optional[str] = None):
        """Roll back and translate database failures raised inside the block."""
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            if conflict_message:
                raise ConflictError(conflict_message) from e
            logger.exception("Integrity error while %s", action)
            raise StorageError(f"Failed {action}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error while %s", action)
            raise StorageError(f"Failed {action}") from e


class SqlHabitStore(SqlStoreMixin, HabitStore):
    def __init__(self, db: Session):
        self.db = db

    def _get(self, habit_id: str) -> Optional[Habit]:
        return self.db.query(Habit).filter(Habit.id == habit_id).first()

    def create(self, name, category, color, description=None, is_active=True) -> HabitRecord:
        validate_habit_fields({
            "name": name, "category": category, "color": color,
            "description": description, "is_active": is_active,
        })
        with self._guard("creating habit", conflict_message=DUPLICATE_NAME):
            habit = Habit(
                name=name,
                description=description,
                category=category,
                color=color,
                is_active=is_active,
            )
            self.db.add(habit)
            self.db.commit()
            self.db.refresh(habit)
        logger.info("Created habit %s (%s)", habit.id, habit.name)
        return to_habit_record(habit)

    def find_all(self, is_active=None, category=None) -> List[HabitRecord]:
        with self._guard("fetching habits"):
            query = self.db.query(Habit)
            if is_active is not None:
                query = query.filter(Habit.is_active == is_active)
            if category:
                query = query.filter(Habit.category == category)
            habits = query.order_by(Habit.created_at.desc()).all()
        return [to_habit_record(h) for h in habits]

    def find_by_id(self, habit_id) -> Optional[HabitRecord]:
        with self._guard("fetching habit"):
            habit = self._get(habit_id)
        return to_habit_record(habit) if habit else None

    def update(self, habit_id, **fields) -> Optional[HabitRecord]:
        check_update_fields(fields)
        with self._guard("updating habit", conflict_message=DUPLICATE_NAME):
            habit = self._get(habit_id)
            if not habit:
                return None
            for key, value in fields.items():
                setattr(habit, key, value)
            self.db.commit()
            self.db.refresh(habit)
        return to_habit_record(habit)

    def soft_delete(self, habit_id) -> Optional[HabitRecord]:
        with self._guard("deleting habit"):
            habit = self._get(habit_id)
            if not habit:
                return None
            habit.is_active = False
            self.db.commit()
            self.db.refresh(habit)
        return to_habit_record(habit)

    def hard_delete(self, habit_id) -> bool:
        with self._guard("destroying habit"):
            habit = self._get(habit_id)
            if not habit:
                return False
            self.db.delete(habit)
            self.db.commit()
        logger.info("Permanently deleted habit %s", habit_id)
        return True

    def with_stats(self, window_days=30, today=None) -> List[HabitStats]:
        since = (today or _today()) - timedelta(days=window_days)
        completed = func.count(case((HabitEntry.completed.is_(True), 1)))
        with self._guard("fetching habits with stats"):
            rows = (
                self.db.query(Habit, func.count(HabitEntry.id), completed)
                .outerjoin(HabitEntry, and_(HabitEntry.habit_id == Habit.id, HabitEntry.date >= since))
                .filter(Habit.is_active.is_(True))
                .group_by(Habit.id)
                .order_by(Habit.created_at.desc())
                .all()
            )
        return [
            HabitStats(
                habit=to_habit_record(habit),
                total_entries=int(total or 0),
                completed_entries=int(done or 0),
                completion_rate=percentage(done or 0, total or 0),
            )
            for habit, total, done in rows
        ]

    def categories(self) -> List[CategoryCount]:
        count = func.count(Habit.id)
        with self._guard("fetching categories"):
            rows = (
                self.db.query(Habit.category, count)
                .filter(Habit.is_active.is_(True))
                .group_by(Habit.category)
                .order_by(count.desc(), Habit.category)
                .all()
            )
        return [CategoryCount(category=category, count=int(n)) for category, n in rows]

    def ping(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database connection failed: %s", e)
            return False


class SqlEntryStore(SqlStoreMixin, EntryStore):
    def __init__(self, db: Session, habits: SqlHabitStore):
        super().__init__(habits)
        self.db = db

    def _upsert_statement(self, rows):
        dialect = self.db.get_bind().dialect.name
        insert = UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StorageError(f"Upserts are not supported on {dialect}")
        stmt = insert(HabitEntry).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=["habit_id", "date"],
            set_={
                "completed": stmt.excluded.completed,
                "completed_at": stmt.excluded.completed_at,
            },
        )

    @staticmethod
    def _row(item: EntryInput) -> dict:
        now = utcnow()
        return {
            "id": new_id(),
            "habit_id": item.habit_id,
            "date": item.date,
            "completed": item.completed,
            "completed_at": now if item.completed else None,
            "created_at": now,
        }

    def upsert(self, habit_id, day, completed) -> EntryRecord:
        self.habits.require(habit_id)
        with self._guard("saving entry"):
            self.db.execute(self._upsert_statement([self._row(EntryInput(habit_id, day, completed))]))
            self.db.commit()
        return self.get(habit_id, day)

    def _write_bulk(self, items: List[EntryInput]) -> List[EntryRecord]:
        # Postgres rejects one statement touching the same key twice
        items = dedupe_entries(items)
        with self._guard("bulk saving entries"):
            self.db.execute(self._upsert_statement([self._row(item) for item in items]))
            self.db.commit()
            rows = (
                self.db.query(HabitEntry)
                .filter(HabitEntry.habit_id.in_({i.habit_id for i in items}))
                .filter(HabitEntry.date.in_({i.date for i in items}))
                .all()
            )
        by_key = {(row.habit_id, row.date): row for row in rows}
        logger.info("Bulk saved %d entries", len(items))
        return [to_entry_record(by_key[(i.habit_id, i.date)]) for i in items]

    def get(self, habit_id, day) -> Optional[EntryRecord]:
        with self._guard("fetching entry"):
            entry = self.db.query(HabitEntry).filter(
                HabitEntry.habit_id == habit_id,
                HabitEntry.date == day,
            ).first()
        return to_entry_record(entry) if entry else None

    def find_by_habit(self, habit_id, start_date=None, end_date=None, completed=None) -> List[EntryRecord]:
        with self._guard("fetching habit entries"):
            query = self.db.query(HabitEntry).filter(HabitEntry.habit_id == habit_id)
            if start_date:
                query = query.filter(HabitEntry.date >= start_date)
            if end_date:
                query = query.filter(HabitEntry.date <= end_date)
            if completed is not None:
                query = query.filter(HabitEntry.completed == completed)
            entries = query.order_by(HabitEntry.date.desc()).all()
        return [to_entry_record(e) for e in entries]

    def find_by_date_range(self, start_date, end_date, habit_ids: Optional[Sequence[str]] = None) -> List[EntryRecord]:
        with self._guard("fetching entries by date range"):
            query = self.db.query(HabitEntry).filter(
                HabitEntry.date >= start_date,
                HabitEntry.date <= end_date,
            )
            if habit_ids:
                query = query.filter(HabitEntry.habit_id.in_(list(habit_ids)))
            entries = query.order_by(HabitEntry.date.desc(), HabitEntry.habit_id).all()
        return [to_entry_record(e) for e in entries]

    def find_all(self) -> List[EntryRecord]:
        with self._guard("fetching entries"):
            entries = self.db.query(HabitEntry).order_by(HabitEntry.date.desc(), HabitEntry.habit_id).all()
        return [to_entry_record(e) for e in entries]

    def delete(self, habit_id, day: date) -> bool:
        with self._guard("deleting entry"):
            deleted = self.db.query(HabitEntry).filter(
                HabitEntry.habit_id == habit_id,
                HabitEntry.date == day,
            ).delete(synchronize_session=False)
            self.db.commit()
        return deleted > 0


class SqlSettingsStore(SqlStoreMixin, SettingsStore):
    def __init__(self, db: Session, user_id: str = DEFAULT_USER_ID):
        self.db = db
        self.user_id = user_id

    def _get(self) -> Optional[UserSettingsRow]:
        return self.db.query(UserSettingsRow).filter(UserSettingsRow.user_id == self.user_id).first()

    def load(self) -> UserSettings:
        with self._guard("fetching settings"):
            row = self._get()
        return settings_from_dict(row.settings if row else None)

    def save(self, settings: UserSettings) -> UserSettings:
        with self._guard("saving settings"):
            row = self._get()
            if row is None:
                row = UserSettingsRow(user_id=self.user_id)
                self.db.add(row)
            row.settings = settings.model_dump(by_alias=True)
            self.db.commit()
        return settings
