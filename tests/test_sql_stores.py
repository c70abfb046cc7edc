import unittest
from datetime import date

from habitflow.errors import ConflictError, NotFoundError, ValidationError
from habitflow.records import EntryInput
from habitflow.schemas.settings import UserSettings
from habitflow.stores import sql_stores
from tests.helpers import memory_database


class SqlStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.engine, Session = memory_database()
        self.db = Session()
        self.stores = sql_stores(self.db)
        self.habits = self.stores.habits
        self.entries = self.stores.entries

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def create(self, name="Read", category="Learning", color="#3B82F6", **kwargs):
        return self.habits.create(name=name, category=category, color=color, **kwargs)


class SqlHabitStoreTests(SqlStoreTestCase):
    def test_create_and_find(self):
        read = self.create(description="20 pages")
        self.assertEqual(len(read.id), 36)
        self.assertTrue(read.is_active)
        self.assertIsNotNone(read.created_at)
        self.assertEqual(self.habits.find_by_id(read.id).description, "20 pages")
        self.assertIsNone(self.habits.find_by_id("00000000-0000-4000-8000-000000000000"))

    def test_find_all_filters_newest_first(self):
        first = self.create("Read")
        second = self.create("Run", "Fitness")
        self.habits.soft_delete(first.id)
        self.assertEqual([h.id for h in self.habits.find_all()], [second.id, first.id])
        self.assertEqual([h.id for h in self.habits.find_all(is_active=True)], [second.id])
        self.assertEqual([h.id for h in self.habits.find_all(category="Learning")], [first.id])

    def test_invalid_fields_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create(name="", color="blue")
        fields = {d["field"] for d in ctx.exception.details}
        self.assertEqual(fields, {"name", "color"})

    def test_duplicate_name_is_a_conflict(self):
        self.create("Read")
        with self.assertRaises(ConflictError):
            self.create("Read", "Other")
        self.assertEqual(len(self.habits.find_all()), 1)

    def test_update_changes_only_supplied_fields(self):
        read = self.create(description="keep me")
        updated = self.habits.update(read.id, color="#000000")
        self.assertEqual(updated.color, "#000000")
        self.assertEqual(updated.description, "keep me")
        self.assertEqual(updated.name, "Read")
        self.assertIsNone(self.habits.update("00000000-0000-4000-8000-000000000000", name="x"))

    def test_update_without_fields_is_rejected(self):
        read = self.create()
        with self.assertRaises(ValidationError):
            self.habits.update(read.id)

    def test_update_to_existing_name_is_a_conflict(self):
        self.create("Read")
        run = self.create("Run", "Fitness")
        with self.assertRaises(ConflictError):
            self.habits.update(run.id, name="Read")
        self.assertEqual(self.habits.find_by_id(run.id).name, "Run")

    def test_soft_delete_keeps_entries(self):
        read = self.create()
        self.entries.upsert(read.id, date(2024, 1, 1), True)
        self.habits.soft_delete(read.id)
        self.assertNotIn(read.id, [h.id for h in self.habits.find_all(is_active=True)])
        kept = self.entries.find_by_habit(read.id)
        self.assertEqual(len(kept), 1)
        self.assertTrue(kept[0].completed)

    def test_hard_delete_cascades_to_entries(self):
        read = self.create()
        self.entries.upsert(read.id, date(2024, 1, 1), True)
        self.entries.upsert(read.id, date(2024, 1, 2), False)
        self.assertTrue(self.habits.hard_delete(read.id))
        self.assertEqual(self.entries.find_by_habit(read.id), [])
        self.assertEqual(self.entries.find_all(), [])
        self.assertFalse(self.habits.hard_delete(read.id))

    def test_with_stats_for_habit_without_entries(self):
        self.create()
        stats = self.habits.with_stats()
        self.assertEqual(len(stats), 1)
        self.assertEqual(stats[0].completion_rate, 0)
        self.assertEqual(stats[0].total_entries, 0)

    def test_with_stats_counts_trailing_window_only(self):
        read = self.create()
        today = date(2024, 3, 31)
        self.entries.upsert(read.id, date(2024, 3, 30), True)
        self.entries.upsert(read.id, date(2024, 3, 29), False)
        self.entries.upsert(read.id, date(2024, 3, 28), True)
        self.entries.upsert(read.id, date(2024, 1, 1), True)
        stats = self.habits.with_stats(today=today)[0]
        self.assertEqual(stats.total_entries, 3)
        self.assertEqual(stats.completed_entries, 2)
        self.assertEqual(stats.completion_rate, 66.67)

    def test_categories_ordered_by_count_then_name(self):
        self.create("Run", "Fitness")
        self.create("Lift", "Fitness")
        self.create("Read", "Learning")
        self.create("Walk", "Health")
        archived = self.create("Old", "Zen")
        self.habits.soft_delete(archived.id)
        categories = [(c.category, c.count) for c in self.habits.categories()]
        self.assertEqual(categories, [("Fitness", 2), ("Health", 1), ("Learning", 1)])

    def test_bulk_create_reports_failures_per_item(self):
        created, errors = self.habits.bulk_create([
            {"name": "Read", "category": "Learning", "color": "#3B82F6"},
            {"name": "Read", "category": "Learning", "color": "#3B82F6"},
            {"name": "Run", "category": "Fitness", "color": "#EF4444"},
        ])
        self.assertEqual([h.name for h in created], ["Read", "Run"])
        self.assertEqual(errors, [{"habit": "Read", "error": "A habit with this name already exists"}])

    def test_ping(self):
        self.assertTrue(self.habits.ping())


class SqlEntryStoreTests(SqlStoreTestCase):
    def setUp(self):
        super().setUp()
        self.read = self.create()

    def test_upsert_then_get(self):
        day = date(2024, 1, 10)
        self.entries.upsert(self.read.id, day, True)
        stored = self.entries.get(self.read.id, day)
        self.assertTrue(stored.completed)
        self.assertIsNotNone(stored.completed_at)

    def test_marking_incomplete_clears_completed_at(self):
        day = date(2024, 1, 10)
        self.entries.upsert(self.read.id, day, True)
        stored = self.entries.upsert(self.read.id, day, False)
        self.assertFalse(stored.completed)
        self.assertIsNone(stored.completed_at)

    def test_upsert_keeps_one_entry_per_day(self):
        day = date(2024, 1, 10)
        first = self.entries.upsert(self.read.id, day, True)
        second = self.entries.upsert(self.read.id, day, False)
        self.assertEqual(first.id, second.id)
        stored = [e for e in self.entries.find_by_habit(self.read.id) if e.date == day]
        self.assertEqual(len(stored), 1)
        self.assertFalse(stored[0].completed)

    def test_toggle_twice_restores_state(self):
        day = date(2024, 1, 10)
        self.assertTrue(self.entries.toggle(self.read.id, day).completed)
        self.assertFalse(self.entries.toggle(self.read.id, day).completed)

        self.entries.upsert(self.read.id, day, True)
        self.entries.toggle(self.read.id, day)
        self.assertTrue(self.entries.toggle(self.read.id, day).completed)

    def test_unknown_habit_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.entries.upsert("00000000-0000-4000-8000-000000000000", date(2024, 1, 1), True)
        with self.assertRaises(NotFoundError):
            self.entries.toggle("00000000-0000-4000-8000-000000000000", date(2024, 1, 1))

    def test_bulk_upsert_last_item_wins(self):
        saved = self.entries.bulk_upsert([
            EntryInput(self.read.id, date(2024, 1, 1), True),
            EntryInput(self.read.id, date(2024, 1, 1), False),
        ])
        self.assertEqual(len(saved), 1)
        stored = self.entries.find_by_habit(self.read.id)
        self.assertEqual(len(stored), 1)
        self.assertFalse(stored[0].completed)

    def test_bulk_upsert_updates_existing_rows(self):
        self.entries.upsert(self.read.id, date(2024, 1, 1), False)
        saved = self.entries.bulk_upsert([
            EntryInput(self.read.id, date(2024, 1, 1), True),
            EntryInput(self.read.id, date(2024, 1, 2), True),
        ])
        self.assertEqual([e.date for e in saved], [date(2024, 1, 1), date(2024, 1, 2)])
        self.assertTrue(all(e.completed for e in saved))
        self.assertEqual(len(self.entries.find_all()), 2)

    def test_bulk_upsert_with_missing_habit_writes_nothing(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.entries.bulk_upsert([
                EntryInput(self.read.id, date(2024, 1, 1), True),
                EntryInput("missing-habit", date(2024, 1, 1), True),
            ])
        self.assertIn("missing-habit", ctx.exception.message)
        self.assertEqual(self.entries.find_all(), [])

    def test_find_by_habit_filters_and_orders(self):
        for day, done in ((1, True), (2, False), (3, True), (4, True)):
            self.entries.upsert(self.read.id, date(2024, 1, day), done)
        dates = [e.date.day for e in self.entries.find_by_habit(self.read.id)]
        self.assertEqual(dates, [4, 3, 2, 1])
        ranged = self.entries.find_by_habit(self.read.id, start_date=date(2024, 1, 2),
                                            end_date=date(2024, 1, 3))
        self.assertEqual([e.date.day for e in ranged], [3, 2])
        done = self.entries.find_by_habit(self.read.id, completed=True)
        self.assertEqual([e.date.day for e in done], [4, 3, 1])

    def test_find_by_date_range_with_habit_filter(self):
        run = self.create("Run", "Fitness")
        self.entries.upsert(self.read.id, date(2024, 1, 1), True)
        self.entries.upsert(run.id, date(2024, 1, 1), True)
        self.entries.upsert(run.id, date(2024, 2, 1), True)
        january = self.entries.find_by_date_range(date(2024, 1, 1), date(2024, 1, 31))
        self.assertEqual(len(january), 2)
        only_run = self.entries.find_by_date_range(date(2024, 1, 1), date(2024, 12, 31), habit_ids=[run.id])
        self.assertEqual({e.habit_id for e in only_run}, {run.id})

    def test_delete(self):
        self.entries.upsert(self.read.id, date(2024, 1, 1), True)
        self.assertTrue(self.entries.delete(self.read.id, date(2024, 1, 1)))
        self.assertFalse(self.entries.delete(self.read.id, date(2024, 1, 1)))

    def test_completion_stats(self):
        today = date(2024, 3, 31)
        self.entries.upsert(self.read.id, date(2024, 3, 30), True)
        self.entries.upsert(self.read.id, date(2024, 3, 25), True)
        self.entries.upsert(self.read.id, date(2024, 3, 20), False)
        stats = self.entries.completion_stats(self.read.id, days=30, today=today)
        self.assertEqual(stats.total_days, 3)
        self.assertEqual(stats.completed_days, 2)
        self.assertEqual(stats.completion_rate, 66.67)
        self.assertEqual(stats.last_completed_date, date(2024, 3, 30))

        empty = self.entries.completion_stats(self.create("Run", "Fitness").id, today=today)
        self.assertEqual(empty.completion_rate, 0)
        self.assertIsNone(empty.last_completed_date)

    def test_export_joins_habit_name(self):
        run = self.create("Run", "Fitness")
        self.entries.upsert(self.read.id, date(2024, 1, 1), True)
        self.entries.upsert(run.id, date(2024, 1, 1), True)
        self.entries.upsert(run.id, date(2024, 1, 2), False)
        rows = self.entries.export()
        self.assertEqual([(r.entry.date.day, r.habit_name) for r in rows], [(2, "Run"), (1, "Read"), (1, "Run")])
        self.assertEqual(rows[0].habit_category, "Fitness")
        self.assertEqual(len(self.entries.export([self.read.id])), 1)


class SqlSettingsStoreTests(SqlStoreTestCase):
    def test_defaults_until_saved(self):
        self.assertEqual(self.stores.settings.load(), UserSettings())

    def test_save_and_load(self):
        self.stores.settings.save(UserSettings(theme="dark", streak_goal=21))
        loaded = self.stores.settings.load()
        self.assertEqual(loaded.theme, "dark")
        self.assertEqual(loaded.streak_goal, 21)
        self.stores.settings.save(loaded.model_copy(update={"theme": "light"}))
        self.assertEqual(self.stores.settings.load().theme, "light")


if __name__ == "__main__":
    unittest.main()
