import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import date
from unittest.mock import patch

from habitflow import cli
from habitflow.errors import ValidationError
from habitflow.migration import (BACKUP_KEY, MIGRATED_KEY, LocalToDatabaseMigration, PartResult, map_habit_ids,
                                 summarize)
from habitflow.schemas.settings import UserSettings
from habitflow.services.backup import export_backup, import_backup
from habitflow.stores import local_stores, sql_stores
from habitflow.stores.local import ENTRIES_KEY, HABITS_KEY, SETTINGS_KEY, LocalStorage
from tests.helpers import habit, memory_database


class TempStorageTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "habitflow.json")
        self.local = LocalStorage(self.path)
        self.engine, Session = memory_database()
        self.db = Session()
        self.sql = sql_stores(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()
        self.tmp.cleanup()


class MigrationHelperTests(unittest.TestCase):
    def test_map_habit_ids_matches_name_and_category(self):
        read = habit("Read", category="Learning")
        mapping = map_habit_ids(
            [{"id": "old-1", "name": "Read", "category": "Learning"},
             {"id": "old-2", "name": "Read", "category": "Other"}],
            [read],
        )
        self.assertEqual(mapping, {"old-1": read.id})

    def test_summarize(self):
        clean = summarize(PartResult(2), PartResult(5))
        self.assertTrue(clean.success)
        self.assertEqual(clean.message, "Successfully migrated 2 habits and 5 entries.")

        partial = summarize(PartResult(1, ["bad habit"]), PartResult(0), verb="imported")
        self.assertFalse(partial.success)
        self.assertEqual(partial.message,
                         "Completed with some errors. Imported 1 habits and 0 entries. 1 errors occurred.")
        self.assertEqual(partial.to_dict()["details"]["habits"], {"success": 1, "errors": ["bad habit"]})


class LocalToDatabaseMigrationTests(TempStorageTestCase):
    def setUp(self):
        super().setUp()
        source = local_stores(self.local)
        self.read = source.habits.create(name="Read", category="Learning", color="#3B82F6")
        self.run = source.habits.create(name="Run", category="Fitness", color="#10B981")
        source.entries.upsert(self.read.id, date(2024, 1, 1), True)
        source.entries.upsert(self.read.id, date(2024, 1, 2), False)
        source.entries.upsert(self.run.id, date(2024, 1, 1), True)
        source.settings.save(UserSettings(theme="dark"))
        self.migration = LocalToDatabaseMigration(self.local, self.sql.habits, self.sql.entries)

    def test_migrate_copies_habits_and_entries(self):
        self.assertTrue(self.migration.needs_migration())
        result = self.migration.migrate()
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.message, "Successfully migrated 2 habits and 3 entries.")

        migrated = {h.name: h for h in self.sql.habits.find_all()}
        self.assertEqual(set(migrated), {"Read", "Run"})
        self.assertNotEqual(migrated["Read"].id, self.read.id)
        read_entries = self.sql.entries.find_by_habit(migrated["Read"].id)
        self.assertEqual([(e.date, e.completed) for e in read_entries],
                         [(date(2024, 1, 2), False), (date(2024, 1, 1), True)])

        self.assertTrue(self.local.get_item(MIGRATED_KEY))
        self.assertEqual(len(self.local.get_item(BACKUP_KEY)["habits"]), 2)
        self.assertFalse(self.migration.needs_migration())

    def test_second_run_is_a_no_op(self):
        self.migration.migrate()
        result = self.migration.migrate()
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Data already migrated.")
        self.assertEqual(len(self.sql.habits.find_all()), 2)

    def test_nothing_to_migrate(self):
        empty = LocalStorage(os.path.join(self.tmp.name, "empty.json"))
        migration = LocalToDatabaseMigration(empty, self.sql.habits, self.sql.entries)
        self.assertFalse(migration.needs_migration())
        self.assertEqual(migration.migrate().message, "No data to migrate.")

    def test_duplicate_names_are_reported(self):
        habits = self.local.get_item(HABITS_KEY)
        self.local.set_item(HABITS_KEY, habits + [dict(habits[0], id="copy-of-read")])
        result = self.migration.migrate()
        self.assertFalse(result.success)
        self.assertEqual(result.habits.success, 2)
        self.assertEqual(len(result.habits.errors), 1)
        self.assertIn("A habit with this name already exists", result.habits.errors[0])

    def test_status_and_restore(self):
        self.migration.migrate()
        self.migration.clear_local_data()
        status = self.migration.status()
        self.assertTrue(status["hasMigrated"])
        self.assertTrue(status["hasBackup"])
        self.assertFalse(status["needsMigration"])
        self.assertIsNotNone(status["migrationDate"])
        self.assertIsNone(self.local.get_item(HABITS_KEY))

        self.assertTrue(self.migration.restore_from_backup())
        self.assertEqual(len(self.local.get_item(HABITS_KEY)), 2)
        self.assertEqual(len(self.local.get_item(ENTRIES_KEY)), 3)
        self.assertEqual(self.local.get_item(SETTINGS_KEY)["theme"], "dark")
        self.assertTrue(self.migration.needs_migration())

    def test_restore_without_backup(self):
        self.assertFalse(self.migration.restore_from_backup())


class BackupTests(TempStorageTestCase):
    def test_export_from_database_import_into_local_file(self):
        read = self.sql.habits.create(name="Read", category="Learning", color="#3B82F6")
        self.sql.entries.upsert(read.id, date(2024, 1, 1), True)
        self.sql.settings.save(UserSettings(streak_goal=14))

        data = json.loads(json.dumps(export_backup(self.sql)))
        self.assertEqual(data["version"], "1.0")
        self.assertEqual(data["habits"][0]["name"], "Read")
        self.assertEqual(data["entries"][0]["habitId"], read.id)
        self.assertEqual(data["settings"]["streakGoal"], 14)

        target = local_stores(self.local)
        result = import_backup(target, data)
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.message, "Successfully imported 1 habits and 1 entries.")
        restored = target.habits.find_all()[0]
        self.assertTrue(target.entries.get(restored.id, date(2024, 1, 1)).completed)
        self.assertEqual(target.settings.load().streak_goal, 14)

    def test_import_rejects_malformed_backup(self):
        with self.assertRaises(ValidationError):
            import_backup(self.sql, {"habits": "nope"})
        with self.assertRaises(ValidationError):
            import_backup(self.sql, ["not", "an", "object"])


class CliTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.source = os.path.join(self.tmp.name, "source.json")
        self.target = os.path.join(self.tmp.name, "target.json")
        self.backup = os.path.join(self.tmp.name, "backup.json")
        stores = local_stores(LocalStorage(self.source))
        read = stores.habits.create(name="Read", category="Learning", color="#3B82F6")
        stores.entries.upsert(read.id, date(2024, 1, 1), True)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def test_export_then_import_between_files(self):
        code, out = self.run_cli("--backend", "local", "--data-file", self.source, "export", "-o", self.backup)
        self.assertEqual(code, 0)
        self.assertIn("Exported 1 habits and 1 entries", out)

        code, out = self.run_cli("--backend", "local", "--data-file", self.target, "import", self.backup)
        self.assertEqual(code, 0, out)
        self.assertIn("Successfully imported 1 habits and 1 entries.", out)
        self.assertEqual(local_stores(LocalStorage(self.target)).habits.find_all()[0].name, "Read")

    def test_import_missing_file(self):
        missing = os.path.join(self.tmp.name, "missing.json")
        code, out = self.run_cli("--backend", "local", "--data-file", self.target, "import", missing)
        self.assertEqual(code, 1)
        self.assertIn("Failed to read backup file", out)

    def test_serve_uses_command_line_backend(self):
        with patch("uvicorn.run") as run:
            code, _ = self.run_cli("--backend", "local", "--data-file", self.source, "serve", "--port", "4000")
        self.assertEqual(code, 0)
        app = run.call_args.args[0]
        self.assertEqual(app.state.settings.backend, "local")
        self.assertEqual(str(app.state.local_storage.path), self.source)
        self.assertEqual(run.call_args.kwargs["port"], 4000)


if __name__ == "__main__":
    unittest.main()
