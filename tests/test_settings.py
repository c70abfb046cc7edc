import unittest
from unittest.mock import MagicMock

from pydantic import ValidationError as SchemaError

from habitflow.schemas.settings import SettingsUpdate, UserSettings
from habitflow.services.settings import merge_settings, reset_settings, update_settings
from habitflow.stores.sql import SqlSettingsStore
from tests.helpers import memory_database
from tests.test_api_habits import ApiTestCase


class MergeSettingsTests(unittest.TestCase):
    def test_only_supplied_fields_change(self):
        old = UserSettings(theme="dark", streak_goal=21)
        merged = merge_settings(old, SettingsUpdate(week_starts_on="sunday"))
        self.assertEqual(merged.theme, "dark")
        self.assertEqual(merged.streak_goal, 21)
        self.assertEqual(merged.week_starts_on, "sunday")
        self.assertEqual(old.week_starts_on, "monday")

    def test_camel_case_input(self):
        update = SettingsUpdate.model_validate({"notificationTime": "07:30", "compactMode": True})
        merged = merge_settings(UserSettings(), update)
        self.assertEqual(merged.notification_time, "07:30")
        self.assertTrue(merged.compact_mode)

    def test_invalid_values_are_rejected(self):
        with self.assertRaises(SchemaError):
            SettingsUpdate(notification_time="25:00")
        with self.assertRaises(SchemaError):
            SettingsUpdate.model_validate({"theme": "neon"})
        with self.assertRaises(SchemaError):
            SettingsUpdate.model_validate({"favouriteColour": "red"})


class UpdateSettingsTests(unittest.TestCase):
    def setUp(self):
        self.engine, Session = memory_database()
        self.db = Session()
        self.store = SqlSettingsStore(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_defaults_when_nothing_stored(self):
        self.assertEqual(self.store.load(), UserSettings())

    def test_change_is_saved_and_reported(self):
        on_change = MagicMock()
        saved = update_settings(self.store, SettingsUpdate(reminder_frequency="weekly"), on_change=on_change)
        self.assertEqual(saved.reminder_frequency, "weekly")
        self.assertEqual(self.store.load().reminder_frequency, "weekly")
        on_change.assert_called_once_with(saved)

    def test_no_op_update_does_not_notify(self):
        on_change = MagicMock()
        update_settings(self.store, SettingsUpdate(theme="system"), on_change=on_change)
        on_change.assert_not_called()

    def test_reset(self):
        update_settings(self.store, SettingsUpdate(theme="dark", daily_goal=80))
        self.assertEqual(reset_settings(self.store), UserSettings())
        self.assertEqual(self.store.load().theme, "system")


class SettingsApiTests(ApiTestCase):
    def test_get_defaults(self):
        data = self.client.get("/api/settings").json()["data"]
        self.assertEqual(data["theme"], "system")
        self.assertEqual(data["weekStartsOn"], "monday")
        self.assertEqual(data["notificationTime"], "09:00")

    def test_put_merges(self):
        response = self.client.put("/api/settings", json={"theme": "dark", "streakGoal": 30})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Settings updated successfully")
        data = self.client.get("/api/settings").json()["data"]
        self.assertEqual((data["theme"], data["streakGoal"], data["dailyGoal"]), ("dark", 30, 100))

    def test_put_rejects_bad_values(self):
        response = self.client.put("/api/settings", json={"notificationTime": "9am"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"][0]["field"], "notificationTime")
        self.assertEqual(self.client.put("/api/settings", json={"unknown": 1}).status_code, 400)

    def test_reset(self):
        self.client.put("/api/settings", json={"theme": "dark"})
        response = self.client.post("/api/settings/reset")
        self.assertEqual(response.json()["data"]["theme"], "system")

    def test_week_start_changes_streak_window(self):
        self.client.put("/api/settings", json={"weekStartsOn": "sunday"})
        self.assertEqual(self.client.get("/api/settings").json()["data"]["weekStartsOn"], "sunday")
        self.assertEqual(self.client.get("/api/analytics/streaks").status_code, 200)


if __name__ == "__main__":
    unittest.main()
