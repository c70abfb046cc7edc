import unittest
from datetime import date, timedelta

from tests.test_api_habits import MISSING_ID, ApiTestCase


class EntryApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.habit = self.create_habit()
        self.habit_id = self.habit["id"]

    def save(self, day, completed=True, habit_id=None):
        return self.client.post("/api/entries", json={
            "habitId": habit_id or self.habit_id, "date": day, "completed": completed,
        })

    def test_save_and_fetch_entry(self):
        response = self.save("2024-01-10")
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["habitId"], self.habit_id)
        self.assertEqual(data["date"], "2024-01-10")
        self.assertTrue(data["completed"])
        self.assertIsNotNone(data["completedAt"])

        fetched = self.client.get(f"/api/entries/habits/{self.habit_id}/2024-01-10")
        self.assertEqual(fetched.json()["data"]["id"], data["id"])
        missing = self.client.get(f"/api/entries/habits/{self.habit_id}/2024-01-11")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["message"], "Entry not found for this habit and date")

    def test_save_for_unknown_habit(self):
        response = self.save("2024-01-10", habit_id=MISSING_ID)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Habit not found")

    def test_bad_date_and_habit_id_are_validation_errors(self):
        self.assertEqual(self.save("10/01/2024").status_code, 400)
        self.assertEqual(self.save("2024-01-10", habit_id="abc").status_code, 400)
        response = self.client.post("/api/entries", json={"habitId": self.habit_id, "date": "2024-01-10"})
        self.assertEqual(response.status_code, 400)

    def test_put_updates_and_keeps_single_entry(self):
        self.save("2024-01-10", True)
        response = self.client.put(f"/api/entries/habits/{self.habit_id}/2024-01-10", json={"completed": False})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["data"]["completed"])
        self.assertIsNone(response.json()["data"]["completedAt"])
        listed = self.client.get("/api/entries", params={"habitId": self.habit_id}).json()
        self.assertEqual(listed["count"], 1)

    def test_toggle_twice(self):
        payload = {"habitId": self.habit_id, "date": "2024-01-10"}
        self.assertTrue(self.client.post("/api/entries/toggle", json=payload).json()["data"]["completed"])
        self.assertFalse(self.client.post("/api/entries/toggle", json=payload).json()["data"]["completed"])

    def test_delete(self):
        self.save("2024-01-10")
        response = self.client.delete(f"/api/entries/habits/{self.habit_id}/2024-01-10")
        self.assertEqual(response.json(), {"success": True, "message": "Entry deleted successfully"})
        response = self.client.delete(f"/api/entries/habits/{self.habit_id}/2024-01-10")
        self.assertEqual(response.status_code, 404)

    def test_list_requires_habit_or_range(self):
        response = self.client.get("/api/entries", params={"startDate": "2024-01-01"})
        self.assertEqual(response.status_code, 400)

        self.save("2024-01-10")
        self.save("2024-02-10")
        ranged = self.client.get("/api/entries", params={"startDate": "2024-01-01", "endDate": "2024-01-31"})
        self.assertEqual([e["date"] for e in ranged.json()["data"]], ["2024-01-10"])

    def test_habit_entries_include_habit(self):
        self.save("2024-01-10")
        self.save("2024-01-11", completed=False)
        body = self.client.get(f"/api/entries/habits/{self.habit_id}", params={"completed": "true"}).json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["habit"]["name"], "Read")
        self.assertEqual(self.client.get(f"/api/entries/habits/{MISSING_ID}").status_code, 404)

    def test_stats(self):
        today = date.today()
        for offset in range(3):
            self.save((today - timedelta(days=offset)).isoformat())
        self.save((today - timedelta(days=3)).isoformat(), completed=False)
        data = self.client.get(f"/api/entries/habits/{self.habit_id}/stats", params={"days": 30}).json()["data"]
        self.assertEqual(data["totalDays"], 4)
        self.assertEqual(data["completedDays"], 3)
        self.assertEqual(data["completionRate"], 75.0)
        self.assertEqual(data["currentStreak"], 3)
        self.assertEqual(data["lastCompletedDate"], today.isoformat())

        bad = self.client.get(f"/api/entries/habits/{self.habit_id}/stats", params={"days": 0})
        self.assertEqual(bad.status_code, 400)

    def test_bulk_last_item_wins(self):
        response = self.client.post("/api/entries/bulk", json={"entries": [
            {"habitId": self.habit_id, "date": "2024-01-01", "completed": True},
            {"habitId": self.habit_id, "date": "2024-01-01", "completed": False},
            {"habitId": self.habit_id, "date": "2024-01-02", "completed": True},
        ]})
        self.assertEqual(response.status_code, 201)
        stored = self.client.get("/api/entries", params={"habitId": self.habit_id}).json()["data"]
        self.assertEqual([(e["date"], e["completed"]) for e in stored], [("2024-01-02", True), ("2024-01-01", False)])

    def test_bulk_with_unknown_habit(self):
        response = self.client.post("/api/entries/bulk", json={"entries": [
            {"habitId": self.habit_id, "date": "2024-01-01", "completed": True},
            {"habitId": MISSING_ID, "date": "2024-01-01", "completed": True},
        ]})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], f"Habits not found: {MISSING_ID}")
        self.assertEqual(self.client.get("/api/entries", params={"habitId": self.habit_id}).json()["count"], 0)

    def test_export(self):
        run = self.create_habit("Run", "Fitness")
        self.save("2024-01-01")
        self.save("2024-01-02", habit_id=run["id"])
        body = self.client.get("/api/entries/export").json()
        self.assertEqual(body["count"], 2)
        self.assertEqual(body["data"][0]["habitName"], "Run")
        self.assertEqual(body["data"][0]["habitCategory"], "Fitness")
        self.assertIn("exportedAt", body)

        only_read = self.client.get("/api/entries/export", params={"habitIds": self.habit_id}).json()
        self.assertEqual(only_read["count"], 1)
        bad = self.client.get("/api/entries/export", params={"habitIds": "nope"})
        self.assertEqual(bad.status_code, 400)


class AnalyticsApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.read = self.create_habit("Read", "Learning")
        self.run = self.create_habit("Run", "Fitness")
        self.today = date.today()
        for habit in (self.read, self.run):
            self.client.post("/api/entries", json={
                "habitId": habit["id"], "date": self.today.isoformat(), "completed": True,
            })
        self.client.post("/api/entries", json={
            "habitId": self.read["id"], "date": (self.today - timedelta(days=1)).isoformat(), "completed": True,
        })

    def test_dashboard(self):
        data = self.client.get("/api/analytics/dashboard").json()["data"]
        self.assertEqual(data["totalHabits"], 2)
        self.assertEqual(data["completedToday"], 2)
        self.assertEqual(data["completionRate"], 100)
        self.assertEqual(data["perfectDayStreak"], 1)
        self.assertEqual(data["bestCategory"], "Learning")

    def test_series_and_weekly(self):
        series = self.client.get("/api/analytics/series", params={"days": 7}).json()
        self.assertEqual(series["count"], 7)
        self.assertEqual(series["data"][-1]["date"], self.today.isoformat())
        self.assertEqual(series["data"][-1]["ratePercent"], 100.0)
        self.assertEqual(series["data"][-2]["ratePercent"], 50.0)

        weekly = self.client.get("/api/analytics/weekly", params={"weeks": 2}).json()["data"]
        self.assertEqual([w["label"] for w in weekly], ["Week 1", "Week 2"])
        self.assertEqual(weekly[1]["completion"], 21.43)

    def test_per_habit_and_categories(self):
        stats = {s["name"]: s for s in self.client.get("/api/analytics/habits").json()["data"]}
        self.assertEqual(stats["Read"]["currentStreak"], 2)
        self.assertEqual(stats["Run"]["completionRate"], 100.0)
        shares = {s["category"]: s["completed"] for s in self.client.get("/api/analytics/categories").json()["data"]}
        self.assertEqual(shares, {"Learning": 2, "Fitness": 1})

    def test_calendar(self):
        params = {"year": self.today.year, "month": self.today.month}
        data = self.client.get("/api/analytics/calendar", params=params).json()["data"]
        today_status = next(d for d in data["days"] if d["date"] == self.today.isoformat())
        self.assertEqual(today_status["status"], "perfect")
        self.assertGreaterEqual(data["summary"]["perfectDays"], 1)

        filtered = self.client.get("/api/analytics/calendar", params={**params, "habitId": self.run["id"]}).json()
        run_today = next(d for d in filtered["data"]["days"] if d["date"] == self.today.isoformat())
        self.assertEqual(run_today["status"], "completed")
        self.assertEqual(self.client.get("/api/analytics/calendar", params={"month": 13}).status_code, 400)

    def test_streaks(self):
        data = self.client.get("/api/analytics/streaks").json()["data"]
        self.assertEqual(data["perfectDayStreak"], 1)
        by_name = {h["name"]: h for h in data["habits"]}
        self.assertEqual(by_name["Read"]["currentStreak"], 2)
        self.assertEqual(by_name["Run"]["longestStreak"], 1)


if __name__ == "__main__":
    unittest.main()
