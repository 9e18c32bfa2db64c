"""Tests for the bundled habit store."""

from __future__ import annotations

import asyncio
import json

import pytest

from conftest import TODAY, days_back
from habitlens.core.database import (
    DatabaseConnectionError,
    DatabaseCorruptionError,
    DatabaseTimeoutError,
    HabitDatabase,
    HabitNotFoundError,
    with_timeout,
)
from habitlens.core.models import Insight, InsightType, NotificationMessage, NotificationType


class TestLogs:
    async def test_fetch_is_most_recent_first(self, db):
        habit = db.add_habit(1, "Read")
        for day in reversed(days_back(3)):
            await db.upsert_log(habit.id, 1, day, True)

        logs = await db.fetch_logs(habit.id, 1)
        assert [log.date for log in logs] == days_back(3)

    async def test_upsert_replaces_same_day(self, db):
        habit = db.add_habit(1, "Read")
        await db.upsert_log(habit.id, 1, TODAY, False)
        await db.upsert_log(habit.id, 1, TODAY.isoformat(), True, notes="done late")

        logs = await db.fetch_logs(habit.id, 1)
        assert len(logs) == 1
        assert logs[0].completed is True
        assert logs[0].notes == "done late"

    async def test_upsert_for_foreign_habit_fails(self, db):
        habit = db.add_habit(1, "Read")
        with pytest.raises(HabitNotFoundError):
            await db.upsert_log(habit.id, 2, TODAY, True)


class TestDirectory:
    async def test_active_habits_require_contact(self, db):
        db.add_user(1, "+1001")
        db.add_user(2, None)
        db.add_user(3, "")
        reading = db.add_habit(1, "Read")
        db.add_habit(2, "Run")
        db.add_habit(3, "Swim")

        rows = await db.list_active_habits_with_contacts()
        assert [(r.user_id, r.habit_id, r.habit_name, r.contact_address) for r in rows] == [
            (1, reading.id, "Read", "+1001")
        ]

    async def test_get_habit_checks_owner(self, db):
        habit = db.add_habit(1, "Read")
        assert await db.get_habit(habit.id, 1) is habit
        assert await db.get_habit(habit.id, 2) is None

    async def test_user_context_averages_logged_habits(self, db):
        full = db.add_habit(1, "Read")
        half = db.add_habit(1, "Run")
        db.add_habit(1, "Unlogged")
        await db.upsert_log(full.id, 1, TODAY, True)
        await db.upsert_log(half.id, 1, TODAY, True)
        await db.upsert_log(half.id, 1, days_back(2)[1], False)

        context = await db.aggregate_user_context(1)
        assert context.total_habits == 3
        assert context.average_consistency == pytest.approx(75.0)

    async def test_user_context_without_logs(self, db):
        db.add_habit(1, "Read")
        context = await db.aggregate_user_context(1)
        assert context.average_consistency == 0.0


class TestRecords:
    async def test_insights_listed_newest_first(self, db):
        habit = db.add_habit(1, "Read")
        for title in ("first", "second"):
            await db.save_insight(1, habit.id, Insight(InsightType.SUGGESTION, title, "c", 0.5))

        records = await db.list_recent_insights(1)
        assert [r["title"] for r in records] == ["second", "first"]
        assert records[0]["habit_name"] == "Read"

    async def test_notification_ids_are_assigned(self, db):
        first = await db.save_notification(NotificationMessage(NotificationType.REMINDER, "a", 1))
        second = await db.save_notification(NotificationMessage(NotificationType.REMINDER, "b", 1))
        assert second == first + 1


class TestConnections:
    async def test_connections_released_after_concurrent_work(self):
        db = HabitDatabase(max_connections=2)
        habit = db.add_habit(1, "Read")

        await asyncio.gather(*[
            db.upsert_log(habit.id, 1, day, True) for day in days_back(20)
        ])

        assert db.active_connections == 0
        assert len(await db.fetch_logs(habit.id, 1)) == 20

    async def test_connection_released_on_error(self, db):
        with pytest.raises(HabitNotFoundError):
            await db.upsert_log(999, 1, TODAY, True)
        assert db.active_connections == 0

    async def test_connection_released_on_cancellation(self):
        db = HabitDatabase(max_connections=1)

        async def hold():
            async with db.connection():
                await asyncio.sleep(10)

        task = asyncio.create_task(hold())
        await asyncio.sleep(0.01)
        assert db.active_connections == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert db.active_connections == 0

    async def test_exhausted_pool_raises(self):
        db = HabitDatabase(max_connections=1, acquire_timeout=0.05)
        async with db.connection():
            with pytest.raises(DatabaseConnectionError):
                async with db.connection():
                    pass
        assert db.active_connections == 0

    async def test_with_timeout(self):
        with pytest.raises(DatabaseTimeoutError):
            await with_timeout(asyncio.sleep(1), 0.01, "slow query")
        assert await with_timeout(asyncio.sleep(0, result=5), 1.0, "fast query") == 5


class TestPersistence:
    async def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "habits.json"
        db = HabitDatabase(path)
        db.add_user(1, "+1001")
        habit = db.add_habit(1, "Read")
        await db.upsert_log(habit.id, 1, TODAY, True)
        await db.save_notification(NotificationMessage(NotificationType.REMINDER, "hi", 1, habit.id))

        reloaded = HabitDatabase(path)
        rows = await reloaded.list_active_habits_with_contacts()
        assert [(r.habit_name, r.contact_address) for r in rows] == [("Read", "+1001")]
        assert (await reloaded.fetch_logs(habit.id, 1))[0].date == TODAY
        assert reloaded.add_habit(1, "Next").id == habit.id + 1
        assert reloaded.get_stats()["database"]["total_notifications"] == 1

    def test_corrupted_file(self, tmp_path):
        path = tmp_path / "habits.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(DatabaseCorruptionError):
            HabitDatabase(path)

    async def test_saved_file_is_json(self, tmp_path):
        path = tmp_path / "nested" / "habits.json"
        db = HabitDatabase(path)
        db.add_habit(1, "Read")
        await db.save()

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["habits"][0]["name"] == "Read"
        assert db.get_stats()["database"]["save_count"] == 1

    async def test_concurrent_writes_all_reach_disk(self, tmp_path):
        path = tmp_path / "habits.json"
        db = HabitDatabase(path, max_connections=4)
        habit = db.add_habit(1, "Read")

        await asyncio.gather(*[
            db.upsert_log(habit.id, 1, day, True) for day in days_back(28)
        ])

        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data["logs"]) == 28
        assert db.get_stats()["database"]["save_count"] == 28


class TestLogCopies:
    async def test_fetched_logs_do_not_alias_store(self, db):
        habit = db.add_habit(1, "Read")
        written = await db.upsert_log(habit.id, 1, TODAY, True)
        written.completed = False

        fetched = (await db.fetch_logs(habit.id, 1))[0]
        fetched.notes = "edited"

        stored = (await db.fetch_logs(habit.id, 1))[0]
        assert stored.completed is True
        assert stored.notes is None
