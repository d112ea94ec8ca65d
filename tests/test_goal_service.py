import os
import sys
import datetime
import unittest
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    AsyncExerciseRepository,
    AsyncWorkoutSessionRepository,
    AsyncWorkoutSetRepository,
)
from exceptions import RecordStoreError
from goal_service import (
    CONSISTENCY_GOALS,
    LOAD_GOALS,
    PROGRESSION_GOALS,
    DailyGoalService,
    date_seed,
    default_metrics,
    select_goal,
)
from records_service import PersonalRecordService

TODAY = datetime.date(2024, 3, 15)
NOW = datetime.datetime(2024, 3, 15, 20, 0)


class SelectGoalTestCase(unittest.TestCase):
    def test_date_seed(self) -> None:
        self.assertEqual(date_seed(TODAY), 20240315)

    def test_seeded_rotation(self) -> None:
        metrics = default_metrics()
        # 20240315 % 3 == 2
        self.assertEqual(select_goal(PROGRESSION_GOALS, metrics, "progression", TODAY)["id"], "rep-pr")
        self.assertEqual(select_goal(LOAD_GOALS, metrics, "load", TODAY)["id"], "sets")
        self.assertEqual(select_goal(CONSISTENCY_GOALS, metrics, "consistency", TODAY)["id"], "streak")
        tomorrow = TODAY + datetime.timedelta(days=1)
        self.assertEqual(select_goal(LOAD_GOALS, metrics, "load", tomorrow)["id"], "volume")

    def test_deterministic(self) -> None:
        metrics = default_metrics()
        metrics.update({"has_workout": True, "working_sets": 15, "total_volume_kg": 6000})
        first = select_goal(LOAD_GOALS, metrics, "load", TODAY)
        second = select_goal(LOAD_GOALS, dict(metrics), "load", TODAY)
        self.assertEqual(first, second)

    def test_in_progress_goal_wins(self) -> None:
        metrics = default_metrics()
        metrics.update({"working_sets": 12, "total_volume_kg": 1000, "unique_exercises": 5})
        goal = select_goal(LOAD_GOALS, metrics, "load", TODAY)
        self.assertEqual(goal["id"], "sets")
        self.assertAlmostEqual(goal["progress"], 0.8)
        self.assertFalse(goal["is_complete"])
        self.assertEqual(goal["description"], "Complete 15 working sets")

    def test_progress_ties_keep_definition_order(self) -> None:
        metrics = default_metrics()
        metrics.update({"working_sets": 3, "unique_exercises": 1, "total_volume_kg": 1000})
        self.assertEqual(select_goal(LOAD_GOALS, metrics, "load", TODAY)["id"], "sets")

    def test_near_pr_progress(self) -> None:
        metrics = default_metrics()
        metrics.update({"near_pr_percent": 76})
        goal = select_goal(PROGRESSION_GOALS, metrics, "progression", TODAY)
        self.assertEqual(goal["id"], "near-pr")
        self.assertAlmostEqual(goal["progress"], 0.8)

    def test_streak_forced_when_trained_yesterday(self) -> None:
        metrics = default_metrics(worked_out_yesterday=True)
        for day in range(1, 28):
            goal = select_goal(
                CONSISTENCY_GOALS, metrics, "consistency", datetime.date(2024, 2, day)
            )
            self.assertEqual(goal["id"], "streak")
            self.assertEqual(goal["progress"], 0.5)
            self.assertEqual(goal["description"], "Keep the streak alive!")

    def test_volume_description_uses_unit(self) -> None:
        metrics = default_metrics()
        metrics["total_volume_kg"] = 100
        goal = select_goal(LOAD_GOALS, metrics, "load", TODAY, "lb")
        self.assertEqual(goal["id"], "volume")
        self.assertEqual(goal["description"], "Lift 11.0k lb total volume")
        goal = select_goal(LOAD_GOALS, metrics, "load", TODAY)
        self.assertEqual(goal["description"], "Lift 5.0k kg total volume")


async def build_service(db_path: str, unit: str = "kg") -> tuple:
    sessions = AsyncWorkoutSessionRepository(db_path)
    sets = AsyncWorkoutSetRepository(db_path)
    service = DailyGoalService(sessions, sets, PersonalRecordService(sets), unit)
    return service, sessions, sets, AsyncExerciseRepository(db_path)


@pytest.mark.asyncio
async def test_today_metrics(tmp_path):
    service, sessions, sets, exercises = await build_service(str(tmp_path / "workout.db"))
    bench = await exercises.add("Bench Press", "Chest")
    row = await exercises.add("Row", "Upper Back")
    plank = await exercises.add("Plank", None, "bodyweight")

    yesterday = await sessions.create("u1", "Push", completed_at=datetime.datetime(2024, 3, 14, 18))
    await sets.add(yesterday, bench, 1, 100.0)
    today = await sessions.create("u1", "Push", completed_at=datetime.datetime(2024, 3, 15, 9))
    await sets.add(today, bench, 10, 40.0, set_type="warmup")
    await sets.add(today, bench, 1, 97.0)
    await sets.add(today, row, 8, 60.0, is_pr=True)
    await sets.add(today, plank, 1, None, is_bodyweight=True)

    metrics = await service.today_metrics("u1", NOW)
    assert metrics["has_workout"] is True
    assert metrics["worked_out_yesterday"] is True
    assert metrics["has_pr"] is True
    assert metrics["has_near_pr"] is True
    assert metrics["near_pr_percent"] == 97
    assert metrics["working_sets"] == 3
    assert metrics["total_volume_kg"] == 97.0 + 480.0
    assert metrics["unique_exercises"] == 3
    assert metrics["muscle_groups_hit"] == 2

    goals = await service.fetch_daily_goals("u1", NOW)
    assert set(goals) == {"progression_goal", "load_goal", "consistency_goal"}
    assert goals["load_goal"]["id"] == "variety"
    assert goals["consistency_goal"]["id"] == "balanced"
    assert goals == await service.fetch_daily_goals("u1", NOW)


@pytest.mark.asyncio
async def test_no_workout_today(tmp_path):
    service, sessions, _sets, _exercises = await build_service(str(tmp_path / "workout.db"))
    await sessions.create("u1", "Legs", completed_at=datetime.datetime(2024, 3, 14, 7))
    await sessions.create("u1", "Legs")
    metrics = await service.today_metrics("u1", NOW)
    assert metrics == default_metrics(worked_out_yesterday=True)
    goals = await service.fetch_daily_goals("u1", NOW)
    assert goals["consistency_goal"]["id"] == "streak"


@pytest.mark.asyncio
async def test_store_failure_uses_defaults():
    class BrokenSessions:
        async def has_completed_between(self, *args):
            raise RecordStoreError("database is locked")

    service = DailyGoalService(BrokenSessions(), None, PersonalRecordService(None))
    goals = await service.fetch_daily_goals("u1", NOW)
    assert goals["progression_goal"]["id"] == "rep-pr"
    assert goals["progression_goal"]["progress"] == 0.0


if __name__ == "__main__":
    unittest.main()
