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
from exceptions import RecordStoreError, ScoreComputationError
from score_service import (
    RollingScoreService,
    consistency_component,
    intensity_label,
    load_component,
    longest_gap_days,
    progression_component,
    trend_label,
)

NOW = datetime.datetime(2024, 3, 15, 20, 0)
WINDOW_START = datetime.datetime(2024, 3, 2)


def make_set(exercise_id, weight, reps, set_type="working", muscle="chest", bodyweight=False):
    return {
        "exercise_id": exercise_id,
        "exercise_type": "bodyweight" if bodyweight else "weighted",
        "is_bodyweight": bodyweight,
        "muscle_group": muscle,
        "set_type": set_type,
        "weight_kg": weight,
        "reps": reps,
        "is_pr": False,
    }


def make_workout(day: int, sets: list) -> dict:
    return {"completed_at": datetime.datetime(2024, 3, day, 18, 0), "final_score": None, "sets": sets}


def empty_baselines() -> dict:
    return {"best_e1rm": {}, "best_reps": {}, "max_weight": {}, "max_reps": {}}


class LabelTestCase(unittest.TestCase):
    def test_trend(self) -> None:
        self.assertEqual(trend_label(60), "Improving")
        self.assertEqual(trend_label(30), "Maintaining")
        self.assertEqual(trend_label(29), "Building")

    def test_intensity(self) -> None:
        self.assertEqual(intensity_label(75), "High")
        self.assertEqual(intensity_label(50), "Moderate")
        self.assertEqual(intensity_label(25), "Light")
        self.assertEqual(intensity_label(0), "Recovery")


class ComponentTestCase(unittest.TestCase):
    def test_progression(self) -> None:
        baselines = empty_baselines()
        baselines["best_e1rm"] = {1: 100.0, 3: 100.0}
        baselines["max_weight"] = {1: 110.0, 3: 110.0}
        workouts = [
            make_workout(
                5,
                [
                    make_set(1, 102.0, 1),
                    make_set(1, 98.0, 1),
                    make_set(1, 60.0, 1, set_type="warmup"),
                    make_set(1, 120.0, 15),
                ],
            ),
            make_workout(8, [make_set(3, 96.0, 1), make_set(3, 50.0, 1)]),
        ]
        result = progression_component(workouts, baselines)
        self.assertEqual(result["score"], 30)
        self.assertEqual(
            result["breakdown"],
            {
                "pr_count": 1,
                "near_pr_count": 2,
                "avg_closeness_percent": 86,
                "trend": "Maintaining",
            },
        )

    def test_progression_bodyweight(self) -> None:
        baselines = empty_baselines()
        baselines["best_reps"] = {2: 10}
        baselines["max_reps"] = {2: 10}
        workouts = [
            make_workout(
                5,
                [
                    make_set(2, None, 11, muscle="upper back", bodyweight=True),
                    make_set(2, None, 10, muscle="upper back", bodyweight=True),
                    make_set(2, None, 6, muscle="upper back", bodyweight=True),
                ],
            )
        ]
        result = progression_component(workouts, baselines)
        self.assertEqual(result["breakdown"]["pr_count"], 1)
        self.assertEqual(result["breakdown"]["near_pr_count"], 1)
        self.assertEqual(result["breakdown"]["avg_closeness_percent"], 100)

    def test_progression_empty(self) -> None:
        result = progression_component([], empty_baselines())
        self.assertEqual(result["score"], 0)
        self.assertEqual(result["breakdown"]["avg_closeness_percent"], 0)

    def test_load_uses_default_baseline(self) -> None:
        sets = [make_set(1, 50.0, 10) for _ in range(10)]
        sets += [make_set(1, 20.0, 10, set_type="warmup") for _ in range(4)]
        result = load_component([make_workout(5, sets)], empty_baselines(), 0.0)
        self.assertEqual(result["score"], 16)
        self.assertEqual(result["breakdown"]["working_sets"], 10)
        self.assertEqual(result["breakdown"]["load_vs_baseline_percent"], 20)
        self.assertEqual(result["breakdown"]["total_volume_kg"], 5000.0)
        self.assertEqual(result["breakdown"]["intensity"], "Recovery")

    def test_load_is_clamped(self) -> None:
        sets = [make_set(1, 50.0, 10) for _ in range(20)]
        result = load_component([make_workout(5, sets)], empty_baselines(), 4.0)
        self.assertEqual(result["score"], 100)
        self.assertEqual(result["breakdown"]["load_vs_baseline_percent"], 500)

    def test_consistency(self) -> None:
        workouts = [
            make_workout(3, [make_set(1, 100.0, 5)]),
            make_workout(6, [make_set(1, 100.0, 5), make_set(1, 40.0, 5, "warmup", "quads")]),
            make_workout(13, [make_set(1, 100.0, 5)]),
        ]
        result = consistency_component(workouts, WINDOW_START)
        self.assertEqual(result["score"], 24)
        self.assertEqual(
            result["breakdown"],
            {
                "workouts_count": 3,
                "longest_gap_days": 7,
                "muscle_groups_hit": 1,
                "coverage_percent": 6,
            },
        )

    def test_longest_gap_edges(self) -> None:
        self.assertEqual(longest_gap_days([], WINDOW_START), 14)
        self.assertEqual(longest_gap_days([make_workout(9, [])], WINDOW_START), 7)


async def seed(db_path: str, completed: list[datetime.datetime]) -> tuple:
    sessions = AsyncWorkoutSessionRepository(db_path)
    sets = AsyncWorkoutSetRepository(db_path)
    bench = await AsyncExerciseRepository(db_path).add("Bench Press", "Chest")
    ids = [await sessions.create("u1", "Push", completed_at=ts) for ts in completed]
    return sessions, sets, bench, ids


@pytest.mark.asyncio
async def test_uncalibrated_user_gets_no_scores(tmp_path):
    sessions, sets, bench, ids = await seed(
        str(tmp_path / "workout.db"),
        [datetime.datetime(2024, 3, d, 18) for d in (10, 12, 14)],
    )
    for wid in ids:
        for _ in range(20):
            await sets.add(wid, bench, 1, 500.0)
    service = RollingScoreService(sessions, sets)
    result = await service.calculate("u1", NOW)
    assert result == {
        "progression": None,
        "load": None,
        "consistency": None,
        "breakdown": None,
        "is_calibrated": False,
    }


@pytest.mark.asyncio
async def test_calibrated_scores(tmp_path):
    sessions, sets, bench, ids = await seed(
        str(tmp_path / "workout.db"),
        [
            datetime.datetime(2024, 2, 10, 18),
            datetime.datetime(2024, 2, 20, 18),
            datetime.datetime(2024, 3, 10, 18),
            datetime.datetime(2024, 3, 14, 18),
        ],
    )
    await sets.add(ids[0], bench, 15, 105.0)
    await sets.add(ids[1], bench, 1, 100.0)
    await sets.add(ids[1], bench, 10, 50.0, set_type="warmup")
    await sets.add(ids[2], bench, 1, 96.0)
    await sets.add(ids[3], bench, 1, 102.0)

    result = await RollingScoreService(sessions, sets).calculate("u1", NOW)
    assert result["is_calibrated"] is True
    assert result["progression"] == 23
    assert result["breakdown"]["progression"] == {
        "pr_count": 1,
        "near_pr_count": 1,
        "avg_closeness_percent": 98,
        "trend": "Building",
    }
    assert result["load"] == 100
    assert result["breakdown"]["load"]["load_vs_baseline_percent"] == 132
    assert result["breakdown"]["load"]["exercises_completed"] == 1
    assert result["breakdown"]["load"]["total_volume_kg"] == 198.0
    assert result["consistency"] == 28
    assert result["breakdown"]["consistency"] == {
        "workouts_count": 2,
        "longest_gap_days": 4,
        "muscle_groups_hit": 1,
        "coverage_percent": 4,
    }


@pytest.mark.asyncio
async def test_calibration_threshold_is_configurable(tmp_path):
    sessions, sets, _bench, _ids = await seed(
        str(tmp_path / "workout.db"), [datetime.datetime(2024, 3, 14, 18)]
    )
    result = await RollingScoreService(sessions, sets, calibration_workouts=1).calculate(
        "u1", NOW
    )
    assert result["is_calibrated"] is True
    assert 0 <= result["consistency"] <= 100


@pytest.mark.asyncio
async def test_store_failure_raises_typed_error():
    class BrokenSessions:
        async def count_completed(self, user_id):
            raise RecordStoreError("unable to open database file")

    service = RollingScoreService(BrokenSessions(), None)
    with pytest.raises(ScoreComputationError) as info:
        await service.calculate("u1", NOW)
    assert info.value.user_id == "u1"
    assert info.value.to_dict()["error"] == "SCORE_COMPUTATION_FAILED"


if __name__ == "__main__":
    unittest.main()
