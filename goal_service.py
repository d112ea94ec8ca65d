from __future__ import annotations
import datetime
import logging
from typing import Callable, Dict, List, Tuple

from algorithms import DateTools, WeightConverter
from db import AsyncWorkoutSessionRepository, AsyncWorkoutSetRepository
from exceptions import RecordStoreError
from records_service import PersonalRecordService
from stats_service import StatisticsService, is_working

logger = logging.getLogger(__name__)

TARGET_WORKING_SETS = 15
TARGET_VOLUME_KG = 5000
TARGET_EXERCISE_VARIETY = 5
TARGET_MUSCLE_GROUPS = 3
NEAR_PR_PERCENT = 95

CATEGORY_OFFSETS = {"progression": 0, "load": 1, "consistency": 2}


def default_metrics(worked_out_yesterday: bool = False) -> Dict[str, object]:
    return {
        "has_pr": False,
        "has_near_pr": False,
        "near_pr_percent": 0,
        "has_rep_pr": False,
        "working_sets": 0,
        "total_volume_kg": 0.0,
        "unique_exercises": 0,
        "has_workout": False,
        "worked_out_yesterday": worked_out_yesterday,
        "muscle_groups_hit": 0,
    }


def _goal(goal_id: str, progress: float, complete: bool, done: str, todo: str) -> dict:
    return {
        "id": goal_id,
        "progress": min(float(progress), 1.0),
        "is_complete": bool(complete),
        "description": done if complete else todo,
    }


def _target_goal(goal_id: str, value: float, target: float, done: str, todo: str) -> dict:
    return _goal(goal_id, value / target, value >= target, done, todo)


def _streak_goal(m: dict, unit: str) -> dict:
    yesterday, today = m["worked_out_yesterday"], m["has_workout"]
    progress = 1.0 if yesterday and today else 0.5 if yesterday else 0.0
    todo = "Keep the streak alive!" if yesterday else "Work out 2 days in a row"
    return _goal("streak", progress, yesterday and today, "Streak continued!", todo)


GoalDefinition = Tuple[str, Callable[[dict, str], dict]]

PROGRESSION_GOALS: List[GoalDefinition] = [
    (
        "pr",
        lambda m, unit: _goal(
            "pr", 1 if m["has_pr"] else 0, m["has_pr"], "PR achieved!", "Beat a personal record"
        ),
    ),
    (
        "near-pr",
        lambda m, unit: _goal(
            "near-pr",
            m["near_pr_percent"] / NEAR_PR_PERCENT,
            m["has_near_pr"],
            "Near-PR achieved!",
            f"Get within {NEAR_PR_PERCENT}% of a PR",
        ),
    ),
    (
        "rep-pr",
        lambda m, unit: _goal(
            "rep-pr",
            1 if m["has_rep_pr"] else 0,
            m["has_rep_pr"],
            "Rep PR achieved!",
            "Beat your reps at the same weight",
        ),
    ),
]

LOAD_GOALS: List[GoalDefinition] = [
    (
        "sets",
        lambda m, unit: _target_goal(
            "sets",
            m["working_sets"],
            TARGET_WORKING_SETS,
            "Sets goal complete!",
            f"Complete {TARGET_WORKING_SETS} working sets",
        ),
    ),
    (
        "volume",
        lambda m, unit: _target_goal(
            "volume",
            m["total_volume_kg"],
            TARGET_VOLUME_KG,
            "Volume goal complete!",
            f"Lift {WeightConverter.format_volume(TARGET_VOLUME_KG, unit)} total volume",
        ),
    ),
    (
        "variety",
        lambda m, unit: _target_goal(
            "variety",
            m["unique_exercises"],
            TARGET_EXERCISE_VARIETY,
            "Variety goal complete!",
            f"Complete {TARGET_EXERCISE_VARIETY} different exercises",
        ),
    ),
]

CONSISTENCY_GOALS: List[GoalDefinition] = [
    (
        "workout",
        lambda m, unit: _goal(
            "workout",
            1 if m["has_workout"] else 0,
            m["has_workout"],
            "Workout complete!",
            "Complete a workout today",
        ),
    ),
    ("streak", _streak_goal),
    (
        "balanced",
        lambda m, unit: _target_goal(
            "balanced",
            m["muscle_groups_hit"],
            TARGET_MUSCLE_GROUPS,
            "Balanced training complete!",
            f"Train {TARGET_MUSCLE_GROUPS}+ muscle groups",
        ),
    ),
]


def date_seed(day: datetime.date) -> int:
    return day.year * 10000 + day.month * 100 + day.day


def select_goal(
    goals: List[GoalDefinition],
    metrics: dict,
    category: str,
    today: datetime.date,
    unit: str = "kg",
) -> dict:
    """Pick the goal to show for ``category``.

    A consistency streak in danger wins outright. Otherwise the most
    advanced started-but-unfinished goal is shown, and when none exists
    the choice rotates daily using a seed derived from ``today``.
    """
    evaluated = [(goal_id, evaluate(metrics, unit)) for goal_id, evaluate in goals]

    if (
        category == "consistency"
        and metrics["worked_out_yesterday"]
        and not metrics["has_workout"]
    ):
        for goal_id, goal in evaluated:
            if goal_id == "streak":
                return goal

    in_progress = [g for _id, g in evaluated if g["progress"] > 0 and not g["is_complete"]]
    if in_progress:
        return max(in_progress, key=lambda g: g["progress"])

    index = (date_seed(today) + CATEGORY_OFFSETS[category]) % len(goals)
    return evaluated[index][1]


class DailyGoalService:
    """Evaluate today's metrics and pick one goal per category."""

    def __init__(
        self,
        session_repo: AsyncWorkoutSessionRepository,
        set_repo: AsyncWorkoutSetRepository,
        pr_service: PersonalRecordService,
        weight_unit: str = "kg",
    ) -> None:
        self.sessions = session_repo
        self.stats = StatisticsService(session_repo, set_repo)
        self.records = pr_service
        self.weight_unit = weight_unit

    async def today_metrics(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> Dict[str, object]:
        now = now or datetime.datetime.now()
        today = now.date()
        today_start, today_end = DateTools.day_bounds(today)
        yesterday_start, _ = DateTools.day_bounds(today - datetime.timedelta(days=1))
        try:
            yesterday = await self.sessions.has_completed_between(
                user_id, yesterday_start, today_start
            )
            workouts = await self.stats.fetch_workouts(user_id, today_start, today_end)
        except RecordStoreError as e:
            logger.warning("Daily goal metrics unavailable for user %s: %s", user_id, e)
            return default_metrics()

        if not workouts:
            return default_metrics(yesterday)

        sets = [s for w in workouts for s in w["sets"]]
        working = [s for s in sets if is_working(s)]
        pr_metrics = await self.records.check_pr_metrics(user_id, sets, today)
        metrics = default_metrics(yesterday)
        metrics.update(pr_metrics)
        metrics.update(
            {
                "has_pr": any(s["is_pr"] for s in sets),
                "working_sets": len(working),
                "total_volume_kg": sum(
                    s["weight_kg"] * s["reps"] for s in working if s["weight_kg"]
                ),
                "unique_exercises": len({s["exercise_id"] for s in sets}),
                "has_workout": True,
                "muscle_groups_hit": len(
                    {s["muscle_group"] for s in working if s["muscle_group"]}
                ),
            }
        )
        return metrics

    async def fetch_daily_goals(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> Dict[str, dict]:
        now = now or datetime.datetime.now()
        metrics = await self.today_metrics(user_id, now)
        today = now.date()
        unit = self.weight_unit
        return {
            "progression_goal": select_goal(PROGRESSION_GOALS, metrics, "progression", today, unit),
            "load_goal": select_goal(LOAD_GOALS, metrics, "load", today, unit),
            "consistency_goal": select_goal(
                CONSISTENCY_GOALS, metrics, "consistency", today, unit
            ),
        }
