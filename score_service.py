"""Rolling Progression, Load and Consistency scores over a 14-day window.

All three scores are integers in [0, 100]. Users with fewer completed
workouts than the calibration threshold get ``None`` scores so callers can
show "no score yet" instead of a misleading zero.
"""

from __future__ import annotations
import datetime
import logging
from typing import Dict, List

from algorithms import DateTools, MathTools
from db import AsyncWorkoutSessionRepository, AsyncWorkoutSetRepository
from exceptions import RecordStoreError, ScoreComputationError
from stats_service import MUSCLE_GROUPS, StatisticsService, is_working, muscle_days

logger = logging.getLogger(__name__)

WINDOW_DAYS = 14
CALIBRATION_WORKOUTS = 4
ELIGIBLE_MAX_REPS = 12
TOP_SETS_PER_EXERCISE = 2
BASELINE_LOOKBACK_DAYS = 30

PR_WEIGHT = 0.65
NEAR_PR_WEIGHT = 0.35
PR_CAP = 4
NEAR_PR_CAP = 5
NEAR_PR_THRESHOLD = 0.95

ESU_WORKING = 1.0
ESU_WARMUP = 0.5
MAX_INTENSITY_MULTIPLIER = 2.0
DEFAULT_BASELINE_LOAD = 60.0
MAX_LOAD_RATIO = 1.25

FREQ_WEIGHT = 0.45
GAP_WEIGHT = 0.20
COVERAGE_WEIGHT = 0.35
TARGET_WORKOUTS = 10
MIN_GAP_DAYS = 3
MAX_GAP_DAYS = 10
TARGET_MUSCLE_DAYS = 4


def trend_label(score: int) -> str:
    if score >= 60:
        return "Improving"
    if score >= 30:
        return "Maintaining"
    return "Building"


def intensity_label(score: int) -> str:
    if score >= 75:
        return "High"
    if score >= 50:
        return "Moderate"
    if score >= 25:
        return "Light"
    return "Recovery"


def _is_bodyweight(s: dict) -> bool:
    return s["exercise_type"] == "bodyweight" or s["is_bodyweight"]


def _e1rm(s: dict) -> float:
    return MathTools.brzycki_1rm(s["weight_kg"], s["reps"]) if s["weight_kg"] else 0.0


def build_baselines(
    history: List[tuple], lookback_start: datetime.datetime
) -> Dict[str, Dict[int, float]]:
    """Summarise pre-window history rows per exercise.

    ``best_e1rm`` and ``best_reps`` only use the lookback period and sets of
    at most ``ELIGIBLE_MAX_REPS`` reps; ``max_weight`` and ``max_reps`` use
    everything before the window.
    """
    result: Dict[str, Dict[int, float]] = {
        "best_e1rm": {},
        "best_reps": {},
        "max_weight": {},
        "max_reps": {},
    }
    for ex_id, weight, reps, bodyweight, completed_at in history:
        if weight is not None:
            result["max_weight"][ex_id] = max(result["max_weight"].get(ex_id, 0.0), weight)
        result["max_reps"][ex_id] = max(result["max_reps"].get(ex_id, 0), reps)
        if reps > ELIGIBLE_MAX_REPS:
            continue
        if DateTools.parse_timestamp(completed_at) < lookback_start:
            continue
        if bodyweight:
            result["best_reps"][ex_id] = max(result["best_reps"].get(ex_id, 0), reps)
        elif weight:
            est = MathTools.brzycki_1rm(weight, reps)
            result["best_e1rm"][ex_id] = max(result["best_e1rm"].get(ex_id, 0.0), est)
    return result


def progression_component(workouts: List[dict], baselines: dict) -> Dict[str, object]:
    by_exercise: Dict[int, List[dict]] = {}
    bodyweight_ids = set()
    for w in workouts:
        for s in w["sets"]:
            if not is_working(s) or s["reps"] > ELIGIBLE_MAX_REPS:
                continue
            by_exercise.setdefault(s["exercise_id"], []).append(s)
            if _is_bodyweight(s):
                bodyweight_ids.add(s["exercise_id"])

    pr_count = 0
    near_pr_count = 0
    closeness: List[float] = []
    for ex_id, sets in by_exercise.items():
        bodyweight = ex_id in bodyweight_ids
        key = (lambda s: s["reps"]) if bodyweight else _e1rm
        top_sets = sorted(sets, key=key, reverse=True)[:TOP_SETS_PER_EXERCISE]
        for s in top_sets:
            if bodyweight:
                previous_max = baselines["max_reps"].get(ex_id, 0)
                if previous_max > 0 and s["reps"] > previous_max:
                    pr_count += 1
                best = baselines["best_reps"].get(ex_id, 0)
                value = s["reps"]
            else:
                value = _e1rm(s)
                best = baselines["best_e1rm"].get(ex_id, 0.0)
                if best > 0 and value > best:
                    pr_count += 1
                previous_max = baselines["max_weight"].get(ex_id, 0.0)
                if previous_max > 0 and (s["weight_kg"] or 0) > previous_max:
                    pr_count += 1
            if best > 0:
                ratio = value / best
                closeness.append(min(ratio, 1.0))
                if NEAR_PR_THRESHOLD <= ratio <= 1.0:
                    near_pr_count += 1

    score = round(
        100
        * (
            PR_WEIGHT * MathTools.saturate(pr_count, PR_CAP)
            + NEAR_PR_WEIGHT * MathTools.saturate(near_pr_count, NEAR_PR_CAP)
        )
    )
    return {
        "score": score,
        "breakdown": {
            "pr_count": pr_count,
            "near_pr_count": near_pr_count,
            "avg_closeness_percent": round(MathTools.mean(closeness) * 100),
            "trend": trend_label(score),
        },
    }


def baseline_load(set_types: List[str]) -> float:
    return sum(ESU_WARMUP if t == "warmup" else ESU_WORKING for t in set_types)


def load_component(
    workouts: List[dict], baselines: dict, previous_load: float
) -> Dict[str, object]:
    current = 0.0
    working_sets = 0
    exercises = set()
    volume = 0.0
    for w in workouts:
        for s in w["sets"]:
            if not is_working(s):
                current += ESU_WARMUP
                continue
            working_sets += 1
            if s["weight_kg"] is not None:
                volume += s["weight_kg"] * s["reps"]
            multiplier = 1.0
            if s["reps"] <= ELIGIBLE_MAX_REPS:
                exercises.add(s["exercise_id"])
                best = baselines["best_e1rm"].get(s["exercise_id"], 0.0)
                if s["weight_kg"] and best > 0:
                    multiplier = min(_e1rm(s) / best, MAX_INTENSITY_MULTIPLIER)
            current += ESU_WORKING * multiplier

    effective = previous_load if previous_load > 0 else DEFAULT_BASELINE_LOAD
    ratio = current / effective
    score = round(MathTools.clamp(ratio, 0.0, MAX_LOAD_RATIO) / MAX_LOAD_RATIO * 100)
    return {
        "score": score,
        "breakdown": {
            "working_sets": working_sets,
            "load_vs_baseline_percent": round(ratio * 100),
            "exercises_completed": len(exercises),
            "total_volume_kg": round(volume, 2),
            "intensity": intensity_label(score),
        },
    }


def longest_gap_days(workouts: List[dict], window_start: datetime.datetime) -> int:
    if not workouts:
        return WINDOW_DAYS
    if len(workouts) == 1:
        return (workouts[0]["completed_at"] - window_start).days
    stamps = [w["completed_at"] for w in workouts]
    return max((b - a).days for a, b in zip(stamps, stamps[1:]))


def consistency_component(
    workouts: List[dict], window_start: datetime.datetime
) -> Dict[str, object]:
    frequency = MathTools.saturate(len(workouts), TARGET_WORKOUTS)
    gap = longest_gap_days(workouts, window_start)
    gap_penalty = max(0, gap - MIN_GAP_DAYS) / (MAX_GAP_DAYS - MIN_GAP_DAYS)
    gap_score = MathTools.clamp(1 - gap_penalty, 0.0, 1.0)
    coverage = muscle_days(workouts)
    coverage_score = MathTools.mean(
        MathTools.saturate(len(coverage[m]), TARGET_MUSCLE_DAYS) for m in MUSCLE_GROUPS
    )
    score = round(
        100 * (FREQ_WEIGHT * frequency + GAP_WEIGHT * gap_score + COVERAGE_WEIGHT * coverage_score)
    )
    return {
        "score": score,
        "breakdown": {
            "workouts_count": len(workouts),
            "longest_gap_days": gap,
            "muscle_groups_hit": sum(1 for d in coverage.values() if d),
            "coverage_percent": round(coverage_score * 100),
        },
    }


def uncalibrated_result() -> Dict[str, object]:
    return {
        "progression": None,
        "load": None,
        "consistency": None,
        "breakdown": None,
        "is_calibrated": False,
    }


class RollingScoreService:
    """Compute the three published scores for a user."""

    def __init__(
        self,
        session_repo: AsyncWorkoutSessionRepository,
        set_repo: AsyncWorkoutSetRepository,
        calibration_workouts: int = CALIBRATION_WORKOUTS,
    ) -> None:
        self.sessions = session_repo
        self.sets = set_repo
        self.stats = StatisticsService(session_repo, set_repo)
        self.calibration_workouts = calibration_workouts

    async def calculate(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> Dict[str, object]:
        """Return scores, breakdown and calibration state for ``user_id``.

        Raises ``ScoreComputationError`` when the record store cannot be read.
        """
        try:
            return await self._calculate(user_id, now or datetime.datetime.now())
        except RecordStoreError as e:
            logger.exception("Score computation failed for user %s", user_id)
            raise ScoreComputationError(user_id, e.message) from e

    async def _calculate(self, user_id: str, now: datetime.datetime) -> Dict[str, object]:
        total = await self.sessions.count_completed(user_id)
        if total < self.calibration_workouts:
            logger.debug("User %s not calibrated (%d workouts)", user_id, total)
            return uncalibrated_result()

        start, end = DateTools.window_bounds(WINDOW_DAYS, now)
        workouts = await self.stats.fetch_workouts(user_id, start, end)
        exercise_ids = sorted(
            {s["exercise_id"] for w in workouts for s in w["sets"] if is_working(s)}
        )
        history = await self.sets.fetch_history(user_id, exercise_ids, end=start)
        lookback_start = start - datetime.timedelta(days=BASELINE_LOOKBACK_DAYS)
        baselines = build_baselines(history, lookback_start)
        previous_types = await self.sets.fetch_set_types(
            user_id, start - datetime.timedelta(days=WINDOW_DAYS), start
        )

        progression = progression_component(workouts, baselines)
        load = load_component(workouts, baselines, baseline_load(previous_types))
        consistency = consistency_component(workouts, start)
        return {
            "progression": progression["score"],
            "load": load["score"],
            "consistency": consistency["score"],
            "breakdown": {
                "progression": progression["breakdown"],
                "load": load["breakdown"],
                "consistency": consistency["breakdown"],
            },
            "is_calibrated": True,
        }
