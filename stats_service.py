from __future__ import annotations
import datetime
import logging
from typing import Dict, List, Optional

from algorithms import DateTools, MathTools
from db import AsyncWorkoutSessionRepository, AsyncWorkoutSetRepository
from exceptions import RecordStoreError
from gamification_service import GamificationService, compute_streak

logger = logging.getLogger(__name__)

MUSCLE_GROUPS = (
    "chest",
    "upper back",
    "lower back",
    "shoulders",
    "biceps",
    "triceps",
    "forearms",
    "core",
    "quads",
    "hamstrings",
    "glutes",
    "calves",
)

# Scanned in order: the first group with a matching substring wins.
MUSCLE_GROUP_PATTERNS = (
    ("lower back", ("lower back", "lumbar", "erector")),
    ("upper back", ("upper back", "lats", "latissimus", "trap", "rhomboid")),
    ("upper back", ("back",)),
    ("chest", ("chest", "pec")),
    ("shoulders", ("shoulder", "delt")),
    ("biceps", ("bicep",)),
    ("triceps", ("tricep",)),
    ("forearms", ("forearm", "grip")),
    ("core", ("core", "abs", "abdominal", "oblique")),
    ("quads", ("quad",)),
    ("hamstrings", ("hamstring",)),
    ("glutes", ("glute",)),
    ("calves", ("calf", "calves")),
)

WORKOUT_TYPE_PATTERNS = (
    ("Push", ("push",)),
    ("Pull", ("pull",)),
    ("Legs", ("leg",)),
    ("Full Body", ("full", "morning", "midday", "afternoon", "evening")),
)

DEFAULT_WORKOUT_TYPES = tuple(t for t, _ in WORKOUT_TYPE_PATTERNS)

FREQUENCY_WINDOW_DAYS = 14
TARGET_MUSCLE_SESSIONS = 4


def normalize_muscle_group(label: Optional[str]) -> Optional[str]:
    """Map a free-text muscle label to a canonical group or ``None``."""
    if not label:
        return None
    text = label.strip().lower()
    if text in MUSCLE_GROUPS:
        return text
    for group, patterns in MUSCLE_GROUP_PATTERNS:
        if any(p in text for p in patterns):
            return group
    return None


def normalize_workout_type(name: str) -> str:
    """Return the workout type for a session name, or the name itself."""
    text = (name or "").lower()
    for workout_type, patterns in WORKOUT_TYPE_PATTERNS:
        if any(p in text for p in patterns):
            return workout_type
    return name


def display_name(muscle: str) -> str:
    return muscle.title()


def is_working(s: dict) -> bool:
    return s["set_type"] != "warmup"


def muscle_days(workouts: List[dict]) -> Dict[str, set]:
    """Return the distinct training dates per canonical group, warmups excluded."""
    days: Dict[str, set] = {m: set() for m in MUSCLE_GROUPS}
    for w in workouts:
        day = w["completed_at"].date()
        for s in w["sets"]:
            if is_working(s) and s["muscle_group"] is not None:
                days[s["muscle_group"]].add(day)
    return days


def training_status(days: int) -> str:
    """Return the display colour for a muscle trained on ``days`` distinct days."""
    if days <= 0:
        return "red"
    if days == 1:
        return "yellow"
    return "green"


class StatisticsService:
    """Rolling-window aggregates over completed workouts."""

    def __init__(
        self,
        session_repo: AsyncWorkoutSessionRepository,
        set_repo: AsyncWorkoutSetRepository,
    ) -> None:
        self.sessions = session_repo
        self.sets = set_repo
        self.streaks = GamificationService(session_repo)

    async def fetch_workouts(
        self,
        user_id: str,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> List[dict]:
        """Return completed workouts with their sets, oldest first.

        Raises ``RecordStoreError`` when either query fails.
        """
        rows = await self.sessions.fetch_completed(user_id, start, end)
        workouts = [
            {
                "id": wid,
                "name": name,
                "completed_at": DateTools.parse_timestamp(completed_at),
                "final_score": score,
                "duration_seconds": duration,
                "sets": [],
            }
            for wid, name, completed_at, score, duration in rows
        ]
        by_id = {w["id"]: w for w in workouts}
        set_rows = await self.sets.fetch_for_sessions(by_id)
        for (
            sid,
            wid,
            ex_id,
            ex_name,
            ex_type,
            muscle,
            set_type,
            weight,
            reps,
            bodyweight,
            is_pr,
        ) in set_rows:
            workout = by_id[wid]
            workout["sets"].append(
                {
                    "id": sid,
                    "exercise_id": ex_id,
                    "exercise_name": ex_name,
                    "exercise_type": ex_type,
                    "muscle_group": normalize_muscle_group(muscle),
                    "set_type": set_type,
                    "weight_kg": weight,
                    "reps": reps,
                    "is_bodyweight": bodyweight,
                    "is_pr": is_pr,
                    "completed_at": workout["completed_at"],
                }
            )
        return workouts

    @staticmethod
    def summarize(
        workouts: List[dict], days: int, start: datetime.datetime
    ) -> Dict[str, object]:
        bitmap = [False] * days
        for w in workouts:
            index = DateTools.days_between(start.date(), w["completed_at"].date())
            if 0 <= index < days:
                bitmap[index] = True
        coverage = muscle_days(workouts)
        working = [s for w in workouts for s in w["sets"] if is_working(s)]
        volume = MathTools.volume(
            [(s["reps"], s["weight_kg"]) for s in working if s["weight_kg"] is not None]
        )
        scores = [w["final_score"] for w in workouts if w["final_score"] is not None]
        return {
            "days": days,
            "workout_count": len(workouts),
            "active_days": bitmap,
            "muscle_days": {m: len(d) for m, d in coverage.items()},
            "muscle_groups_hit": sum(1 for d in coverage.values() if d),
            "total_volume": round(volume, 2),
            "working_sets": len(working),
            "unique_exercises": len({s["exercise_id"] for s in working}),
            "avg_score": round(MathTools.mean(scores)) if scores else None,
        }

    async def window_summary(
        self,
        user_id: str,
        days: int = 14,
        now: datetime.datetime | None = None,
    ) -> Dict[str, object]:
        """Return workout, activity, coverage and volume totals for a window."""
        start, end = DateTools.window_bounds(days, now)
        try:
            workouts = await self.fetch_workouts(user_id, start, end)
        except RecordStoreError as e:
            logger.warning("Window summary unavailable for user %s: %s", user_id, e)
            workouts = []
        return self.summarize(workouts, days, start)

    async def training_frequency(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> List[Dict[str, object]]:
        """Return per-muscle session coverage sorted by percentage."""
        start, end = DateTools.window_bounds(FREQUENCY_WINDOW_DAYS, now)
        try:
            workouts = await self.fetch_workouts(user_id, start, end)
        except RecordStoreError as e:
            logger.warning("Training frequency unavailable for user %s: %s", user_id, e)
            workouts = []
        coverage = muscle_days(workouts)
        result = []
        for muscle in MUSCLE_GROUPS:
            count = len(coverage[muscle])
            result.append(
                {
                    "muscle": muscle,
                    "display_name": display_name(muscle),
                    "sessions_count": count,
                    "target_sessions": TARGET_MUSCLE_SESSIONS,
                    "percentage": min(round(count / TARGET_MUSCLE_SESSIONS * 100), 100),
                    "is_complete": count >= TARGET_MUSCLE_SESSIONS,
                }
            )
        result.sort(key=lambda m: m["percentage"], reverse=True)
        return result

    async def muscle_training(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> Dict[str, Dict[str, object]]:
        """Return distinct training days and status per muscle over 7 days."""
        start, end = DateTools.window_bounds(7, now)
        try:
            workouts = await self.fetch_workouts(user_id, start, end)
        except RecordStoreError as e:
            logger.warning("Muscle training unavailable for user %s: %s", user_id, e)
            return {}
        return {
            muscle: {"days": len(d), "status": training_status(len(d))}
            for muscle, d in muscle_days(workouts).items()
            if d
        }

    async def bi_weekly_stats(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> Dict[str, object]:
        now = now or datetime.datetime.now()
        start, end = DateTools.window_bounds(14, now)
        try:
            rows = await self.sessions.fetch_completed(user_id, start, end)
            stamps = await self.streaks.recent_timestamps(user_id, now)
        except RecordStoreError as e:
            logger.warning("Bi-weekly stats unavailable for user %s: %s", user_id, e)
            return {"workouts_count": 0, "active_days": [False] * 14, "streak": 0, "avg_score": 0}
        bitmap = [False] * 14
        scores = []
        for _wid, _name, completed_at, score, _duration in rows:
            index = DateTools.days_between(
                start.date(), DateTools.parse_timestamp(completed_at).date()
            )
            if 0 <= index < 14:
                bitmap[index] = True
            if score is not None:
                scores.append(score)
        return {
            "workouts_count": len(rows),
            "active_days": bitmap,
            "streak": compute_streak(stamps, now.date()),
            "avg_score": round(MathTools.mean(scores)),
        }

    async def workout_type_stats(self, user_id: str) -> Dict[str, Dict[str, object]]:
        """Return completion counts and last completion per workout type."""
        try:
            rows = await self.sessions.fetch_completed(user_id)
        except RecordStoreError as e:
            logger.warning("Workout type stats unavailable for user %s: %s", user_id, e)
            return {}
        stats: Dict[str, Dict[str, object]] = {}
        for _wid, name, completed_at, _score, _duration in rows:
            workout_type = normalize_workout_type(name)
            entry = stats.setdefault(
                workout_type,
                {"workout_type": workout_type, "times_completed": 0, "last_completed_at": None},
            )
            entry["times_completed"] += 1
            entry["last_completed_at"] = completed_at
        return stats

    @staticmethod
    def recommended_workout_type(stats: Dict[str, Dict[str, object]]) -> str:
        """Return the default type never done, else the one done longest ago."""
        for workout_type in DEFAULT_WORKOUT_TYPES:
            if workout_type not in stats:
                return workout_type
        return min(
            DEFAULT_WORKOUT_TYPES,
            key=lambda t: DateTools.parse_timestamp(stats[t]["last_completed_at"]),
        )
