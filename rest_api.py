import datetime
import logging
from fastapi import FastAPI, HTTPException

from algorithms import DateTools, MathTools
from config import APP_VERSION, load_settings
from db import (
    AsyncExerciseRepository,
    AsyncWorkoutSessionRepository,
    AsyncWorkoutSetRepository,
)
from gamification_service import GamificationService
from goal_service import DailyGoalService
from health_export import HealthExportService
from records_service import PersonalRecordService
from score_cache import ScoreCache
from score_service import RollingScoreService, uncalibrated_result
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


class FitnessAPI:
    """Provides REST endpoints for the performance analytics engine."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str = "settings.yaml",
        health_sink=None,
    ) -> None:
        self.settings = load_settings(yaml_path)
        self.db_path = db_path or self.settings.db_path
        self.sessions = AsyncWorkoutSessionRepository(self.db_path)
        self.exercises = AsyncExerciseRepository(self.db_path)
        self.sets = AsyncWorkoutSetRepository(self.db_path)
        self.records = PersonalRecordService(
            self.sets, self.settings.include_current_day_in_pr_baseline
        )
        self.statistics = StatisticsService(self.sessions, self.sets)
        self.gamification = GamificationService(self.sessions)
        self.scores = RollingScoreService(
            self.sessions, self.sets, self.settings.calibration_workouts
        )
        self.goals = DailyGoalService(
            self.sessions, self.sets, self.records, self.settings.weight_unit
        )
        self.cache = ScoreCache(
            self.scores.calculate, ttl_seconds=self.settings.cache_ttl_seconds
        )
        self.health_export = HealthExportService(health_sink)
        self.app = FastAPI(
            title="Fitness Analytics API",
            description="Scores, records, streaks and goals for logged workouts",
            version=APP_VERSION,
        )
        self._setup_routes()

    async def finish_workout(self, user_id: str, workout_id: int) -> dict:
        """Mark a workout completed, mark scores stale and export it."""
        _wid, owner, name, started_at, _completed = await self.sessions.fetch_detail(
            workout_id
        )
        if owner != user_id:
            raise ValueError("workout belongs to another user")
        now = datetime.datetime.now().replace(microsecond=0)
        await self.sessions.complete(workout_id, now)
        self.cache.invalidate(user_id)
        logger.info("Workout %s finished for user %s", workout_id, user_id)

        rows = await self.sets.fetch_for_sessions([workout_id])
        working = [r for r in rows if r[6] != "warmup"]
        started = DateTools.parse_timestamp(started_at) if started_at else now
        self.health_export.export_workout(
            started_at=started,
            completed_at=now,
            duration_seconds=int((now - started).total_seconds()),
            workout_name=name,
            exercise_count=len({r[2] for r in rows}),
            total_sets=len(working),
            total_volume_kg=MathTools.volume(
                [(r[8], r[7]) for r in working if r[7] is not None]
            ),
        )
        return {"status": "finished", "timestamp": now.isoformat()}

    def _setup_routes(self) -> None:
        @self.app.get("/health")
        def health():
            return {"status": "ok", "version": APP_VERSION}

        @self.app.get("/users/{user_id}/scores")
        async def get_scores(user_id: str, force: bool = False):
            result = await self.cache.fetch_scores(user_id, force=force)
            state = self.cache.get(user_id)
            if result is None:
                if state["is_loading"] and state["error"] is None:
                    return {**uncalibrated_result(), "is_loading": True}
                raise HTTPException(
                    status_code=503, detail=state["error"] or "scores unavailable"
                )
            return result

        @self.app.post("/users/{user_id}/scores/invalidate")
        def invalidate_scores(user_id: str):
            self.cache.invalidate(user_id)
            return {"status": "invalidated"}

        @self.app.post("/scores/reset")
        def reset_scores():
            self.cache.reset()
            return {"status": "reset"}

        @self.app.get("/users/{user_id}/goals")
        async def get_goals(user_id: str):
            return await self.goals.fetch_daily_goals(user_id)

        @self.app.get("/users/{user_id}/frequency")
        async def get_frequency(user_id: str):
            return await self.statistics.training_frequency(user_id)

        @self.app.get("/users/{user_id}/streak")
        async def get_streak(user_id: str):
            return await self.gamification.workout_streak(user_id)

        @self.app.get("/users/{user_id}/stats/window")
        async def stats_window(user_id: str, days: int = 14):
            try:
                return await self.statistics.window_summary(user_id, days)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @self.app.get("/users/{user_id}/stats/bi_weekly")
        async def stats_bi_weekly(user_id: str):
            return await self.statistics.bi_weekly_stats(user_id)

        @self.app.get("/users/{user_id}/stats/muscle_training")
        async def stats_muscle_training(user_id: str):
            return await self.statistics.muscle_training(user_id)

        @self.app.get("/users/{user_id}/stats/workout_types")
        async def stats_workout_types(user_id: str):
            stats = await self.statistics.workout_type_stats(user_id)
            return {
                "stats": stats,
                "recommended": self.statistics.recommended_workout_type(stats),
            }

        @self.app.post("/users/{user_id}/workouts/{workout_id}/finish")
        async def finish_workout(user_id: str, workout_id: int):
            try:
                return await self.finish_workout(user_id, workout_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.get("/e1rm")
        def e1rm(weight: float, reps: int):
            try:
                est = MathTools.brzycki_1rm(weight, reps)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"weight": weight, "reps": reps, "e1rm": round(est, 2)}


api = FitnessAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
