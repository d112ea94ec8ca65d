import asyncio
import datetime
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

ACTIVITY_TYPE = "traditionalStrengthTraining"


class HealthExportService:
    """Hand completed workouts to a device health sink without waiting on it."""

    def __init__(self, sink: Optional[Callable[[dict], Awaitable[None]]] = None) -> None:
        self.sink = sink
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def build_payload(
        started_at: datetime.datetime,
        completed_at: datetime.datetime,
        duration_seconds: int,
        workout_name: str,
        exercise_count: int,
        total_sets: int,
        total_volume_kg: float,
    ) -> dict:
        return {
            "start_date": int(started_at.timestamp()),
            "end_date": int(completed_at.timestamp()),
            "duration": duration_seconds,
            "distance": 0,
            "calories": 0,
            "activity_type": ACTIVITY_TYPE,
            "metadata": {
                "workout_name": workout_name,
                "exercise_count": exercise_count,
                "total_sets": total_sets,
                "total_volume_kg": round(total_volume_kg),
            },
        }

    def export_workout(self, **params) -> Optional[asyncio.Task]:
        """Schedule an export on the running loop and return immediately."""
        if self.sink is None:
            return None
        payload = self.build_payload(**params)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, skipping health export")
            return None
        task = loop.create_task(self.sink(payload))
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Health export failed: %s", exc)

    async def drain(self) -> None:
        """Wait for outstanding exports."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
