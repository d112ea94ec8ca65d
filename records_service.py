from __future__ import annotations
import datetime
import logging
from typing import Iterable, Dict

from algorithms import MathTools, DateTools
from db import AsyncWorkoutSetRepository
from exceptions import RecordStoreError

logger = logging.getLogger(__name__)

NEAR_PR_THRESHOLD = 0.95


class PersonalRecordService:
    """Compare a day's sets against historical bests per exercise."""

    def __init__(
        self,
        set_repo: AsyncWorkoutSetRepository,
        include_current_day: bool = False,
    ) -> None:
        self.sets = set_repo
        self.include_current_day = include_current_day

    @staticmethod
    def empty_result() -> Dict[str, object]:
        return {"has_near_pr": False, "near_pr_percent": 0, "has_rep_pr": False}

    @staticmethod
    def _eligible(weight: float | None, reps: int) -> bool:
        return bool(weight) and reps <= MathTools.MAX_ESTIMATE_REPS

    async def check_pr_metrics(
        self,
        user_id: str,
        today_sets: Iterable[dict],
        today: datetime.date | None = None,
    ) -> Dict[str, object]:
        """Return near-PR and rep-PR flags for ``today_sets``.

        Each set is a mapping with ``exercise_id``, ``set_type``,
        ``weight_kg`` and ``reps``. The historical baseline stops at the
        start of ``today`` unless ``include_current_day`` is set.
        """
        working = [s for s in today_sets if s["set_type"] != "warmup"]
        exercise_ids = sorted({s["exercise_id"] for s in working})
        if not exercise_ids:
            return self.empty_result()

        today = today or datetime.date.today()
        day_start, day_end = DateTools.day_bounds(today)
        end = day_end if self.include_current_day else day_start
        try:
            history = await self.sets.fetch_history(user_id, exercise_ids, end=end)
        except RecordStoreError as e:
            logger.warning("PR history unavailable for user %s: %s", user_id, e)
            return self.empty_result()

        best_e1rm: dict[int, float] = {}
        best_reps: dict[int, dict[float, int]] = {}
        for ex_id, weight, reps, _bw, _ts in history:
            if not self._eligible(weight, reps):
                continue
            est = MathTools.brzycki_1rm(weight, reps)
            if est > best_e1rm.get(ex_id, 0.0):
                best_e1rm[ex_id] = est
            at_weight = best_reps.setdefault(ex_id, {})
            if reps > at_weight.get(weight, 0):
                at_weight[weight] = reps

        closeness = 0.0
        has_rep_pr = False
        for s in working:
            weight, reps = s["weight_kg"], int(s["reps"])
            if not self._eligible(weight, reps):
                continue
            best = best_e1rm.get(s["exercise_id"], 0.0)
            if best > 0:
                ratio = MathTools.brzycki_1rm(weight, reps) / best
                closeness = max(closeness, min(ratio, 1.0))
            previous = best_reps.get(s["exercise_id"], {}).get(weight, 0)
            if previous and reps > previous:
                has_rep_pr = True

        return {
            "has_near_pr": closeness >= NEAR_PR_THRESHOLD,
            "near_pr_percent": int(round(closeness * 100)),
            "has_rep_pr": has_rep_pr,
        }
