import datetime
import logging
from typing import Iterable

from algorithms import DateTools
from db import AsyncWorkoutSessionRepository
from exceptions import RecordStoreError

logger = logging.getLogger(__name__)

STREAK_LOOKBACK_DAYS = 60
MAX_STREAK_GAP_DAYS = 2


def _distinct_days(timestamps: Iterable) -> list[datetime.date]:
    days = {DateTools.parse_timestamp(ts).date() for ts in timestamps}
    return sorted(days, reverse=True)


def compute_streak(timestamps: Iterable, today: datetime.date | None = None) -> int:
    """Return the current streak for ``timestamps``.

    The streak only counts when the latest workout was today or yesterday,
    and it survives a single skipped day between workouts.
    """
    days = _distinct_days(timestamps)
    if not days:
        return 0
    today = today or datetime.date.today()
    if DateTools.days_between(days[0], today) > 1:
        return 0
    streak = 1
    for newer, older in zip(days, days[1:]):
        if DateTools.days_between(older, newer) > MAX_STREAK_GAP_DAYS:
            break
        streak += 1
    return streak


def longest_streak(timestamps: Iterable) -> int:
    """Return the longest run of workout days under the same gap rule."""
    days = sorted(_distinct_days(timestamps))
    if not days:
        return 0
    record = current = 1
    for older, newer in zip(days, days[1:]):
        if DateTools.days_between(older, newer) <= MAX_STREAK_GAP_DAYS:
            current += 1
        else:
            current = 1
        record = max(record, current)
    return record


class GamificationService:
    """Workout streak tracking."""

    def __init__(self, session_repo: AsyncWorkoutSessionRepository) -> None:
        self.sessions = session_repo

    async def recent_timestamps(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> list[str]:
        now = now or datetime.datetime.now()
        since = DateTools.day_start(now.date() - datetime.timedelta(days=STREAK_LOOKBACK_DAYS))
        return await self.sessions.fetch_completed_timestamps(user_id, since)

    async def workout_streak(
        self, user_id: str, now: datetime.datetime | None = None
    ) -> dict[str, int]:
        """Return current and record workout streak lengths."""
        now = now or datetime.datetime.now()
        try:
            stamps = await self.recent_timestamps(user_id, now)
        except RecordStoreError as e:
            logger.warning("Streak unavailable for user %s: %s", user_id, e)
            return {"current": 0, "record": 0}
        return {
            "current": compute_streak(stamps, now.date()),
            "record": longest_streak(stamps),
        }
