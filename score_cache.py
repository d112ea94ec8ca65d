from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from exceptions import ScoreComputationError

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    result: Optional[dict] = None
    last_calculated: Optional[float] = None
    is_loading: bool = False
    error: Optional[str] = None
    generation: int = 0


class ScoreCache:
    """Per-user memo of rolling score results.

    ``calculator`` is an async callable taking a user id. At most one
    computation runs per user; calls arriving while it is outstanding
    return the current value without waiting.
    """

    def __init__(
        self,
        calculator: Callable[[str], Awaitable[dict]],
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.calculator = calculator
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _entry(self, user_id: str) -> CacheEntry:
        return self._entries.setdefault(user_id, CacheEntry())

    def is_fresh(self, user_id: str) -> bool:
        entry = self._entries.get(user_id)
        if entry is None or entry.last_calculated is None:
            return False
        return self.clock() - entry.last_calculated < self.ttl_seconds

    async def fetch_scores(self, user_id: str, force: bool = False) -> Optional[dict]:
        entry = self._entry(user_id)
        if not force and entry.result is not None and self.is_fresh(user_id):
            logger.debug("Score cache hit for user %s", user_id)
            return entry.result
        if entry.is_loading:
            logger.debug("Score fetch already running for user %s", user_id)
            return entry.result

        entry.is_loading = True
        entry.error = None
        generation = entry.generation
        try:
            result = await self.calculator(user_id)
        except ScoreComputationError as e:
            logger.error("Keeping previous scores for user %s: %s", user_id, e)
            entry.error = e.message
            return entry.result
        finally:
            entry.is_loading = False
        entry.result = result
        if entry.generation == generation:
            entry.last_calculated = self.clock()
        else:
            # invalidated while computing; the next read recomputes
            logger.debug("Scores for user %s went stale while computing", user_id)
        return result

    def invalidate(self, user_id: str | None = None) -> None:
        """Mark cached scores stale without discarding them."""
        targets = [user_id] if user_id is not None else list(self._entries)
        for uid in targets:
            entry = self._entries.get(uid)
            if entry is not None:
                entry.last_calculated = None
                entry.generation += 1

    def reset(self) -> None:
        self._entries.clear()

    def get(self, user_id: str) -> Dict[str, object]:
        entry = self._entries.get(user_id, CacheEntry())
        return {
            "result": entry.result,
            "last_calculated": entry.last_calculated,
            "is_loading": entry.is_loading,
            "error": entry.error,
        }
