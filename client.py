import requests
from typing import Optional


class FitnessClient:
    """Simple REST client for the analytics API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()

    def _get(self, path: str, **params):
        resp = self.http.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, **params):
        resp = self.http.post(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    def scores(self, user_id: str, force: bool = False) -> dict:
        return self._get(f"/users/{user_id}/scores", force=str(force).lower())

    def invalidate_scores(self, user_id: str) -> dict:
        return self._post(f"/users/{user_id}/scores/invalidate")

    def daily_goals(self, user_id: str) -> dict:
        return self._get(f"/users/{user_id}/goals")

    def training_frequency(self, user_id: str) -> list:
        return self._get(f"/users/{user_id}/frequency")

    def streak(self, user_id: str) -> dict:
        return self._get(f"/users/{user_id}/streak")

    def window_stats(self, user_id: str, days: int = 14) -> dict:
        return self._get(f"/users/{user_id}/stats/window", days=days)

    def finish_workout(self, user_id: str, workout_id: int) -> dict:
        return self._post(f"/users/{user_id}/workouts/{workout_id}/finish")
