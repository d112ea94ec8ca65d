import datetime


class DateTools:
    """Calendar helpers shared by the analytics services."""

    SUPPORTED_WINDOWS = (7, 14, 60)

    @staticmethod
    def parse_timestamp(ts: str | datetime.datetime) -> datetime.datetime:
        """Return ``ts`` as a naive datetime in local time."""
        if isinstance(ts, str):
            text = ts.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            dt = datetime.datetime.fromisoformat(text)
        else:
            dt = ts
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt

    @classmethod
    def to_iso(cls, dt: str | datetime.datetime) -> str:
        """Return ``dt`` as a naive local ``YYYY-MM-DDTHH:MM:SS`` string."""
        return cls.parse_timestamp(dt).isoformat(timespec="seconds")

    @staticmethod
    def day_start(day: datetime.date) -> datetime.datetime:
        return datetime.datetime.combine(day, datetime.time.min)

    @classmethod
    def day_bounds(cls, day: datetime.date) -> tuple[datetime.datetime, datetime.datetime]:
        """Return the half-open range [midnight, next midnight) for ``day``."""
        start = cls.day_start(day)
        return start, start + datetime.timedelta(days=1)

    @classmethod
    def window_bounds(
        cls, days: int, now: datetime.datetime | None = None
    ) -> tuple[datetime.datetime, datetime.datetime]:
        """Return the half-open range covering the ``days`` calendar days ending today."""
        if days not in cls.SUPPORTED_WINDOWS:
            raise ValueError(
                f"unsupported window length {days}; expected one of {cls.SUPPORTED_WINDOWS}"
            )
        today = (now or datetime.datetime.now()).date()
        start = cls.day_start(today - datetime.timedelta(days=days - 1))
        return start, cls.day_start(today + datetime.timedelta(days=1))

    @staticmethod
    def days_between(earlier: datetime.date, later: datetime.date) -> int:
        return (later - earlier).days
