import sqlite3
import aiosqlite
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from algorithms import DateTools
from exceptions import RecordStoreError

# Text range filters on stored timestamps are widened by this much; the exact
# local bounds are applied after parsing.
TIMESTAMP_PADDING = datetime.timedelta(days=1)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    exercise_type TEXT NOT NULL DEFAULT 'weighted',
                    muscle_group TEXT
                );""",
            ["id", "name", "exercise_type", "muscle_group"],
        ),
        "workout_sessions": (
            """CREATE TABLE workout_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    started_at TEXT,
                    completed_at TEXT,
                    final_score INTEGER,
                    duration_seconds INTEGER
                );""",
            [
                "id",
                "user_id",
                "name",
                "started_at",
                "completed_at",
                "final_score",
                "duration_seconds",
            ],
        ),
        "workout_sets": (
            """CREATE TABLE workout_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    set_type TEXT NOT NULL DEFAULT 'working',
                    weight_kg REAL,
                    reps INTEGER NOT NULL,
                    is_bodyweight INTEGER NOT NULL DEFAULT 0,
                    is_pr INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY(workout_session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id)
                );""",
            [
                "id",
                "workout_session_id",
                "exercise_id",
                "set_type",
                "weight_kg",
                "reps",
                "is_bodyweight",
                "is_pr",
            ],
        ),
    }

    _INDEXES = (
        "CREATE INDEX IF NOT EXISTS idx_workout_sessions_user_completed "
        "ON workout_sessions(user_id, completed_at DESC);",
        "CREATE INDEX IF NOT EXISTS idx_workout_sets_session "
        "ON workout_sets(workout_session_id);",
    )

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            for sql in self._INDEXES:
                cursor.execute(sql)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(
                f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
            )
        conn.execute(f"DROP TABLE {table}_old;")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous repository base using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        try:
            async with self._async_connection() as conn:
                cursor = await conn.execute(query, params)
                await conn.commit()
                return cursor.lastrowid
        except (sqlite3.Error, OSError) as e:
            raise RecordStoreError(str(e), query) from e

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        try:
            async with self._async_connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
                return [tuple(r) for r in rows]
        except (sqlite3.Error, OSError) as e:
            raise RecordStoreError(str(e), query) from e

    @staticmethod
    def _placeholders(values: list) -> str:
        return ", ".join("?" for _ in values)

    @staticmethod
    def _range_clause(
        column: str,
        start: datetime.datetime | None,
        end: datetime.datetime | None,
    ) -> Tuple[str, list]:
        clause, params = "", []
        if start is not None:
            clause += f" AND {column} >= ?"
            params.append(DateTools.to_iso(start - TIMESTAMP_PADDING))
        if end is not None:
            clause += f" AND {column} < ?"
            params.append(DateTools.to_iso(end + TIMESTAMP_PADDING))
        return clause, params

    @staticmethod
    def _within(
        ts: str,
        start: datetime.datetime | None,
        end: datetime.datetime | None,
    ) -> bool:
        """Return whether ``ts`` falls in the half-open local range [start, end)."""
        dt = DateTools.parse_timestamp(ts)
        return (start is None or dt >= start) and (end is None or dt < end)


class AsyncWorkoutSessionRepository(AsyncBaseRepository):
    """Read queries over completed workout sessions."""

    async def create(
        self,
        user_id: str,
        name: str = "",
        completed_at: datetime.datetime | None = None,
        started_at: datetime.datetime | None = None,
        final_score: Optional[int] = None,
        duration_seconds: Optional[int] = None,
    ) -> int:
        return await self.execute(
            "INSERT INTO workout_sessions (user_id, name, started_at, completed_at, final_score, duration_seconds) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (
                user_id,
                name,
                DateTools.to_iso(started_at) if started_at else None,
                DateTools.to_iso(completed_at) if completed_at else None,
                final_score,
                duration_seconds,
            ),
        )

    async def complete(self, session_id: int, completed_at: datetime.datetime) -> None:
        await self.execute(
            "UPDATE workout_sessions SET completed_at = ? WHERE id = ?;",
            (DateTools.to_iso(completed_at), session_id),
        )

    async def fetch_detail(
        self, session_id: int
    ) -> Tuple[int, str, str, Optional[str], Optional[str]]:
        rows = await self.fetch_all(
            "SELECT id, user_id, name, started_at, completed_at FROM workout_sessions WHERE id = ?;",
            (session_id,),
        )
        if not rows:
            raise ValueError("workout not found")
        wid, user_id, name, started_at, completed_at = rows[0]
        return (
            wid,
            user_id,
            name,
            DateTools.to_iso(started_at) if started_at else None,
            DateTools.to_iso(completed_at) if completed_at else None,
        )

    async def count_completed(self, user_id: str) -> int:
        rows = await self.fetch_all(
            "SELECT COUNT(*) FROM workout_sessions WHERE user_id = ? AND completed_at IS NOT NULL;",
            (user_id,),
        )
        return int(rows[0][0]) if rows else 0

    async def fetch_completed(
        self,
        user_id: str,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> List[Tuple[int, str, str, Optional[int], Optional[int]]]:
        """Return (id, name, completed_at, final_score, duration_seconds) oldest first.

        ``completed_at`` is returned as naive local ISO text whatever offset it
        was stored with.
        """
        clause, params = self._range_clause("completed_at", start, end)
        rows = await self.fetch_all(
            "SELECT id, name, completed_at, final_score, duration_seconds FROM workout_sessions "
            "WHERE user_id = ? AND completed_at IS NOT NULL" + clause + ";",
            (user_id, *params),
        )
        result = [
            (wid, name, DateTools.to_iso(ts), score, duration)
            for wid, name, ts, score, duration in rows
            if self._within(ts, start, end)
        ]
        result.sort(key=lambda r: r[2])
        return result

    async def fetch_completed_timestamps(
        self, user_id: str, since: datetime.datetime
    ) -> List[str]:
        """Return local completion timestamps at or after ``since``, newest first."""
        clause, params = self._range_clause("completed_at", since, None)
        rows = await self.fetch_all(
            "SELECT completed_at FROM workout_sessions "
            "WHERE user_id = ? AND completed_at IS NOT NULL" + clause + ";",
            (user_id, *params),
        )
        stamps = [DateTools.to_iso(r[0]) for r in rows if self._within(r[0], since, None)]
        return sorted(stamps, reverse=True)

    async def has_completed_between(
        self, user_id: str, start: datetime.datetime, end: datetime.datetime
    ) -> bool:
        clause, params = self._range_clause("completed_at", start, end)
        rows = await self.fetch_all(
            "SELECT completed_at FROM workout_sessions "
            "WHERE user_id = ? AND completed_at IS NOT NULL" + clause + ";",
            (user_id, *params),
        )
        return any(self._within(r[0], start, end) for r in rows)


class AsyncExerciseRepository(AsyncBaseRepository):
    """Asynchronous repository for the exercise catalog."""

    async def add(
        self,
        name: str,
        muscle_group: Optional[str] = None,
        exercise_type: str = "weighted",
    ) -> int:
        return await self.execute(
            "INSERT INTO exercises (name, exercise_type, muscle_group) VALUES (?, ?, ?);",
            (name, exercise_type, muscle_group),
        )

    async def fetch_all_exercises(self) -> List[Tuple[int, str, str, Optional[str]]]:
        return await self.fetch_all(
            "SELECT id, name, exercise_type, muscle_group FROM exercises ORDER BY name;"
        )


class AsyncWorkoutSetRepository(AsyncBaseRepository):
    """Read queries over logged sets joined with their exercise."""

    async def add(
        self,
        session_id: int,
        exercise_id: int,
        reps: int,
        weight_kg: Optional[float],
        set_type: str = "working",
        is_bodyweight: bool = False,
        is_pr: bool = False,
    ) -> int:
        if reps < 0:
            raise ValueError("reps must be non-negative")
        return await self.execute(
            "INSERT INTO workout_sets (workout_session_id, exercise_id, set_type, weight_kg, reps, is_bodyweight, is_pr) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                session_id,
                exercise_id,
                set_type,
                weight_kg,
                reps,
                int(is_bodyweight),
                int(is_pr),
            ),
        )

    async def fetch_for_sessions(self, session_ids: Iterable[int]) -> List[Tuple]:
        """Return sets for ``session_ids``.

        Each row is ``(set_id, session_id, exercise_id, exercise_name,
        exercise_type, muscle_group, set_type, weight_kg, reps, is_bodyweight,
        is_pr)``.
        """
        ids = list(session_ids)
        if not ids:
            return []
        rows = await self.fetch_all(
            "SELECT s.id, s.workout_session_id, s.exercise_id, e.name, e.exercise_type, "
            "e.muscle_group, s.set_type, s.weight_kg, s.reps, s.is_bodyweight, s.is_pr "
            "FROM workout_sets s LEFT JOIN exercises e ON e.id = s.exercise_id "
            f"WHERE s.workout_session_id IN ({self._placeholders(ids)}) "
            "ORDER BY s.workout_session_id, s.id;",
            tuple(ids),
        )
        return [
            (
                sid,
                wid,
                ex_id,
                name or "Unknown",
                ex_type or "weighted",
                muscle,
                set_type,
                weight,
                int(reps),
                bool(bw),
                bool(pr),
            )
            for sid, wid, ex_id, name, ex_type, muscle, set_type, weight, reps, bw, pr in rows
        ]

    async def fetch_history(
        self,
        user_id: str,
        exercise_ids: Iterable[int],
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> List[Tuple[int, Optional[float], int, bool, str]]:
        """Return non-warmup history rows ``(exercise_id, weight_kg, reps, is_bodyweight, completed_at)``."""
        ids = list(exercise_ids)
        if not ids:
            return []
        query = (
            "SELECT s.exercise_id, s.weight_kg, s.reps, s.is_bodyweight, w.completed_at "
            "FROM workout_sets s JOIN workout_sessions w ON w.id = s.workout_session_id "
            "WHERE w.user_id = ? AND w.completed_at IS NOT NULL AND s.set_type != 'warmup' "
            f"AND s.exercise_id IN ({self._placeholders(ids)})"
        )
        clause, params = self._range_clause("w.completed_at", start, end)
        rows = await self.fetch_all(query + clause + ";", (user_id, *ids, *params))
        return [
            (ex_id, weight, int(reps), bool(bw), DateTools.to_iso(ts))
            for ex_id, weight, reps, bw, ts in rows
            if self._within(ts, start, end)
        ]

    async def fetch_set_types(
        self, user_id: str, start: datetime.datetime, end: datetime.datetime
    ) -> List[str]:
        clause, params = self._range_clause("w.completed_at", start, end)
        rows = await self.fetch_all(
            "SELECT s.set_type, w.completed_at FROM workout_sets s "
            "JOIN workout_sessions w ON w.id = s.workout_session_id "
            "WHERE w.user_id = ? AND w.completed_at IS NOT NULL" + clause + ";",
            (user_id, *params),
        )
        return [set_type for set_type, ts in rows if self._within(ts, start, end)]
