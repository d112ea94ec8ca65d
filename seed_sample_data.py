import asyncio
import datetime

from db import (
    AsyncExerciseRepository,
    AsyncWorkoutSessionRepository,
    AsyncWorkoutSetRepository,
)

SAMPLE_EXERCISES = [
    ("Bench Press", "Chest", "weighted"),
    ("Barbell Row", "Upper Back", "weighted"),
    ("Back Squat", "Quads", "weighted"),
    ("Romanian Deadlift", "Hamstrings", "weighted"),
    ("Overhead Press", "Shoulders", "weighted"),
    ("Pull Up", "Lats", "bodyweight"),
]

# (days ago, session name, [(exercise index, weight, reps, sets)])
SAMPLE_SESSIONS = [
    (12, "Push Day", [(0, 80.0, 8, 3), (4, 45.0, 8, 3)]),
    (10, "Pull Day", [(1, 70.0, 8, 3), (5, None, 8, 3)]),
    (8, "Leg Day", [(2, 100.0, 6, 3), (3, 90.0, 8, 3)]),
    (5, "Push Day", [(0, 82.5, 8, 3), (4, 47.5, 6, 3)]),
    (3, "Pull Day", [(1, 72.5, 8, 3), (5, None, 10, 3)]),
    (1, "Leg Day", [(2, 105.0, 5, 3), (3, 92.5, 8, 3)]),
]


async def seed(
    db_path: str = "workout.db",
    user_id: str = "demo",
    now: datetime.datetime | None = None,
) -> int:
    """Insert demo workouts for ``user_id`` unless some already exist."""
    sessions = AsyncWorkoutSessionRepository(db_path)
    if await sessions.count_completed(user_id):
        return 0
    exercises = AsyncExerciseRepository(db_path)
    sets = AsyncWorkoutSetRepository(db_path)
    now = (now or datetime.datetime.now()).replace(hour=18, minute=0, second=0, microsecond=0)

    ex_ids = [
        await exercises.add(name, muscle, ex_type)
        for name, muscle, ex_type in SAMPLE_EXERCISES
    ]
    for days_ago, name, entries in SAMPLE_SESSIONS:
        completed = now - datetime.timedelta(days=days_ago)
        wid = await sessions.create(
            user_id,
            name,
            completed_at=completed,
            started_at=completed - datetime.timedelta(hours=1),
            duration_seconds=3600,
        )
        for index, weight, reps, count in entries:
            bodyweight = weight is None
            if not bodyweight:
                await sets.add(wid, ex_ids[index], 10, round(weight * 0.5, 1), set_type="warmup")
            for _ in range(count):
                await sets.add(wid, ex_ids[index], reps, weight, is_bodyweight=bodyweight)
    return len(SAMPLE_SESSIONS)


if __name__ == "__main__":
    inserted = asyncio.run(seed())
    print(f"Inserted {inserted} workouts" if inserted else "Database already contains workouts")
