from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from workout_engine.models import Exercise, PerformanceLogEntry

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def _catalog() -> dict[str, Exercise]:
    exercises = [
        Exercise(
            exercise_id="back_squat",
            name="Barbell Back Squat",
            movement_pattern="squat",
            primary_muscles=frozenset({"quadriceps", "glutes"}),
            tempo_category="grind",
            density_score=9.5,
            equipment_needed=("Barbell", "Squat Rack"),
        ),
        Exercise(
            exercise_id="deadlift",
            name="Conventional Deadlift",
            movement_pattern="hinge",
            primary_muscles=frozenset({"hamstrings", "glutes", "back"}),
            tempo_category="grind",
            density_score=9.5,
            equipment_needed=("Barbell",),
        ),
        Exercise(
            exercise_id="bench_press",
            name="Barbell Bench Press",
            movement_pattern="push",
            primary_muscles=frozenset({"chest", "triceps", "shoulders"}),
            tempo_category="grind",
            density_score=9.0,
            equipment_needed=("Barbell", "Flat Bench"),
        ),
        Exercise(
            exercise_id="pull_up",
            name="Pull Up",
            movement_pattern="pull",
            primary_muscles=frozenset({"lats", "biceps"}),
            density_score=8.0,
            equipment_needed=("Pull Up Bar",),
        ),
        Exercise(
            exercise_id="goblet_squat",
            name="Goblet Squat",
            movement_pattern="squat",
            primary_muscles=frozenset({"quadriceps", "glutes"}),
            density_score=6.0,
            equipment_needed=("Dumbbells",),
        ),
        Exercise(
            exercise_id="dumbbell_rdl",
            name="Dumbbell Romanian Deadlift",
            movement_pattern="hinge",
            primary_muscles=frozenset({"hamstrings", "glutes"}),
            density_score=7.0,
            equipment_needed=("Dumbbells",),
        ),
        Exercise(
            exercise_id="dumbbell_row",
            name="Dumbbell Row",
            movement_pattern="pull",
            primary_muscles=frozenset({"back", "biceps"}),
            density_score=6.0,
            is_unilateral=True,
            equipment_needed=("Dumbbells",),
        ),
        Exercise(
            exercise_id="lateral_raise",
            name="Dumbbell Lateral Raise",
            movement_pattern="push",
            primary_muscles=frozenset({"shoulders"}),
            density_score=3.0,
            equipment_needed=("Dumbbells",),
        ),
        Exercise(
            exercise_id="bicep_curl",
            name="Dumbbell Curl",
            movement_pattern="pull",
            primary_muscles=frozenset({"biceps"}),
            density_score=2.5,
            equipment_needed=("Dumbbells",),
        ),
        Exercise(
            exercise_id="push_up",
            name="Push Up",
            movement_pattern="push",
            primary_muscles=frozenset({"chest", "triceps"}),
            density_score=5.0,
        ),
        Exercise(
            exercise_id="plank",
            name="Plank",
            movement_pattern="core",
            primary_muscles=frozenset({"core"}),
            is_timed=True,
            density_score=2.0,
        ),
    ]
    return {exercise.exercise_id: exercise for exercise in exercises}


@pytest.fixture
def catalog() -> dict[str, Exercise]:
    return _catalog()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def log_entry():
    """Factory for performance log entries, ``days_ago`` relative to NOW."""

    def _make(exercise_id: str, days_ago: float = 1.0, **kwargs) -> PerformanceLogEntry:
        return PerformanceLogEntry(
            exercise_id=exercise_id,
            performed_at=NOW - timedelta(days=days_ago),
            **kwargs,
        )

    return _make
