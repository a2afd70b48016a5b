"""Core data types for the engine.

All entities are built fresh per call from caller-supplied snapshots and are
never retained between calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from .tables import parse_experience_level, parse_goal

MovementPattern = Literal["squat", "hinge", "push", "pull", "lunge", "carry", "core", "cardio", "other"]
TempoCategory = Literal["grind", "standard", "ballistic"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
TrainingGoal = Literal["strength", "hypertrophy", "fat_loss", "general"]
TargetMode = Literal["reps", "duration"]
DurationMode = Literal["target", "max"]

MOVEMENT_PATTERNS: tuple[str, ...] = (
    "squat", "hinge", "push", "pull", "lunge", "carry", "core", "cardio", "other",
)
TEMPO_CATEGORIES: tuple[str, ...] = ("grind", "standard", "ballistic")
EXPERIENCE_LEVELS: tuple[str, ...] = ("beginner", "intermediate", "advanced")
TRAINING_GOALS: tuple[str, ...] = ("strength", "hypertrophy", "fat_loss", "general")

# Catalog spellings that collapse onto MOVEMENT_PATTERNS.
PATTERN_ALIASES: dict[str, str] = {
    "push_vert": "push",
    "push_horiz": "push",
    "pull_vert": "pull",
    "pull_horiz": "pull",
    "vertical_push": "push",
    "horizontal_push": "push",
    "vertical_pull": "pull",
    "horizontal_pull": "pull",
    "conditioning": "cardio",
}


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class Exercise:
    """Catalog reference data. Owned by the exercise catalog, never mutated here."""

    exercise_id: str
    name: str
    movement_pattern: str = "other"
    primary_muscles: frozenset[str] = frozenset()
    is_timed: bool = False
    is_unilateral: bool = False
    tempo_category: str = "standard"
    setup_buffer_sec: float | None = None
    density_score: float = 5.0  # 0-10, "bang for the time"
    equipment_needed: tuple[str, ...] = ()
    seconds_per_rep: float | None = None  # catalog override of the tempo lookup

    def __post_init__(self) -> None:
        if not 0.0 <= self.density_score <= 10.0:
            raise ValueError(f"density_score must be within 0-10, got {self.density_score}")
        pattern = (self.movement_pattern or "").strip().lower().replace("-", "_").replace(" ", "_")
        pattern = PATTERN_ALIASES.get(pattern, pattern)
        if pattern not in MOVEMENT_PATTERNS:
            raise ValueError(f"unknown movement_pattern {self.movement_pattern!r}")
        object.__setattr__(self, "movement_pattern", pattern)
        # Accept any iterable of muscles, store lowercase frozenset
        object.__setattr__(
            self,
            "primary_muscles",
            frozenset(m.strip().lower() for m in self.primary_muscles if m and m.strip()),
        )
        object.__setattr__(self, "equipment_needed", tuple(self.equipment_needed))


@dataclass(frozen=True)
class PerformanceLogEntry:
    exercise_id: str
    performed_at: datetime
    weight: float | None = None
    reps: int | None = None
    duration_sec: float | None = None
    scheduled_weight: float | None = None
    scheduled_reps: int | None = None
    scheduled_duration_sec: float | None = None
    rpe: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "performed_at", as_utc(self.performed_at))


@dataclass(frozen=True)
class PersonalRecord:
    exercise_id: str
    weight: float
    reps: int | None = None


@dataclass(frozen=True)
class ExerciseTarget:
    """A single prescription. Exactly one of ``reps``/``duration_sec`` is set, matching ``mode``."""

    mode: TargetMode
    sets: int
    reps: int | None = None
    duration_sec: float | None = None
    weight: float | None = None  # None = unspecified, 0 = bodyweight
    rest_time_sec: int = 60

    def __post_init__(self) -> None:
        if self.mode not in ("reps", "duration"):
            raise ValueError(f"mode must be 'reps' or 'duration', got {self.mode!r}")
        if self.sets < 1:
            raise ValueError(f"sets must be >= 1, got {self.sets}")
        if self.mode == "reps":
            if self.reps is None or self.reps < 1:
                raise ValueError("reps mode requires reps >= 1")
            if self.duration_sec is not None:
                raise ValueError("reps mode must not set duration_sec")
        else:
            if self.duration_sec is None or self.duration_sec <= 0:
                raise ValueError("duration mode requires duration_sec > 0")
            if self.reps is not None:
                raise ValueError("duration mode must not set reps")
        if self.rest_time_sec < 0:
            raise ValueError("rest_time_sec must be non-negative")
        if self.weight is not None and not math.isnan(self.weight) and self.weight < 0:
            raise ValueError("weight must be non-negative")


@dataclass(frozen=True)
class SlotOverrides:
    """Per-slot values that take precedence over profile/table defaults."""

    sets: int | None = None
    reps: int | None = None
    duration_sec: float | None = None
    rest_time_sec: int | None = None
    weight: float | None = None


@dataclass(frozen=True)
class TargetSelectionContext:
    experience: str = "intermediate"
    goal: str = "general"
    overrides: SlotOverrides | None = None


@dataclass(frozen=True)
class DurationConstraint:
    minutes: float
    mode: DurationMode = "max"

    def __post_init__(self) -> None:
        if self.minutes <= 0:
            raise ValueError("minutes must be positive")
        if self.mode not in ("target", "max"):
            raise ValueError(f"mode must be 'target' or 'max', got {self.mode!r}")

    @property
    def seconds(self) -> float:
        return self.minutes * 60.0


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    experience: str = "intermediate"
    goal: str = "general"
    days_per_week: int = 3
    equipment: tuple[str, ...] | None = None  # None = full gym, () = bodyweight only
    duration: DurationConstraint | None = None
    bodyweight_kg: float | None = None
    feedback: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.days_per_week <= 7:
            raise ValueError("days_per_week must be within 1-7")
        # free-text answers such as "Build muscle" become closed tags
        object.__setattr__(self, "experience", parse_experience_level(self.experience))
        object.__setattr__(self, "goal", parse_goal(self.goal))
        if self.equipment is not None:
            object.__setattr__(self, "equipment", tuple(self.equipment))

    def target_context(self, overrides: SlotOverrides | None = None) -> TargetSelectionContext:
        return TargetSelectionContext(experience=self.experience, goal=self.goal, overrides=overrides)


@dataclass(frozen=True)
class ScheduledExercise:
    exercise: Exercise
    target: ExerciseTarget | None = None  # None = missing targets, slot kept
    notes: str | None = None


@dataclass(frozen=True)
class DaySchedule:
    day: str
    entries: tuple[ScheduledExercise, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def exercises(self) -> list[Exercise]:
        return [entry.exercise for entry in self.entries]

    @property
    def is_rest_day(self) -> bool:
        return not self.entries


@dataclass(frozen=True)
class CoverageAnalysis:
    covered_movement_patterns: tuple[str, ...]
    missing_movement_patterns: tuple[str, ...]
    covered_muscle_groups: tuple[str, ...]
    recovery_ready_muscles: tuple[str, ...]
    recovery_fatigued_muscles: tuple[str, ...]
    recommendations: tuple[str, ...]
    pattern_sets: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RebalanceResult:
    needs_rebalance: bool
    reasons: tuple[str, ...] = ()
    missed_muscles: frozenset[str] = frozenset()
