"""Injectable rule tables.

Every numeric heuristic the engine uses lives here as plain data keyed by
closed tag sets. Hosts override a table by building a new ``EngineTables``
with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# ---------------------------------------------------------------------------
# Tempo / duration estimation
# ---------------------------------------------------------------------------

TEMPO_SECONDS_PER_REP: dict[str, float] = {
    "grind": 5.0,
    "standard": 3.5,
    "ballistic": 1.5,
}


@dataclass(frozen=True)
class TempoTable:
    seconds_per_rep: dict[str, float] = field(default_factory=lambda: dict(TEMPO_SECONDS_PER_REP))
    fallback_category: str = "standard"
    default_setup_buffer_sec: float = 15.0
    fatigue_step: float = 0.05  # per position in the session
    fatigue_cap: float = 0.30

    def seconds_for(self, tempo_category: str | None) -> float:
        key = (tempo_category or "").strip().lower()
        if key in self.seconds_per_rep:
            return self.seconds_per_rep[key]
        return self.seconds_per_rep[self.fallback_category]

    def fatigue_multiplier(self, position_index: int) -> float:
        return 1.0 + min(self.fatigue_step * max(0, position_index), self.fatigue_cap)


# ---------------------------------------------------------------------------
# Volume bands (experience x goal)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VolumeBand:
    sets_min: int
    sets_max: int
    reps_min: int
    reps_max: int
    duration_sec_min: int
    duration_sec_max: int
    rest_time_sec: int

    def __post_init__(self) -> None:
        if not 1 <= self.sets_min <= self.sets_max:
            raise ValueError("invalid sets band")
        if not 1 <= self.reps_min <= self.reps_max:
            raise ValueError("invalid reps band")
        if not 1 <= self.duration_sec_min <= self.duration_sec_max:
            raise ValueError("invalid duration band")


# Beginner: lower volume, longer rest, 8-12 reps.
# Intermediate/advanced: more sets, wider bands, shorter rest for non-strength goals.
VOLUME_BANDS: dict[tuple[str, str], VolumeBand] = {
    ("beginner", "strength"): VolumeBand(2, 3, 8, 12, 20, 40, 120),
    ("beginner", "hypertrophy"): VolumeBand(2, 3, 8, 12, 20, 40, 90),
    ("beginner", "fat_loss"): VolumeBand(2, 3, 10, 15, 20, 40, 60),
    ("beginner", "general"): VolumeBand(2, 3, 8, 12, 20, 40, 90),
    ("intermediate", "strength"): VolumeBand(3, 4, 4, 8, 30, 60, 150),
    ("intermediate", "hypertrophy"): VolumeBand(3, 4, 8, 12, 30, 60, 90),
    ("intermediate", "fat_loss"): VolumeBand(3, 4, 10, 15, 30, 60, 60),
    ("intermediate", "general"): VolumeBand(3, 4, 6, 12, 30, 60, 90),
    ("advanced", "strength"): VolumeBand(4, 5, 3, 6, 45, 90, 180),
    ("advanced", "hypertrophy"): VolumeBand(4, 5, 6, 12, 45, 90, 75),
    ("advanced", "fat_loss"): VolumeBand(3, 5, 12, 20, 45, 90, 45),
    ("advanced", "general"): VolumeBand(4, 5, 4, 12, 45, 90, 90),
}

DEFAULT_VOLUME_BAND = VolumeBand(3, 4, 8, 12, 30, 60, 90)


@dataclass(frozen=True)
class VolumeTable:
    bands: dict[tuple[str, str], VolumeBand] = field(default_factory=lambda: dict(VOLUME_BANDS))
    default_band: VolumeBand = DEFAULT_VOLUME_BAND

    def band_for(self, experience: str, goal: str) -> VolumeBand:
        """Exact (experience, goal) match, then (experience, general), then the default band."""
        band = self.bands.get((experience, goal))
        if band is None:
            band = self.bands.get((experience, "general"))
        return band or self.default_band


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressionTable:
    absolute_step: float = 2.5
    percent_step: float = 0.025
    compound_density_threshold: float = 7.0
    pr_margin: float = 0.10
    adherence_threshold: float = 0.9
    failure_streak_threshold: int = 2
    deload_percent: float = 0.10
    pr_onramp_fraction: float = 0.85
    weight_rounding: float = 0.25
    duration_step_sec: float = 5.0
    rpe_ready_max: float = 7.0  # average logged RPE above this holds the load


# ---------------------------------------------------------------------------
# History metrics
# ---------------------------------------------------------------------------

MIN_HISTORY_WINDOW = 5
MAX_HISTORY_WINDOW = 90


@dataclass(frozen=True)
class HistoryTable:
    window_size: int = 10
    trend_threshold: float = 0.02

    @property
    def bounded_window(self) -> int:
        return max(MIN_HISTORY_WINDOW, min(MAX_HISTORY_WINDOW, self.window_size))


# ---------------------------------------------------------------------------
# Muscle recovery
# ---------------------------------------------------------------------------

# Hours until a muscle group is (~95%) recovered after a heavy stimulus.
RECOVERY_HOURS: dict[str, float] = {
    "quadriceps": 72.0,
    "hamstrings": 72.0,
    "glutes": 72.0,
    "legs": 72.0,
    "back": 72.0,
    "lats": 60.0,
    "chest": 60.0,
    "shoulders": 48.0,
    "traps": 48.0,
    "triceps": 36.0,
    "biceps": 36.0,
    "forearms": 36.0,
    "calves": 36.0,
    "abs": 36.0,
    "core": 36.0,
}


@dataclass(frozen=True)
class RecoveryTable:
    recovery_hours: dict[str, float] = field(default_factory=lambda: dict(RECOVERY_HOURS))
    default_recovery_hours: float = 48.0
    ready_threshold: float = 0.80
    fatigued_threshold: float = 0.50

    def hours_for(self, muscle: str) -> float:
        return self.recovery_hours.get(muscle.strip().lower(), self.default_recovery_hours)


# ---------------------------------------------------------------------------
# Duration budgeting
# ---------------------------------------------------------------------------

TieBreak = Literal["latest_first", "earliest_first"]


@dataclass(frozen=True)
class BudgetTable:
    tolerance: float = 0.05
    tier1_density_threshold: float = 9.0
    trim_tie_break: TieBreak = "latest_first"
    tier1_min_sets: int | None = None  # None = Tier-1 volume is never trimmed
    max_sets_per_exercise: int = 6
    grow_iterations_per_exercise: int = 4
    rest_reduction_fraction: float = 0.0  # e.g. 0.20 shortens accessory rest before any set is trimmed
    rest_floor_sec: int = 30


# ---------------------------------------------------------------------------
# Coverage / rebalance
# ---------------------------------------------------------------------------

EXPECTED_PATTERNS: tuple[str, ...] = ("squat", "hinge", "push", "pull")

TRACKED_MUSCLES: tuple[str, ...] = (
    "quadriceps", "hamstrings", "glutes", "calves",
    "chest", "back", "lats", "shoulders",
    "biceps", "triceps", "core",
)


@dataclass(frozen=True)
class CoverageTable:
    expected_patterns: tuple[str, ...] = EXPECTED_PATTERNS
    min_weekly_sets: int = 3
    max_weekly_sets: int = 15
    missing_pattern_sessions: int = 2
    heavy_sets: int = 3
    heavy_density: float = 7.0
    lookback_sessions: int = 6
    tracked_muscles: tuple[str, ...] = TRACKED_MUSCLES


@dataclass(frozen=True)
class EngineTables:
    tempo: TempoTable = field(default_factory=TempoTable)
    volume: VolumeTable = field(default_factory=VolumeTable)
    progression: ProgressionTable = field(default_factory=ProgressionTable)
    history: HistoryTable = field(default_factory=HistoryTable)
    recovery: RecoveryTable = field(default_factory=RecoveryTable)
    budget: BudgetTable = field(default_factory=BudgetTable)
    coverage: CoverageTable = field(default_factory=CoverageTable)


DEFAULT_TABLES = EngineTables()

# ---------------------------------------------------------------------------
# Free-text profile fields -> closed tags
# ---------------------------------------------------------------------------

DEFAULT_EXPERIENCE = "intermediate"
DEFAULT_GOAL = "general"

# First matching phrase wins; checked in order.
_EXPERIENCE_PHRASES: tuple[tuple[str, str], ...] = (
    ("brand new", "beginner"),
    ("new to", "beginner"),
    ("less than 1 year", "beginner"),
    ("beginner", "beginner"),
    ("4+", "advanced"),
    ("advanced", "advanced"),
    ("1-2 years", "intermediate"),
    ("2-4 years", "intermediate"),
    ("intermediate", "intermediate"),
)

_GOAL_PHRASES: tuple[tuple[str, str], ...] = (
    ("lose weight", "fat_loss"),
    ("weight loss", "fat_loss"),
    ("fat loss", "fat_loss"),
    ("fat_loss", "fat_loss"),
    ("build muscle", "hypertrophy"),
    ("muscle gain", "hypertrophy"),
    ("hypertrophy", "hypertrophy"),
    ("lift heavier", "strength"),
    ("strength", "strength"),
    ("lean", "general"),
    ("general", "general"),
)


def _normalize_text(value: str | None) -> str:
    # en/em dashes show up in profile options ("1–2 years")
    return (value or "").strip().lower().replace("–", "-").replace("—", "-")


def parse_experience_level(text: str | None) -> str:
    """Map a free-text experience answer onto beginner/intermediate/advanced.

    Unknown or empty text falls back to ``DEFAULT_EXPERIENCE``.
    """
    normalized = _normalize_text(text)
    for phrase, level in _EXPERIENCE_PHRASES:
        if phrase in normalized:
            return level
    return DEFAULT_EXPERIENCE


def parse_goal(text: str | None) -> str:
    """Map a free-text goal onto strength/hypertrophy/fat_loss/general.

    Unknown or empty text falls back to ``DEFAULT_GOAL``.
    """
    normalized = _normalize_text(text)
    for phrase, goal in _GOAL_PHRASES:
        if phrase in normalized:
            return goal
    return DEFAULT_GOAL
