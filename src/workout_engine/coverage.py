"""Movement-pattern coverage and the pre-workout rebalance check."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .models import (
    MOVEMENT_PATTERNS,
    CoverageAnalysis,
    DaySchedule,
    Exercise,
    ExerciseTarget,
    PerformanceLogEntry,
    RebalanceResult,
    ScheduledExercise,
)
from .logging import engine_extra
from .muscle_recovery import MuscleRecoveryState
from .tables import CoverageTable

logger = logging.getLogger(__name__)

_DEFAULT_COVERAGE = CoverageTable()


def _label(pattern: str) -> str:
    return pattern.replace("_", " ").title()


def _entry_sets(entry: ScheduledExercise) -> int:
    return entry.target.sets if entry.target is not None else 0


def pattern_set_counts(days: Iterable[DaySchedule]) -> dict[str, int]:
    """Sets per movement pattern; patterns present without targets count 0 sets."""
    counts: dict[str, int] = {}
    for day in days:
        for entry in day.entries:
            pattern = entry.exercise.movement_pattern
            counts[pattern] = counts.get(pattern, 0) + _entry_sets(entry)
    return counts


def _patterns_in(day: DaySchedule) -> set[str]:
    return {entry.exercise.movement_pattern for entry in day.entries}


def _muscles_in(days: Iterable[DaySchedule]) -> set[str]:
    muscles: set[str] = set()
    for day in days:
        for entry in day.entries:
            muscles.update(entry.exercise.primary_muscles)
    return muscles


def analyze_coverage(
    days: Sequence[DaySchedule],
    *,
    recovery_states: Mapping[str, MuscleRecoveryState] | None = None,
    table: CoverageTable = _DEFAULT_COVERAGE,
) -> CoverageAnalysis:
    """Coverage of a day or week against the expected patterns.

    Recommendations are ordered: missing essential patterns, under-served
    patterns, over-served patterns, then fatigued muscles the plan loads.
    """
    recovery_states = recovery_states or {}
    counts = pattern_set_counts(days)
    present = set(counts)

    covered = tuple(p for p in MOVEMENT_PATTERNS if p in present and p != "other")
    missing = tuple(p for p in table.expected_patterns if p not in present)
    muscles = _muscles_in(days)

    ready = tuple(sorted(m for m, s in recovery_states.items() if s.status == "ready"))
    fatigued = tuple(sorted(m for m, s in recovery_states.items() if s.status == "fatigued"))

    under = [
        p for p in table.expected_patterns
        if p in present and counts[p] < table.min_weekly_sets
    ]
    over = [p for p in MOVEMENT_PATTERNS if counts.get(p, 0) > table.max_weekly_sets]

    recommendations: list[str] = []
    if missing:
        recommendations.append(
            f"Missing essential movement patterns: {', '.join(_label(p) for p in missing)}. "
            "Consider adding at least one exercise for each."
        )
    if under:
        recommendations.append(
            f"Consider adding exercises for: {', '.join(_label(p) for p in under)}. "
            f"These movement patterns have fewer than {table.min_weekly_sets} sets this week."
        )
    if over:
        recommendations.append(
            f"High volume detected for: {', '.join(_label(p) for p in over)}. "
            "Consider reducing sets or adding variety."
        )
    loaded_fatigued = [m for m in fatigued if m in muscles]
    if loaded_fatigued:
        recommendations.append(
            f"Still recovering: {', '.join(_label(m) for m in loaded_fatigued)}. "
            "Keep volume on these muscles light."
        )

    return CoverageAnalysis(
        covered_movement_patterns=covered,
        missing_movement_patterns=missing,
        covered_muscle_groups=tuple(sorted(muscles)),
        recovery_ready_muscles=ready,
        recovery_fatigued_muscles=fatigued,
        recommendations=tuple(recommendations),
        pattern_sets={p: counts[p] for p in MOVEMENT_PATTERNS if p in counts},
    )


def _is_heavy(entry: ScheduledExercise, table: CoverageTable) -> bool:
    if entry.exercise.density_score >= table.heavy_density:
        return True
    return _entry_sets(entry) >= table.heavy_sets


def _fatigue_reasons(
    upcoming: DaySchedule,
    recovery_states: Mapping[str, MuscleRecoveryState],
    table: CoverageTable,
) -> list[str]:
    reasons: list[str] = []
    flagged: set[str] = set()
    for entry in upcoming.entries:
        if not _is_heavy(entry, table):
            continue
        for muscle in sorted(entry.exercise.primary_muscles):
            state = recovery_states.get(muscle)
            if state is None or state.status != "fatigued" or muscle in flagged:
                continue
            flagged.add(muscle)
            reasons.append(
                f"{_label(muscle)} is still fatigued ({state.recovery_fraction:.0%} recovered) "
                f"and {entry.exercise.name} loads it heavily"
            )
    return reasons


def _missing_pattern_streaks(
    sessions: Sequence[DaySchedule],
    table: CoverageTable,
) -> dict[str, int]:
    """Consecutive sessions (newest first) without each expected pattern."""
    streaks: dict[str, int] = {}
    for pattern in table.expected_patterns:
        streak = 0
        for session in sessions:
            if pattern in _patterns_in(session):
                break
            streak += 1
        streaks[pattern] = streak
    return streaks


def check_rebalance(
    upcoming: DaySchedule,
    recent_sessions: Sequence[DaySchedule] = (),
    *,
    recovery_states: Mapping[str, MuscleRecoveryState] | None = None,
    table: CoverageTable = _DEFAULT_COVERAGE,
) -> RebalanceResult:
    """Decide whether the day about to start should be rebalanced.

    ``recent_sessions`` are completed sessions, newest first; empty ones are
    ignored. Reasons list fatigue problems first, then missing patterns.
    """
    recovery_states = recovery_states or {}
    history = [s for s in recent_sessions if not s.is_rest_day][: table.lookback_sessions]

    reasons = _fatigue_reasons(upcoming, recovery_states, table)

    streaks = _missing_pattern_streaks([upcoming, *history], table)
    undertrained = [p for p in table.expected_patterns if streaks[p] >= table.missing_pattern_sessions]
    if undertrained:
        longest = max(streaks[p] for p in undertrained)
        reasons.append(
            f"Undertrained movement patterns: {', '.join(undertrained)} "
            f"(missing for up to {longest} sessions in a row)"
        )

    missed: frozenset[str] = frozenset()
    if history:
        missed = frozenset(table.tracked_muscles) - _muscles_in(history)

    result = RebalanceResult(needs_rebalance=bool(reasons), reasons=tuple(reasons), missed_muscles=missed)
    if result.needs_rebalance:
        logger.info(
            "Rebalance suggested for %s: %s",
            upcoming.day,
            "; ".join(result.reasons),
            extra=engine_extra(day=upcoming.day),
        )
    return result


def sessions_from_logs(
    logs: Iterable[PerformanceLogEntry],
    catalog: Mapping[str, Exercise],
) -> list[DaySchedule]:
    """Group logged sets into one pseudo-session per calendar date, newest first.

    Each logged set becomes one set of its exercise; unknown exercises are skipped.
    """
    by_date: dict[str, dict[str, int]] = {}
    for entry in logs:
        if entry.exercise_id not in catalog:
            continue
        key = entry.performed_at.date().isoformat()
        sets = by_date.setdefault(key, {})
        sets[entry.exercise_id] = sets.get(entry.exercise_id, 0) + 1

    sessions: list[DaySchedule] = []
    for key in sorted(by_date, reverse=True):
        entries = []
        for exercise_id, count in by_date[key].items():
            entries.append(_logged_entry(catalog[exercise_id], count))
        sessions.append(DaySchedule(day=key, entries=tuple(entries)))
    return sessions


def _logged_entry(exercise: Exercise, sets: int) -> ScheduledExercise:
    if exercise.is_timed:
        target = ExerciseTarget(mode="duration", sets=sets, duration_sec=1.0, rest_time_sec=0)
    else:
        target = ExerciseTarget(mode="reps", sets=sets, reps=1, rest_time_sec=0)
    return ScheduledExercise(exercise=exercise, target=target)
