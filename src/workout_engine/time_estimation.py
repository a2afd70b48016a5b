"""Tempo-based wall-clock estimates for a prescribed exercise.

Pure functions: identical inputs always give identical estimates.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .models import Exercise, ExerciseTarget
from .tables import TempoTable

logger = logging.getLogger(__name__)

_DEFAULT_TEMPO = TempoTable()


@dataclass(frozen=True)
class DurationEstimate:
    estimated_duration_sec: int
    estimated_time_per_rep_sec: float


def _seconds_per_rep(
    tempo_category: str | None,
    seconds_per_rep: float | None,
    tempo: TempoTable,
) -> float:
    if seconds_per_rep is not None and seconds_per_rep > 0:
        return float(seconds_per_rep)
    return tempo.seconds_for(tempo_category)


def _apply_overheads(
    work_sec: float,
    *,
    setup_buffer_sec: float | None,
    is_unilateral: bool,
    position_index: int,
    tempo: TempoTable,
) -> float:
    if is_unilateral:
        work_sec *= 2
    setup = tempo.default_setup_buffer_sec if setup_buffer_sec is None else max(0.0, setup_buffer_sec)
    return (work_sec + setup) * tempo.fatigue_multiplier(position_index)


def estimate_exercise_duration(
    target_sets: int,
    target_reps: int,
    *,
    movement_pattern: str | None = None,
    tempo_category: str | None = None,
    setup_buffer_sec: float | None = None,
    is_unilateral: bool = False,
    position_index: int = 0,
    seconds_per_rep: float | None = None,
    tempo: TempoTable = _DEFAULT_TEMPO,
) -> DurationEstimate:
    """Estimate the working time of a sets x reps prescription.

    ``movement_pattern`` is accepted for call-site symmetry with the catalog;
    the tempo category alone decides seconds per rep.
    """
    sets = max(0, int(target_sets))
    reps = max(0, int(target_reps))
    spr = _seconds_per_rep(tempo_category, seconds_per_rep, tempo)

    total = _apply_overheads(
        sets * reps * spr,
        setup_buffer_sec=setup_buffer_sec,
        is_unilateral=is_unilateral,
        position_index=position_index,
        tempo=tempo,
    )
    estimated = int(round(total))
    return DurationEstimate(
        estimated_duration_sec=estimated,
        estimated_time_per_rep_sec=estimated / max(1, sets * reps),
    )


def estimate_timed_duration(
    set_durations_sec: Sequence[float],
    *,
    rest_time_sec: float = 0.0,
    setup_buffer_sec: float | None = None,
    is_unilateral: bool = False,
    position_index: int = 0,
    tempo: TempoTable = _DEFAULT_TEMPO,
) -> DurationEstimate:
    """Estimate a timed exercise from its per-set durations.

    Rest is added once per exercise, not per set.
    """
    durations = [max(0.0, float(d)) for d in set_durations_sec]
    total = _apply_overheads(
        sum(durations),
        setup_buffer_sec=setup_buffer_sec,
        is_unilateral=is_unilateral,
        position_index=position_index,
        tempo=tempo,
    )
    total += max(0.0, rest_time_sec)
    estimated = int(round(total))
    return DurationEstimate(
        estimated_duration_sec=estimated,
        estimated_time_per_rep_sec=estimated / max(1, len(durations)),
    )


def estimate_target_duration(
    exercise: Exercise,
    target: ExerciseTarget,
    position_index: int = 0,
    *,
    tempo: TempoTable = _DEFAULT_TEMPO,
) -> DurationEstimate:
    if target.mode == "duration":
        return estimate_timed_duration(
            [target.duration_sec or 0.0] * target.sets,
            rest_time_sec=target.rest_time_sec,
            setup_buffer_sec=exercise.setup_buffer_sec,
            is_unilateral=exercise.is_unilateral,
            position_index=position_index,
            tempo=tempo,
        )
    return estimate_exercise_duration(
        target.sets,
        target.reps or 0,
        movement_pattern=exercise.movement_pattern,
        tempo_category=exercise.tempo_category,
        setup_buffer_sec=exercise.setup_buffer_sec,
        is_unilateral=exercise.is_unilateral,
        position_index=position_index,
        seconds_per_rep=exercise.seconds_per_rep,
        tempo=tempo,
    )


def rest_overhead_sec(target: ExerciseTarget) -> int:
    """Rest between sets for reps mode; timed estimates already include their rest."""
    if target.mode == "duration":
        return 0
    return target.rest_time_sec * target.sets
