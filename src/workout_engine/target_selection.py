"""Compose a single prescription per exercise.

Sets and reps (or duration) come from the experience x goal volume band, the
load from the progression engine. Unknown exercise ids are "missing targets":
the slot is kept and the caller decides what to show.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .errors import MissingPrescription
from .history_metrics import EMPTY_METRICS, compute_history_metrics
from .models import (
    Exercise,
    ExerciseTarget,
    PerformanceLogEntry,
    PersonalRecord,
    TargetSelectionContext,
    UserProfile,
)
from .progression import suggest_duration_progression, suggest_progression
from .tables import DEFAULT_TABLES, EngineTables, VolumeBand

logger = logging.getLogger(__name__)

# Below this many logged sessions, pick the lower half of the band.
EXPERIENCED_HISTORY_COUNT = 3


def _pick_in_band(low: int, high: int, history_count: int) -> int:
    midpoint = (low + high) / 2
    value = math.floor(midpoint) if history_count < EXPERIENCED_HISTORY_COUNT else math.ceil(midpoint)
    return max(low, min(high, value))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def build_target(
    exercise: Exercise,
    band: VolumeBand,
    context: TargetSelectionContext,
    *,
    history_count: int = 0,
    history: Sequence[PerformanceLogEntry] = (),
    personal_record: PersonalRecord | None = None,
    profile: UserProfile | None = None,
    tables: EngineTables = DEFAULT_TABLES,
) -> ExerciseTarget:
    """Prescription for an already-resolved exercise."""
    overrides = context.overrides
    metrics = compute_history_metrics(history, table=tables.history) if history else EMPTY_METRICS

    sets = _pick_in_band(band.sets_min, band.sets_max, history_count)
    rest = band.rest_time_sec
    if overrides is not None:
        if overrides.sets is not None:
            sets = max(1, overrides.sets)
        if overrides.rest_time_sec is not None:
            rest = max(0, overrides.rest_time_sec)

    if exercise.is_timed:
        duration: float = _pick_in_band(band.duration_sec_min, band.duration_sec_max, history_count)
        progressed = suggest_duration_progression(
            metrics, band.duration_sec_max, table=tables.progression
        )
        if progressed.suggested_duration_sec is not None:
            duration = _clamp(
                progressed.suggested_duration_sec, band.duration_sec_min, band.duration_sec_max
            )
        if overrides is not None and overrides.duration_sec is not None and overrides.duration_sec > 0:
            duration = overrides.duration_sec
        return ExerciseTarget(mode="duration", sets=sets, duration_sec=duration, rest_time_sec=rest)

    reps = _pick_in_band(band.reps_min, band.reps_max, history_count)
    if overrides is not None and overrides.reps is not None:
        reps = max(1, overrides.reps)

    weight: float | None = None
    if overrides is not None and overrides.weight is not None:
        weight = overrides.weight
    else:
        suggestion = suggest_progression(
            exercise,
            metrics,
            personal_record=personal_record,
            profile=profile,
            table=tables.progression,
        )
        weight = suggestion.suggested_weight

    return ExerciseTarget(mode="reps", sets=sets, reps=reps, weight=weight, rest_time_sec=rest)


def select_exercise_target(
    exercise_id: str,
    catalog: Mapping[str, Exercise],
    context: TargetSelectionContext,
    *,
    history_count: int | None = None,
    history: Sequence[PerformanceLogEntry] = (),
    personal_record: PersonalRecord | None = None,
    profile: UserProfile | None = None,
    tables: EngineTables = DEFAULT_TABLES,
) -> ExerciseTarget:
    """Select sets/reps-or-duration and load for one exercise.

    Raises MissingPrescription when ``exercise_id`` is not in ``catalog``.
    ``history_count`` defaults to the number of supplied history entries.
    """
    exercise = catalog.get(exercise_id)
    if exercise is None:
        raise MissingPrescription(exercise_id)

    band = tables.volume.band_for(context.experience, context.goal)
    count = len(history) if history_count is None else history_count
    target = build_target(
        exercise,
        band,
        context,
        history_count=count,
        history=history,
        personal_record=personal_record,
        profile=profile,
        tables=tables,
    )
    logger.debug(
        "Target for %s (%s/%s, history=%d): %s",
        exercise_id,
        context.experience,
        context.goal,
        count,
        target,
    )
    return target


def try_select_exercise_target(
    exercise_id: str,
    catalog: Mapping[str, Exercise],
    context: TargetSelectionContext,
    **kwargs,
) -> ExerciseTarget | None:
    """Like select_exercise_target, but returns None for unknown exercises."""
    try:
        return select_exercise_target(exercise_id, catalog, context, **kwargs)
    except MissingPrescription as exc:
        logger.warning("Missing targets: %s", exc)
        return None


@dataclass(frozen=True)
class BulkTargets:
    targets: dict[str, ExerciseTarget]
    missing: tuple[str, ...]


def select_targets_bulk(
    exercise_ids: Iterable[str],
    catalog: Mapping[str, Exercise],
    context: TargetSelectionContext,
    *,
    history_by_exercise: Mapping[str, Sequence[PerformanceLogEntry]] | None = None,
    history_counts: Mapping[str, int] | None = None,
    personal_records: Mapping[str, PersonalRecord] | None = None,
    profile: UserProfile | None = None,
    tables: EngineTables = DEFAULT_TABLES,
) -> BulkTargets:
    """Select targets for many exercises; unknown ids are reported, not raised."""
    history_by_exercise = history_by_exercise or {}
    history_counts = history_counts or {}
    personal_records = personal_records or {}

    targets: dict[str, ExerciseTarget] = {}
    missing: list[str] = []
    for exercise_id in exercise_ids:
        if exercise_id in targets or exercise_id in missing:
            continue
        try:
            targets[exercise_id] = select_exercise_target(
                exercise_id,
                catalog,
                context,
                history_count=history_counts.get(exercise_id),
                history=history_by_exercise.get(exercise_id, ()),
                personal_record=personal_records.get(exercise_id),
                profile=profile,
                tables=tables,
            )
        except MissingPrescription:
            missing.append(exercise_id)

    if missing:
        logger.warning("Missing targets for %d exercise(s): %s", len(missing), ", ".join(missing))
    return BulkTargets(targets=targets, missing=tuple(missing))
