"""Per-muscle recovery model.

Recovery fraction after a stimulus follows ``1 - exp(-3h / H)``, where ``H``
is the muscle's hours-to-recovered from the recovery table (about 95% at
``h = H``). A muscle never stressed is fully recovered.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from .models import Exercise, PerformanceLogEntry, as_utc
from .tables import RecoveryTable

logger = logging.getLogger(__name__)

RecoveryStatus = Literal["ready", "recovering", "fatigued"]

_DEFAULT_RECOVERY = RecoveryTable()

# 1 - exp(-3) ~= 0.95 at the table's hours-to-recovered
_CURVE_STEEPNESS = 3.0


@dataclass(frozen=True)
class MuscleRecoveryState:
    muscle: str
    recovery_fraction: float
    hours_since: float | None
    status: RecoveryStatus
    last_stimulus_at: datetime | None = None
    recent_volume: float = 0.0


def recovery_fraction(
    hours_since: float | None,
    muscle: str,
    table: RecoveryTable = _DEFAULT_RECOVERY,
) -> float:
    if hours_since is None:
        return 1.0
    hours = max(0.0, hours_since)
    return 1.0 - math.exp(-_CURVE_STEEPNESS * hours / table.hours_for(muscle))


def recovery_status(fraction: float, table: RecoveryTable = _DEFAULT_RECOVERY) -> RecoveryStatus:
    if fraction >= table.ready_threshold:
        return "ready"
    if fraction < table.fatigued_threshold:
        return "fatigued"
    return "recovering"


def _did_work(entry: PerformanceLogEntry) -> bool:
    return (entry.reps or 0) > 0 or (entry.duration_sec or 0) > 0


def last_stimulus_by_muscle(
    logs: Iterable[PerformanceLogEntry],
    catalog: Mapping[str, Exercise],
) -> dict[str, datetime]:
    """Most recent logged work per muscle. Logs for unknown exercises are skipped."""
    last: dict[str, datetime] = {}
    for entry in logs:
        exercise = catalog.get(entry.exercise_id)
        if exercise is None or not _did_work(entry):
            continue
        for muscle in exercise.primary_muscles:
            previous = last.get(muscle)
            if previous is None or entry.performed_at > previous:
                last[muscle] = entry.performed_at
    return last


def volume_by_muscle(
    logs: Iterable[PerformanceLogEntry],
    catalog: Mapping[str, Exercise],
) -> dict[str, float]:
    """Sum of weight x reps per muscle; bodyweight and timed work add nothing."""
    volumes: dict[str, float] = {}
    for entry in logs:
        exercise = catalog.get(entry.exercise_id)
        if exercise is None or not entry.weight or not entry.reps:
            continue
        for muscle in exercise.primary_muscles:
            volumes[muscle] = volumes.get(muscle, 0.0) + entry.weight * entry.reps
    return volumes


def muscle_recovery_states(
    last_stimulus: Mapping[str, datetime],
    *,
    now: datetime,
    muscles: Iterable[str] = (),
    volumes: Mapping[str, float] | None = None,
    table: RecoveryTable = _DEFAULT_RECOVERY,
) -> dict[str, MuscleRecoveryState]:
    """Recovery state for every stimulated muscle plus any extra ``muscles`` requested."""
    now = as_utc(now)
    volumes = volumes or {}
    states: dict[str, MuscleRecoveryState] = {}
    for muscle in sorted({*last_stimulus, *(m.strip().lower() for m in muscles)}):
        at = last_stimulus.get(muscle)
        hours = None if at is None else (now - as_utc(at)).total_seconds() / 3600.0
        fraction = recovery_fraction(hours, muscle, table)
        states[muscle] = MuscleRecoveryState(
            muscle=muscle,
            recovery_fraction=fraction,
            hours_since=hours,
            status=recovery_status(fraction, table),
            last_stimulus_at=at,
            recent_volume=volumes.get(muscle, 0.0),
        )
    fatigued = [m for m, s in states.items() if s.status == "fatigued"]
    if fatigued:
        logger.debug("Fatigued muscles at %s: %s", now.isoformat(), ", ".join(fatigued))
    return states


def recovery_states_from_logs(
    logs: Iterable[PerformanceLogEntry],
    catalog: Mapping[str, Exercise],
    *,
    now: datetime,
    muscles: Iterable[str] = (),
    table: RecoveryTable = _DEFAULT_RECOVERY,
) -> dict[str, MuscleRecoveryState]:
    entries = list(logs)
    return muscle_recovery_states(
        last_stimulus_by_muscle(entries, catalog),
        now=now,
        muscles=muscles,
        volumes=volume_by_muscle(entries, catalog),
        table=table,
    )
