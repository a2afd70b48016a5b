"""Personal record derivation.

A PR is the heaviest weight completed for at least one rep. Bodyweight
exercises track best reps at weight 0; timed exercises track best duration.
Storage is the caller's concern: these functions only decide what the record is.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import PerformanceLogEntry, PersonalRecord

logger = logging.getLogger(__name__)


def compute_pr_from_logs(entries: Iterable[PerformanceLogEntry]) -> PersonalRecord | None:
    """Heaviest weighted entry with reps > 0; earliest one wins ties."""
    best: PerformanceLogEntry | None = None
    for entry in entries:
        if entry.weight is None or entry.weight <= 0 or not entry.reps or entry.reps <= 0:
            continue
        if best is None or entry.weight > (best.weight or 0):
            best = entry
    if best is None:
        return None
    return PersonalRecord(exercise_id=best.exercise_id, weight=float(best.weight or 0), reps=best.reps)


def personal_records_by_exercise(
    entries: Iterable[PerformanceLogEntry],
) -> dict[str, PersonalRecord]:
    grouped: dict[str, list[PerformanceLogEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.exercise_id, []).append(entry)

    records: dict[str, PersonalRecord] = {}
    for exercise_id, logs in grouped.items():
        record = compute_pr_from_logs(logs)
        if record is not None:
            records[exercise_id] = record
    return records


def updated_personal_record(
    current: PersonalRecord | None,
    exercise_id: str,
    *,
    weight: float | None,
    reps: int | None,
    duration_sec: float | None = None,
    is_timed: bool = False,
) -> PersonalRecord | None:
    """Return the new record if this performance beats ``current``, else None.

    Timed exercises store the best duration in ``reps`` with weight 0.
    """
    if is_timed:
        seconds = int(duration_sec if duration_sec is not None else (reps or 0))
        if seconds <= 0:
            return None
        if current is None or seconds > (current.reps or 0):
            return PersonalRecord(exercise_id=exercise_id, weight=0.0, reps=seconds)
        return None

    load = weight or 0.0
    count = reps or 0
    if load <= 0 and count <= 0:
        return None

    if load > 0:
        if current is None or load > current.weight:
            return PersonalRecord(exercise_id=exercise_id, weight=float(load), reps=count or None)
        return None

    # Bodyweight: more reps at weight 0 is a record, a loaded PR is never replaced.
    if current is None or (current.weight == 0 and count > (current.reps or 0)):
        return PersonalRecord(exercise_id=exercise_id, weight=0.0, reps=count)
    return None
