"""Reduce logged sets for one exercise into a bounded-window summary."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from .models import PerformanceLogEntry
from .tables import HistoryTable

logger = logging.getLogger(__name__)

Trend = Literal["improving", "flat", "declining"]

_DEFAULT_HISTORY = HistoryTable()


# ---------------------------------------------------------------------------
# Strength estimation
# ---------------------------------------------------------------------------


def epley_1rm(weight_kg: float, reps: int) -> float:
    """Estimate 1RM using the Epley formula. Returns 0 for invalid inputs."""
    if reps <= 0 or weight_kg <= 0:
        return 0.0
    if reps == 1:
        return weight_kg
    return weight_kg * (1 + reps / 30)


# ---------------------------------------------------------------------------
# Per-entry classification
# ---------------------------------------------------------------------------


def is_weighted(entry: PerformanceLogEntry) -> bool:
    """Bodyweight entries (weight None or 0) do not contribute to the weight trend."""
    return entry.weight is not None and entry.weight > 0


def has_schedule(entry: PerformanceLogEntry) -> bool:
    return (
        entry.scheduled_reps is not None
        or entry.scheduled_duration_sec is not None
        or (entry.scheduled_weight is not None and entry.scheduled_weight > 0)
    )


def met_target(entry: PerformanceLogEntry) -> bool:
    """Whether the performed work met what was scheduled.

    Without any schedule, any positive reps or duration counts as success.
    """
    if not has_schedule(entry):
        return (entry.reps or 0) > 0 or (entry.duration_sec or 0) > 0

    if entry.scheduled_reps is not None and (entry.reps or 0) < entry.scheduled_reps:
        return False
    if (
        entry.scheduled_duration_sec is not None
        and (entry.duration_sec or 0) < entry.scheduled_duration_sec
    ):
        return False
    if (
        entry.scheduled_weight is not None
        and entry.scheduled_weight > 0
        and (entry.weight or 0) < entry.scheduled_weight
    ):
        return False
    return True


def _ratio(performed: float | None, scheduled: float | None) -> float | None:
    if scheduled is None or scheduled <= 0:
        return None
    return min((performed or 0) / scheduled, 1.0)


def entry_adherence(entry: PerformanceLogEntry) -> float | None:
    """Worst performed/scheduled ratio across the scheduled components, capped at 1."""
    ratios = [
        _ratio(entry.reps, entry.scheduled_reps),
        _ratio(entry.duration_sec, entry.scheduled_duration_sec),
    ]
    # Weight adherence only applies when the set was actually loaded.
    if is_weighted(entry):
        ratios.append(_ratio(entry.weight, entry.scheduled_weight))
    present = [r for r in ratios if r is not None]
    if not present:
        return None
    return min(present)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryMetrics:
    sample_count: int = 0
    last_entry: PerformanceLogEntry | None = None
    last_successful: PerformanceLogEntry | None = None
    recent_average_weight: float | None = None
    recent_average_reps: float | None = None
    recent_average_duration_sec: float | None = None
    trend: Trend = "flat"
    adherence_ratio: float | None = None
    consecutive_failures: int = 0
    recent_failures: int = 0
    estimated_training_max: float | None = None
    average_rpe: float | None = None

    @property
    def has_history(self) -> bool:
        return self.sample_count > 0

    @property
    def last_met_target(self) -> bool:
        return self.last_entry is not None and met_target(self.last_entry)


EMPTY_METRICS = HistoryMetrics()


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def _average_rpe(entries: list[PerformanceLogEntry]) -> float | None:
    """Mean of the logged RPE values; entries without one are skipped."""
    mean = _mean([e.rpe for e in entries if e.rpe is not None and e.rpe > 0])
    return None if mean is None else round(mean, 2)


def _entry_load(entry: PerformanceLogEntry) -> float:
    return epley_1rm(entry.weight or 0.0, entry.reps or 1)


def _weight_trend(weighted_newest_first: list[PerformanceLogEntry], threshold: float) -> Trend:
    """Compare mean estimated load of the newer half against the older half."""
    if len(weighted_newest_first) < 2:
        return "flat"
    half = len(weighted_newest_first) // 2
    newer = _mean([_entry_load(e) for e in weighted_newest_first[:half]])
    older = _mean([_entry_load(e) for e in weighted_newest_first[-half:]])
    if not newer or not older:
        return "flat"
    change = (newer - older) / older
    if change > threshold:
        return "improving"
    if change < -threshold:
        return "declining"
    return "flat"


def recent_window(
    entries: Iterable[PerformanceLogEntry],
    table: HistoryTable = _DEFAULT_HISTORY,
) -> list[PerformanceLogEntry]:
    """Newest first, truncated to the bounded window."""
    ordered = sorted(entries, key=lambda e: e.performed_at, reverse=True)
    return ordered[: table.bounded_window]


def compute_history_metrics(
    entries: Iterable[PerformanceLogEntry],
    *,
    table: HistoryTable = _DEFAULT_HISTORY,
) -> HistoryMetrics:
    """Summarize recent performance for one exercise.

    No entries gives neutral metrics (``EMPTY_METRICS``), not an error.
    """
    window = recent_window(entries, table)
    if not window:
        return EMPTY_METRICS

    weighted = [e for e in window if is_weighted(e)]
    successes = [met_target(e) for e in window]

    consecutive_failures = 0
    for success in successes:
        if success:
            break
        consecutive_failures += 1

    adherence_values = [a for a in (entry_adherence(e) for e in window) if a is not None]
    loads = [_entry_load(e) for e in weighted]

    metrics = HistoryMetrics(
        sample_count=len(window),
        last_entry=window[0],
        last_successful=next((e for e, ok in zip(window, successes) if ok), None),
        recent_average_weight=_mean([e.weight for e in weighted]),
        recent_average_reps=_mean([float(e.reps) for e in window if e.reps]),
        recent_average_duration_sec=_mean([float(e.duration_sec) for e in window if e.duration_sec]),
        trend=_weight_trend(weighted, table.trend_threshold),
        adherence_ratio=_mean(adherence_values),
        consecutive_failures=consecutive_failures,
        recent_failures=successes.count(False),
        estimated_training_max=max(loads) if loads and max(loads) > 0 else None,
        average_rpe=_average_rpe(window),
    )
    logger.debug(
        "History metrics for %s: samples=%d trend=%s adherence=%s failures=%d rpe=%s",
        window[0].exercise_id,
        metrics.sample_count,
        metrics.trend,
        metrics.adherence_ratio,
        metrics.consecutive_failures,
        metrics.average_rpe,
    )
    return metrics
