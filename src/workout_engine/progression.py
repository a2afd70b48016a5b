"""Suggested working load from recent history and personal records.

Rules, in priority order:

1. No history and no PR: no suggestion (``no_data``).
2. PR but no history: on-ramp at a fraction of the PR (``hold``).
3. Last performed weight 0: bodyweight, hold at 0.
4. Last attempt met its target with acceptable adherence and an average
   logged RPE no higher than ``rpe_ready_max``: ``increase``. A met target
   that felt too hard, or with poor adherence, holds.
5. Last attempt fell short: ``hold``; a failure streak at or above the
   threshold turns it into a ``deload``.

Every suggestion is capped at PR x (1 + margin) when a PR exists. Timed
exercises progress duration instead of load.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Literal

from .history_metrics import HistoryMetrics
from .models import Exercise, ExerciseTarget, PersonalRecord, UserProfile
from .tables import ProgressionTable

logger = logging.getLogger(__name__)

Rationale = Literal["increase", "hold", "deload", "no_data"]

_DEFAULT_PROGRESSION = ProgressionTable()


@dataclass(frozen=True)
class ProgressionSuggestion:
    suggested_weight: float | None
    rationale: Rationale
    note: str | None = None
    suggested_duration_sec: float | None = None


NO_SUGGESTION = ProgressionSuggestion(suggested_weight=None, rationale="no_data")


# ---------------------------------------------------------------------------
# Blank-weight handling
# ---------------------------------------------------------------------------


def is_blank_weight(value: float | None) -> bool:
    """None and NaN are blank. 0 is a valid bodyweight value."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def fill_blank_weights(
    weights: Sequence[float | None],
    suggested_weight: float | None,
) -> list[float | None]:
    """Fill only the blank per-set weights; explicit values (including 0) are kept."""
    if suggested_weight is None:
        return list(weights)
    return [suggested_weight if is_blank_weight(w) else w for w in weights]


def fill_target_weight(target: ExerciseTarget, suggested_weight: float | None) -> ExerciseTarget:
    if target.mode != "reps" or suggested_weight is None or not is_blank_weight(target.weight):
        return target
    return replace(target, weight=suggested_weight)


# ---------------------------------------------------------------------------
# Load progression
# ---------------------------------------------------------------------------


def _round_weight(value: float, step: float) -> float:
    if step <= 0:
        return value
    return round(round(value / step) * step, 4)


def _pr_weight(personal_record: PersonalRecord | None) -> float | None:
    if personal_record is None or personal_record.weight <= 0:
        return None
    return personal_record.weight


def weight_increment(
    exercise: Exercise,
    current_weight: float,
    *,
    profile: UserProfile | None = None,
    table: ProgressionTable = _DEFAULT_PROGRESSION,
) -> float:
    """Absolute step for isolation loads, the larger of step and percentage for compounds.

    Beginners always get the absolute step.
    """
    if exercise.density_score < table.compound_density_threshold:
        return table.absolute_step
    if profile is not None and profile.experience == "beginner":
        return table.absolute_step
    return max(table.absolute_step, current_weight * table.percent_step)


def _finalize(
    exercise: Exercise,
    weight: float,
    rationale: Rationale,
    note: str,
    pr_weight: float | None,
    table: ProgressionTable,
) -> ProgressionSuggestion:
    suggested = _round_weight(weight, table.weight_rounding)
    if pr_weight is not None:
        ceiling = pr_weight * (1 + table.pr_margin)
        if suggested > ceiling:
            suggested = ceiling
            note = f"{note}; capped at {table.pr_margin:.0%} above PR {pr_weight:g}"
    logger.debug(
        "Progression for %s: %s -> %s (%s)", exercise.exercise_id, rationale, suggested, note
    )
    return ProgressionSuggestion(suggested_weight=suggested, rationale=rationale, note=note)


def suggest_progression(
    exercise: Exercise,
    metrics: HistoryMetrics,
    *,
    personal_record: PersonalRecord | None = None,
    profile: UserProfile | None = None,
    table: ProgressionTable = _DEFAULT_PROGRESSION,
) -> ProgressionSuggestion:
    pr_weight = _pr_weight(personal_record)
    last = metrics.last_entry

    if last is None:
        if pr_weight is None:
            return NO_SUGGESTION
        return _finalize(
            exercise,
            pr_weight * table.pr_onramp_fraction,
            "hold",
            f"On-ramp: {table.pr_onramp_fraction:.0%} of PR {pr_weight:g}",
            pr_weight,
            table,
        )

    if last.weight == 0:
        return ProgressionSuggestion(suggested_weight=0.0, rationale="hold", note="Bodyweight")

    base_weight = last.weight
    if base_weight is None:
        # Unloaded log: fall back to the last successful loaded one, then the PR on-ramp.
        previous = metrics.last_successful
        if previous is not None and previous.weight:
            base_weight = previous.weight
        elif pr_weight is not None:
            return _finalize(
                exercise,
                pr_weight * table.pr_onramp_fraction,
                "hold",
                f"On-ramp: {table.pr_onramp_fraction:.0%} of PR {pr_weight:g}",
                pr_weight,
                table,
            )
        else:
            return NO_SUGGESTION

    adherence_ok = (
        metrics.adherence_ratio is None or metrics.adherence_ratio >= table.adherence_threshold
    )
    rpe_ok = metrics.average_rpe is None or metrics.average_rpe <= table.rpe_ready_max

    if metrics.last_met_target and adherence_ok and rpe_ok:
        step = weight_increment(exercise, base_weight, profile=profile, table=table)
        return _finalize(
            exercise, base_weight + step, "increase", f"Progression: +{step:.1f} from last working weight",
            pr_weight, table,
        )

    if metrics.last_met_target and not rpe_ok:
        return _finalize(
            exercise,
            base_weight,
            "hold",
            f"Target met at average RPE {metrics.average_rpe:.1f} (above {table.rpe_ready_max:g})",
            pr_weight,
            table,
        )

    if metrics.last_met_target:
        return _finalize(
            exercise, base_weight, "hold", "Target met but adherence below threshold", pr_weight, table
        )

    if metrics.consecutive_failures >= table.failure_streak_threshold:
        return _finalize(
            exercise,
            base_weight * (1 - table.deload_percent),
            "deload",
            f"Deload: {metrics.consecutive_failures} sessions short of target",
            pr_weight,
            table,
        )

    return _finalize(exercise, base_weight, "hold", "Last session fell short of target", pr_weight, table)


# ---------------------------------------------------------------------------
# Duration progression (timed exercises)
# ---------------------------------------------------------------------------


def suggest_duration_progression(
    metrics: HistoryMetrics,
    band_max_sec: float,
    *,
    table: ProgressionTable = _DEFAULT_PROGRESSION,
) -> ProgressionSuggestion:
    """Add ``duration_step_sec`` after a successful timed set, up to the band top."""
    last = metrics.last_entry
    if last is None or not last.duration_sec:
        return NO_SUGGESTION

    current = float(last.duration_sec)
    if metrics.last_met_target and current < band_max_sec:
        return ProgressionSuggestion(
            suggested_weight=None,
            rationale="increase",
            note=f"Progression: +{table.duration_step_sec:g}s hold",
            suggested_duration_sec=min(current + table.duration_step_sec, band_max_sec),
        )
    return ProgressionSuggestion(
        suggested_weight=None,
        rationale="hold",
        note="Hold duration",
        suggested_duration_sec=current,
    )
