"""Fit a day's volume to a duration ceiling or target.

``max`` optionally shortens accessory rest first, then trims one set at a
time from the lowest-density accessory work. Tier-1 compounds (density at or
above the configured threshold) are never removed, and a day always keeps at
least one prescribed exercise. ``target`` grows the highest-density
exercises one set at a time. Neither mode reorders or invents exercises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .errors import DurationBudgetExceeded
from .logging import engine_extra
from .models import DaySchedule, DurationConstraint, ScheduledExercise
from .movement_patterns import exercise_tier
from .tables import DEFAULT_TABLES, BudgetTable, EngineTables, TempoTable
from .time_estimation import estimate_target_duration, rest_overhead_sec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetResult:
    schedule: DaySchedule
    total_sec: int
    limit_sec: float | None
    overage_sec: float = 0.0
    shortfall_sec: float = 0.0
    actions: tuple[str, ...] = ()

    @property
    def within_budget(self) -> bool:
        return self.overage_sec <= 0


def entry_duration_sec(
    entry: ScheduledExercise,
    position_index: int,
    tempo: TempoTable = DEFAULT_TABLES.tempo,
) -> int:
    """Estimate plus rest overhead; entries without targets count 0."""
    if entry.target is None:
        return 0
    estimate = estimate_target_duration(entry.exercise, entry.target, position_index, tempo=tempo)
    return estimate.estimated_duration_sec + rest_overhead_sec(entry.target)


def _total(entries: list[ScheduledExercise], tempo: TempoTable) -> int:
    return sum(entry_duration_sec(entry, idx, tempo) for idx, entry in enumerate(entries))


def estimate_day_duration(day: DaySchedule, *, tempo: TempoTable = DEFAULT_TABLES.tempo) -> int:
    return _total(list(day.entries), tempo)


def _is_tier1(entry: ScheduledExercise, table: BudgetTable) -> bool:
    return exercise_tier(entry.exercise, table.tier1_density_threshold) == 1


def _pick_lowest_density(candidates: list[int], entries: list[ScheduledExercise], table: BudgetTable) -> int:
    # min() keeps the first of equal keys, so walk backwards for latest_first
    ordered = candidates if table.trim_tie_break == "earliest_first" else list(reversed(candidates))
    return min(ordered, key=lambda idx: entries[idx].exercise.density_score)


def _trim_candidate(entries: list[ScheduledExercise], table: BudgetTable) -> int | None:
    accessories = [
        idx for idx, entry in enumerate(entries)
        if entry.target is not None and not _is_tier1(entry, table)
    ]
    if accessories:
        return _pick_lowest_density(accessories, entries, table)

    if table.tier1_min_sets is None:
        return None
    floor = max(1, table.tier1_min_sets)
    compounds = [
        idx for idx, entry in enumerate(entries)
        if entry.target is not None and _is_tier1(entry, table) and entry.target.sets > floor
    ]
    if compounds:
        return _pick_lowest_density(compounds, entries, table)
    return None


def _reduce_accessory_rest(entries: list[ScheduledExercise], table: BudgetTable, actions: list[str]) -> None:
    factor = 1 - table.rest_reduction_fraction
    reduced_any = False
    for idx, entry in enumerate(entries):
        target = entry.target
        if target is None or target.mode != "reps" or _is_tier1(entry, table):
            continue
        rest = max(table.rest_floor_sec, int(round(target.rest_time_sec * factor)))
        if rest < target.rest_time_sec:
            entries[idx] = replace(entry, target=replace(target, rest_time_sec=rest))
            reduced_any = True
    if reduced_any:
        actions.append(f"Reduced accessory rest by {table.rest_reduction_fraction:.0%}")


def _trim_to_ceiling(
    entries: list[ScheduledExercise],
    limit_sec: float,
    tables: EngineTables,
    actions: list[str],
) -> int:
    table = tables.budget
    ceiling = limit_sec * (1 + table.tolerance)
    total = _total(entries, tables.tempo)

    if total > ceiling and table.rest_reduction_fraction > 0:
        _reduce_accessory_rest(entries, table, actions)
        total = _total(entries, tables.tempo)

    # Each pass removes one set, so this terminates after at most the day's total set count.
    while total > ceiling:
        idx = _trim_candidate(entries, table)
        if idx is None:
            break
        entry = entries[idx]
        target = entry.target
        if target is None:
            break
        remaining = target.sets - 1
        if remaining <= 0:
            prescribed = sum(1 for e in entries if e.target is not None)
            if prescribed <= 1:
                # last prescribed exercise stays at one set; the caller sees the overage
                break
            entries.pop(idx)
            actions.append(f"Removed {entry.exercise.name}")
        else:
            entries[idx] = replace(entry, target=replace(target, sets=remaining))
            actions.append(f"Removed 1 set from {entry.exercise.name}")
        total = _total(entries, tables.tempo)
    return total


def _grow_to_target(
    entries: list[ScheduledExercise],
    limit_sec: float,
    tables: EngineTables,
    actions: list[str],
) -> int:
    table = tables.budget
    floor = limit_sec * (1 - table.tolerance)
    ceiling = limit_sec * (1 + table.tolerance)
    total = _total(entries, tables.tempo)

    prescribed = [idx for idx, entry in enumerate(entries) if entry.target is not None]
    # highest density first, earlier position wins ties
    by_density = sorted(prescribed, key=lambda idx: (-entries[idx].exercise.density_score, idx))
    max_iterations = table.grow_iterations_per_exercise * len(prescribed)

    iterations = 0
    while total < floor and iterations < max_iterations:
        iterations += 1
        grown = False
        for idx in by_density:
            entry = entries[idx]
            target = entry.target
            if target is None or target.sets >= table.max_sets_per_exercise:
                continue
            candidate = replace(entry, target=replace(target, sets=target.sets + 1))
            trial = entries[:idx] + [candidate] + entries[idx + 1:]
            trial_total = _total(trial, tables.tempo)
            if trial_total > ceiling:
                continue
            entries[idx] = candidate
            total = trial_total
            actions.append(f"Added 1 set to {entry.exercise.name}")
            grown = True
            break
        if not grown:
            break
    return total


def fit_day_to_duration(
    day: DaySchedule,
    constraint: DurationConstraint | None,
    *,
    tables: EngineTables = DEFAULT_TABLES,
    raise_on_overage: bool = False,
) -> BudgetResult:
    """Trim or grow ``day`` to fit ``constraint``.

    In ``max`` mode an unresolvable overage is reported on the result, or
    raised as DurationBudgetExceeded when ``raise_on_overage`` is set.
    """
    entries = list(day.entries)
    if constraint is None:
        total = _total(entries, tables.tempo)
        return BudgetResult(schedule=day, total_sec=total, limit_sec=None)

    limit_sec = constraint.seconds
    actions: list[str] = []
    if constraint.mode == "max":
        total = _trim_to_ceiling(entries, limit_sec, tables, actions)
    else:
        total = _grow_to_target(entries, limit_sec, tables, actions)

    overage = 0.0
    if total > limit_sec * (1 + tables.budget.tolerance):
        overage = total - limit_sec
    shortfall = 0.0
    if constraint.mode == "target" and total < limit_sec * (1 - tables.budget.tolerance):
        shortfall = limit_sec - total

    result = BudgetResult(
        schedule=DaySchedule(day=day.day, entries=tuple(entries)),
        total_sec=total,
        limit_sec=limit_sec,
        overage_sec=overage,
        shortfall_sec=shortfall,
        actions=tuple(actions),
    )

    if actions:
        logger.debug(
            "Budgeted %s to %ds (%s %.0f min): %s",
            day.day,
            total,
            constraint.mode,
            constraint.minutes,
            "; ".join(actions),
            extra=engine_extra(day=day.day),
        )
    if overage > 0:
        logger.warning(
            "%s still %.0fs over its %.0f min ceiling after trimming accessory volume",
            day.day,
            overage,
            constraint.minutes,
            extra=engine_extra(day=day.day),
        )
        if raise_on_overage:
            raise DurationBudgetExceeded(result)
    elif shortfall > 0:
        logger.info(
            "%s is %.0fs short of its %.0f min target; no more sets can be added",
            day.day,
            shortfall,
            constraint.minutes,
            extra=engine_extra(day=day.day),
        )
    return result
