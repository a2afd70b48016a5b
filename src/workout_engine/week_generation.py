"""Week generation orchestrator.

Sequence: candidate exercises -> prompt -> generator -> JSON extraction ->
week normalization and validation -> name resolution and equipment check ->
training-day count -> duration budget -> weight fill. The result is a value
for the caller to persist; the engine stores nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from .config import DEFAULT_FALLBACK_MODEL, Config
from .coverage import analyze_coverage, sessions_from_logs
from .duration_budget import BudgetResult, fit_day_to_duration
from .equipment import filter_exercises_by_equipment, missing_equipment
from .errors import (
    EquipmentConstraintViolation,
    JSONParseError,
    MissingPrescription,
    ModelUnavailableError,
    ValidationIssue,
)
from .generator_client import GenerativeTextClient, ModelCache
from .history_metrics import compute_history_metrics
from .json_extraction import ExpectedShape, extract_json
from .logging import engine_extra
from .models import (
    CoverageAnalysis,
    DaySchedule,
    Exercise,
    ExerciseTarget,
    PerformanceLogEntry,
    PersonalRecord,
    ScheduledExercise,
    UserProfile,
    as_utc,
)
from .movement_patterns import exercise_from_name, is_bodyweight_name, slugify_exercise_name
from .muscle_recovery import recovery_states_from_logs
from .progression import fill_target_weight, is_blank_weight
from .prompts import build_supplementary_prompt, build_week_prompt
from .schedule_contract import (
    DAYS_OF_WEEK,
    GeneratedExercise,
    enforce_days_per_week,
    validate_supplement_payload,
    validate_week_payload,
)
from .tables import DEFAULT_TABLES, EngineTables, VolumeBand
from .target_selection import select_exercise_target

logger = logging.getLogger(__name__)

# Logged sessions older than this do not feed the prompt's coverage section.
COVERAGE_LOOKBACK = timedelta(days=14)


@dataclass(frozen=True)
class WeekGenerationRequest:
    profile: UserProfile
    catalog: Mapping[str, Exercise]
    custom_exercises: Sequence[Exercise] = ()
    history: Mapping[str, Sequence[PerformanceLogEntry]] = field(default_factory=dict)
    personal_records: Mapping[str, PersonalRecord] = field(default_factory=dict)
    prior_week: str | None = None
    day_priority: Sequence[str] | None = None
    now: datetime | None = None

    def merged_catalog(self) -> dict[str, Exercise]:
        merged = dict(self.catalog)
        for exercise in self.custom_exercises:
            merged[exercise.exercise_id] = exercise
        return merged

    def reference_time(self) -> datetime:
        """``now`` when given (naive values are taken as UTC), else the current time."""
        return as_utc(self.now) if self.now is not None else datetime.now(UTC)


@dataclass(frozen=True)
class SuggestedWeight:
    day: str
    exercise_id: str
    weight: float


@dataclass(frozen=True)
class GeneratedWeek:
    days: dict[str, DaySchedule]
    budgets: dict[str, BudgetResult]
    issues: tuple[ValidationIssue, ...]
    missing_targets: tuple[str, ...]
    equipment_violations: tuple[EquipmentConstraintViolation, ...]
    suggested_weights: tuple[SuggestedWeight, ...]
    emptied_days: tuple[str, ...]
    coverage: CoverageAnalysis
    model: str

    @property
    def training_days(self) -> list[str]:
        return [day for day in DAYS_OF_WEEK if not self.days[day].is_rest_day]


@dataclass(frozen=True)
class GeneratedSupplement:
    day: str
    entries: tuple[ScheduledExercise, ...]
    issues: tuple[ValidationIssue, ...]
    missing_targets: tuple[str, ...]
    equipment_violations: tuple[EquipmentConstraintViolation, ...]
    suggested_weights: tuple[SuggestedWeight, ...]
    model: str


@dataclass
class _Resolution:
    """Accumulates per-entry outcomes while resolving generated names."""

    missing_targets: list[str] = field(default_factory=list)
    violations: list[EquipmentConstraintViolation] = field(default_factory=list)
    suggested: list[SuggestedWeight] = field(default_factory=list)


def _midpoint(low: int, high: int) -> int:
    return (low + high) // 2


class WeekGenerator:
    """Composes the engine around an injected generative-text client."""

    def __init__(
        self,
        client: GenerativeTextClient,
        *,
        model_cache: ModelCache | None = None,
        tables: EngineTables = DEFAULT_TABLES,
        fallback_model: str = DEFAULT_FALLBACK_MODEL,
        max_attempts: int = 2,
    ) -> None:
        self._client = client
        self._cache = model_cache or ModelCache(fallback_model=fallback_model)
        self._tables = tables
        self._fallback_model = fallback_model
        self._max_attempts = max(1, max_attempts)

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: GenerativeTextClient,
        *,
        tables: EngineTables = DEFAULT_TABLES,
    ) -> "WeekGenerator":
        cache = ModelCache(config.model_cache_ttl_seconds, fallback_model=config.fallback_model)
        return cls(client, model_cache=cache, tables=tables, fallback_model=config.fallback_model)

    # ------------------------------------------------------------------
    # Generator call with one bounded retry
    # ------------------------------------------------------------------

    async def _generate_payload(
        self,
        prompt: str,
        expect: ExpectedShape,
        *,
        user_id: str,
    ) -> tuple[Any, str]:
        model = await self._cache.resolve(self._client)
        attempt = 1
        while True:
            try:
                text = await self._client.generate(prompt, model=model)
                payload = extract_json(text, expect=expect)
            except (ModelUnavailableError, JSONParseError) as exc:
                self._cache.invalidate()
                if attempt >= self._max_attempts:
                    logger.error(
                        "Generation failed after %d attempt(s): %s",
                        attempt,
                        exc,
                        extra=engine_extra(user_id=user_id, model=model),
                    )
                    raise
                logger.warning(
                    "Generation with %s failed (%s); retrying with %s",
                    model,
                    type(exc).__name__,
                    self._fallback_model,
                    extra=engine_extra(user_id=user_id, model=model),
                )
                model = self._fallback_model
                attempt += 1
                continue
            self._cache.set(model)
            return payload, model

    # ------------------------------------------------------------------
    # Prompt context
    # ------------------------------------------------------------------

    def _prompt_context(self, request: WeekGenerationRequest, catalog: Mapping[str, Exercise]) -> dict[str, Any]:
        now = request.reference_time()
        logs = [entry for entries in request.history.values() for entry in entries]
        recent = [entry for entry in logs if now - entry.performed_at <= COVERAGE_LOOKBACK]

        states = recovery_states_from_logs(logs, catalog, now=now, table=self._tables.recovery)
        coverage = analyze_coverage(
            sessions_from_logs(recent, catalog),
            recovery_states=states,
            table=self._tables.coverage,
        )
        recovery_notes = [
            f"{muscle.title()} is still recovering ({states[muscle].recovery_fraction:.0%}); "
            "avoid heavy work for it early in the week."
            for muscle in coverage.recovery_fatigued_muscles
        ]

        names = {exercise_id: exercise.name for exercise_id, exercise in catalog.items()}
        return {
            "coverage_recommendations": list(coverage.recommendations) if recent else [],
            "recovery_notes": recovery_notes,
            "prior_week": request.prior_week,
            "personal_records": {
                names.get(exercise_id, exercise_id): record
                for exercise_id, record in request.personal_records.items()
            },
            "recent_history": {
                names.get(exercise_id, exercise_id): compute_history_metrics(entries, table=self._tables.history)
                for exercise_id, entries in request.history.items()
                if entries
            },
        }

    # ------------------------------------------------------------------
    # Resolution and prescriptions
    # ------------------------------------------------------------------

    def _band(self, profile: UserProfile) -> VolumeBand:
        return self._tables.volume.band_for(profile.experience, profile.goal)

    def _target_from_generated(
        self,
        exercise: Exercise,
        generated: GeneratedExercise,
        band: VolumeBand,
    ) -> ExerciseTarget:
        """Use the generator's numbers; volume-table defaults fill the gaps."""
        if exercise.is_timed:
            duration = generated.target_duration_sec or _midpoint(band.duration_sec_min, band.duration_sec_max)
            return ExerciseTarget(
                mode="duration",
                sets=generated.target_sets,
                duration_sec=duration,
                rest_time_sec=generated.rest_time_sec,
            )
        reps = generated.target_reps or _midpoint(band.reps_min, band.reps_max)
        # a catalog row without equipment data is not evidence of a bodyweight movement
        weight = 0.0 if is_bodyweight_name(exercise.name) else None
        return ExerciseTarget(
            mode="reps",
            sets=generated.target_sets,
            reps=reps,
            weight=weight,
            rest_time_sec=generated.rest_time_sec,
        )

    def _resolve_entries(
        self,
        day: str,
        generated: Sequence[GeneratedExercise],
        lookup: Mapping[str, Exercise],
        profile: UserProfile,
        outcome: _Resolution,
    ) -> list[ScheduledExercise]:
        band = self._band(profile)
        entries: list[ScheduledExercise] = []
        for item in generated:
            exercise = lookup.get(slugify_exercise_name(item.name))
            uncataloged = exercise is None
            if exercise is None:
                exercise = exercise_from_name(item.name, is_timed=item.is_timed)

            missing = missing_equipment(exercise.equipment_needed, profile.equipment)
            if missing:
                violation = EquipmentConstraintViolation(exercise.name, missing)
                outcome.violations.append(violation)
                logger.warning(
                    "Dropped %s on %s: %s",
                    exercise.name,
                    day,
                    violation,
                    extra=engine_extra(day=day, user_id=profile.user_id),
                )
                continue

            if uncataloged:
                outcome.missing_targets.append(f"{day}: {exercise.name}")
                entries.append(ScheduledExercise(exercise=exercise, target=None, notes=item.notes))
                continue

            target = self._target_from_generated(exercise, item, band)
            entries.append(ScheduledExercise(exercise=exercise, target=target, notes=item.notes))
        return entries

    def _fill_weights(
        self,
        day: str,
        entries: Sequence[ScheduledExercise],
        request: WeekGenerationRequest,
        catalog: Mapping[str, Exercise],
        outcome: _Resolution,
    ) -> list[ScheduledExercise]:
        """Fill blank loads through the target selector; explicit weights are kept."""
        context = request.profile.target_context()
        filled: list[ScheduledExercise] = []
        for entry in entries:
            target = entry.target
            if target is None or target.mode != "reps" or not is_blank_weight(target.weight):
                filled.append(entry)
                continue
            exercise_id = entry.exercise.exercise_id
            history = request.history.get(exercise_id, ())
            try:
                selected = select_exercise_target(
                    exercise_id,
                    catalog,
                    context,
                    history=history,
                    personal_record=request.personal_records.get(exercise_id),
                    profile=request.profile,
                    tables=self._tables,
                )
            except MissingPrescription:
                outcome.missing_targets.append(f"{day}: {entry.exercise.name}")
                filled.append(entry)
                continue
            new_target = fill_target_weight(target, selected.weight)
            if new_target is not target and new_target.weight is not None:
                outcome.suggested.append(SuggestedWeight(day=day, exercise_id=exercise_id, weight=new_target.weight))
            filled.append(ScheduledExercise(exercise=entry.exercise, target=new_target, notes=entry.notes))
        return filled

    @staticmethod
    def _name_lookup(exercises: Sequence[Exercise]) -> dict[str, Exercise]:
        lookup: dict[str, Exercise] = {}
        for exercise in exercises:
            lookup.setdefault(slugify_exercise_name(exercise.name), exercise)
        return lookup

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def generate_week(self, request: WeekGenerationRequest) -> GeneratedWeek:
        profile = request.profile
        catalog = request.merged_catalog()

        candidates = filter_exercises_by_equipment(catalog.values(), profile.equipment)
        prompt = build_week_prompt(
            profile,
            available_exercises=[exercise.name for exercise in candidates],
            **self._prompt_context(request, catalog),
        )

        payload, model = await self._generate_payload(prompt, "object", user_id=profile.user_id)
        validated = validate_week_payload(payload)

        # All known exercises resolve by name so equipment violations can be reported, not just missed.
        lookup = self._name_lookup(list(catalog.values()))
        outcome = _Resolution()
        resolved = {
            day: self._resolve_entries(day, validated.days[day], lookup, profile, outcome)
            for day in DAYS_OF_WEEK
        }
        kept, emptied = enforce_days_per_week(resolved, profile.days_per_week, request.day_priority)

        days: dict[str, DaySchedule] = {}
        budgets: dict[str, BudgetResult] = {}
        for day in DAYS_OF_WEEK:
            schedule = DaySchedule(day=day, entries=tuple(kept[day]))
            if not schedule.is_rest_day and profile.duration is not None:
                budget = fit_day_to_duration(schedule, profile.duration, tables=self._tables)
                budgets[day] = budget
                schedule = budget.schedule
            entries = self._fill_weights(day, schedule.entries, request, catalog, outcome)
            days[day] = DaySchedule(day=day, entries=tuple(entries))

        week = GeneratedWeek(
            days=days,
            budgets=budgets,
            issues=tuple(validated.issues),
            missing_targets=tuple(outcome.missing_targets),
            equipment_violations=tuple(outcome.violations),
            suggested_weights=tuple(outcome.suggested),
            emptied_days=tuple(emptied),
            coverage=analyze_coverage(
                [days[day] for day in DAYS_OF_WEEK if not days[day].is_rest_day],
                table=self._tables.coverage,
            ),
            model=model,
        )
        logger.info(
            "Generated week with %d training day(s), %d missing target(s), %d equipment violation(s)",
            len(week.training_days),
            len(week.missing_targets),
            len(week.equipment_violations),
            extra=engine_extra(user_id=profile.user_id, model=model),
        )
        return week

    async def generate_day_supplement(
        self,
        request: WeekGenerationRequest,
        day: str,
        existing: DaySchedule | None = None,
    ) -> GeneratedSupplement:
        """Complementary exercises for one day; names already on the day are skipped."""
        profile = request.profile
        catalog = request.merged_catalog()
        existing_entries = existing.entries if existing is not None else ()
        existing_names = [entry.exercise.name for entry in existing_entries]

        candidates = filter_exercises_by_equipment(catalog.values(), profile.equipment)
        prompt = build_supplementary_prompt(
            profile,
            day,
            existing_names,
            available_exercises=[exercise.name for exercise in candidates],
        )
        payload, model = await self._generate_payload(prompt, "array", user_id=profile.user_id)
        generated, issues = validate_supplement_payload(payload)

        taken = {slugify_exercise_name(name) for name in existing_names}
        fresh: list[GeneratedExercise] = []
        for item in generated:
            key = slugify_exercise_name(item.name)
            if key in taken:
                issues.append(ValidationIssue(field=item.name, message="duplicates an existing exercise"))
                continue
            taken.add(key)
            fresh.append(item)

        outcome = _Resolution()
        lookup = self._name_lookup(list(catalog.values()))
        entries = self._resolve_entries(day, fresh, lookup, profile, outcome)
        entries = self._fill_weights(day, entries, request, catalog, outcome)

        return GeneratedSupplement(
            day=day,
            entries=tuple(entries),
            issues=tuple(issues),
            missing_targets=tuple(outcome.missing_targets),
            equipment_violations=tuple(outcome.violations),
            suggested_weights=tuple(outcome.suggested),
            model=model,
        )
