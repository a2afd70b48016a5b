"""Contract for generator output: a seven-day week of exercise entries.

Obviously-fixable issues (stringified numbers, "8-12" rep ranges, lowercase
day names, a missing ``exercises`` wrapper) are normalized once; entries that
remain invalid are dropped and reported as field-level issues.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .errors import ScheduleValidationError, ValidationIssue

logger = logging.getLogger(__name__)

DAYS_OF_WEEK: tuple[str, ...] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_DAY_LOOKUP: dict[str, str] = {}
for _day in DAYS_OF_WEEK:
    _DAY_LOOKUP[_day.lower()] = _day
    _DAY_LOOKUP[_day[:3].lower()] = _day

DEFAULT_REST_TIME_SEC = 60

_INT_RE = re.compile(r"\d+")
_RANGE_RE = re.compile(r"^\s*(\d+)\s*[-–]\s*(\d+)\s*$")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def _coerce_int(value: Any, field_name: str) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _INT_RE.search(value)
        if not match:
            raise ValueError(f"{field_name} must be a number")
        return int(match.group(0))
    return value


class GeneratedExercise(BaseModel):
    """One exercise entry as returned by the generator, after normalization."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    target_sets: int
    target_reps: int | None = None
    target_reps_max: int | None = None
    target_duration_sec: float | None = None
    rest_time_sec: int = DEFAULT_REST_TIME_SEC
    notes: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Exercise name is required and must be a non-empty string")
        return " ".join(value.split())

    @field_validator("target_sets", mode="before")
    @classmethod
    def coerce_sets(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("target_sets is required")
        return _coerce_int(value, "target_sets")

    @field_validator("target_sets")
    @classmethod
    def positive_sets(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("target_sets must be a positive number")
        return value

    @field_validator("target_reps", mode="before")
    @classmethod
    def coerce_reps(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if "-" in text or "–" in text:
                match = _RANGE_RE.match(text)
                if not match or int(match.group(1)) <= 0 or int(match.group(1)) >= int(match.group(2)):
                    raise ValueError('target_reps range must be valid (e.g., "8-12")')
                return int(match.group(1))
        return _coerce_int(value, "target_reps")

    @field_validator("target_reps")
    @classmethod
    def positive_reps(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("target_reps must be a positive number or range")
        return value

    @field_validator("target_duration_sec", mode="before")
    @classmethod
    def coerce_duration(cls, value: Any) -> Any:
        if value is None or isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            match = _NUMBER_RE.search(value)
            if not match:
                raise ValueError("target_duration_sec must be a number of seconds")
            seconds = float(match.group(0))
            if "min" in value.lower():
                seconds *= 60
            return seconds
        raise ValueError("target_duration_sec must be a number of seconds")

    @field_validator("target_duration_sec")
    @classmethod
    def positive_duration(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("target_duration_sec must be positive")
        return value

    @field_validator("rest_time_sec", mode="before")
    @classmethod
    def coerce_rest(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_REST_TIME_SEC
        return _coerce_int(value, "rest_time_sec")

    @field_validator("rest_time_sec")
    @classmethod
    def non_negative_rest(cls, value: int) -> int:
        if value < 0:
            raise ValueError("rest_time_sec must be a non-negative number")
        return value

    @field_validator("notes", mode="before")
    @classmethod
    def trim_notes(cls, value: Any) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @model_validator(mode="before")
    @classmethod
    def capture_rep_range(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("target_reps"), str):
            match = _RANGE_RE.match(data["target_reps"])
            if match and "target_reps_max" not in data:
                data = {**data, "target_reps_max": int(match.group(2))}
        return data

    @model_validator(mode="after")
    def require_reps_or_duration(self) -> "GeneratedExercise":
        if self.target_reps is None and self.target_duration_sec is None:
            raise ValueError("target_reps is required")
        return self

    @property
    def is_timed(self) -> bool:
        return self.target_reps is None and self.target_duration_sec is not None


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _issues_from_validation_error(exc: ValidationError, prefix: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []))
        message = str(err.get("msg", "invalid value")).removeprefix("Value error, ")
        issues.append(ValidationIssue(field=f"{prefix}.{loc}" if loc else prefix, message=message))
    return issues


def validate_exercise_entries(
    raw_entries: Sequence[Any],
    prefix: str = "exercises",
) -> tuple[list[GeneratedExercise], list[ValidationIssue]]:
    """Validate each raw entry; invalid ones are dropped and reported."""
    valid: list[GeneratedExercise] = []
    issues: list[ValidationIssue] = []
    for index, raw in enumerate(raw_entries):
        entry_prefix = f"{prefix}[{index}]"
        if not isinstance(raw, dict):
            issues.append(ValidationIssue(field=entry_prefix, message="exercise must be an object"))
            continue
        try:
            valid.append(GeneratedExercise.model_validate(raw))
        except ValidationError as exc:
            issues.extend(_issues_from_validation_error(exc, entry_prefix))
    return valid, issues


def canonical_day(key: Any) -> str | None:
    if not isinstance(key, str):
        return None
    return _DAY_LOOKUP.get(key.strip().lower())


@dataclass
class NormalizedWeek:
    raw_days: dict[str, list[Any]]
    issues: list[ValidationIssue] = field(default_factory=list)


def normalize_week_payload(payload: Any) -> NormalizedWeek:
    """Ensure exactly seven calendar-day keys, each with an exercise list.

    Accepts an optional ``week_schedule`` wrapper. Missing days default to
    empty. Raises ScheduleValidationError when the payload has no usable
    day structure at all.
    """
    if isinstance(payload, dict) and isinstance(payload.get("week_schedule"), dict):
        payload = payload["week_schedule"]
    if not isinstance(payload, dict):
        raise ScheduleValidationError(
            "Generated plan has no week structure",
            [ValidationIssue(field="week_schedule", message="week_schedule must be an object")],
        )

    raw_days: dict[str, list[Any]] = {day: [] for day in DAYS_OF_WEEK}
    issues: list[ValidationIssue] = []
    recognized = 0

    for key, value in payload.items():
        day = canonical_day(key)
        if day is None:
            issues.append(ValidationIssue(field=str(key), message="unknown day key"))
            continue
        recognized += 1
        if isinstance(value, dict):
            exercises = value.get("exercises")
            if exercises is None:
                exercises = []
            if not isinstance(exercises, list):
                issues.append(ValidationIssue(field=f"{day}.exercises", message=f"{day}.exercises must be an array"))
                exercises = []
        elif isinstance(value, list):
            exercises = value
        elif value is None:
            exercises = []
        else:
            issues.append(ValidationIssue(field=day, message=f"{day} must be an object"))
            exercises = []
        raw_days[day].extend(exercises)

    if payload and recognized == 0:
        raise ScheduleValidationError("Generated plan has no recognizable day keys", issues)

    return NormalizedWeek(raw_days=raw_days, issues=issues)


@dataclass
class ValidatedWeek:
    days: dict[str, list[GeneratedExercise]]
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def content_days(self) -> list[str]:
        return [day for day in DAYS_OF_WEEK if self.days.get(day)]


def validate_week_payload(payload: Any) -> ValidatedWeek:
    """Normalize then validate a full week.

    Raises ScheduleValidationError when entries were supplied but none of them
    survived validation.
    """
    normalized = normalize_week_payload(payload)
    issues = list(normalized.issues)
    days: dict[str, list[GeneratedExercise]] = {}
    supplied = 0
    for day in DAYS_OF_WEEK:
        raw_entries = normalized.raw_days[day]
        supplied += len(raw_entries)
        valid, day_issues = validate_exercise_entries(raw_entries, prefix=f"{day}.exercises")
        days[day] = valid
        issues.extend(day_issues)

    if supplied and not any(days.values()):
        raise ScheduleValidationError("No valid exercises in generated plan", issues)

    if issues:
        logger.warning("Dropped or normalized %d issue(s) in generated week", len(issues))
    return ValidatedWeek(days=days, issues=issues)


def validate_supplement_payload(payload: Any) -> tuple[list[GeneratedExercise], list[ValidationIssue]]:
    """Validate a supplementary exercise list (a JSON array, or an object with ``exercises``)."""
    if isinstance(payload, dict) and isinstance(payload.get("exercises"), list):
        payload = payload["exercises"]
    if not isinstance(payload, list):
        raise ScheduleValidationError(
            "Supplementary exercises must be an array",
            [ValidationIssue(field="exercises", message="exercises must be an array")],
        )
    valid, issues = validate_exercise_entries(payload)
    if payload and not valid:
        raise ScheduleValidationError("No valid supplementary exercises", issues)
    return valid, issues


# ---------------------------------------------------------------------------
# Training-day count
# ---------------------------------------------------------------------------

T = TypeVar("T")


def enforce_days_per_week(
    days: Mapping[str, Sequence[T]],
    days_per_week: int,
    priority: Iterable[str] | None = None,
) -> tuple[dict[str, list[T]], list[str]]:
    """Keep the first ``days_per_week`` content days in priority order, empty the rest.

    ``priority`` defaults to calendar order. Returns the adjusted week (in
    calendar order) and the days that were emptied. Fewer content days than
    requested are left as they are.
    """
    order = list(priority) if priority is not None else list(DAYS_OF_WEEK)
    order += [day for day in DAYS_OF_WEEK if day not in order]

    kept: set[str] = set()
    emptied: list[str] = []
    for day in order:
        if not days.get(day):
            continue
        if len(kept) < days_per_week:
            kept.add(day)
        else:
            emptied.append(day)

    content = sum(1 for day in DAYS_OF_WEEK if days.get(day))
    if content < days_per_week:
        logger.info("Generator produced %d training day(s), %d requested", content, days_per_week)
    elif emptied:
        logger.info("Emptied %s to keep %d training day(s)", ", ".join(emptied), days_per_week)

    adjusted = {day: list(days.get(day, [])) if day in kept else [] for day in DAYS_OF_WEEK}
    return adjusted, emptied
