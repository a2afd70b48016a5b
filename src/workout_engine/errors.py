"""Error taxonomy for the prescription and scheduling engine.

Every exception carries a ``user_message`` that callers can show as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .duration_budget import BudgetResult

EngineErrorClass = Literal[
    "prescription",
    "parse",
    "validation",
    "equipment",
    "budget",
    "generator",
    "other",
]


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class EngineError(Exception):
    """Base class for engine failures."""

    error_class: EngineErrorClass = "other"
    default_user_message = "Something went wrong while building your workout plan."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class MissingPrescription(EngineError):
    """The target selector could not resolve an exercise. Non-fatal for callers."""

    error_class = "prescription"
    default_user_message = "Some exercises are missing targets."

    def __init__(self, exercise_id: str, reason: str = "exercise not found in catalog") -> None:
        super().__init__(f"No prescription for {exercise_id!r}: {reason}")
        self.exercise_id = exercise_id
        self.reason = reason


class JSONParseError(EngineError):
    error_class = "parse"
    default_user_message = (
        "Failed to parse the generated plan. The response format was unexpected. Please try again."
    )

    def __init__(self, message: str, original_text: str | None = None) -> None:
        super().__init__(message)
        self.original_text = original_text


class ScheduleValidationError(EngineError):
    error_class = "validation"
    default_user_message = "The generated plan did not have a valid structure."

    def __init__(self, message: str, issues: list[ValidationIssue] | None = None) -> None:
        self.issues = list(issues or [])
        detail = "; ".join(str(issue) for issue in self.issues[:5])
        super().__init__(
            f"{message}: {detail}" if detail else message,
            user_message=f"{self.default_user_message} {detail}".strip() if detail else None,
        )


class EquipmentConstraintViolation(EngineError):
    error_class = "equipment"
    default_user_message = "An exercise needs equipment you have not selected."

    def __init__(self, exercise_name: str, missing_equipment: tuple[str, ...]) -> None:
        missing = ", ".join(missing_equipment) or "unknown equipment"
        super().__init__(
            f"{exercise_name!r} requires unavailable equipment: {missing}",
            user_message=f"{exercise_name} needs {missing}, which is not in your equipment list.",
        )
        self.exercise_name = exercise_name
        self.missing_equipment = missing_equipment


class DurationBudgetExceeded(EngineError):
    error_class = "budget"
    default_user_message = "This workout cannot be shortened enough to fit your time limit."

    def __init__(self, result: BudgetResult) -> None:
        minutes_over = result.overage_sec / 60.0
        super().__init__(
            f"Day {result.schedule.day!r} exceeds its ceiling by {result.overage_sec:.0f}s "
            "after trimming all accessory volume",
            user_message=(
                f"{result.schedule.day} is still about {minutes_over:.0f} min over your time limit "
                "after trimming accessory work."
            ),
        )
        self.result = result


class GeneratorError(EngineError):
    """The generative-text service failed in a way that is not retriable."""

    error_class = "generator"
    default_user_message = "The plan generator is unavailable right now. Please try again later."


class ModelUnavailableError(GeneratorError):
    """The selected model does not exist or is not served. Retriable with a fallback model."""

    def __init__(self, model: str, detail: str = "") -> None:
        super().__init__(f"Model {model!r} unavailable{': ' + detail if detail else ''}")
        self.model = model


def classify_engine_error(exc: BaseException | None) -> EngineErrorClass:
    if isinstance(exc, EngineError):
        return exc.error_class
    return "other"


def is_retriable_generation_error(exc: BaseException | None) -> bool:
    return isinstance(exc, (ModelUnavailableError, JSONParseError))
