"""Equipment availability checks.

User equipment semantics: ``None`` means full gym access, an empty sequence
means bodyweight only. An exercise with no equipment is always available.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .errors import EquipmentConstraintViolation
from .models import Exercise

logger = logging.getLogger(__name__)

EQUIPMENT_PRESETS: dict[str, tuple[str, ...] | None] = {
    "bodyweight_only": (),
    "free_weights": (
        "Dumbbells", "Kettlebells", "Medicine Balls", "Handle Bands", "Mini Loop Bands", "Loop Bands",
    ),
    "home_gym_basic": (
        "Dumbbells", "Kettlebells", "Medicine Balls", "Pull Up Bar", "Flat Bench",
        "Handle Bands", "Mini Loop Bands", "Loop Bands",
    ),
    "full_gym": None,
}


def normalize_equipment_name(name: str) -> str:
    return " ".join(name.strip().lower().split())


def _normalized(equipment: Iterable[str]) -> list[str]:
    return [n for n in (normalize_equipment_name(e) for e in equipment if e) if n]


def _available(required: str, available: list[str]) -> bool:
    if required in available:
        return True
    # "dumbbells" vs "dumbbells (5-50 lb)": either name containing the other counts
    return any(required in have or have in required for have in available)


def missing_equipment(
    required: Sequence[str],
    user_equipment: Sequence[str] | None,
) -> tuple[str, ...]:
    """Required items the user does not have, in the exercise's declared order."""
    if not required or user_equipment is None:
        return ()
    available = _normalized(user_equipment)
    return tuple(item for item in required if not _available(normalize_equipment_name(item), available))


def exercise_matches_equipment(exercise: Exercise, user_equipment: Sequence[str] | None) -> bool:
    return not missing_equipment(exercise.equipment_needed, user_equipment)


def filter_exercises_by_equipment(
    exercises: Iterable[Exercise],
    user_equipment: Sequence[str] | None,
) -> list[Exercise]:
    exercises = list(exercises)
    if user_equipment is None:
        return exercises
    kept = [e for e in exercises if exercise_matches_equipment(e, user_equipment)]
    if len(kept) != len(exercises):
        logger.debug(
            "Equipment filter kept %d of %d exercises", len(kept), len(exercises)
        )
    return kept


def ensure_equipment_available(exercise: Exercise, user_equipment: Sequence[str] | None) -> None:
    """Raise EquipmentConstraintViolation if ``exercise`` needs unavailable equipment."""
    missing = missing_equipment(exercise.equipment_needed, user_equipment)
    if missing:
        raise EquipmentConstraintViolation(exercise.name, missing)


def is_bodyweight_only(user_equipment: Sequence[str] | None) -> bool:
    return user_equipment is not None and not _normalized(user_equipment)
