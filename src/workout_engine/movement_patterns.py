"""Movement pattern, tier and muscle inference from exercise names.

Used when the generator returns an exercise name that is not in the catalog:
the slot is kept, and these heuristics give the budgeter and coverage analysis
something to work with.
"""

from __future__ import annotations

import re

from .models import Exercise

# Checked in order: hinge first ("single leg rdl"), lunge before squat ("split squat").
_PATTERN_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("hinge", (
        "deadlift", "rdl", "romanian", "hip thrust", "good morning",
        "hyperextension", "back extension", "kettlebell swing", "leg curl",
    )),
    ("lunge", ("lunge", "step up", "step-up", "split squat", "bulgarian", "pistol squat", "single leg")),
    ("squat", ("squat", "leg press", "hack squat", "leg extension")),
    # core before cardio ("crunch" contains "run"), cardio before pull ("rower" contains "row")
    ("core", ("plank", "crunch", "sit up", "sit-up", "situp", "ab wheel", "hollow", "dead bug", "leg raise")),
    ("cardio", ("run", "bike", "rower", "erg", "treadmill", "interval", "jump rope", "burpee", "elliptical")),
    ("pull", (
        "pull up", "pull-up", "pullup", "chin up", "chin-up", "pulldown", "pull down",
        "pull-down", "face pull", "row", "curl",
    )),
    ("push", (
        "overhead press", "ohp", "shoulder press", "military press", "push press", "arnold press",
        "bench", "push up", "push-up", "pushup", "dip", "chest press", "fly", "flye",
        "lateral raise", "front raise", "pushdown", "pressdown", "tricep extension",
    )),
    ("carry", ("carry", "farmer", "suitcase")),
)

_TIER1_KEYWORDS: tuple[str, ...] = (
    "squat", "deadlift", "bench", "overhead press", "shoulder press", "military press",
    "barbell row", "pull up", "pull-up", "pullup", "chin up", "chin-up", "hip thrust", "leg press",
)
_TIER3_KEYWORDS: tuple[str, ...] = (
    "stretch", "mobility", "warm", "cool", "plank", "crunch", "core", "dead bug", "band pull",
)

_MUSCLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("leg curl", ("hamstrings",)),
    ("leg extension", ("quadriceps",)),
    ("curl", ("biceps",)),
    ("pushdown", ("triceps",)),
    ("tricep", ("triceps",)),
    ("lateral raise", ("shoulders",)),
    ("calf", ("calves",)),
    ("bench", ("chest", "triceps", "shoulders")),
    ("push up", ("chest", "triceps")),
    ("dip", ("chest", "triceps")),
    ("fly", ("chest",)),
    ("overhead press", ("shoulders", "triceps")),
    ("shoulder press", ("shoulders", "triceps")),
    ("row", ("back", "biceps")),
    ("pull", ("lats", "biceps")),
    ("chin", ("lats", "biceps")),
    ("deadlift", ("hamstrings", "glutes", "back")),
    ("rdl", ("hamstrings", "glutes")),
    ("hip thrust", ("glutes", "hamstrings")),
    ("lunge", ("quadriceps", "glutes")),
    ("squat", ("quadriceps", "glutes")),
    ("leg press", ("quadriceps", "glutes")),
    ("plank", ("core",)),
    ("crunch", ("core",)),
    ("carry", ("forearms", "core", "traps")),
)

# Checked in order; every matching entry contributes its equipment.
_EQUIPMENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("barbell", ("Barbell",)),
    ("back squat", ("Barbell", "Squat Rack")),
    ("front squat", ("Barbell", "Squat Rack")),
    ("deadlift", ("Barbell",)),
    ("bench press", ("Barbell", "Flat Bench")),
    ("dumbbell", ("Dumbbells",)),
    ("kettlebell", ("Kettlebells",)),
    ("cable", ("Cable Machine",)),
    ("pulldown", ("Cable Machine",)),
    ("machine", ("Machine",)),
    ("leg press", ("Leg Press Machine",)),
    ("band", ("Loop Bands",)),
    ("pull up", ("Pull Up Bar",)),
    ("pull-up", ("Pull Up Bar",)),
    ("pullup", ("Pull Up Bar",)),
    ("chin up", ("Pull Up Bar",)),
    ("chin-up", ("Pull Up Bar",)),
    ("rower", ("Rowing Machine",)),
    ("bike", ("Bike",)),
    ("treadmill", ("Treadmill",)),
)

# Movements done without external load; their prescribed weight is 0.
_BODYWEIGHT_KEYWORDS: tuple[str, ...] = (
    "pull up", "pull-up", "pullup", "chin up", "chin-up", "push up", "push-up", "pushup",
    "dip", "sit up", "sit-up", "situp", "crunch", "plank", "burpee", "mountain climber",
    "bodyweight", "air squat", "lunge", "jumping jack", "pistol squat", "handstand push",
    "muscle up", "muscle-up",
)

# Any of these in the name means external load ("dumbbell lunge", "weighted dip").
_LOADED_KEYWORDS: tuple[str, ...] = ("weighted", "dumbbell", "barbell", "kettlebell", "cable", "machine", "vest")

# Density by tier when the catalog has no score.
TIER_DENSITY: dict[int, float] = {1: 9.0, 2: 5.0, 3: 2.0}

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _normalize_name(name: str | None) -> str:
    return (name or "").strip().lower()


def slugify_exercise_name(name: str) -> str:
    return _SLUG_RE.sub("_", _normalize_name(name)).strip("_")


def infer_movement_pattern(name: str | None) -> str:
    normalized = _normalize_name(name)
    if not normalized:
        return "other"
    if "upright row" in normalized:
        return "push"
    for pattern, keywords in _PATTERN_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return pattern
    return "other"


def infer_tier(name: str | None) -> int:
    """1 = compound, 2 = accessory, 3 = prehab/mobility/core."""
    normalized = _normalize_name(name)
    if any(keyword in normalized for keyword in _TIER1_KEYWORDS):
        return 1
    if any(keyword in normalized for keyword in _TIER3_KEYWORDS):
        return 3
    return 2


def infer_primary_muscles(name: str | None) -> frozenset[str]:
    normalized = _normalize_name(name)
    for keyword, muscles in _MUSCLE_KEYWORDS:
        if keyword in normalized:
            return frozenset(muscles)
    return frozenset()


def infer_equipment(name: str | None) -> tuple[str, ...]:
    """Equipment implied by the name; weighted variants ("dumbbell lunge") win over bodyweight."""
    normalized = _normalize_name(name)
    found: list[str] = []
    for keyword, equipment in _EQUIPMENT_KEYWORDS:
        if keyword in normalized:
            found.extend(e for e in equipment if e not in found)
    return tuple(found)


def is_bodyweight_name(name: str | None) -> bool:
    normalized = _normalize_name(name)
    if any(keyword in normalized for keyword in _LOADED_KEYWORDS):
        return False
    return any(keyword in normalized for keyword in _BODYWEIGHT_KEYWORDS)


def exercise_from_name(name: str, *, is_timed: bool = False) -> Exercise:
    """Build a best-effort Exercise for a name that is not in the catalog."""
    tier = infer_tier(name)
    pattern = infer_movement_pattern(name)
    return Exercise(
        exercise_id=f"uncataloged:{slugify_exercise_name(name)}",
        name=name.strip(),
        movement_pattern=pattern,
        primary_muscles=infer_primary_muscles(name),
        is_timed=is_timed,
        is_unilateral="single" in _normalize_name(name) or pattern == "lunge",
        tempo_category="grind" if tier == 1 else "standard",
        density_score=TIER_DENSITY[tier],
        equipment_needed=infer_equipment(name),
    )


def exercise_tier(exercise: Exercise, tier1_density_threshold: float) -> int:
    """Tier from the catalog density score, falling back to the name for low-density core work."""
    if exercise.density_score >= tier1_density_threshold:
        return 1
    if exercise.movement_pattern == "core" or infer_tier(exercise.name) == 3:
        return 3
    return 2
