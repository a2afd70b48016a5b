"""Prompt builders for the generative-text service.

Guideline text is keyed by the closed experience/goal tags; free-text
profile answers are mapped onto those tags before they reach this module.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from .history_metrics import HistoryMetrics
from .models import PersonalRecord, UserProfile
from .schedule_contract import DAYS_OF_WEEK

EXPERIENCE_GUIDELINES: dict[str, str] = {
    "beginner": (
        "BEGINNER: Lower volume (2-3 sets per exercise), focus on form and technique, full-body or "
        "upper/lower splits, 8-12 reps per set, longer rest periods (90-120 seconds), emphasis on "
        "learning proper movement patterns"
    ),
    "intermediate": (
        "INTERMEDIATE: Moderate to higher volume (3-5 sets per exercise), can use specialized splits "
        "(push/pull/legs, body part splits), 6-12 reps per set, rest periods 60-90 seconds, can "
        "introduce more advanced techniques"
    ),
    "advanced": (
        "ADVANCED: High volume (4-6 sets per exercise), highly specialized splits, varied rep ranges "
        "(3-20), optimized rest periods, advanced techniques, periodization, and intensity methods"
    ),
}

GOAL_GUIDELINES: dict[str, str] = {
    "fat_loss": (
        "GOAL: Weight Loss - Include higher rep ranges (12-20), incorporate cardio elements, "
        "circuit-style training options, focus on calorie burn and metabolic stress"
    ),
    "hypertrophy": (
        "GOAL: Muscle Building - Focus on hypertrophy rep ranges (8-12), progressive overload emphasis, "
        "volume accumulation, adequate rest for recovery"
    ),
    "strength": (
        "GOAL: Strength - Lower rep ranges (3-6), higher intensity, longer rest periods (2-5 minutes), "
        "focus on compound movements, progressive overload on weight"
    ),
    "general": (
        "GOAL: General Fitness - Moderate rep ranges (8-15), include both strength and hypertrophy work, "
        "some metabolic conditioning, balanced volume"
    ),
}

GOLDILOCKS_TEXT = (
    "If the user does not specify a time constraint, aim for a per-session duration in the 45-60 minute "
    "Goldilocks zone. Prefer closer to 45 minutes when in doubt, while preserving Tier 1 compounds."
)

_EXERCISE_FORMAT = """EXERCISE FORMAT REQUIREMENTS:
Each exercise must have this EXACT structure:
- "name": string (prefer from available exercises list)
- "target_sets": number (typically 3-5 based on experience level)
- "target_reps": number (not a string, e.g., 10 not "8-12")
- "target_duration_sec": number (ONLY for timed holds such as planks, instead of target_reps)
- "rest_time_sec": number (rest time in seconds between sets)
- "notes": string (technique tips, can be empty string "")"""

_EQUIPMENT_RULES = """- If the user has NO equipment selected (bodyweight only), you MUST only use bodyweight exercises (no dumbbells, barbells, machines, cables, etc.)
   - If the user has specific equipment, you MUST verify that each exercise's required equipment is in the list above
   - Exercises that require equipment NOT in the list above are FORBIDDEN"""


def describe_equipment(equipment: Sequence[str] | None) -> str:
    if equipment is None:
        return "Full gym access (all equipment available)"
    names = [e.strip() for e in equipment if e and e.strip()]
    if not names:
        return "Bodyweight only (no equipment)"
    return ", ".join(names)


def describe_time_budget(profile: UserProfile) -> str:
    if profile.duration is None:
        return GOLDILOCKS_TEXT
    minutes = f"{profile.duration.minutes:g}"
    if profile.duration.mode == "max":
        return (
            f"Each session MUST fit within {minutes} minutes including rest. "
            "Trim accessory work before touching Tier 1 compounds."
        )
    return f"Aim for sessions of about {minutes} minutes including rest, preserving Tier 1 compounds."


def _section(title: str, lines: Iterable[str]) -> str:
    body = [line for line in lines if line]
    if not body:
        return ""
    return f"\n{title}:\n" + "\n".join(body) + "\n"


def _history_lines(recent_history: Mapping[str, HistoryMetrics]) -> list[str]:
    lines: list[str] = []
    for name, metrics in recent_history.items():
        last = metrics.last_entry
        if last is None:
            continue
        if last.duration_sec:
            performed = f"{last.duration_sec:g}s"
        elif last.weight:
            performed = f"{last.reps or 0} reps @ {last.weight:g}"
        else:
            performed = f"{last.reps or 0} reps (bodyweight)"
        lines.append(f"- {name}: last {performed}, trend {metrics.trend}")
    return lines


def _pr_lines(personal_records: Mapping[str, PersonalRecord]) -> list[str]:
    lines = []
    for name, record in personal_records.items():
        reps = f" x {record.reps}" if record.reps else ""
        lines.append(f"- {name}: {record.weight:g}{reps}")
    return lines


def _profile_block(profile: UserProfile) -> str:
    lines = [
        f"- Training Goal: {profile.goal}",
        f"- Training Frequency: {profile.days_per_week} days per week",
        f"- Equipment Access: {describe_equipment(profile.equipment)}",
        f"- Experience Level: {profile.experience}",
    ]
    if profile.bodyweight_kg:
        lines.append(f"- Bodyweight: {profile.bodyweight_kg:g} kg")
    return "USER PROFILE:\n" + "\n".join(lines)


def _guidelines_block(profile: UserProfile) -> str:
    experience = EXPERIENCE_GUIDELINES.get(profile.experience, EXPERIENCE_GUIDELINES["intermediate"])
    goal = GOAL_GUIDELINES.get(profile.goal, GOAL_GUIDELINES["general"])
    return f"TRAINING GUIDELINES:\n{experience}\n\n{goal}"


def _exercise_list(available_exercises: Sequence[str], strict_hint: str) -> str:
    if not available_exercises:
        return ""
    return (
        f"\nAVAILABLE EXERCISES FROM DATABASE:\n{', '.join(available_exercises)}\n\n"
        f"IMPORTANT: You MUST prefer exercises from this list. {strict_hint}\n"
    )


def build_week_prompt(
    profile: UserProfile,
    *,
    available_exercises: Sequence[str] = (),
    coverage_recommendations: Sequence[str] = (),
    recovery_notes: Sequence[str] = (),
    prior_week: str | None = None,
    personal_records: Mapping[str, PersonalRecord] | None = None,
    recent_history: Mapping[str, HistoryMetrics] | None = None,
) -> str:
    """Prompt for a full seven-day plan returned as one JSON object."""
    days = profile.days_per_week
    equipment = describe_equipment(profile.equipment)
    week_example = ",\n".join(
        f'    "{day}": {{\n      "exercises": [...]\n    }}' for day in DAYS_OF_WEEK[1:]
    )

    parts = [
        "Generate a comprehensive weekly workout plan in JSON format.",
        "",
        _profile_block(profile),
        "",
        _guidelines_block(profile),
        "",
        f"TIME GUIDELINES:\n- {describe_time_budget(profile)}",
        _section("MOVEMENT PATTERN COVERAGE ANALYSIS", coverage_recommendations),
        _section("RECOVERY CONSIDERATIONS", recovery_notes),
        _section("PREVIOUS WEEK", [prior_week or ""]),
        _section("PERSONAL RECORDS", _pr_lines(personal_records or {})),
        _section("RECENT PERFORMANCE", _history_lines(recent_history or {})),
        _section("USER FEEDBACK TO CONSIDER", [profile.feedback or ""]),
        f"""
The response must be STRICTLY valid JSON in this exact format:
{{
  "week_schedule": {{
    "Monday": {{
      "exercises": [
        {{
          "name": "Bench Press",
          "target_sets": 3,
          "target_reps": 10,
          "rest_time_sec": 90,
          "notes": "Keep elbows tucked and squeeze scapula at top"
        }}
      ]
    }},
{week_example}
  }}
}}

REQUIREMENTS:
1. CRITICAL: The user wants to train {days} days per week. You MUST only generate workouts for exactly {days} days. The remaining days should have empty exercises arrays.
2. Choose the best {days} days based on recovery and muscle group balance.
3. Include ALL 7 days (Monday through Sunday) in the response, but only {days} should have exercises.
{_exercise_list(available_exercises, "Only create custom exercises if none from the list are suitable for the specific muscle group or movement pattern needed.")}
4. Follow the experience level guidelines for volume, intensity, and rep ranges.
5. Consider the user's goal when selecting exercises and rep ranges.
6. CRITICAL EQUIPMENT REQUIREMENT: You MUST only use exercises that can be performed with the available equipment: {equipment}
   {_EQUIPMENT_RULES}
7. Include technique tips and focus points in the "notes" field for each exercise.
8. Create a balanced program that covers squat, hinge, push and pull patterns across the {days} workout days.
9. Do NOT guess exact barbell/dumbbell weights. A separate progression engine will assign concrete loads from the user's workout history.

{_EXERCISE_FORMAT}

Return ONLY the JSON object, no other text.""",
    ]
    return "\n".join(part for part in parts if part is not None)


def build_supplementary_prompt(
    profile: UserProfile,
    day: str,
    existing_exercises: Sequence[str],
    *,
    available_exercises: Sequence[str] = (),
) -> str:
    """Prompt for complementary exercises for one day, returned as a JSON array."""
    equipment = describe_equipment(profile.equipment)
    existing = ", ".join(existing_exercises) if existing_exercises else "None"

    analysis = ""
    if existing_exercises:
        analysis = (
            f"\nEXISTING EXERCISES ANALYSIS:\nThe user already has these exercises for {day}: {existing}\n"
            "Generate exercises that COMPLEMENT these existing exercises. Consider:\n"
            "- Different muscle groups or angles\n"
            "- Opposing muscle groups (if existing are push, add pull; if legs, add upper body)\n"
            "- Different movement patterns (if existing are compound, add isolation; if isolation, add compound)\n"
        )

    return f"""Generate supplementary exercises for {day} workout in JSON format.

{_profile_block(profile)}

{_guidelines_block(profile)}
{analysis}{_section("USER FEEDBACK TO CONSIDER", [profile.feedback or ""])}
IMPORTANT:
- DO NOT duplicate or replace existing exercises: {existing}
- Only add exercises that COMPLEMENT and work well with the existing exercises
- CRITICAL EQUIPMENT REQUIREMENT: You MUST only use exercises that can be performed with the available equipment: {equipment}
   {_EQUIPMENT_RULES}
- Follow experience level guidelines for volume and rep ranges
{_exercise_list(available_exercises, "Only create custom exercises if none from the list are suitable.")}
{_EXERCISE_FORMAT}

The response must be STRICTLY valid JSON array in this exact format:
[
  {{
    "name": "Exercise Name",
    "target_sets": 3,
    "target_reps": 10,
    "rest_time_sec": 90,
    "notes": "Form tips and technique focus"
  }}
]

Return ONLY the JSON array, no other text."""
