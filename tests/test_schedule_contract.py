"""Tests for generator output normalization and validation."""

import pytest
from pydantic import ValidationError

from workout_engine.errors import ScheduleValidationError
from workout_engine.schedule_contract import (
    DAYS_OF_WEEK,
    GeneratedExercise,
    canonical_day,
    enforce_days_per_week,
    normalize_week_payload,
    validate_exercise_entries,
    validate_supplement_payload,
    validate_week_payload,
)


def _exercise(name="Goblet Squat", **overrides) -> dict:
    entry = {"name": name, "target_sets": 3, "target_reps": 10, "rest_time_sec": 90, "notes": ""}
    entry.update(overrides)
    return entry


class TestGeneratedExercise:
    def test_stringified_numbers_are_normalized(self):
        entry = GeneratedExercise.model_validate(
            _exercise(target_sets="4", target_reps="8", rest_time_sec="120 seconds")
        )
        assert (entry.target_sets, entry.target_reps, entry.rest_time_sec) == (4, 8, 120)

    def test_rep_range_keeps_low_end_and_max(self):
        entry = GeneratedExercise.model_validate(_exercise(target_reps="8-12"))
        assert entry.target_reps == 8
        assert entry.target_reps_max == 12

    def test_invalid_rep_range(self):
        with pytest.raises(ValidationError):
            GeneratedExercise.model_validate(_exercise(target_reps="12-8"))

    def test_whole_float_is_accepted(self):
        assert GeneratedExercise.model_validate(_exercise(target_sets=3.0)).target_sets == 3

    def test_timed_entry(self):
        raw = {"name": "Plank", "target_sets": 3, "target_duration_sec": "45 seconds"}
        entry = GeneratedExercise.model_validate(raw)
        assert entry.is_timed
        assert entry.target_duration_sec == 45.0
        assert entry.rest_time_sec == 60

    def test_duration_in_minutes(self):
        raw = {"name": "Farmer Carry", "target_sets": 2, "target_duration_sec": "1 min"}
        assert GeneratedExercise.model_validate(raw).target_duration_sec == 60.0

    def test_requires_reps_or_duration(self):
        with pytest.raises(ValidationError):
            GeneratedExercise.model_validate({"name": "Mystery", "target_sets": 3})

    def test_name_is_cleaned(self):
        entry = GeneratedExercise.model_validate(_exercise(name="  Goblet   Squat "))
        assert entry.name == "Goblet Squat"

    def test_empty_notes_become_none(self):
        assert GeneratedExercise.model_validate(_exercise(notes="   ")).notes is None

    def test_unknown_fields_ignored(self):
        entry = GeneratedExercise.model_validate(_exercise(weight=100, tempo="3-1-1"))
        assert not hasattr(entry, "tempo")

    @pytest.mark.parametrize("field,value", [
        ("target_sets", 0),
        ("target_sets", "lots"),
        ("target_sets", True),
        ("target_reps", -2),
        ("rest_time_sec", -10),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            GeneratedExercise.model_validate(_exercise(**{field: value}))


class TestValidateExerciseEntries:
    def test_invalid_entries_dropped_with_field_level_issues(self):
        raw = [
            _exercise(),
            _exercise(name="Bad Sets", target_sets="lots"),
            {"target_sets": 3, "target_reps": 10},
            "Push Up",
        ]
        valid, issues = validate_exercise_entries(raw, prefix="Monday.exercises")
        assert [entry.name for entry in valid] == ["Goblet Squat"]
        fields = [issue.field for issue in issues]
        assert "Monday.exercises[1].target_sets" in fields
        assert "Monday.exercises[2].name" in fields
        assert "Monday.exercises[3]" in fields
        messages = {issue.field: issue.message for issue in issues}
        assert messages["Monday.exercises[1].target_sets"] == "target_sets must be a number"

    def test_missing_reps_reported_on_entry(self):
        _valid, issues = validate_exercise_entries([{"name": "Mystery", "target_sets": 3}])
        assert issues[0].field == "exercises[0]"
        assert issues[0].message == "target_reps is required"


class TestNormalizeWeekPayload:
    def test_week_schedule_wrapper_and_missing_days(self):
        normalized = normalize_week_payload({"week_schedule": {"Monday": {"exercises": [_exercise()]}}})
        assert list(normalized.raw_days) == list(DAYS_OF_WEEK)
        assert len(normalized.raw_days["Monday"]) == 1
        assert normalized.raw_days["Sunday"] == []

    def test_lowercase_and_abbreviated_days(self):
        normalized = normalize_week_payload({"monday": [_exercise()], "THU": {"exercises": [_exercise()]}})
        assert len(normalized.raw_days["Monday"]) == 1
        assert len(normalized.raw_days["Thursday"]) == 1

    def test_unknown_keys_reported(self):
        normalized = normalize_week_payload({"Monday": {"exercises": []}, "Someday": {"exercises": []}})
        assert [issue.field for issue in normalized.issues] == ["Someday"]

    def test_non_list_exercises(self):
        normalized = normalize_week_payload({"Monday": {"exercises": "rest"}})
        assert normalized.raw_days["Monday"] == []
        assert normalized.issues[0].field == "Monday.exercises"

    def test_no_day_keys_raises(self):
        with pytest.raises(ScheduleValidationError) as exc_info:
            normalize_week_payload({"plan": "three days"})
        assert exc_info.value.issues[0].field == "plan"

    def test_not_an_object_raises(self):
        with pytest.raises(ScheduleValidationError):
            normalize_week_payload(["Monday"])

    def test_canonical_day(self):
        assert canonical_day(" wed ") == "Wednesday"
        assert canonical_day("Funday") is None
        assert canonical_day(3) is None


class TestValidateWeekPayload:
    def test_valid_week(self):
        validated = validate_week_payload({
            "Monday": {"exercises": [_exercise(), _exercise(name="Push Up")]},
            "Wednesday": {"exercises": [_exercise(name="Plank", target_reps=None, target_duration_sec=45)]},
        })
        assert validated.content_days == ["Monday", "Wednesday"]
        assert validated.issues == []
        assert validated.days["Wednesday"][0].is_timed

    def test_partial_validity_keeps_good_entries(self):
        validated = validate_week_payload({
            "Monday": {"exercises": [_exercise(), _exercise(target_sets=None)]},
        })
        assert len(validated.days["Monday"]) == 1
        assert validated.issues[0].field == "Monday.exercises[1].target_sets"

    def test_all_invalid_raises_with_issues(self):
        with pytest.raises(ScheduleValidationError) as exc_info:
            validate_week_payload({"Monday": {"exercises": [{"name": ""}]}})
        assert exc_info.value.issues
        assert "Monday.exercises[0]" in str(exc_info.value)

    def test_empty_week_is_not_an_error(self):
        validated = validate_week_payload({day: {"exercises": []} for day in DAYS_OF_WEEK})
        assert validated.content_days == []


class TestValidateSupplementPayload:
    def test_array(self):
        valid, issues = validate_supplement_payload([_exercise(), _exercise(name="Push Up")])
        assert len(valid) == 2
        assert issues == []

    def test_wrapped_array(self):
        valid, _issues = validate_supplement_payload({"exercises": [_exercise()]})
        assert len(valid) == 1

    def test_not_an_array_raises(self):
        with pytest.raises(ScheduleValidationError):
            validate_supplement_payload({"name": "Push Up"})


class TestEnforceDaysPerWeek:
    def test_keeps_first_n_in_calendar_order(self):
        days = {"Monday": ["a"], "Wednesday": ["b"], "Friday": ["c"], "Saturday": ["d"]}
        adjusted, emptied = enforce_days_per_week(days, 3)
        assert emptied == ["Saturday"]
        assert [day for day in DAYS_OF_WEEK if adjusted[day]] == ["Monday", "Wednesday", "Friday"]
        assert list(adjusted) == list(DAYS_OF_WEEK)

    def test_priority_order(self):
        days = {"Monday": ["a"], "Wednesday": ["b"], "Friday": ["c"], "Saturday": ["d"]}
        adjusted, emptied = enforce_days_per_week(days, 2, priority=["Saturday", "Wednesday"])
        assert [day for day in DAYS_OF_WEEK if adjusted[day]] == ["Wednesday", "Saturday"]
        assert emptied == ["Monday", "Friday"]

    def test_fewer_days_than_requested_are_not_fabricated(self):
        adjusted, emptied = enforce_days_per_week({"Tuesday": ["a"]}, 4)
        assert emptied == []
        assert [day for day in DAYS_OF_WEEK if adjusted[day]] == ["Tuesday"]

    def test_input_is_not_mutated(self):
        days = {"Monday": ["a"], "Tuesday": ["b"]}
        enforce_days_per_week(days, 1)
        assert days == {"Monday": ["a"], "Tuesday": ["b"]}
