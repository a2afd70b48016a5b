"""Tests for model normalization: pattern aliases, profile tags, timestamps."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from workout_engine.models import Exercise, PerformanceLogEntry, UserProfile, as_utc
from workout_engine.tables import DEFAULT_EXPERIENCE, DEFAULT_GOAL, parse_experience_level, parse_goal


class TestMovementPatternAliases:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("push_horiz", "push"),
            ("Vertical-Pull", "pull"),
            ("conditioning", "cardio"),
            (" Hinge ", "hinge"),
        ],
    )
    def test_aliases_collapse(self, raw, expected):
        assert Exercise(exercise_id="x", name="X", movement_pattern=raw).movement_pattern == expected

    def test_unknown_pattern_is_rejected(self):
        with pytest.raises(ValueError, match="unknown movement_pattern"):
            Exercise(exercise_id="x", name="X", movement_pattern="twist")


class TestProfileTags:
    def test_experience_phrases(self):
        assert parse_experience_level("Brand new to lifting") == "beginner"
        assert parse_experience_level("Less than 1 year") == "beginner"
        assert parse_experience_level("4+ years") == "advanced"
        assert parse_experience_level("2-4 years") == "intermediate"

    def test_en_dash_ranges(self):
        assert parse_experience_level("1–2 years") == "intermediate"
        assert parse_experience_level("2—4 years") == "intermediate"

    def test_goal_phrases(self):
        assert parse_goal("Lose weight") == "fat_loss"
        assert parse_goal("Build muscle") == "hypertrophy"
        assert parse_goal("Lift heavier") == "strength"
        assert parse_goal("Stay lean") == "general"

    def test_fallbacks(self):
        assert parse_experience_level(None) == DEFAULT_EXPERIENCE == "intermediate"
        assert parse_experience_level("it's complicated") == DEFAULT_EXPERIENCE
        assert parse_goal("") == DEFAULT_GOAL == "general"
        assert parse_goal("run a marathon") == DEFAULT_GOAL

    def test_profile_stores_closed_tags(self):
        profile = UserProfile(user_id="u-1", experience="1–2 years", goal="Build muscle")
        assert (profile.experience, profile.goal) == ("intermediate", "hypertrophy")
        context = profile.target_context()
        assert (context.experience, context.goal) == ("intermediate", "hypertrophy")

    def test_closed_tags_pass_through(self):
        profile = UserProfile(user_id="u-1", experience="beginner", goal="fat_loss")
        assert (profile.experience, profile.goal) == ("beginner", "fat_loss")


class TestTimestamps:
    def test_naive_is_taken_as_utc(self):
        assert as_utc(datetime(2026, 3, 1, 8, 0)) == datetime(2026, 3, 1, 8, 0, tzinfo=UTC)

    def test_aware_is_unchanged(self):
        local = datetime(2026, 3, 1, 8, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(local) is local

    def test_log_entry_normalizes_performed_at(self):
        entry = PerformanceLogEntry(exercise_id="bench_press", performed_at=datetime(2026, 3, 1, 8, 0))
        assert entry.performed_at.tzinfo is UTC
