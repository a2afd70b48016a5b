"""Tests for name-based inference used for uncataloged exercises."""

from workout_engine.models import Exercise
from workout_engine.movement_patterns import (
    exercise_from_name,
    exercise_tier,
    infer_equipment,
    infer_movement_pattern,
    infer_tier,
    is_bodyweight_name,
    slugify_exercise_name,
)


class TestInference:
    def test_patterns(self):
        assert infer_movement_pattern("Single Leg RDL") == "hinge"
        assert infer_movement_pattern("Bulgarian Split Squat") == "lunge"
        assert infer_movement_pattern("Cable Crunch") == "core"
        assert infer_movement_pattern("Rower Intervals") == "cardio"
        assert infer_movement_pattern("Face Pull") == "pull"
        assert infer_movement_pattern("Upright Row") == "push"
        assert infer_movement_pattern("") == "other"

    def test_tiers(self):
        assert infer_tier("Barbell Back Squat") == 1
        assert infer_tier("Side Plank") == 3
        assert infer_tier("Cable Fly") == 2

    def test_equipment_is_collected_in_order(self):
        assert infer_equipment("Barbell Back Squat") == ("Barbell", "Squat Rack")
        assert infer_equipment("Push Up") == ()

    def test_slug(self):
        assert slugify_exercise_name("  Dumbbell  Lateral-Raise ") == "dumbbell_lateral_raise"


class TestBodyweightName:
    def test_bodyweight_movements(self):
        assert is_bodyweight_name("Push Up")
        assert is_bodyweight_name("Walking Lunge")

    def test_loaded_variants_are_not_bodyweight(self):
        assert not is_bodyweight_name("Dumbbell Lunge")
        assert not is_bodyweight_name("Weighted Dip")

    def test_loaded_lift_without_keywords(self):
        assert not is_bodyweight_name("Goblet Squat")


class TestExerciseTier:
    def test_catalog_density_decides_tier_one(self):
        squat = Exercise(exercise_id="s", name="Squat", movement_pattern="squat", density_score=9.5)
        assert exercise_tier(squat, 9.0) == 1
        assert exercise_tier(squat, 9.8) == 2

    def test_core_work_is_tier_three(self):
        plank = Exercise(exercise_id="p", name="Plank", movement_pattern="core", density_score=2.0)
        stretch = Exercise(exercise_id="h", name="Hamstring Stretch", density_score=1.0)
        assert exercise_tier(plank, 9.0) == 3
        assert exercise_tier(stretch, 9.0) == 3


class TestExerciseFromName:
    def test_uncataloged_compound(self):
        exercise = exercise_from_name(" Barbell Back Squat ")
        assert exercise.exercise_id == "uncataloged:barbell_back_squat"
        assert exercise.name == "Barbell Back Squat"
        assert exercise.movement_pattern == "squat"
        assert exercise.tempo_category == "grind"
        assert exercise.density_score == 9.0
        assert exercise.equipment_needed == ("Barbell", "Squat Rack")

    def test_timed_flag_is_kept(self):
        assert exercise_from_name("Side Plank", is_timed=True).is_timed
