"""Tests for the error taxonomy and JSON log formatting."""

import json
import logging
import sys

from workout_engine.config import Config
from workout_engine.duration_budget import BudgetResult
from workout_engine.errors import (
    DurationBudgetExceeded,
    EquipmentConstraintViolation,
    GeneratorError,
    MissingPrescription,
    ModelUnavailableError,
    ScheduleValidationError,
    ValidationIssue,
    classify_engine_error,
    is_retriable_generation_error,
)
from workout_engine.logging import JSONFormatter, engine_extra, setup_logging, setup_logging_from_config
from workout_engine.models import DaySchedule


class TestErrorTaxonomy:
    def test_classification(self):
        assert classify_engine_error(MissingPrescription("x")) == "prescription"
        assert classify_engine_error(EquipmentConstraintViolation("Back Squat", ("Barbell",))) == "equipment"
        assert classify_engine_error(ModelUnavailableError("gemini-9")) == "generator"
        assert classify_engine_error(ValueError("boom")) == "other"
        assert classify_engine_error(None) == "other"

    def test_retriable(self):
        assert is_retriable_generation_error(ModelUnavailableError("gemini-9"))
        assert not is_retriable_generation_error(GeneratorError("quota"))
        assert not is_retriable_generation_error(ScheduleValidationError("bad"))

    def test_validation_error_lists_issues(self):
        exc = ScheduleValidationError(
            "Invalid week",
            [ValidationIssue("Monday.exercises[0].target_sets", "target_sets must be a number")],
        )
        assert "Monday.exercises[0].target_sets: target_sets must be a number" in str(exc)
        assert exc.user_message.startswith("The generated plan did not have a valid structure.")

    def test_equipment_violation_message(self):
        exc = EquipmentConstraintViolation("Barbell Back Squat", ("Barbell", "Squat Rack"))
        assert exc.user_message == "Barbell Back Squat needs Barbell, Squat Rack, which is not in your equipment list."

    def test_budget_exceeded_message(self):
        result = BudgetResult(schedule=DaySchedule(day="Monday"), total_sec=3000, limit_sec=2400, overage_sec=600)
        exc = DurationBudgetExceeded(result)
        assert exc.result is result
        assert "10 min over" in exc.user_message


class TestJSONFormatter:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="workout_engine.week_generation",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Dropped %s",
            args=("Cable Fly",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_engine_extras_are_included(self):
        line = JSONFormatter().format(self._record(engine_day="Monday", engine_user_id="u-1", other="x"))
        entry = json.loads(line)
        assert entry["message"] == "Dropped Cable Fly"
        assert entry["level"] == "WARNING"
        assert entry["engine_day"] == "Monday"
        assert entry["engine_user_id"] == "u-1"
        assert "other" not in entry

    def test_exception_is_rendered(self):
        try:
            raise GeneratorError("quota")
        except GeneratorError:
            record = self._record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "GeneratorError: quota" in entry["exception"]

    def test_setup_logging_replaces_handlers(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("json")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            setup_logging("text")
            assert len(root.handlers) == 1
            assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_setup_from_config_sets_level(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging_from_config(Config(generator_api_key="k", log_format="text", log_level="debug"))
            assert root.level == logging.DEBUG
            setup_logging("json", "no-such-level")
            assert root.level == logging.INFO
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])


class TestEngineExtra:
    def test_prefixes_and_drops_none(self):
        assert engine_extra(day="Monday", model=None, user_id="u-1") == {
            "engine_day": "Monday",
            "engine_user_id": "u-1",
        }

    def test_round_trip_through_formatter(self):
        logger = logging.getLogger("workout_engine.test")
        record = logger.makeRecord(
            logger.name, logging.INFO, __file__, 1, "Selected model %s", ("gemini-1.5-flash",), None,
            extra=engine_extra(model="gemini-1.5-flash"),
        )
        assert json.loads(JSONFormatter().format(record))["engine_model"] == "gemini-1.5-flash"
