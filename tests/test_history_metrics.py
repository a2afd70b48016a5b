"""Tests for performance history summaries."""

import pytest

from workout_engine.history_metrics import (
    EMPTY_METRICS,
    compute_history_metrics,
    entry_adherence,
    epley_1rm,
    met_target,
    recent_window,
)
from workout_engine.tables import HistoryTable


class TestEpley1RM:
    def test_single_rep(self):
        assert epley_1rm(100.0, 1) == 100.0

    def test_five_reps(self):
        # 100 * (1 + 5/30) = 116.67
        assert round(epley_1rm(100.0, 5), 2) == 116.67

    def test_zero_reps(self):
        assert epley_1rm(100.0, 0) == 0.0

    def test_zero_weight(self):
        assert epley_1rm(0.0, 5) == 0.0


class TestMetTarget:
    def test_met_reps_and_weight(self, log_entry):
        entry = log_entry("bench_press", weight=100, reps=10, scheduled_weight=100, scheduled_reps=10)
        assert met_target(entry) is True

    def test_short_on_reps(self, log_entry):
        entry = log_entry("bench_press", weight=100, reps=8, scheduled_weight=100, scheduled_reps=10)
        assert met_target(entry) is False

    def test_lighter_than_scheduled(self, log_entry):
        entry = log_entry("bench_press", weight=90, reps=10, scheduled_weight=100, scheduled_reps=10)
        assert met_target(entry) is False

    def test_exceeding_counts_as_met(self, log_entry):
        entry = log_entry("bench_press", weight=100, reps=12, scheduled_weight=100, scheduled_reps=10)
        assert met_target(entry) is True

    def test_unscheduled_work_counts_as_met(self, log_entry):
        assert met_target(log_entry("push_up", reps=5)) is True

    def test_unscheduled_empty_entry_is_not_met(self, log_entry):
        assert met_target(log_entry("push_up")) is False

    def test_timed_entry(self, log_entry):
        assert met_target(log_entry("plank", duration_sec=45, scheduled_duration_sec=45)) is True
        assert met_target(log_entry("plank", duration_sec=30, scheduled_duration_sec=45)) is False


class TestEntryAdherence:
    def test_worst_component_wins(self, log_entry):
        entry = log_entry("bench_press", weight=100, reps=8, scheduled_weight=100, scheduled_reps=10)
        assert entry_adherence(entry) == pytest.approx(0.8)

    def test_capped_at_one(self, log_entry):
        entry = log_entry("bench_press", weight=110, reps=12, scheduled_weight=100, scheduled_reps=10)
        assert entry_adherence(entry) == 1.0

    def test_bodyweight_counts_reps_only(self, log_entry):
        entry = log_entry("push_up", reps=8, scheduled_reps=10, scheduled_weight=20)
        assert entry_adherence(entry) == pytest.approx(0.8)

    def test_no_schedule(self, log_entry):
        assert entry_adherence(log_entry("push_up", reps=8)) is None


class TestComputeHistoryMetrics:
    def test_no_entries_is_neutral(self):
        metrics = compute_history_metrics([])
        assert metrics is EMPTY_METRICS
        assert metrics.has_history is False
        assert metrics.trend == "flat"
        assert metrics.adherence_ratio is None
        assert metrics.last_met_target is False

    def test_last_entry_is_newest_regardless_of_input_order(self, log_entry):
        old = log_entry("bench_press", days_ago=7, weight=95, reps=10)
        new = log_entry("bench_press", days_ago=1, weight=100, reps=10)
        metrics = compute_history_metrics([new, old][::-1])
        assert metrics.last_entry == new
        assert metrics.sample_count == 2

    def test_improving_trend(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=day, weight=weight, reps=5)
            for day, weight in ((1, 110), (3, 105), (5, 100), (7, 95))
        ]
        assert compute_history_metrics(entries).trend == "improving"

    def test_declining_trend(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=day, weight=weight, reps=5)
            for day, weight in ((1, 90), (3, 95), (5, 100), (7, 105))
        ]
        assert compute_history_metrics(entries).trend == "declining"

    def test_small_changes_are_flat(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=day, weight=weight, reps=5)
            for day, weight in ((1, 100.5), (3, 100), (5, 100), (7, 100))
        ]
        assert compute_history_metrics(entries).trend == "flat"

    def test_bodyweight_excluded_from_weight_but_counted_for_reps(self, log_entry):
        entries = [
            log_entry("push_up", days_ago=1, reps=8, scheduled_reps=10),
            log_entry("push_up", days_ago=2, weight=0, reps=10, scheduled_reps=10),
        ]
        metrics = compute_history_metrics(entries)
        assert metrics.recent_average_weight is None
        assert metrics.trend == "flat"
        assert metrics.recent_average_reps == 9.0
        assert metrics.adherence_ratio == pytest.approx(0.9)
        assert metrics.estimated_training_max is None

    def test_consecutive_failures_counted_from_newest(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=1, weight=100, reps=7, scheduled_weight=100, scheduled_reps=10),
            log_entry("bench_press", days_ago=3, weight=100, reps=8, scheduled_weight=100, scheduled_reps=10),
            log_entry("bench_press", days_ago=5, weight=100, reps=10, scheduled_weight=100, scheduled_reps=10),
            log_entry("bench_press", days_ago=7, weight=95, reps=6, scheduled_weight=95, scheduled_reps=10),
        ]
        metrics = compute_history_metrics(entries)
        assert metrics.consecutive_failures == 2
        assert metrics.recent_failures == 3
        assert metrics.last_successful == entries[2]

    def test_estimated_training_max(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=1, weight=100, reps=1),
            log_entry("bench_press", days_ago=2, weight=90, reps=5),
        ]
        assert compute_history_metrics(entries).estimated_training_max == pytest.approx(105.0)

    def test_average_rpe_skips_unrated_sets(self, log_entry):
        entries = [
            log_entry("bench_press", days_ago=1, weight=100, reps=5, rpe=8),
            log_entry("bench_press", days_ago=2, weight=100, reps=5),
            log_entry("bench_press", days_ago=3, weight=100, reps=5, rpe=7.5),
            log_entry("bench_press", days_ago=4, weight=100, reps=5, rpe=0),
        ]
        assert compute_history_metrics(entries).average_rpe == 7.75

    def test_no_rpe_logged(self, log_entry):
        metrics = compute_history_metrics([log_entry("bench_press", weight=100, reps=5)])
        assert metrics.average_rpe is None

    def test_window_is_bounded(self, log_entry):
        entries = [log_entry("bench_press", days_ago=day, weight=100, reps=5) for day in range(1, 21)]
        metrics = compute_history_metrics(entries)
        assert metrics.sample_count == 10
        assert metrics.last_entry == entries[0]


class TestRecentWindow:
    def test_window_size_clamped_to_minimum(self, log_entry):
        entries = [log_entry("bench_press", days_ago=day, reps=5) for day in range(1, 11)]
        window = recent_window(entries, HistoryTable(window_size=2))
        assert len(window) == 5
        assert window[0].performed_at > window[-1].performed_at
