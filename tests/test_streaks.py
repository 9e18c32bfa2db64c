"""Tests for streak and consistency calculations."""

from __future__ import annotations

from datetime import date, datetime

from habitlens.core.models import CompletionLog, StreakResult
from habitlens.core.streaks import StreakCalculator, compute_streak, is_consecutive


def _logs(*entries):
    return [CompletionLog(habit_id=1, user_id=1, date=d, completed=c) for d, c in entries]


class TestComputeStreak:
    def test_empty_input_is_zeroed(self):
        assert compute_streak([]) == StreakResult(0, 0, 0.0)

    def test_consecutive_completed_days(self):
        result = compute_streak(_logs(
            ("2024-01-05", True), ("2024-01-04", True), ("2024-01-03", True),
        ))
        assert result.current_streak == 3
        assert result.longest_streak == 3
        assert result.consistency_score == 100.00

    def test_most_recent_missed_day_zeroes_current(self):
        result = compute_streak(_logs(
            ("2024-01-05", False), ("2024-01-04", True), ("2024-01-03", True),
        ))
        assert result.current_streak == 0
        assert result.longest_streak == 2
        assert result.consistency_score == 66.67

    def test_gap_stops_current_streak(self):
        result = compute_streak(_logs(
            ("2024-01-10", True), ("2024-01-09", True),
            ("2024-01-06", True), ("2024-01-05", True), ("2024-01-04", True),
        ))
        assert result.current_streak == 2
        assert result.longest_streak == 3

    def test_longest_run_found_in_history(self):
        result = compute_streak(_logs(
            ("2024-01-10", True),
            ("2024-01-09", False),
            ("2024-01-08", True), ("2024-01-07", True), ("2024-01-06", True), ("2024-01-05", True),
            ("2024-01-04", False),
        ))
        assert result.current_streak == 1
        assert result.longest_streak == 4
        assert result.consistency_score == round(5 / 7 * 100, 2)

    def test_order_of_input_does_not_matter(self):
        ordered = _logs(("2024-01-05", True), ("2024-01-04", True), ("2024-01-03", False))
        assert compute_streak(list(reversed(ordered))) == compute_streak(ordered)

    def test_single_completed_log(self):
        assert compute_streak(_logs(("2024-01-05", True))) == StreakResult(1, 1, 100.0)

    def test_all_missed(self):
        result = compute_streak(_logs(("2024-01-05", False), ("2024-01-04", False)))
        assert result == StreakResult(0, 0, 0.0)

    def test_consistency_counts_logged_days_only(self):
        # Missing calendar days are not counted against the habit
        result = compute_streak(_logs(("2024-01-20", True), ("2024-01-01", True)))
        assert result.consistency_score == 100.0
        assert result.current_streak == 1
        assert result.longest_streak == 1

    def test_invariants_hold(self):
        result = compute_streak(_logs(
            ("2024-01-05", True), ("2024-01-04", False), ("2024-01-03", True), ("2024-01-02", True),
        ))
        assert 0 <= result.current_streak <= result.longest_streak
        assert 0.0 <= result.consistency_score <= 100.0

    def test_calculator_wraps_functions(self):
        calculator = StreakCalculator()
        logs = _logs(("2024-01-05", True), ("2024-01-04", True))
        assert calculator.compute(logs) == compute_streak(logs)
        assert calculator.is_consecutive("2024-01-05", "2024-01-04")


class TestIsConsecutive:
    def test_adjacent_days(self):
        assert is_consecutive(date(2024, 1, 4), date(2024, 1, 5))

    def test_symmetric(self):
        assert is_consecutive(date(2024, 1, 5), date(2024, 1, 4))
        assert is_consecutive(date(2024, 1, 4), date(2024, 1, 5))

    def test_same_day_is_not_consecutive(self):
        assert not is_consecutive(date(2024, 1, 5), date(2024, 1, 5))

    def test_two_days_apart(self):
        assert not is_consecutive(date(2024, 1, 3), date(2024, 1, 5))

    def test_time_of_day_is_ignored(self):
        assert is_consecutive(datetime(2024, 1, 4, 23, 59), datetime(2024, 1, 5, 0, 1))
        assert is_consecutive(datetime(2024, 1, 4, 0, 0), datetime(2024, 1, 5, 23, 59))

    def test_month_boundary(self):
        assert is_consecutive("2024-01-31", "2024-02-01")
        assert is_consecutive("2024-02-29", "2024-03-01")
