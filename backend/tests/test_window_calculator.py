"""
Tests for the Window Calculator.

Test Coverage:
1. Calendar windows per frequency (DAILY, WEEKLY, MONTHLY, SHIFT_*)
2. Half-open containment and adjacency
3. Configured time zone and DST transitions
4. Configurable first day of week and shift boundary
5. Configuration errors
"""
import pytest
from datetime import datetime, timedelta, timezone

from dateutil import tz

from safety_api.models.compliance import Frequency
from safety_api.services.compliance.errors import ConfigurationError
from safety_api.services.compliance.window_calculator import (
    TICK,
    WindowCalculator,
    previous_window,
    window_for,
)


NEW_YORK = tz.gettz("America/New_York")


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


# =============================================================================
# TEST: CALENDAR WINDOWS
# =============================================================================

class TestCalendarWindows:
    """Window boundaries per frequency in UTC."""

    def test_daily_window_is_calendar_day(self):
        window = window_for(Frequency.DAILY, utc(2024, 1, 3, 10, 0))

        assert window.start == utc(2024, 1, 3)
        assert window.end == utc(2024, 1, 4)
        assert window.frequency == Frequency.DAILY

    def test_weekly_window_runs_monday_to_monday(self):
        # 2024-01-05 is a Friday
        window = window_for(Frequency.WEEKLY, utc(2024, 1, 5, 15, 30))

        assert window.start == utc(2024, 1, 1)
        assert window.end == utc(2024, 1, 8)

    def test_weekly_window_on_monday_midnight_starts_that_week(self):
        window = window_for(Frequency.WEEKLY, utc(2024, 1, 8))

        assert window.start == utc(2024, 1, 8)
        assert window.end == utc(2024, 1, 15)

    def test_weekly_window_with_sunday_first_day(self):
        window = window_for(Frequency.WEEKLY, utc(2024, 1, 5, 12), first_day_of_week=6)

        assert window.start == utc(2023, 12, 31)
        assert window.end == utc(2024, 1, 7)

    def test_monthly_window_is_calendar_month(self):
        window = window_for(Frequency.MONTHLY, utc(2024, 2, 15, 8))

        assert window.start == utc(2024, 2, 1)
        assert window.end == utc(2024, 3, 1)

    def test_monthly_window_rolls_over_year(self):
        window = window_for(Frequency.MONTHLY, utc(2023, 12, 31, 23, 59))

        assert window.start == utc(2023, 12, 1)
        assert window.end == utc(2024, 1, 1)

    def test_shift_window_before_boundary_belongs_to_previous_day(self):
        window = window_for(Frequency.SHIFT_START, utc(2024, 1, 3, 5, 59), shift_boundary_hour=6)

        assert window.start == utc(2024, 1, 2, 6)
        assert window.end == utc(2024, 1, 3, 6)

    def test_shift_window_at_boundary_starts_new_day(self):
        window = window_for(Frequency.SHIFT_START, utc(2024, 1, 3, 6), shift_boundary_hour=6)

        assert window.start == utc(2024, 1, 3, 6)
        assert window.end == utc(2024, 1, 4, 6)

    def test_shift_start_and_shift_end_share_windowing(self):
        reference = utc(2024, 1, 3, 22, 15)

        start_window = window_for(Frequency.SHIFT_START, reference, shift_boundary_hour=18)
        end_window = window_for(Frequency.SHIFT_END, reference, shift_boundary_hour=18)

        assert (start_window.start, start_window.end) == (end_window.start, end_window.end)
        assert start_window.start == utc(2024, 1, 3, 18)

    def test_shift_boundary_zero_matches_daily(self):
        reference = utc(2024, 1, 3, 10)

        shift = window_for(Frequency.SHIFT_END, reference, shift_boundary_hour=0)
        daily = window_for(Frequency.DAILY, reference)

        assert (shift.start, shift.end) == (daily.start, daily.end)

    def test_string_frequency_accepted(self):
        window = window_for("DAILY", utc(2024, 1, 3, 10))

        assert window.frequency == Frequency.DAILY

    def test_naive_reference_treated_as_utc(self):
        naive = window_for(Frequency.DAILY, datetime(2024, 1, 3, 23, 30))
        aware = window_for(Frequency.DAILY, utc(2024, 1, 3, 23, 30))

        assert naive == aware


# =============================================================================
# TEST: CONTAINMENT AND DETERMINISM
# =============================================================================

class TestContainment:
    """Half-open interval properties across all frequencies."""

    REFERENCES = [
        utc(2024, 1, 1),
        utc(2024, 1, 3, 10, 0),
        utc(2024, 2, 29, 23, 59, 59),
        utc(2024, 3, 10, 7, 30),
        utc(2024, 11, 3, 5, 30),
        utc(2024, 12, 31, 23, 0),
    ]

    @pytest.mark.parametrize("frequency", list(Frequency))
    @pytest.mark.parametrize("zone", [timezone.utc, NEW_YORK])
    def test_window_contains_reference(self, frequency, zone):
        for reference in self.REFERENCES:
            window = window_for(frequency, reference, zone=zone)

            assert window.end > window.start
            assert window.contains(reference)

    @pytest.mark.parametrize("frequency", list(Frequency))
    def test_window_is_stable_across_its_length(self, frequency):
        window = window_for(frequency, utc(2024, 1, 3, 10))

        assert window_for(frequency, window.start) == window
        assert window_for(frequency, window.start + window.duration - TICK) == window

    @pytest.mark.parametrize("frequency", list(Frequency))
    def test_window_end_belongs_to_next_window(self, frequency):
        window = window_for(frequency, utc(2024, 1, 3, 10))
        following = window_for(frequency, window.end)

        assert not window.contains(window.end)
        assert following.start == window.end

    def test_identical_inputs_give_identical_windows(self):
        reference = utc(2024, 5, 17, 13, 45)

        first = window_for(Frequency.WEEKLY, reference, 6, NEW_YORK, 0)
        second = window_for(Frequency.WEEKLY, reference, 6, NEW_YORK, 0)

        assert first == second

    def test_previous_window_is_adjacent(self):
        window = window_for(Frequency.WEEKLY, utc(2024, 1, 5))
        before = previous_window(window)

        assert before.start == utc(2023, 12, 25)
        assert before.end == window.start


# =============================================================================
# TEST: TIME ZONES
# =============================================================================

class TestTimeZones:
    """Local calendar boundaries in a configured zone."""

    def test_daily_window_uses_local_midnight(self):
        # 2024-01-03 03:00Z is 2024-01-02 22:00 EST
        window = window_for(Frequency.DAILY, utc(2024, 1, 3, 3), zone=NEW_YORK)

        assert window.start == utc(2024, 1, 2, 5)
        assert window.end == utc(2024, 1, 3, 5)

    def test_spring_forward_day_lasts_23_hours(self):
        window = window_for(Frequency.DAILY, utc(2024, 3, 10, 12), zone=NEW_YORK)

        assert window.start == utc(2024, 3, 10, 5)
        assert window.end == utc(2024, 3, 11, 4)
        assert window.duration == timedelta(hours=23)

    def test_fall_back_day_lasts_25_hours(self):
        window = window_for(Frequency.DAILY, utc(2024, 11, 3, 12), zone=NEW_YORK)

        assert window.start == utc(2024, 11, 3, 4)
        assert window.end == utc(2024, 11, 4, 5)
        assert window.duration == timedelta(hours=25)

    def test_shift_boundary_in_dst_gap_moves_forward(self):
        # 02:00 does not exist on 2024-03-10 in New York; the shift starts at 03:00 EDT
        window = window_for(Frequency.SHIFT_START, utc(2024, 3, 10, 12), shift_boundary_hour=2, zone=NEW_YORK)

        assert window.start == utc(2024, 3, 10, 7)
        assert window.end == utc(2024, 3, 11, 6)

    def test_results_are_utc(self):
        window = window_for(Frequency.MONTHLY, utc(2024, 6, 15), zone=NEW_YORK)

        assert window.start.utcoffset() == timedelta(0)
        assert window.start == utc(2024, 6, 1, 4)


# =============================================================================
# TEST: WINDOW CALCULATOR CLASS
# =============================================================================

class TestWindowCalculator:
    """Configured calculator instance."""

    def test_from_settings(self, settings):
        calculator = WindowCalculator.from_settings(settings)

        window = calculator.window_for(Frequency.SHIFT_START, utc(2024, 1, 3, 5))

        assert window.start == utc(2024, 1, 2, 6)

    def test_next_and_previous_window(self):
        calculator = WindowCalculator()
        window = calculator.window_for(Frequency.MONTHLY, utc(2024, 1, 20))

        assert calculator.next_window(window).start == utc(2024, 2, 1)
        assert calculator.previous_window(window).start == utc(2023, 12, 1)

    def test_windows_between(self):
        calculator = WindowCalculator()

        windows = list(calculator.windows_between(Frequency.DAILY, utc(2024, 1, 1, 12), utc(2024, 1, 4)))

        assert [w.start for w in windows] == [utc(2024, 1, 1), utc(2024, 1, 2), utc(2024, 1, 3)]


# =============================================================================
# TEST: CONFIGURATION ERRORS
# =============================================================================

class TestConfigurationErrors:
    """Invalid inputs raise ConfigurationError instead of defaulting."""

    def test_unknown_frequency(self):
        with pytest.raises(ConfigurationError):
            window_for("HOURLY", utc(2024, 1, 3))

    @pytest.mark.parametrize("hour", [-1, 24])
    def test_shift_hour_out_of_range(self, hour):
        with pytest.raises(ConfigurationError):
            window_for(Frequency.SHIFT_START, utc(2024, 1, 3), shift_boundary_hour=hour)

    def test_first_day_of_week_out_of_range(self):
        with pytest.raises(ConfigurationError):
            WindowCalculator(first_day_of_week=7)
