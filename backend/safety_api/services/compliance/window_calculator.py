"""
Window Calculator

Computes the recurrence window containing a reference instant.

Windows are half-open [start, end). Boundaries are taken on the local
wall clock of the configured zone and converted to UTC, so a DAILY window
spanning a DST change lasts 23 or 25 hours. A boundary that falls inside
a DST gap is moved forward to the first existing local time.

Pure: the only notion of time is the reference instant passed in.
"""
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Dict, Iterator, Tuple, Union

from dateutil import tz
from dateutil.relativedelta import relativedelta

from ...models.compliance import Frequency, Window, as_utc
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# One tick before a boundary (datetime resolution)
TICK = timedelta(microseconds=1)

DEFAULT_SHIFT_BOUNDARY_HOUR = 6
MONDAY = 0


# =============================================================================
# BOUNDARY RULES (one per frequency)
# =============================================================================
#
# Each rule receives the naive local wall-clock time of the reference
# instant and returns naive local (start, end).
#

BoundaryRule = Callable[[datetime, int, int], Tuple[datetime, datetime]]


def _calendar_day(local: datetime, shift_hour: int, first_day: int) -> Tuple[datetime, datetime]:
    start = datetime.combine(local.date(), time())
    return start, start + timedelta(days=1)


def _calendar_week(local: datetime, shift_hour: int, first_day: int) -> Tuple[datetime, datetime]:
    offset = (local.weekday() - first_day) % 7
    start = datetime.combine(local.date() - timedelta(days=offset), time())
    return start, start + timedelta(days=7)


def _calendar_month(local: datetime, shift_hour: int, first_day: int) -> Tuple[datetime, datetime]:
    start = datetime(local.year, local.month, 1)
    return start, start + relativedelta(months=1)


def _shift_day(local: datetime, shift_hour: int, first_day: int) -> Tuple[datetime, datetime]:
    start = datetime.combine(local.date(), time(hour=shift_hour))
    if local < start:
        start -= timedelta(days=1)
    return start, start + timedelta(days=1)


# SHIFT_START and SHIFT_END share windowing; they differ only in when
# during the shift the check is expected, which is not enforced here.
BOUNDARY_RULES: Dict[Frequency, BoundaryRule] = {
    Frequency.DAILY: _calendar_day,
    Frequency.WEEKLY: _calendar_week,
    Frequency.MONTHLY: _calendar_month,
    Frequency.SHIFT_START: _shift_day,
    Frequency.SHIFT_END: _shift_day,
}


# =============================================================================
# HELPERS
# =============================================================================

def coerce_frequency(value: Union[Frequency, str]) -> Frequency:
    """Return a Frequency, raising ConfigurationError for unknown values."""
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(value)
    except ValueError:
        raise ConfigurationError(f"Unrecognized frequency: {value!r}")


def _localize(local: datetime, zone: tzinfo) -> datetime:
    """Attach `zone` to a naive local time and convert to UTC."""
    aware = tz.resolve_imaginary(local.replace(tzinfo=zone))
    return aware.astimezone(timezone.utc)


def _check_bounds(shift_boundary_hour: int, first_day_of_week: int) -> None:
    if not isinstance(shift_boundary_hour, int) or not 0 <= shift_boundary_hour <= 23:
        raise ConfigurationError(f"Shift boundary hour must be 0-23, got {shift_boundary_hour!r}")
    if not isinstance(first_day_of_week, int) or not 0 <= first_day_of_week <= 6:
        raise ConfigurationError(f"First day of week must be 0-6, got {first_day_of_week!r}")


# =============================================================================
# PUBLIC API
# =============================================================================

def window_for(
    frequency: Union[Frequency, str],
    reference_instant: datetime,
    shift_boundary_hour: int = DEFAULT_SHIFT_BOUNDARY_HOUR,
    zone: tzinfo = timezone.utc,
    first_day_of_week: int = MONDAY,
) -> Window:
    """
    Return the window of `frequency` that contains `reference_instant`.

    Args:
        frequency: Protocol frequency
        reference_instant: Any instant, past or present (naive = UTC)
        shift_boundary_hour: Local hour at which SHIFT_* days roll over
        zone: Time zone whose calendar defines days, weeks and months
        first_day_of_week: 0 = Monday ... 6 = Sunday

    Raises:
        ConfigurationError: unknown frequency or out-of-range settings
    """
    frequency = coerce_frequency(frequency)
    _check_bounds(shift_boundary_hour, first_day_of_week)

    local = as_utc(reference_instant).astimezone(zone).replace(tzinfo=None)
    rule = BOUNDARY_RULES[frequency]
    local_start, local_end = rule(local, shift_boundary_hour, first_day_of_week)

    window = Window(
        start=_localize(local_start, zone),
        end=_localize(local_end, zone),
        frequency=frequency,
    )
    logger.debug(f"{frequency.value} window for {reference_instant}: {window.start} -> {window.end}")
    return window


def previous_window(
    window: Window,
    shift_boundary_hour: int = DEFAULT_SHIFT_BOUNDARY_HOUR,
    zone: tzinfo = timezone.utc,
    first_day_of_week: int = MONDAY,
) -> Window:
    """Window of the same frequency immediately preceding `window`."""
    return window_for(
        window.frequency, window.start - TICK,
        shift_boundary_hour, zone, first_day_of_week,
    )


class WindowCalculator:
    """
    Window Calculator bound to a zone, shift boundary hour and first weekday.

    Usage:
        calculator = WindowCalculator.from_settings(get_engine_settings())
        window = calculator.window_for(Frequency.WEEKLY, now)
    """

    def __init__(
        self,
        zone: tzinfo = timezone.utc,
        shift_boundary_hour: int = DEFAULT_SHIFT_BOUNDARY_HOUR,
        first_day_of_week: int = MONDAY,
    ):
        _check_bounds(shift_boundary_hour, first_day_of_week)
        self.zone = zone
        self.shift_boundary_hour = shift_boundary_hour
        self.first_day_of_week = first_day_of_week

    @classmethod
    def from_settings(cls, settings) -> "WindowCalculator":
        return cls(
            zone=settings.timezone,
            shift_boundary_hour=settings.shift_boundary_hour,
            first_day_of_week=settings.first_day_of_week,
        )

    def window_for(self, frequency: Union[Frequency, str], reference_instant: datetime) -> Window:
        return window_for(
            frequency, reference_instant,
            self.shift_boundary_hour, self.zone, self.first_day_of_week,
        )

    def previous_window(self, window: Window) -> Window:
        return self.window_for(window.frequency, window.start - TICK)

    def next_window(self, window: Window) -> Window:
        return self.window_for(window.frequency, window.end)

    def windows_between(
        self,
        frequency: Union[Frequency, str],
        since: datetime,
        until: datetime,
    ) -> Iterator[Window]:
        """Yield consecutive windows from the one containing `since` up to `until` (exclusive)."""
        until = as_utc(until)
        window = self.window_for(frequency, since)
        while window.start < until:
            yield window
            window = self.next_window(window)
