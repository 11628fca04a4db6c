"""
Period Model - builds the fiscal-year month layout.

Every other forecast component keys off the month keys produced here. The
layout is a pure function of its boundary months and is never persisted.
"""
import logging
from datetime import MAXYEAR, date
from dateutil.relativedelta import relativedelta
from typing import List, Optional, Tuple

from plforecast.forecast.exceptions import InvalidMonthKeyError, InvalidRangeError
from plforecast.forecast.types import (
    MONTH_KEY_PATTERN,
    MonthDescriptor,
    PeriodLayout,
    PeriodRole,
)

logger = logging.getLogger(__name__)


def parse_month_key(key: str) -> date:
    """Parse a YYYY-MM key into the first day of that month."""
    if not isinstance(key, str) or not MONTH_KEY_PATTERN.match(key):
        raise InvalidMonthKeyError(f"Invalid month key '{key}', expected YYYY-MM")
    year, month = (int(part) for part in key.split("-"))
    # Last supported year is MAXYEAR - 1 so a layout can always step one month on
    if not 1 <= year < MAXYEAR:
        raise InvalidMonthKeyError(f"Month key '{key}' is outside years 0001-{MAXYEAR - 1}")
    return date(year, month, 1)


def format_month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def month_label(key: str) -> str:
    """Display label for a month key, e.g. '2024-07' -> 'Jul 24'."""
    return parse_month_key(key).strftime("%b %y")


def shift_month(key: str, months: int) -> str:
    """Move a month key forwards (or backwards) by a number of months."""
    start = parse_month_key(key)
    try:
        shifted = start + relativedelta(months=months)
    except (ValueError, OverflowError) as e:
        raise InvalidMonthKeyError(f"Cannot shift '{key}' by {months} months: {e}") from e
    return format_month_key(shifted)


def month_range(start: str, end: str) -> List[str]:
    """
    All month keys from start to end, inclusive.

    Returns an empty list when start is after end.
    """
    current = parse_month_key(start)
    last = parse_month_key(end)
    keys = []
    while current <= last:
        keys.append(format_month_key(current))
        current += relativedelta(months=1)
    return keys


def _check_range(name: str, start: str, end: str) -> Tuple[date, date]:
    start_date = parse_month_key(start)
    end_date = parse_month_key(end)
    if start_date > end_date:
        raise InvalidRangeError(f"{name} start {start} is after {name} end {end}")
    return start_date, end_date


def build_period_layout(
    actual_start: str,
    actual_end: str,
    forecast_start: str,
    forecast_end: str,
    baseline_start: Optional[str] = None,
    baseline_end: Optional[str] = None,
) -> PeriodLayout:
    """
    Build the fiscal period layout from its boundary months.

    Months are generated from the earliest boundary to the latest. Each month
    is tagged baseline if it falls in the baseline window, else actual if it
    falls in the actual window, else forecast if it falls in the forecast
    window. Months in none of the windows are left out.

    Args:
        actual_start: First month with closed-out actuals (YYYY-MM)
        actual_end: Last month with closed-out actuals
        forecast_start: First month to forecast
        forecast_end: Last month to forecast
        baseline_start: Optional first month of the reference window
        baseline_end: Optional last month of the reference window

    Returns:
        PeriodLayout in chronological order

    Raises:
        InvalidRangeError: a start boundary is after its end boundary, or only
            one baseline boundary was supplied
        InvalidMonthKeyError: a boundary is not a YYYY-MM value
    """
    windows = [
        (PeriodRole.BASELINE, None),
        (PeriodRole.ACTUAL, _check_range("actual", actual_start, actual_end)),
        (PeriodRole.FORECAST, _check_range("forecast", forecast_start, forecast_end)),
    ]

    if (baseline_start is None) != (baseline_end is None):
        raise InvalidRangeError("Baseline window needs both a start and an end month")
    if baseline_start is not None:
        windows[0] = (PeriodRole.BASELINE, _check_range("baseline", baseline_start, baseline_end))

    bounded = [(role, bounds) for role, bounds in windows if bounds is not None]
    first = min(bounds[0] for _, bounds in bounded)
    last = max(bounds[1] for _, bounds in bounded)

    months = []
    current = first
    while current <= last:
        role = next(
            (r for r, (start, end) in bounded if start <= current <= end),
            None,
        )
        if role is not None:
            key = format_month_key(current)
            months.append(MonthDescriptor(
                key=key,
                role=role,
                position=len(months),
                label=month_label(key),
            ))
        current += relativedelta(months=1)

    logger.debug(
        f"Built period layout {format_month_key(first)}..{format_month_key(last)}: "
        f"{len(months)} months"
    )
    return PeriodLayout(months=months)


def current_year_keys(layout: PeriodLayout) -> List[str]:
    """Year-to-date months of the fiscal year being forecast (actual role)."""
    return layout.actual_keys
