"""Shared test fixtures and configuration for forecast tests."""
import pytest
from decimal import Decimal
from typing import Dict, Optional

from plforecast.forecast.periods import build_period_layout, month_range
from plforecast.forecast.types import FlatMethod, LineCategory, PLLine


def make_line(
    account_name: str,
    category: LineCategory,
    amounts: Optional[Dict[str, object]] = None,
    forecast_method=None,
    **kwargs,
) -> PLLine:
    """Build a PLLine with Decimal amounts."""
    return PLLine(
        account_name=account_name,
        category=category,
        amounts={k: Decimal(str(v)) for k, v in (amounts or {}).items()},
        forecast_method=forecast_method or FlatMethod(),
        **kwargs,
    )


def monthly(start: str, end: str, amount) -> Dict[str, Decimal]:
    """Same amount for every month in a range."""
    return {key: Decimal(str(amount)) for key in month_range(start, end)}


@pytest.fixture
def fy_layout():
    """Six months of actuals followed by six forecast months, no baseline."""
    return build_period_layout("2024-07", "2024-12", "2025-01", "2025-06")


@pytest.fixture
def baseline_layout():
    """
    Prior fiscal year as baseline, four months of current-year actuals,
    eight forecast months.
    """
    return build_period_layout(
        "2024-07", "2024-10", "2024-11", "2025-06",
        baseline_start="2023-07", baseline_end="2024-06",
    )
