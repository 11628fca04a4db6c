"""
Forecasting Engine - recalculates forecast months after an assumption change.

Lines are recomputed according to their forecast method:
- seasonal_increase: baseline average lifted by a percentage
- percentage_of_revenue: re-derived from revenue for the same month
- flat: unchanged unless the caller supplies a new flat value
- manual: never touched

Actual and baseline months are never modified. The engine returns new line
objects and leaves the caller's collection as it was, so callers can diff the
result or retry with different inputs.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from plforecast.forecast.distribution import ZERO, allocate, round_currency
from plforecast.forecast.exceptions import DuplicateLineKeyError
from plforecast.forecast.types import (
    FlatMethod,
    LineAnalysis,
    LineCategory,
    ManualOverrideMethod,
    PercentageOfRevenueMethod,
    PLLine,
    SeasonalIncreaseMethod,
    TrendDirection,
)

logger = logging.getLogger(__name__)

PERCENT_QUANTUM = Decimal("0.01")
STABLE_TREND_THRESHOLD = Decimal("5")


def calculate_analysis(
    line: PLLine,
    all_lines: Sequence[PLLine],
    baseline_month_keys: Sequence[str],
) -> LineAnalysis:
    """
    Calculate historical metrics for a line over the baseline months.

    Revenue lines get their share of total revenue. Cost lines get their
    percentage of revenue and a trend comparing the first and second half of
    the baseline window.
    """
    month_keys = list(baseline_month_keys)
    analysis = LineAnalysis()
    if not month_keys:
        return analysis

    line_total = line.total(month_keys)
    analysis.average_per_month = line_total / len(month_keys)

    total_revenue = sum(
        (l.total(month_keys) for l in all_lines if l.category == LineCategory.REVENUE),
        ZERO,
    )

    if line.category == LineCategory.REVENUE and total_revenue > 0:
        analysis.pct_of_total_revenue = (line_total / total_revenue * 100).quantize(PERCENT_QUANTUM)

    if line.category in (LineCategory.COST_OF_SALES, LineCategory.OPERATING_EXPENSES):
        if total_revenue > 0:
            analysis.pct_of_revenue = (line_total / total_revenue * 100).quantize(PERCENT_QUANTUM)

        midpoint = len(month_keys) // 2
        first_half, second_half = month_keys[:midpoint], month_keys[midpoint:]
        if first_half:
            first_avg = line.total(first_half) / len(first_half)
            second_avg = line.total(second_half) / len(second_half)
            if first_avg > 0:
                trend = ((second_avg - first_avg) / first_avg * 100).quantize(PERCENT_QUANTUM)
                analysis.trend_percentage = trend
                if abs(trend) < STABLE_TREND_THRESHOLD:
                    analysis.trend_direction = TrendDirection.STABLE
                elif trend > 0:
                    analysis.trend_direction = TrendDirection.UP
                else:
                    analysis.trend_direction = TrendDirection.DOWN

    return analysis


def apply_bulk_increase(
    lines: Sequence[PLLine],
    category: LineCategory,
    percentage_increase: Decimal,
) -> List[PLLine]:
    """
    Tag every non-manual line of a category with a seasonal increase.

    The returned lines are ready for recalculate_all_forecasts.
    """
    method = SeasonalIncreaseMethod(percentage_increase=percentage_increase)
    updated = []
    for line in lines:
        if line.category == category and not line.is_manual:
            updated.append(line.model_copy(update={"forecast_method": method}, deep=True))
        else:
            updated.append(line.model_copy(deep=True))
    logger.info(
        f"Applied {percentage_increase} increase to "
        f"{sum(1 for l in lines if l.category == category and not l.is_manual)} "
        f"{category.value} line(s)"
    )
    return updated


def recalculate_all_forecasts(
    lines: Sequence[PLLine],
    baseline_month_keys: Sequence[str],
    forecast_month_keys: Sequence[str],
    flat_values: Optional[Mapping[str, Decimal]] = None,
) -> List[PLLine]:
    """
    Recalculate forecast months for every eligible line.

    Args:
        lines: Current P&L lines
        baseline_month_keys: Reference months for averages and analysis
        forecast_month_keys: Months to recompute
        flat_values: New monthly values for flat lines, keyed by line key

    Returns:
        New list of lines in the same order

    Raises:
        DuplicateLineKeyError: a flat value names a key shared by several lines
    """
    baseline_keys = list(baseline_month_keys)
    forecast_keys = list(forecast_month_keys)
    flat_values = flat_values or {}

    key_counts = Counter(line.key for line in lines)
    ambiguous = sorted(key for key in flat_values if key_counts[key] > 1)
    if ambiguous:
        raise DuplicateLineKeyError(
            f"Flat values match more than one line: {', '.join(ambiguous)}. "
            f"Give these lines distinct ids."
        )

    # First pass: everything except revenue-driven lines
    first_pass: List[PLLine] = []
    for line in lines:
        if _is_skipped(line) or isinstance(line.forecast_method, PercentageOfRevenueMethod):
            first_pass.append(line.model_copy(deep=True))
            continue

        method = line.forecast_method
        if isinstance(method, SeasonalIncreaseMethod):
            monthly = _seasonal_increase(line, method, baseline_keys, forecast_keys)
        elif isinstance(method, FlatMethod):
            monthly = _flat(line, flat_values, forecast_keys)
        else:
            raise TypeError(f"Unhandled forecast method: {method!r}")

        first_pass.append(_with_forecast(line, monthly, lines, baseline_keys))

    # Second pass: lines tied to revenue see the recalculated revenue
    revenue_lines = [
        l for l in first_pass
        if l.category == LineCategory.REVENUE
        and not isinstance(l.forecast_method, PercentageOfRevenueMethod)
    ]
    result: List[PLLine] = []
    for original, line in zip(lines, first_pass):
        method = original.forecast_method
        if _is_skipped(original) or not isinstance(method, PercentageOfRevenueMethod):
            result.append(line)
            continue
        monthly = _percentage_of_revenue(original, method, revenue_lines, forecast_keys)
        result.append(_with_forecast(original, monthly, first_pass, baseline_keys))

    recalculated = sum(1 for l in lines if not _is_skipped(l))
    logger.info(
        f"Recalculated {recalculated} of {len(lines)} line(s) over {len(forecast_keys)} forecast month(s)"
    )
    return result


def _is_skipped(line: PLLine) -> bool:
    return isinstance(line.forecast_method, ManualOverrideMethod) or not line.is_forecastable


def _with_forecast(
    line: PLLine,
    monthly: Dict[str, Decimal],
    all_lines: Sequence[PLLine],
    baseline_keys: List[str],
) -> PLLine:
    updated = line.model_copy(deep=True)
    updated.amounts.update(monthly)
    updated.analysis = calculate_analysis(line, all_lines, baseline_keys)
    return updated


def _seasonal_increase(
    line: PLLine,
    method: SeasonalIncreaseMethod,
    baseline_keys: List[str],
    forecast_keys: List[str],
) -> Dict[str, Decimal]:
    base_average = line.total(baseline_keys) / len(baseline_keys) if baseline_keys else ZERO
    lifted = base_average * (1 + method.percentage_increase)

    weights = {
        key: (line.seasonal_weights or {}).get(key, ZERO)
        for key in forecast_keys
    }
    if sum(weights.values(), ZERO) > 0:
        return allocate(round_currency(lifted * len(forecast_keys)), weights)

    monthly_amount = round_currency(lifted)
    return {key: monthly_amount for key in forecast_keys}


def _flat(
    line: PLLine,
    flat_values: Mapping[str, Decimal],
    forecast_keys: List[str],
) -> Dict[str, Decimal]:
    if line.key not in flat_values:
        return {}
    value = Decimal(flat_values[line.key])
    if value < 0 and line.category != LineCategory.REVENUE:
        raise ValueError(f"Flat value for '{line.account_name}' must be non-negative")
    return {key: value for key in forecast_keys}


def _percentage_of_revenue(
    line: PLLine,
    method: PercentageOfRevenueMethod,
    revenue_lines: List[PLLine],
    forecast_keys: List[str],
) -> Dict[str, Decimal]:
    drivers = revenue_lines
    if method.driver_line:
        drivers = [l for l in revenue_lines if l.key == method.driver_line]
        if not drivers:
            logger.warning(
                f"Driver line '{method.driver_line}' not found for '{line.account_name}', forecasting zero"
            )

    monthly = {}
    for key in forecast_keys:
        revenue = sum((l.amount(key) for l in drivers), ZERO)
        monthly[key] = max(round_currency(revenue * method.percentage / 100), ZERO)
    return monthly
