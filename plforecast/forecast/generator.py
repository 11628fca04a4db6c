"""
Forecast Generator - builds an initial P&L line set from goal assumptions.

This is a pure function of the period layout, the assumptions and any
existing lines - no database reads or writes. Persistence of the result is
left to the caller.

Generation order:
1. Revenue goal is split across revenue lines by baseline share, then
   spread over forecast months by the distribution method
2. COGS follows revenue month by month at the COGS percentage
3. Opex budget (if supplied) is split across opex lines by baseline share
   and spread over forecast months by the same distribution method

Manual-override lines and lines outside revenue/COGS/opex pass through
untouched.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from plforecast.forecast.distribution import (
    ZERO,
    allocate,
    even_weights,
    growth_weights,
    normalize_weights,
    round_currency,
    seasonal_weights,
)
from plforecast.forecast.exceptions import EmptyForecastWindowError
from plforecast.forecast.types import (
    CATEGORY_ORDER,
    DistributionFallback,
    DistributionMethod,
    FlatMethod,
    ForecastAssumptions,
    GeneratedForecast,
    LineCategory,
    PercentageOfRevenueMethod,
    PeriodLayout,
    PLLine,
)

logger = logging.getLogger(__name__)

DEFAULT_REVENUE_ACCOUNT = "Sales"
DEFAULT_COGS_ACCOUNT = "Cost of Goods Sold"
DEFAULT_OPEX_ACCOUNT = "General Operating Expenses"


def generate_forecast(
    layout: PeriodLayout,
    assumptions: ForecastAssumptions,
    existing_lines: Optional[Sequence[PLLine]] = None,
) -> GeneratedForecast:
    """
    Generate forecast P&L lines from assumptions.

    Args:
        layout: Fiscal period layout
        assumptions: Revenue goal, COGS %, opex budget and distribution method
        existing_lines: Lines already on the forecast (actuals, manual entries)

    Returns:
        GeneratedForecast with the full line set and any distribution fallbacks

    Raises:
        EmptyForecastWindowError: the layout has no forecast months
    """
    forecast_keys = layout.forecast_keys
    if not forecast_keys:
        raise EmptyForecastWindowError("The period layout contains no forecast months")

    baseline_keys = layout.baseline_keys
    ytd_keys = layout.actual_keys if assumptions.net_of_actuals else []
    layout_keys = set(layout.keys)

    logger.info(
        f"Generating forecast: revenue_goal={assumptions.revenue_goal}, "
        f"cogs={assumptions.cogs_percentage}%, opex_budget={assumptions.opex_budget}, "
        f"method={assumptions.distribution_method.value}, "
        f"forecast_months={len(forecast_keys)}, baseline_months={len(baseline_keys)}"
    )

    carried: List[PLLine] = []
    working: Dict[LineCategory, List[PLLine]] = {
        LineCategory.REVENUE: [],
        LineCategory.COST_OF_SALES: [],
        LineCategory.OPERATING_EXPENSES: [],
    }
    for line in existing_lines or []:
        if line.is_manual or not line.is_forecastable:
            carried.append(line)
        else:
            working[line.category].append(_restrict_to_layout(line, layout_keys))

    fallbacks: List[DistributionFallback] = []

    # 1. Revenue
    manual_revenue = sum(
        (l.total(forecast_keys) for l in carried if l.category == LineCategory.REVENUE and l.is_manual),
        ZERO,
    )
    revenue_lines = working[LineCategory.REVENUE] or [
        _default_line(DEFAULT_REVENUE_ACCOUNT, LineCategory.REVENUE, sort_order=1)
    ]
    revenue_target = _remaining_target(
        assumptions.revenue_goal - manual_revenue, revenue_lines, ytd_keys, "revenue"
    )
    revenue_lines = _distribute_category(
        revenue_target,
        revenue_lines,
        forecast_keys,
        baseline_keys,
        assumptions.distribution_method,
        fallbacks,
    )

    # 2. COGS
    revenue_by_month = _monthly_totals(
        revenue_lines + [l for l in carried if l.category == LineCategory.REVENUE],
        forecast_keys,
    )
    cogs_lines = working[LineCategory.COST_OF_SALES] or [
        _default_line(DEFAULT_COGS_ACCOUNT, LineCategory.COST_OF_SALES, sort_order=100)
    ]
    cogs_lines = _apply_cogs(
        cogs_lines, revenue_by_month, assumptions.cogs_percentage, baseline_keys
    )

    # 3. Operating expenses
    opex_lines = working[LineCategory.OPERATING_EXPENSES]
    if assumptions.opex_budget is not None:
        opex_lines = opex_lines or [
            _default_line(DEFAULT_OPEX_ACCOUNT, LineCategory.OPERATING_EXPENSES, sort_order=200)
        ]
        opex_target = _remaining_target(assumptions.opex_budget, opex_lines, ytd_keys, "opex")
        opex_lines = _distribute_category(
            opex_target,
            opex_lines,
            forecast_keys,
            baseline_keys,
            assumptions.distribution_method,
            fallbacks,
        )
    else:
        logger.info("No opex budget supplied, leaving operating expense lines unchanged")

    lines = carried + revenue_lines + cogs_lines + opex_lines
    lines.sort(key=lambda l: (CATEGORY_ORDER[l.category], l.sort_order))

    if fallbacks:
        logger.warning(
            f"Seasonal distribution fell back to even for {len(fallbacks)} line(s): "
            f"{', '.join(f.line_key for f in fallbacks)}"
        )

    return GeneratedForecast(lines=lines, fallbacks=fallbacks)


def _default_line(account_name: str, category: LineCategory, sort_order: int) -> PLLine:
    logger.info(f"No {category.value} detail lines found, creating default '{account_name}' line")
    return PLLine(account_name=account_name, category=category, sort_order=sort_order)


def _restrict_to_layout(line: PLLine, layout_keys: set) -> PLLine:
    """Drop amounts keyed to months outside the layout."""
    outside = sorted(k for k in line.amounts if k not in layout_keys)
    if not outside:
        return line
    logger.warning(
        f"Ignoring {len(outside)} month(s) outside the layout on '{line.account_name}': "
        f"{', '.join(outside)}"
    )
    return line.model_copy(update={
        "amounts": {k: v for k, v in line.amounts.items() if k in layout_keys},
    })


def _remaining_target(
    goal: Decimal,
    lines: List[PLLine],
    ytd_keys: List[str],
    label: str,
) -> Decimal:
    """Goal less year-to-date actuals, floored at zero."""
    ytd = sum((line.total(ytd_keys) for line in lines), ZERO)
    remaining = goal - ytd
    if ytd:
        logger.info(f"YTD {label}: {ytd}, remaining to forecast: {remaining}")
    if remaining <= 0:
        if ytd:
            logger.info(f"YTD {label} meets or exceeds the goal, forecasting zero")
        return ZERO
    return remaining


def _slot_key(index: int, line: PLLine) -> str:
    # Lines without an id can share a key, so budgets are keyed by position too
    return f"{index}:{line.key}"


def _baseline_shares(lines: List[PLLine], baseline_keys: List[str]) -> Dict[str, Decimal]:
    """Weights for splitting a category budget across its lines, keyed by slot."""
    shares = {
        _slot_key(index, line): max(line.total(baseline_keys), ZERO)
        for index, line in enumerate(lines)
    }
    if sum(shares.values(), ZERO) <= 0:
        return even_weights(list(shares))
    return shares


def _month_weights(
    line: PLLine,
    category_reference: Dict[str, Decimal],
    forecast_keys: List[str],
    baseline_keys: List[str],
    method: DistributionMethod,
) -> Tuple[Dict[str, Decimal], Optional[str]]:
    """
    Monthly weights for one line.

    Returns the weights and, when a seasonal request had to degrade to even,
    the reason.
    """
    if method == DistributionMethod.GROWTH_CURVE:
        return growth_weights(forecast_keys), None

    if method == DistributionMethod.SEASONAL:
        own_reference = {k: line.amount(k) for k in baseline_keys if k in line.amounts}
        weights = seasonal_weights(own_reference, forecast_keys)
        if weights is not None:
            return weights, None
        weights = seasonal_weights(category_reference, forecast_keys)
        if weights is not None:
            return weights, None
        return even_weights(forecast_keys), (
            f"No baseline {line.category.value} data for seasonal pattern"
        )

    return even_weights(forecast_keys), None


def _distribute_category(
    target: Decimal,
    lines: List[PLLine],
    forecast_keys: List[str],
    baseline_keys: List[str],
    method: DistributionMethod,
    fallbacks: List[DistributionFallback],
) -> List[PLLine]:
    line_budgets = allocate(target, _baseline_shares(lines, baseline_keys))
    category_reference = _monthly_totals(lines, baseline_keys)

    distributed = []
    for index, line in enumerate(lines):
        budget = line_budgets[_slot_key(index, line)]
        weights, fallback_reason = _month_weights(
            line, category_reference, forecast_keys, baseline_keys, method
        )
        if fallback_reason:
            fallbacks.append(DistributionFallback(
                line_key=line.key,
                category=line.category,
                requested=method,
                reason=fallback_reason,
            ))

        monthly = allocate(budget, weights)
        logger.debug(f"{line.account_name}: budget={budget}, months={len(monthly)}")

        shaped = method != DistributionMethod.EVEN and fallback_reason is None
        distributed.append(line.model_copy(update={
            "amounts": {**line.amounts, **monthly},
            "forecast_method": FlatMethod(),
            "seasonal_weights": normalize_weights(weights) if shaped else None,
        }))
    return distributed


def _apply_cogs(
    lines: List[PLLine],
    revenue_by_month: Dict[str, Decimal],
    cogs_percentage: Decimal,
    baseline_keys: List[str],
) -> List[PLLine]:
    """Tie COGS to revenue month by month."""
    if len(lines) == 1:
        percentages = {_slot_key(0, lines[0]): Decimal(cogs_percentage)}
    else:
        shares = normalize_weights(_baseline_shares(lines, baseline_keys))
        percentages = {key: Decimal(cogs_percentage) * share for key, share in shares.items()}

    tied = []
    for index, line in enumerate(lines):
        percentage = percentages[_slot_key(index, line)]
        monthly = {
            key: max(round_currency(revenue * percentage / 100), ZERO)
            for key, revenue in revenue_by_month.items()
        }
        tied.append(line.model_copy(update={
            "amounts": {**line.amounts, **monthly},
            "forecast_method": PercentageOfRevenueMethod(percentage=percentage),
            "seasonal_weights": None,
        }))
    return tied


def _monthly_totals(lines: Sequence[PLLine], month_keys: Sequence[str]) -> Dict[str, Decimal]:
    return {key: sum((line.amount(key) for line in lines), ZERO) for key in month_keys}
