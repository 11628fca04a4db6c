"""
Distribution helpers - spread an amount across weighted buckets.

Buckets are forecast month keys when distributing a line's budget over
time, or line keys when splitting a category budget across sub-categories.
Allocations are rounded to whole currency units and always reconcile exactly
to the amount being spread.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Sequence

from plforecast.forecast.periods import parse_month_key

CURRENCY_QUANTUM = Decimal("1")
WEIGHT_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")


def round_currency(value: Decimal) -> Decimal:
    """Round to the nearest whole currency unit (half up)."""
    return Decimal(value).quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


def even_weights(buckets: Sequence[str]) -> Dict[str, Decimal]:
    return {bucket: Decimal("1") for bucket in buckets}


def growth_weights(buckets: Sequence[str]) -> Dict[str, Decimal]:
    """Weights 1, 2, ..., N so later buckets receive proportionally more."""
    return {bucket: Decimal(index) for index, bucket in enumerate(buckets, start=1)}


def seasonal_weights(
    reference: Mapping[str, Decimal],
    forecast_keys: Sequence[str],
) -> Optional[Dict[str, Decimal]]:
    """
    Map a historical monthly pattern onto forecast months by calendar month.

    A forecast month takes the reference amount(s) for the same calendar
    month (e.g. Nov 2025 uses Nov 2024). Returns None when the reference has
    no positive total, meaning there is no usable pattern.
    """
    by_calendar_month: Dict[int, Decimal] = {}
    for key, amount in reference.items():
        month = parse_month_key(key).month
        by_calendar_month[month] = by_calendar_month.get(month, ZERO) + Decimal(amount)

    weights = {
        key: max(by_calendar_month.get(parse_month_key(key).month, ZERO), ZERO)
        for key in forecast_keys
    }
    if sum(weights.values(), ZERO) <= 0:
        return None
    return weights


def normalize_weights(weights: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    """Scale weights to sum to 1 (rounded to 6 places for storage)."""
    total = sum(weights.values(), ZERO)
    if total <= 0:
        return {key: ZERO for key in weights}
    return {key: (Decimal(value) / total).quantize(WEIGHT_QUANTUM) for key, value in weights.items()}


def allocate(total: Decimal, weights: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    """
    Split total across buckets in proportion to weights.

    Each share is rounded to whole units; the rounding remainder goes to the
    last bucket so the shares sum to total exactly. If absorbing the
    remainder would push the last bucket negative, the excess walks back to
    earlier buckets. Zero or missing weights fall back to an even split.
    """
    buckets: List[str] = list(weights)
    if not buckets:
        return {}

    total = Decimal(total)
    weight_sum = sum((Decimal(weights[b]) for b in buckets), ZERO)
    if weight_sum <= 0:
        weights = even_weights(buckets)
        weight_sum = Decimal(len(buckets))

    shares = {b: round_currency(total * Decimal(weights[b]) / weight_sum) for b in buckets}

    remainder = total - sum(shares.values(), ZERO)
    for bucket in reversed(buckets):
        if remainder == 0:
            break
        adjusted = shares[bucket] + remainder
        if adjusted >= 0 or total < 0:
            shares[bucket] = adjusted
            remainder = ZERO
        else:
            remainder = adjusted
            shares[bucket] = ZERO

    return shares
