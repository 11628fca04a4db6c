"""
Forecast validation - data quality checks on assumptions and generated lines.

Checks return ValidationIssue records rather than raising; the caller decides
whether warnings block saving.
"""
import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from plforecast.config import settings
from plforecast.forecast.distribution import ZERO
from plforecast.forecast.types import (
    ForecastAssumptions,
    LineCategory,
    PeriodLayout,
    PLLine,
    ValidationIssue,
    ValidationSeverity,
)

logger = logging.getLogger(__name__)


def validate_cogs_percentage(percentage: Decimal) -> Optional[ValidationIssue]:
    """Validate COGS percentage."""
    if percentage < 0 or percentage > 100:
        return ValidationIssue(
            severity=ValidationSeverity.ERROR,
            field="cogs_percentage",
            message="COGS percentage must be between 0% and 100%",
            value=percentage,
            suggestion="Enter a valid percentage between 0 and 100",
        )
    if percentage < settings.COGS_WARNING_LOW:
        return ValidationIssue(
            severity=ValidationSeverity.WARNING,
            field="cogs_percentage",
            message=f"COGS percentage seems unusually low (<{settings.COGS_WARNING_LOW}%)",
            value=percentage,
            suggestion="Most businesses have COGS between 20-60%. Please verify this is correct.",
        )
    if percentage > settings.COGS_WARNING_HIGH:
        return ValidationIssue(
            severity=ValidationSeverity.WARNING,
            field="cogs_percentage",
            message=f"COGS percentage seems unusually high (>{settings.COGS_WARNING_HIGH}%)",
            value=percentage,
            suggestion="This leaves very little gross profit. Please verify this is correct.",
        )
    return None


def validate_revenue_goal(revenue: Decimal) -> Optional[ValidationIssue]:
    """Validate revenue goal."""
    if revenue < 0:
        return ValidationIssue(
            severity=ValidationSeverity.ERROR,
            field="revenue_goal",
            message="Revenue goal cannot be negative",
            value=revenue,
            suggestion="Enter a positive revenue target",
        )
    if revenue == 0:
        return ValidationIssue(
            severity=ValidationSeverity.ERROR,
            field="revenue_goal",
            message="Revenue goal is required",
            value=revenue,
            suggestion="Enter your annual revenue target to continue",
        )
    if revenue < settings.MIN_REVENUE_GOAL:
        return ValidationIssue(
            severity=ValidationSeverity.WARNING,
            field="revenue_goal",
            message="Revenue goal seems unusually low",
            value=revenue,
            suggestion=f"Most businesses target at least ${settings.MIN_REVENUE_GOAL:,} in annual revenue",
        )
    return None


def validate_assumptions(assumptions: ForecastAssumptions) -> List[ValidationIssue]:
    """
    Check assumptions for range problems and goal inconsistencies.

    Derived values follow the goal arithmetic:
    implied COGS = revenue - gross profit, implied opex = gross profit - net profit.
    """
    issues = [
        issue for issue in (
            validate_revenue_goal(assumptions.revenue_goal),
            validate_cogs_percentage(assumptions.cogs_percentage),
        )
        if issue is not None
    ]

    revenue = assumptions.revenue_goal
    gross = assumptions.gross_profit_goal
    net = assumptions.net_profit_goal

    if gross is not None and revenue > 0:
        if gross > revenue:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                field="gross_profit_goal",
                message="Gross profit goal exceeds the revenue goal",
                value=gross,
            ))
        else:
            implied_pct = ((revenue - gross) / revenue * 100).quantize(Decimal("0.1"))
            if abs(implied_pct - assumptions.cogs_percentage) > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field="cogs_percentage",
                    message=(
                        f"Gross profit goal implies COGS of {implied_pct}%, "
                        f"but {assumptions.cogs_percentage}% was entered"
                    ),
                    value=assumptions.cogs_percentage,
                    suggestion=f"Set COGS to {implied_pct}% or adjust the gross profit goal",
                ))

    if gross is not None and net is not None:
        if net > gross:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                field="net_profit_goal",
                message="Net profit goal exceeds the gross profit goal",
                value=net,
                suggestion="Net profit is gross profit less operating expenses",
            ))
        elif assumptions.opex_budget is not None:
            implied_opex = gross - net
            if assumptions.opex_budget > implied_opex:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field="opex_budget",
                    message=(
                        f"Opex budget ({assumptions.opex_budget:,}) exceeds the "
                        f"{implied_opex:,} implied by your profit goals"
                    ),
                    value=assumptions.opex_budget,
                    suggestion="Reduce the opex budget or lower the net profit goal",
                ))

    return issues


def validate_forecast_vs_goals(
    lines: Sequence[PLLine],
    layout: PeriodLayout,
    assumptions: ForecastAssumptions,
    tolerance: Optional[Decimal] = None,
) -> List[ValidationIssue]:
    """Warn when fiscal-year revenue drifts from the goal beyond the tolerance."""
    tolerance = settings.GOAL_TOLERANCE if tolerance is None else tolerance
    goal = assumptions.revenue_goal
    if goal == 0:
        return []

    year_keys = layout.actual_keys + layout.forecast_keys
    total = sum(
        (l.total(year_keys) for l in lines if l.category == LineCategory.REVENUE),
        ZERO,
    )
    variance = abs(total - goal) / goal
    if variance <= tolerance:
        return []

    direction = "higher" if total > goal else "lower"
    return [ValidationIssue(
        severity=ValidationSeverity.WARNING,
        field="forecast_total",
        message=f"Forecast total is {(variance * 100).quantize(Decimal('0.1'))}% {direction} than goal",
        value=total,
        suggestion=f"Goal: ${goal:,}, Forecast: ${total:,}. Consider adjusting your forecast or goals.",
    )]


def validate_goals_against_actuals(
    lines: Sequence[PLLine],
    layout: PeriodLayout,
    assumptions: ForecastAssumptions,
) -> List[ValidationIssue]:
    """Flag goals that year-to-date actuals have already overrun."""
    ytd_keys = layout.actual_keys
    issues = []

    def ytd(category: LineCategory) -> Decimal:
        return sum((l.total(ytd_keys) for l in lines if l.category == category), ZERO)

    ytd_revenue = ytd(LineCategory.REVENUE)
    if ytd_revenue > assumptions.revenue_goal:
        issues.append(ValidationIssue(
            severity=ValidationSeverity.ERROR,
            field="revenue_goal",
            message=(
                f"YTD Revenue (${ytd_revenue:,}) already exceeds your annual goal "
                f"(${assumptions.revenue_goal:,})"
            ),
            value=ytd_revenue,
            suggestion="Consider setting a higher revenue target",
        ))

    if assumptions.gross_profit_goal is not None and assumptions.net_profit_goal is not None:
        implied_opex = assumptions.gross_profit_goal - assumptions.net_profit_goal
        ytd_opex = ytd(LineCategory.OPERATING_EXPENSES)
        if ytd_opex > implied_opex:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                field="opex_budget",
                message=f"YTD OpEx (${ytd_opex:,}) exceeds your implied budget (${implied_opex:,})",
                value=ytd_opex,
                suggestion="Adjust the net profit goal to your current spending trajectory",
            ))

    if issues:
        logger.info(f"Goal validation found {len(issues)} issue(s) against YTD actuals")
    return issues
