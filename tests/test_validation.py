"""Tests for forecast validation checks."""

from decimal import Decimal

from conftest import make_line, monthly
from plforecast.forecast.types import ForecastAssumptions, LineCategory, ValidationSeverity
from plforecast.forecast.validation import (
    validate_assumptions,
    validate_cogs_percentage,
    validate_forecast_vs_goals,
    validate_goals_against_actuals,
    validate_revenue_goal,
)


def fields(issues):
    return {(i.field, i.severity) for i in issues}


class TestFieldChecks:

    def test_cogs_out_of_range(self):
        issue = validate_cogs_percentage(Decimal("120"))
        assert issue.severity == ValidationSeverity.ERROR

    def test_cogs_unusually_low(self):
        issue = validate_cogs_percentage(Decimal("3"))
        assert issue.severity == ValidationSeverity.WARNING

    def test_cogs_unusually_high(self):
        assert validate_cogs_percentage(Decimal("97")).severity == ValidationSeverity.WARNING

    def test_cogs_ok(self):
        assert validate_cogs_percentage(Decimal("40")) is None

    def test_revenue_goal_required(self):
        assert validate_revenue_goal(Decimal("0")).severity == ValidationSeverity.ERROR

    def test_revenue_goal_low(self):
        assert validate_revenue_goal(Decimal("5000")).severity == ValidationSeverity.WARNING


class TestValidateAssumptions:

    def test_consistent_goals(self):
        assumptions = ForecastAssumptions(
            revenue_goal=Decimal("100000"),
            gross_profit_goal=Decimal("60000"),
            net_profit_goal=Decimal("20000"),
            cogs_percentage=Decimal("40"),
            opex_budget=Decimal("40000"),
        )
        assert validate_assumptions(assumptions) == []

    def test_cogs_inconsistent_with_gross_profit(self):
        assumptions = ForecastAssumptions(
            revenue_goal=Decimal("100000"),
            gross_profit_goal=Decimal("60000"),
            cogs_percentage=Decimal("25"),
        )
        issues = validate_assumptions(assumptions)
        assert ("cogs_percentage", ValidationSeverity.WARNING) in fields(issues)

    def test_net_profit_above_gross(self):
        assumptions = ForecastAssumptions(
            revenue_goal=Decimal("100000"),
            gross_profit_goal=Decimal("60000"),
            net_profit_goal=Decimal("70000"),
            cogs_percentage=Decimal("40"),
        )
        assert ("net_profit_goal", ValidationSeverity.ERROR) in fields(validate_assumptions(assumptions))

    def test_opex_budget_above_implied(self):
        assumptions = ForecastAssumptions(
            revenue_goal=Decimal("100000"),
            gross_profit_goal=Decimal("60000"),
            net_profit_goal=Decimal("20000"),
            cogs_percentage=Decimal("40"),
            opex_budget=Decimal("50000"),
        )
        assert ("opex_budget", ValidationSeverity.WARNING) in fields(validate_assumptions(assumptions))


class TestGoalChecks:

    def test_forecast_within_tolerance(self, fy_layout):
        lines = [make_line("Sales", LineCategory.REVENUE, monthly("2024-07", "2025-06", 5000))]
        assumptions = ForecastAssumptions(revenue_goal=Decimal("60000"), cogs_percentage=Decimal("40"))
        assert validate_forecast_vs_goals(lines, fy_layout, assumptions) == []

    def test_forecast_below_goal(self, fy_layout):
        lines = [make_line("Sales", LineCategory.REVENUE, monthly("2024-07", "2025-06", 4000))]
        assumptions = ForecastAssumptions(revenue_goal=Decimal("60000"), cogs_percentage=Decimal("40"))
        [issue] = validate_forecast_vs_goals(lines, fy_layout, assumptions)
        assert issue.field == "forecast_total"
        assert "20.0% lower" in issue.message

    def test_ytd_revenue_exceeds_goal(self, fy_layout):
        lines = [make_line("Sales", LineCategory.REVENUE, monthly("2024-07", "2024-12", 20000))]
        assumptions = ForecastAssumptions(revenue_goal=Decimal("100000"), cogs_percentage=Decimal("40"))
        issues = validate_goals_against_actuals(lines, fy_layout, assumptions)
        assert ("revenue_goal", ValidationSeverity.ERROR) in fields(issues)

    def test_ytd_opex_exceeds_implied_budget(self, fy_layout):
        lines = [make_line("Rent", LineCategory.OPERATING_EXPENSES, monthly("2024-07", "2024-12", 10000))]
        assumptions = ForecastAssumptions(
            revenue_goal=Decimal("200000"),
            gross_profit_goal=Decimal("100000"),
            net_profit_goal=Decimal("50000"),
            cogs_percentage=Decimal("50"),
        )
        issues = validate_goals_against_actuals(lines, fy_layout, assumptions)
        assert ("opex_budget", ValidationSeverity.ERROR) in fields(issues)
