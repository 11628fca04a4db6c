"""
Forecast Types - Core Data Structures.

Implements the records the period model, generator and engine exchange:
- PeriodLayout: the month-by-month timeline tagged actual/baseline/forecast
- PLLine: one revenue/COGS/opex row with per-month amounts
- ForecastMethodConfig: closed tagged variant governing recalculation
- ForecastAssumptions: the goal-driven inputs for generation
"""

import re
from enum import Enum
from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# =============================================================================
# ENUMS
# =============================================================================

class PeriodRole(str, Enum):
    """Role of a month within the fiscal period layout."""
    ACTUAL = "actual"      # Closed-out months with recorded transactions
    BASELINE = "baseline"  # Reference window for seasonal/dollar shape
    FORECAST = "forecast"  # Months to project


class LineCategory(str, Enum):
    """P&L categories."""
    REVENUE = "revenue"
    COST_OF_SALES = "cost_of_sales"
    OPERATING_EXPENSES = "operating_expenses"
    OTHER_INCOME = "other_income"
    OTHER_EXPENSES = "other_expenses"


FORECASTABLE_CATEGORIES = frozenset({
    LineCategory.REVENUE,
    LineCategory.COST_OF_SALES,
    LineCategory.OPERATING_EXPENSES,
})

CATEGORY_ORDER = {category: index for index, category in enumerate(LineCategory)}


class DistributionMethod(str, Enum):
    """How an annual figure is spread across forecast months."""
    EVEN = "even"
    SEASONAL = "seasonal"
    GROWTH_CURVE = "growth_curve"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


# =============================================================================
# PERIOD LAYOUT
# =============================================================================

class MonthDescriptor(BaseModel):
    """A single month column in the layout."""
    key: str = Field(..., description="Month key, YYYY-MM")
    role: PeriodRole
    position: int = Field(..., ge=0, description="Ordinal position in the layout")
    label: str = Field(..., description="Display label, e.g. 'Jul 24'")

    model_config = {"frozen": True}


class PeriodLayout(BaseModel):
    """Ordered month descriptors for one fiscal year."""
    months: List[MonthDescriptor] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def keys(self) -> List[str]:
        return [month.key for month in self.months]

    def keys_for(self, role: PeriodRole) -> List[str]:
        return [month.key for month in self.months if month.role == role]

    @property
    def actual_keys(self) -> List[str]:
        return self.keys_for(PeriodRole.ACTUAL)

    @property
    def baseline_keys(self) -> List[str]:
        return self.keys_for(PeriodRole.BASELINE)

    @property
    def forecast_keys(self) -> List[str]:
        return self.keys_for(PeriodRole.FORECAST)

    def role_of(self, key: str) -> Optional[PeriodRole]:
        for month in self.months:
            if month.key == key:
                return month.role
        return None


# =============================================================================
# FORECAST METHODS
# =============================================================================

class FlatMethod(BaseModel):
    """Forecast months hold whatever was last set; only an explicit value changes them."""
    method: Literal["flat"] = "flat"


class PercentageOfRevenueMethod(BaseModel):
    """Forecast months track revenue for the same month."""
    method: Literal["percentage_of_revenue"] = "percentage_of_revenue"
    percentage: Decimal = Field(..., ge=0, le=100, description="Percent of revenue, 0-100")
    driver_line: Optional[str] = Field(
        None, description="Key of a single revenue line to track (default: total revenue)"
    )


class SeasonalIncreaseMethod(BaseModel):
    """Baseline average lifted by a percentage, optionally shaped by recorded weights."""
    method: Literal["seasonal_increase"] = "seasonal_increase"
    percentage_increase: Decimal = Field(
        Decimal("0"), ge=-1, description="Fractional increase, e.g. 0.05 = 5%"
    )


class ManualOverrideMethod(BaseModel):
    """User-entered values; never recalculated."""
    method: Literal["manual"] = "manual"


ForecastMethodConfig = Annotated[
    Union[FlatMethod, PercentageOfRevenueMethod, SeasonalIncreaseMethod, ManualOverrideMethod],
    Field(discriminator="method"),
]


# =============================================================================
# P&L LINES
# =============================================================================

class LineAnalysis(BaseModel):
    """Historical metrics for a line, computed over the baseline window."""
    average_per_month: Decimal = Decimal("0")
    pct_of_total_revenue: Optional[Decimal] = None
    pct_of_revenue: Optional[Decimal] = None
    trend_direction: Optional[TrendDirection] = None
    trend_percentage: Optional[Decimal] = None


class PLLine(BaseModel):
    """One row of the profit-and-loss structure."""
    id: Optional[str] = None
    account_name: str = Field(..., min_length=1, max_length=255)
    category: LineCategory
    amounts: Dict[str, Decimal] = Field(default_factory=dict)
    forecast_method: ForecastMethodConfig = Field(default_factory=FlatMethod)
    seasonal_weights: Optional[Dict[str, Decimal]] = None
    analysis: Optional[LineAnalysis] = None
    sort_order: int = 0
    notes: Optional[str] = None

    @field_validator("amounts", "seasonal_weights")
    @classmethod
    def _check_month_keys(cls, value):
        if value is None:
            return value
        for key in value:
            if not MONTH_KEY_PATTERN.match(key):
                raise ValueError(f"Invalid month key '{key}', expected YYYY-MM")
        return value

    @model_validator(mode="after")
    def _check_non_negative(self):
        if self.category != LineCategory.REVENUE:
            negative = [key for key, amount in self.amounts.items() if amount < 0]
            if negative:
                raise ValueError(
                    f"{self.category.value} amounts must be non-negative (months: {', '.join(sorted(negative))})"
                )
        return self

    @property
    def key(self) -> str:
        """Stable identifier: the id when persisted, otherwise category + account name."""
        return self.id or f"{self.category.value}:{self.account_name}"

    @property
    def is_manual(self) -> bool:
        return isinstance(self.forecast_method, ManualOverrideMethod)

    @property
    def is_forecastable(self) -> bool:
        return self.category in FORECASTABLE_CATEGORIES

    def amount(self, month_key: str) -> Decimal:
        return self.amounts.get(month_key, Decimal("0"))

    def total(self, month_keys: List[str]) -> Decimal:
        return sum((self.amount(key) for key in month_keys), Decimal("0"))


# =============================================================================
# ASSUMPTIONS & RESULTS
# =============================================================================

class ForecastAssumptions(BaseModel):
    """Goal-driven inputs for forecast generation."""
    revenue_goal: Decimal = Field(..., ge=0, description="Annual revenue goal")
    gross_profit_goal: Optional[Decimal] = None
    net_profit_goal: Optional[Decimal] = None
    cogs_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    opex_budget: Optional[Decimal] = Field(None, ge=0, description="Annual operating expense budget")
    distribution_method: DistributionMethod = DistributionMethod.EVEN
    net_of_actuals: bool = Field(
        False, description="Subtract year-to-date actuals from goals before distributing"
    )


class DistributionFallback(BaseModel):
    """Records a line whose requested distribution degraded to even."""
    line_key: str
    category: LineCategory
    requested: DistributionMethod
    applied: DistributionMethod = DistributionMethod.EVEN
    reason: str


class GeneratedForecast(BaseModel):
    """Result of forecast generation."""
    lines: List[PLLine]
    fallbacks: List[DistributionFallback] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.fallbacks)

    def lines_in(self, category: LineCategory) -> List[PLLine]:
        return [line for line in self.lines if line.category == category]


class ValidationSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """A single data-quality finding."""
    severity: ValidationSeverity
    field: str
    message: str
    value: Optional[Any] = None
    suggestion: Optional[str] = None
