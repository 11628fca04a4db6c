"""Forecast request/response schemas."""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from decimal import Decimal

from plforecast.forecast.types import (
    DistributionFallback,
    ForecastAssumptions,
    LineCategory,
    MonthDescriptor,
    PLLine,
    ValidationIssue,
)


class PeriodBoundaries(BaseModel):
    """Boundary months for the fiscal period layout."""
    actual_start: str = Field(..., description="e.g. 2024-07")
    actual_end: str
    forecast_start: str
    forecast_end: str
    baseline_start: Optional[str] = None
    baseline_end: Optional[str] = None


class LayoutResponse(BaseModel):
    """Fiscal period layout."""
    months: List[MonthDescriptor]
    actual_months: List[str]
    baseline_months: List[str]
    forecast_months: List[str]


class GenerateRequest(BaseModel):
    """Generate a forecast from goal assumptions."""
    periods: PeriodBoundaries
    assumptions: ForecastAssumptions
    existing_lines: List[PLLine] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    """Generated P&L lines."""
    lines: List[PLLine]
    fallbacks: List[DistributionFallback]
    degraded: bool


class BulkIncrease(BaseModel):
    """Percentage increase applied to every non-manual line of one category."""
    category: LineCategory
    percentage_increase: Decimal = Field(..., ge=-1)


class RecalculateRequest(BaseModel):
    """Recalculate forecast months after an assumption change."""
    periods: PeriodBoundaries
    lines: List[PLLine]
    bulk_increase: Optional[BulkIncrease] = None
    flat_values: Dict[str, Decimal] = Field(default_factory=dict)


class RecalculateResponse(BaseModel):
    """Recalculated P&L lines."""
    lines: List[PLLine]


class ValidateRequest(BaseModel):
    """Validate assumptions and, optionally, lines against goals."""
    periods: PeriodBoundaries
    assumptions: ForecastAssumptions
    lines: List[PLLine] = Field(default_factory=list)


class ValidateResponse(BaseModel):
    """Validation findings."""
    is_valid: bool
    issues: List[ValidationIssue]
