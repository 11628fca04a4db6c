"""Forecast API routes."""
import logging

from fastapi import APIRouter, HTTPException

from plforecast.forecast.engine import apply_bulk_increase, recalculate_all_forecasts
from plforecast.forecast.exceptions import ForecastError
from plforecast.forecast.generator import generate_forecast
from plforecast.forecast.periods import build_period_layout
from plforecast.forecast.schemas import (
    GenerateRequest,
    GenerateResponse,
    LayoutResponse,
    PeriodBoundaries,
    RecalculateRequest,
    RecalculateResponse,
    ValidateRequest,
    ValidateResponse,
)
from plforecast.forecast.types import PeriodLayout, ValidationSeverity
from plforecast.forecast.validation import (
    validate_assumptions,
    validate_forecast_vs_goals,
    validate_goals_against_actuals,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _layout(periods: PeriodBoundaries) -> PeriodLayout:
    try:
        return build_period_layout(
            periods.actual_start,
            periods.actual_end,
            periods.forecast_start,
            periods.forecast_end,
            periods.baseline_start,
            periods.baseline_end,
        )
    except ForecastError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/layout", response_model=LayoutResponse)
async def get_layout(periods: PeriodBoundaries):
    """Build the fiscal period layout for a set of boundary months."""
    layout = _layout(periods)
    return LayoutResponse(
        months=layout.months,
        actual_months=layout.actual_keys,
        baseline_months=layout.baseline_keys,
        forecast_months=layout.forecast_keys,
    )


@router.post("/generate", response_model=GenerateResponse)
async def generate(request: GenerateRequest):
    """
    Generate forecast P&L lines from goal assumptions.

    Manual-override lines in existing_lines are returned unchanged.
    """
    layout = _layout(request.periods)
    try:
        result = generate_forecast(layout, request.assumptions, request.existing_lines)
    except ForecastError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return GenerateResponse(
        lines=result.lines,
        fallbacks=result.fallbacks,
        degraded=result.degraded,
    )


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate(request: RecalculateRequest):
    """Recalculate forecast months, optionally applying a bulk category increase first."""
    layout = _layout(request.periods)
    lines = request.lines
    if request.bulk_increase is not None:
        lines = apply_bulk_increase(
            lines,
            request.bulk_increase.category,
            request.bulk_increase.percentage_increase,
        )

    try:
        updated = recalculate_all_forecasts(
            lines,
            layout.baseline_keys,
            layout.forecast_keys,
            flat_values=request.flat_values,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return RecalculateResponse(lines=updated)


@router.post("/validate", response_model=ValidateResponse)
async def validate(request: ValidateRequest):
    """Validate assumptions, and lines against goals when lines are supplied."""
    layout = _layout(request.periods)
    issues = validate_assumptions(request.assumptions)
    if request.lines:
        issues += validate_goals_against_actuals(request.lines, layout, request.assumptions)
        issues += validate_forecast_vs_goals(request.lines, layout, request.assumptions)

    return ValidateResponse(
        is_valid=not any(i.severity == ValidationSeverity.ERROR for i in issues),
        issues=issues,
    )
