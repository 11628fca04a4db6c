"""Tests for the forecast API routes."""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from plforecast.main import app

PERIODS = {
    "actual_start": "2024-07",
    "actual_end": "2024-12",
    "forecast_start": "2025-01",
    "forecast_end": "2025-06",
}


@pytest.fixture
def client():
    return TestClient(app)


class TestForecastRoutes:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_layout(self, client):
        response = client.post("/api/forecast/layout", json=PERIODS)
        assert response.status_code == 200
        body = response.json()
        assert len(body["months"]) == 12
        assert body["baseline_months"] == []
        assert body["forecast_months"][0] == "2025-01"

    def test_layout_invalid_range(self, client):
        response = client.post("/api/forecast/layout", json={**PERIODS, "actual_start": "2025-01"})
        assert response.status_code == 422
        assert "actual start" in response.json()["detail"]

    def test_layout_year_out_of_range(self, client):
        response = client.post("/api/forecast/layout", json={
            "actual_start": "9999-01", "actual_end": "9999-06",
            "forecast_start": "9999-07", "forecast_end": "9999-12",
        })
        assert response.status_code == 422

    def test_generate(self, client):
        response = client.post("/api/forecast/generate", json={
            "periods": PERIODS,
            "assumptions": {"revenue_goal": "60000", "cogs_percentage": "40"},
        })
        assert response.status_code == 200
        body = response.json()
        revenue, cogs = body["lines"]
        assert revenue["category"] == "revenue"
        assert Decimal(revenue["amounts"]["2025-03"]) == Decimal("10000")
        assert Decimal(cogs["amounts"]["2025-03"]) == Decimal("4000")
        assert cogs["forecast_method"]["method"] == "percentage_of_revenue"
        assert body["degraded"] is False

    def test_generate_reports_fallback(self, client):
        response = client.post("/api/forecast/generate", json={
            "periods": PERIODS,
            "assumptions": {
                "revenue_goal": "60000",
                "cogs_percentage": "40",
                "distribution_method": "seasonal",
            },
        })
        body = response.json()
        assert body["degraded"] is True
        assert body["fallbacks"][0]["applied"] == "even"

    def test_generate_empty_forecast_window(self, client):
        periods = {**PERIODS, "forecast_start": "2024-08", "forecast_end": "2024-09"}
        response = client.post("/api/forecast/generate", json={
            "periods": periods,
            "assumptions": {"revenue_goal": "60000", "cogs_percentage": "40"},
        })
        assert response.status_code == 422

    def test_recalculate_bulk_increase(self, client):
        periods = {**PERIODS, "baseline_start": "2024-07", "baseline_end": "2024-12"}
        amounts = {f"2024-{m:02d}": "1000" for m in range(7, 13)}
        response = client.post("/api/forecast/recalculate", json={
            "periods": periods,
            "lines": [{"account_name": "Rent", "category": "operating_expenses", "amounts": amounts}],
            "bulk_increase": {"category": "operating_expenses", "percentage_increase": "0.2"},
        })
        assert response.status_code == 200
        [rent] = response.json()["lines"]
        assert Decimal(rent["amounts"]["2025-06"]) == Decimal("1200")
        assert rent["forecast_method"]["method"] == "seasonal_increase"

    def test_validate(self, client):
        response = client.post("/api/forecast/validate", json={
            "periods": PERIODS,
            "assumptions": {"revenue_goal": "0", "cogs_percentage": "40"},
        })
        body = response.json()
        assert body["is_valid"] is False
        assert body["issues"][0]["field"] == "revenue_goal"

    def test_rejects_negative_cost_amounts(self, client):
        response = client.post("/api/forecast/recalculate", json={
            "periods": PERIODS,
            "lines": [{"account_name": "Rent", "category": "operating_expenses", "amounts": {"2025-01": "-5"}}],
        })
        assert response.status_code == 422
