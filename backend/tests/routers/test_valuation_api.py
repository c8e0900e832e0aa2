# backend/tests/routers/test_valuation_api.py
"""
API layer tests for valuation endpoints.

These tests verify the HTTP layer using FastAPI's TestClient:
- Correct status codes (200, 400, 404, 422)
- Response JSON structure matches Pydantic schemas
- Query parameter handling
- Error responses use the shared ErrorDetail shape

This is the TOP of the test pyramid - fewest tests, but validates
the complete HTTP request/response cycle.

Test Methodology:
    1. Override database dependency with the test session
    2. Seed test data
    3. Make HTTP requests via TestClient
    4. Assert status codes and response structure
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from portfolio_tracker.database import get_db
from portfolio_tracker.main import app


@pytest.fixture(scope="function")
def client(db: Session) -> TestClient:
    """
    Create TestClient with database dependency override.

    This ensures all API calls use the test database.
    """

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def portfolio(seed):
    """BUY 5 Acme @ 100, SELL 2 @ 150, Acme valued at 120; 500 cash."""
    portfolio = seed.portfolio("Main")
    acme = seed.asset("Acme", "Stock", metadata={"sector": "Industrials", "geography": "US"})
    savings = seed.asset("Savings", "Cash")

    seed.buy(portfolio, acme, "5", "100", date(2023, 1, 1))
    seed.buy(portfolio, savings, "500", "1", date(2023, 1, 1))
    seed.sell(portfolio, acme, "2", "150", date(2023, 6, 1))

    seed.valuation(acme, "100", date(2023, 1, 1))
    seed.valuation(acme, "120", date(2024, 1, 1))
    seed.valuation(savings, "500", date(2023, 1, 1))
    return portfolio


# =============================================================================
# VALUATION
# =============================================================================

class TestValuationEndpoint:

    def test_returns_summary_and_holdings(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/valuation")

        assert response.status_code == 200
        data = response.json()
        assert data["portfolio_id"] == portfolio.id
        assert data["valuation_date"] is None
        assert data["has_inconsistencies"] is False

        summary = data["summary"]
        # Decimals are serialized as strings
        assert summary["total_value"] == "860.00"
        assert summary["total_realized_gain_loss"] == "100.00"
        assert summary["return_percentage"] == "53.33"
        assert summary["holdings_count"] == 2

        acme = next(h for h in data["holdings"] if h["asset_name"] == "Acme")
        assert acme["current_value"] == "360.00"
        assert acme["unrealized_gain_loss"] == "60.00"
        assert acme["has_valuation"] is True

    def test_valuation_date_query(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/valuation", params={"date": "2023-03-01"})

        assert response.status_code == 200
        data = response.json()
        assert data["valuation_date"] == "2023-03-01"
        assert data["summary"]["total_value"] == "1000.00"

    def test_unknown_portfolio_404(self, client):
        response = client.get("/portfolios/999/valuation")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "PortfolioNotFoundError"
        assert body["details"] == {"portfolio_id": 999}

    def test_bad_date_422(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/valuation", params={"date": "not-a-date"})

        assert response.status_code == 422


class TestHoldingsEndpoint:

    def test_open_positions(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/holdings")

        assert response.status_code == 200
        holdings = {h["asset_name"]: h for h in response.json()["holdings"]}
        assert set(holdings) == {"Acme", "Savings"}
        assert holdings["Acme"]["cost_basis"] == "300.00"
        assert holdings["Acme"]["realized_gain_loss"] == "100.00"


# =============================================================================
# HISTORY
# =============================================================================

class TestHistoryEndpoint:

    def test_event_dates(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/valuation/history")

        assert response.status_code == 200
        data = response.json()
        assert data["interval"] is None
        assert data["from_date"] == "2023-01-01"
        assert data["categories"] == ["Cash", "Stock"]
        assert data["total_points"] == len(data["data"]) == len(data["allocation"])
        assert data["data"][0] == {"date": "2023-01-01", "value": "1000.00", "cost_basis": "1000.00"}
        assert data["allocation"][1]["values"] == {"Cash": "500.00", "Stock": "300.00"}

    def test_monthly_interval(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/valuation/history",
            params={"interval": "monthly", "group_by": "sector"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["interval"] == "monthly"
        assert data["group_by"] == "sector"
        assert data["data"][0]["date"] == "2023-01-31"
        assert data["categories"] == ["Industrials", "Uncategorized"]

    def test_invalid_interval_400(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/valuation/history",
            params={"interval": "hourly"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "InvalidIntervalError"
        assert body["details"]["interval"] == "hourly"

    def test_invalid_group_by_400(self, client, portfolio):
        response = client.get(
            f"/portfolios/{portfolio.id}/valuation/history",
            params={"group_by": "colour"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidGroupingKeyError"

    def test_empty_portfolio(self, client, seed):
        portfolio = seed.portfolio("Empty")

        response = client.get(f"/portfolios/{portfolio.id}/valuation/history")

        assert response.status_code == 200
        data = response.json()
        assert data["data"] == []
        assert data["total_points"] == 0
        assert data["warnings"]


# =============================================================================
# BREAKDOWNS AND OVERVIEW
# =============================================================================

class TestAllocationEndpoint:

    def test_by_asset_class(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/allocation")

        assert response.status_code == 200
        data = response.json()
        assert data["group_by"] == "asset_class"
        assert data["total_value"] == "860.00"
        assert [s["name"] for s in data["slices"]] == ["Cash", "Stock"]
        assert data["slices"][0]["percentage"] == "58.14"

    def test_by_geography(self, client, portfolio):
        response = client.get(f"/portfolios/{portfolio.id}/allocation", params={"group_by": "geography"})

        assert response.status_code == 200
        assert {s["name"] for s in response.json()["slices"]} == {"US", "Uncategorized"}

    def test_unknown_portfolio_404(self, client):
        response = client.get("/portfolios/42/allocation")

        assert response.status_code == 404


class TestOverviewEndpoint:

    def test_all_portfolios(self, client, portfolio, seed):
        other = seed.portfolio("Other")
        flat = seed.asset("Flat", "Real Estate")
        seed.buy(other, flat, "1", "1000", date(2023, 2, 1))
        seed.valuation(flat, "1100", date(2023, 12, 31))

        response = client.get("/valuation/overview")

        assert response.status_code == 200
        data = response.json()
        assert data["portfolio_ids"] == [portfolio.id, other.id]
        assert data["summary"]["total_value"] == "1960.00"
        assert data["history"][-1]["value"] == "1960.00"

    def test_selected_portfolio(self, client, portfolio):
        response = client.get("/valuation/overview", params={"portfolio_ids": [portfolio.id]})

        assert response.status_code == 200
        assert response.json()["portfolio_ids"] == [portfolio.id]

    def test_unknown_portfolio_404(self, client, portfolio):
        response = client.get("/valuation/overview", params={"portfolio_ids": [portfolio.id, 404]})

        assert response.status_code == 404
        assert response.json()["details"] == {"portfolio_id": 404}


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

class TestGlobalEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["database"] == "sqlite"

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "docs" in response.json()
