# backend/portfolio_tracker/schemas/__init__.py
"""
Pydantic schemas for API responses.

- errors: Error response format
- valuation: Portfolio valuation (holdings, history, breakdowns)

Usage:
    from portfolio_tracker.schemas import PortfolioValuationResponse
"""

from portfolio_tracker.schemas.errors import ErrorDetail
from portfolio_tracker.schemas.valuation import (
    AllocationHistoryRow,
    AllocationResponse,
    AllocationSlice,
    HoldingPosition,
    HoldingValuation,
    PortfolioHistoryResponse,
    PortfolioHoldingsResponse,
    PortfolioValuationResponse,
    PortfolioValuationSummary,
    ValuationHistoryPoint,
    ValuationOverviewResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    # Valuation
    "HoldingValuation",
    "HoldingPosition",
    "PortfolioHoldingsResponse",
    "PortfolioValuationSummary",
    "PortfolioValuationResponse",
    "ValuationHistoryPoint",
    "AllocationHistoryRow",
    "PortfolioHistoryResponse",
    "AllocationSlice",
    "AllocationResponse",
    "ValuationOverviewResponse",
]
