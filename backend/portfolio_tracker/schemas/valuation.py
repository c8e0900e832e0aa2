# backend/portfolio_tracker/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Portfolio valuation (current or as of a date)
- Open holdings (no valuation)
- Value and allocation history (time series)
- Breakdowns by grouping key
- Multi-portfolio overview
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# HOLDING SCHEMAS
# =============================================================================

class HoldingValuation(BaseModel):
    """Valuation of a single open holding."""

    model_config = ConfigDict(from_attributes=True)

    # Identification
    portfolio_id: int
    asset_id: int
    asset_name: str
    asset_class: str = Field(..., description="Asset class (Cash, Stock, ETF, ...)")

    # Position
    quantity: Decimal = Field(..., description="Units held (negative only after an oversell)")
    cost_basis: Decimal = Field(..., description="Average-cost basis of the open quantity")

    # Value
    price: Decimal = Field(
        ...,
        description="Valuation used: price per unit, or the balance for Cash (0 if none)"
    )
    price_date: dt.date | None = Field(
        ...,
        description="Date of the valuation used (None if no valuation)"
    )
    current_value: Decimal = Field(..., description="quantity x price, or the balance for Cash")

    # Gain/loss
    unrealized_gain_loss: Decimal
    unrealized_percentage: Decimal | None = Field(
        ...,
        description="Unrealized gain/loss as % of cost basis (None if cost basis is 0)"
    )
    realized_gain_loss: Decimal

    # Data quality
    has_valuation: bool = Field(
        default=True,
        description="False if no valuation existed; value counted as 0"
    )
    is_inconsistent: bool = Field(
        default=False,
        description="True if a sale exceeded the open quantity"
    )


class HoldingPosition(BaseModel):
    """An open position without valuation."""

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    asset_id: int
    asset_name: str
    asset_class: str
    quantity: Decimal
    cost_basis: Decimal
    average_cost: Decimal = Field(..., description="Cost basis per unit")
    realized_gain_loss: Decimal
    capital_invested: Decimal = Field(..., description="Non-cash cost still committed")
    total_fees: Decimal
    transaction_count: int
    is_inconsistent: bool = False


class PortfolioHoldingsResponse(BaseModel):
    """Open holdings of a portfolio."""

    portfolio_id: int
    as_of_date: dt.date | None = Field(
        default=None,
        description="Transactions after this date are ignored (None: all)"
    )
    holdings: list[HoldingPosition]
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# PORTFOLIO VALUATION SCHEMAS
# =============================================================================

class PortfolioValuationSummary(BaseModel):
    """Summary totals for portfolio valuation."""

    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal = Field(..., description="Sum of current values of open holdings")
    total_cost_basis: Decimal = Field(..., description="Sum of cost basis of open holdings")
    total_unrealized_gain_loss: Decimal
    total_realized_gain_loss: Decimal = Field(
        ...,
        description="Realized gain/loss from sales, closed positions included"
    )
    total_gain_loss: Decimal = Field(..., description="Unrealized + realized")
    capital_invested: Decimal = Field(
        ...,
        description="Non-cash capital still invested"
    )
    total_fees: Decimal = Field(..., description="Fees paid (not part of cost basis)")
    return_percentage: Decimal | None = Field(
        ...,
        description="Total gain/loss as % of capital invested (None if nothing invested)"
    )
    holdings_count: int


class PortfolioValuationResponse(BaseModel):
    """Complete portfolio valuation response."""

    portfolio_id: int
    valuation_date: dt.date | None = Field(
        ...,
        description="Valuation date (None: latest valuation of each asset)"
    )

    summary: PortfolioValuationSummary
    holdings: list[HoldingValuation] = Field(
        ...,
        description="Individual holding valuations"
    )

    # Data quality
    has_inconsistencies: bool = Field(
        default=False,
        description="True if any holding was oversold"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Portfolio-level warnings"
    )


# =============================================================================
# HISTORY SCHEMAS
# =============================================================================

class ValuationHistoryPoint(BaseModel):
    """A single point in valuation history."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    value: Decimal = Field(..., description="Total value of open positions")
    cost_basis: Decimal = Field(..., description="Cost basis of open positions")


class AllocationHistoryRow(BaseModel):
    """Value per category on a date."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    values: dict[str, Decimal] = Field(
        ...,
        description="Value per category; every category of the series is present"
    )


class PortfolioHistoryResponse(BaseModel):
    """Portfolio value and allocation history."""

    portfolio_id: int
    from_date: dt.date | None
    to_date: dt.date | None
    interval: str | None = Field(
        ...,
        description="daily, weekly, monthly, or None for event dates"
    )
    group_by: str = Field(..., description="Allocation grouping key")

    categories: list[str]
    data: list[ValuationHistoryPoint]
    allocation: list[AllocationHistoryRow]
    total_points: int

    warnings: list[str] = Field(
        default_factory=list,
        description="Warnings about missing valuations"
    )


# =============================================================================
# ALLOCATION SCHEMAS
# =============================================================================

class AllocationSlice(BaseModel):
    """One slice of a breakdown."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    value: Decimal
    percentage: Decimal = Field(..., description="Share of the breakdown total, in %")


class AllocationResponse(BaseModel):
    """Breakdown of portfolio value by a grouping key."""

    portfolio_id: int
    group_by: str
    as_of_date: dt.date | None
    total_value: Decimal
    slices: list[AllocationSlice]


# =============================================================================
# OVERVIEW SCHEMAS
# =============================================================================

class ValuationOverviewResponse(BaseModel):
    """Dashboard across several portfolios."""

    portfolio_ids: list[int] = Field(
        ...,
        description="Portfolios included (those with transactions)"
    )
    group_by: str
    summary: PortfolioValuationSummary
    holdings: list[HoldingValuation]
    history: list[ValuationHistoryPoint]
    allocation: list[AllocationSlice]
    has_inconsistencies: bool = False
    warnings: list[str] = Field(default_factory=list)
