# backend/portfolio_tracker/routers/valuation.py
"""
Portfolio valuation endpoints (read-only).

- GET /portfolios/{id}/valuation - Valued holdings and totals
- GET /portfolios/{id}/holdings - Open positions without valuation
- GET /portfolios/{id}/valuation/history - Value and allocation series
- GET /portfolios/{id}/allocation - Breakdown by grouping key
- GET /valuation/overview - Several portfolios combined

Domain exceptions (PortfolioNotFoundError, InvalidIntervalError,
InvalidGroupingKeyError) propagate to the global handlers in main.py.
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portfolio_tracker.database import get_db
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
from portfolio_tracker.dependencies import get_valuation_service
from portfolio_tracker.services.constants import PERCENT_QUANTUM
from portfolio_tracker.services.valuation import ValuationService
from portfolio_tracker.services.valuation.calculators import money
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    AllocationRow,
    Holding,
    HoldingsResult,
    PortfolioState,
    PortfolioSummary,
    ValuePoint,
)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Valuation"],
)

overview_router = APIRouter(
    prefix="/valuation",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_holding(state: PortfolioState) -> HoldingValuation:
    """Map internal PortfolioState to Pydantic schema."""
    return HoldingValuation(
        portfolio_id=state.portfolio_id,
        asset_id=state.asset_id,
        asset_name=state.asset_name,
        asset_class=state.asset_class,
        quantity=state.quantity,
        cost_basis=state.cost_basis,
        price=state.price,
        price_date=state.price_date,
        current_value=state.current_value,
        unrealized_gain_loss=state.unrealized_gain_loss,
        unrealized_percentage=state.unrealized_percentage,
        realized_gain_loss=state.realized_gain_loss,
        has_valuation=state.has_valuation,
        is_inconsistent=state.is_inconsistent,
    )


def _map_summary(summary: PortfolioSummary) -> PortfolioValuationSummary:
    """Map internal PortfolioSummary totals to Pydantic schema."""
    return PortfolioValuationSummary(
        total_value=summary.total_value,
        total_cost_basis=summary.total_cost_basis,
        total_unrealized_gain_loss=summary.total_unrealized_gain_loss,
        total_realized_gain_loss=summary.total_realized_gain_loss,
        total_gain_loss=summary.total_gain_loss,
        capital_invested=summary.capital_invested,
        total_fees=summary.total_fees,
        return_percentage=summary.return_percentage,
        holdings_count=summary.holdings_count,
    )


def _map_position(holding: Holding, result: HoldingsResult) -> HoldingPosition:
    """Map internal Holding (plus its asset) to Pydantic schema."""
    asset = result.asset_for(holding)
    return HoldingPosition(
        portfolio_id=holding.portfolio_id,
        asset_id=holding.asset_id,
        asset_name=asset.name,
        asset_class=asset.asset_class,
        quantity=holding.quantity,
        cost_basis=money(holding.cost_basis),
        average_cost=holding.average_cost,
        realized_gain_loss=money(holding.realized_gain_loss),
        capital_invested=money(holding.capital_invested),
        total_fees=holding.total_fees,
        transaction_count=holding.transaction_count,
        is_inconsistent=holding.is_inconsistent,
    )


def _map_history_point(point: ValuePoint) -> ValuationHistoryPoint:
    """Map internal ValuePoint to Pydantic schema."""
    return ValuationHistoryPoint(
        date=point.date,
        value=point.value,
        cost_basis=point.cost_basis,
    )


def _map_allocation_row(row: AllocationRow) -> AllocationHistoryRow:
    """Map internal AllocationRow to Pydantic schema."""
    return AllocationHistoryRow(date=row.date, values=dict(row.values))


def _map_slices(pairs: list[AggregationPair]) -> list[AllocationSlice]:
    """Map breakdown pairs to slices with their share of the total."""
    total = sum((pair.value for pair in pairs), Decimal("0"))
    return [
        AllocationSlice(
            name=pair.name,
            value=pair.value,
            percentage=(
                (pair.value / total * Decimal("100")).quantize(PERCENT_QUANTUM)
                if total > Decimal("0") else Decimal("0")
            ),
        )
        for pair in pairs
    ]


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{portfolio_id}/valuation",
    response_model=PortfolioValuationResponse,
    summary="Get portfolio valuation",
    response_description="Valued open holdings with portfolio totals",
)
def get_portfolio_valuation(
        portfolio_id: int,
        valuation_date: date | None = Query(
            default=None,
            description="Valuation date (default: latest valuation of each asset)",
            alias="date"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioValuationResponse:
    """
    Get portfolio valuation, now or as of a date.

    Returns:
    - **summary**: Total value, cost basis, gain/loss and capital invested
    - **holdings**: Individual position valuations

    Cost basis uses the average-cost method. Cash assets are valued at their
    recorded balance. Holdings without any valuation are valued at 0 and
    reported in `warnings`; oversold holdings set `has_inconsistencies`.
    """
    summary = service.get_valuation(
        db=db,
        portfolio_id=portfolio_id,
        valuation_date=valuation_date,
    )

    return PortfolioValuationResponse(
        portfolio_id=portfolio_id,
        valuation_date=summary.as_of,
        summary=_map_summary(summary),
        holdings=[_map_holding(s) for s in summary.states],
        has_inconsistencies=summary.has_inconsistencies,
        warnings=summary.warnings,
    )


@router.get(
    "/{portfolio_id}/holdings",
    response_model=PortfolioHoldingsResponse,
    summary="Get open holdings",
    response_description="Open positions without valuation",
)
def get_portfolio_holdings(
        portfolio_id: int,
        as_of_date: date | None = Query(
            default=None,
            description="Ignore transactions after this date",
            alias="date"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHoldingsResponse:
    """Lightweight view of open positions (quantity, cost basis, realized gain/loss)."""
    result = service.get_holdings(db=db, portfolio_id=portfolio_id, as_of_date=as_of_date)

    return PortfolioHoldingsResponse(
        portfolio_id=portfolio_id,
        as_of_date=as_of_date,
        holdings=[_map_position(h, result) for h in result.holdings],
        warnings=result.warnings,
    )


@router.get(
    "/{portfolio_id}/valuation/history",
    response_model=PortfolioHistoryResponse,
    summary="Get portfolio valuation history",
    response_description="Time series of portfolio value and allocation"
)
def get_portfolio_valuation_history(
        portfolio_id: int,
        interval: str | None = Query(
            default=None,
            description="daily, weekly, monthly (default: transaction and valuation dates)"
        ),
        group_by: str = Query(
            default="asset_class",
            description="Allocation grouping: asset_class, sector, geography, platform, asset"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioHistoryResponse:
    """
    Get value and allocation history for charting.

    **Dates:**
    - default: every transaction and valuation date, plus today
    - `daily`: every calendar day
    - `weekly`: every Friday, plus today
    - `monthly`: last day of each month, plus today

    Allocation rows carry every category; a category with no open position
    keeps its last known value.
    """
    history = service.get_history(
        db=db,
        portfolio_id=portfolio_id,
        interval=interval,
        group_by=group_by,
    )

    return PortfolioHistoryResponse(
        portfolio_id=portfolio_id,
        from_date=history.start_date,
        to_date=history.end_date,
        interval=history.interval,
        group_by=group_by,
        categories=history.categories,
        data=[_map_history_point(p) for p in history.value_points],
        allocation=[_map_allocation_row(r) for r in history.allocation_rows],
        total_points=len(history.value_points),
        warnings=history.warnings,
    )


@router.get(
    "/{portfolio_id}/allocation",
    response_model=AllocationResponse,
    summary="Get portfolio allocation",
    response_description="Breakdown of portfolio value by grouping key"
)
def get_portfolio_allocation(
        portfolio_id: int,
        group_by: str = Query(
            default="asset_class",
            description="asset_class, sector, geography, platform, asset"
        ),
        as_of_date: date | None = Query(
            default=None,
            description="Valuation date (default: latest)",
            alias="date"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> AllocationResponse:
    """Breakdown of current value; slices at or below one cent are omitted."""
    pairs = service.get_allocation(
        db=db,
        portfolio_id=portfolio_id,
        group_by=group_by,
        as_of_date=as_of_date,
    )

    return AllocationResponse(
        portfolio_id=portfolio_id,
        group_by=group_by,
        as_of_date=as_of_date,
        total_value=sum((pair.value for pair in pairs), Decimal("0")),
        slices=_map_slices(pairs),
    )


@overview_router.get(
    "/overview",
    response_model=ValuationOverviewResponse,
    summary="Get combined valuation overview",
    response_description="Summary, history and breakdown across portfolios"
)
def get_valuation_overview(
        portfolio_ids: list[int] | None = Query(
            default=None,
            description="Portfolios to combine (default: all)"
        ),
        interval: str | None = Query(
            default=None,
            description="History interval: daily, weekly, monthly"
        ),
        group_by: str = Query(
            default="asset_class",
            description="asset_class, sector, geography, platform, asset"
        ),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> ValuationOverviewResponse:
    """
    Dashboard view across several portfolios.

    Holdings of the same asset in different portfolios are valued
    separately; history combines them per asset.
    """
    view = service.get_overview(
        db=db,
        portfolio_ids=portfolio_ids,
        interval=interval,
        group_by=group_by,
    )
    summary = view.summary

    return ValuationOverviewResponse(
        portfolio_ids=view.portfolio_ids,
        group_by=group_by,
        summary=_map_summary(summary),
        holdings=[_map_holding(s) for s in summary.states],
        history=[_map_history_point(p) for p in view.history.value_points],
        allocation=_map_slices(view.allocation),
        has_inconsistencies=summary.has_inconsistencies,
        warnings=summary.warnings + view.history.warnings,
    )
