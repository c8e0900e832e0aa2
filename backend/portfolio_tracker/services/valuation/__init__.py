# backend/portfolio_tracker/services/valuation/__init__.py
"""
Valuation Package.

This package reconstructs holdings from transactions and values them:
- Current state (valued open holdings and totals)
- Value and allocation history (time series for charts)
- Breakdowns by asset class, sector, geography, platform or asset

Usage:
    from portfolio_tracker.services.valuation import ValuationEngine, PortfolioSnapshot

    engine = ValuationEngine()
    snapshot = PortfolioSnapshot(transactions, valuations, assets)

    summary = engine.portfolio_state(snapshot)
    history = engine.history(snapshot, today=date.today())
    pairs = engine.allocation(snapshot, group_by="sector")

    # Or, against the database
    from portfolio_tracker.services.valuation import ValuationService

    summary = ValuationService().get_valuation(db, portfolio_id=1)

Architecture:
    valuation/
    ├── __init__.py              # This file - package exports
    ├── types.py                 # Engine data classes
    ├── index.py                 # ValuationIndex ("value as of date")
    ├── calculators.py           # HoldingsLedger, PortfolioStateCalculator
    ├── history_calculator.py    # TimeSeriesReconstructor
    ├── aggregation.py           # AggregationReporter, GroupingKey
    ├── engine.py                # ValuationEngine (pure facade)
    └── service.py               # ValuationService (database orchestrator)

Data Flow:
    Transactions → HoldingsLedger → LedgerResult
    LedgerResult + ValuationIndex → PortfolioStateCalculator → PortfolioSummary
    Transactions + ValuationIndex → TimeSeriesReconstructor → TimeSeries
    PortfolioSummary / AllocationRow → AggregationReporter → AggregationPair
"""

from portfolio_tracker.services.valuation.aggregation import (
    AggregationReporter,
    GroupingKey,
    resolve_key,
)
from portfolio_tracker.services.valuation.calculators import (
    HoldingsLedger,
    PortfolioStateCalculator,
)
from portfolio_tracker.services.valuation.engine import ValuationEngine
from portfolio_tracker.services.valuation.history_calculator import TimeSeriesReconstructor
from portfolio_tracker.services.valuation.index import ValuationIndex
from portfolio_tracker.services.valuation.service import ValuationService
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    AllocationRow,
    AssetRecord,
    DashboardView,
    Holding,
    HoldingsResult,
    LedgerResult,
    PortfolioSnapshot,
    PortfolioState,
    PortfolioSummary,
    TimeSeries,
    TransactionRecord,
    ValuationRecord,
    ValuePoint,
)

__all__ = [
    # Entry points
    "ValuationEngine",
    "ValuationService",

    # Modules
    "ValuationIndex",
    "HoldingsLedger",
    "PortfolioStateCalculator",
    "TimeSeriesReconstructor",
    "AggregationReporter",
    "GroupingKey",
    "resolve_key",

    # Data types
    "TransactionRecord",
    "ValuationRecord",
    "AssetRecord",
    "PortfolioSnapshot",
    "Holding",
    "LedgerResult",
    "HoldingsResult",
    "PortfolioState",
    "PortfolioSummary",
    "ValuePoint",
    "AllocationRow",
    "TimeSeries",
    "AggregationPair",
    "DashboardView",
]
