# backend/portfolio_tracker/services/valuation/engine.py
"""
Valuation engine facade.

Composes the calculators over one PortfolioSnapshot. The engine performs no
I/O: callers fetch the snapshot once and every method is a pure function of
it, so repeated calls on the same snapshot give identical results.

Usage:
    engine = ValuationEngine()
    snapshot = PortfolioSnapshot(transactions, valuations, assets)

    summary = engine.portfolio_state(snapshot)
    history = engine.history(snapshot, today=date.today(), interval="monthly")
    pairs = engine.allocation(snapshot, group_by="sector")
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from portfolio_tracker.services.constants import AGGREGATION_EPSILON, QUANTITY_EPSILON
from portfolio_tracker.services.valuation.aggregation import (
    AggregationReporter,
    GroupingKey,
    KeyExtractor,
    resolve_key,
)
from portfolio_tracker.services.valuation.calculators import (
    HoldingsLedger,
    PortfolioStateCalculator,
)
from portfolio_tracker.services.valuation.history_calculator import TimeSeriesReconstructor
from portfolio_tracker.services.valuation.index import ValuationIndex
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    DashboardView,
    LedgerResult,
    PortfolioSnapshot,
    PortfolioSummary,
    TimeSeries,
)

logger = logging.getLogger(__name__)

GroupBy = GroupingKey | str | KeyExtractor


class ValuationEngine:
    """
    Entry point of the pure valuation engine.

    Attributes:
        quantity_epsilon: Quantities at or below this count as closed
        aggregation_epsilon: Breakdown buckets at or below this are dropped
    """

    def __init__(
            self,
            quantity_epsilon: Decimal = QUANTITY_EPSILON,
            aggregation_epsilon: Decimal = AGGREGATION_EPSILON,
    ) -> None:
        self.quantity_epsilon = quantity_epsilon
        self.aggregation_epsilon = aggregation_epsilon

        self._state_calc = PortfolioStateCalculator(quantity_epsilon=quantity_epsilon)
        self._history_calc = TimeSeriesReconstructor(quantity_epsilon=quantity_epsilon)
        self._reporter = AggregationReporter(epsilon=aggregation_epsilon)

    def ledger(self, snapshot: PortfolioSnapshot, as_of: date | None = None) -> LedgerResult:
        """Replay the snapshot's transactions (those dated <= as_of, if given)."""
        transactions = snapshot.transactions
        if as_of is not None:
            transactions = tuple(txn for txn in transactions if txn.date <= as_of)

        ledger = HoldingsLedger(snapshot.assets, quantity_epsilon=self.quantity_epsilon)
        return ledger.replay(transactions)

    def portfolio_state(
            self,
            snapshot: PortfolioSnapshot,
            as_of: date | None = None,
            index: ValuationIndex | None = None,
    ) -> PortfolioSummary:
        """
        Current (or as-of) state of every open holding in the snapshot.

        Args:
            snapshot: Input records
            as_of: Valuation date; None uses all transactions and the latest
                   valuation of each asset
            index: Prebuilt index for snapshot.valuations (built if omitted)
        """
        if index is None:
            index = ValuationIndex(snapshot.valuations)

        return self._state_calc.calculate(
            ledger=self.ledger(snapshot, as_of),
            index=index,
            assets=snapshot.assets,
            as_of=as_of,
        )

    def history(
            self,
            snapshot: PortfolioSnapshot,
            today: date,
            interval: str | None = None,
            group_by: GroupBy = GroupingKey.ASSET_CLASS,
            index: ValuationIndex | None = None,
    ) -> TimeSeries:
        """
        Value and allocation series up to today.

        Raises:
            InvalidIntervalError: If interval is not supported
            InvalidGroupingKeyError: If group_by is not a known key
        """
        if index is None:
            index = ValuationIndex(snapshot.valuations)

        return self._history_calc.reconstruct(
            transactions=snapshot.transactions,
            index=index,
            assets=snapshot.assets,
            today=today,
            interval=interval,
            category_key=resolve_key(group_by),
        )

    def allocation(
            self,
            snapshot: PortfolioSnapshot,
            group_by: GroupBy = GroupingKey.ASSET_CLASS,
            as_of: date | None = None,
    ) -> list[AggregationPair]:
        """
        Breakdown of current (or as-of) value.

        Raises:
            InvalidGroupingKeyError: If group_by is not a known key
        """
        extractor = resolve_key(group_by)
        summary = self.portfolio_state(snapshot, as_of)
        return self._reporter.group_states(summary.states, extractor)

    def dashboard(
            self,
            snapshot: PortfolioSnapshot,
            today: date,
            interval: str | None = None,
            group_by: GroupBy = GroupingKey.ASSET_CLASS,
    ) -> DashboardView:
        """Summary, history and breakdown from one snapshot, sharing one index."""
        extractor = resolve_key(group_by)
        index = ValuationIndex(snapshot.valuations)

        summary = self.portfolio_state(snapshot, index=index)
        history = self.history(snapshot, today, interval, extractor, index=index)
        allocation = self._reporter.group_states(summary.states, extractor)

        logger.debug(
            f"Dashboard: {summary.holdings_count} open holding(s), "
            f"{len(history.value_points)} history point(s)"
        )
        return DashboardView(
            summary=summary,
            history=history,
            allocation=allocation,
            portfolio_ids=snapshot.portfolio_ids,
        )
