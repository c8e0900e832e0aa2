# backend/portfolio_tracker/services/valuation/history_calculator.py
"""
Time series reconstruction of portfolio value and allocation.

Holdings CHANGE over time as buys/sells occur, so history can't be drawn
from today's holdings and old prices. Each point replays the transactions
dated on or before it and values the resulting quantities with the latest
valuation known at that date.

Two series are produced over the SAME dates:
- value series:      {date, value}
- allocation series: {date, category: value, ...}

Dates are, by default, the distinct transaction and valuation dates of the
assets in scope, with today appended (carrying the last point forward) if
the series would otherwise stop earlier. A "daily", "weekly" or "monthly"
interval replaces them with a regular calendar from the first event to today.

Complexity: O(D + T) using the Rolling State pattern. Transactions are
applied once, in order, as the date cursor advances, which gives the same
numbers as re-filtering all transactions for every date.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from portfolio_tracker.services.constants import HISTORY_INTERVALS, QUANTITY_EPSILON
from portfolio_tracker.services.exceptions import InvalidIntervalError
from portfolio_tracker.services.valuation.aggregation import (
    KeyExtractor,
    asset_class_key,
    category_label,
)
from portfolio_tracker.services.valuation.calculators import (
    AssetsArg,
    HoldingsLedger,
    index_assets,
    money,
    sort_transactions,
)
from portfolio_tracker.services.valuation.index import ValuationIndex
from portfolio_tracker.services.valuation.types import (
    AllocationRow,
    AssetRecord,
    HoldingState,
    TimeSeries,
    TransactionRecord,
    ValuePoint,
)

logger = logging.getLogger(__name__)


class TimeSeriesReconstructor:
    """
    Rebuilds value and allocation history from transactions and valuations.

    Per date D:
        quantity(asset) = sum of BUY - SELL quantities dated <= D
        value(asset)    = quantity x valuation as of D
                          (Cash: the valuation as of D, it is the balance)
        value(D)        = sum over assets with quantity > epsilon

    Allocation rows bucket the same per-asset values by category. A
    category with no open position on D that had one earlier keeps its last
    known value; a category that never had one yet is 0.
    """

    def __init__(self, quantity_epsilon: Decimal = QUANTITY_EPSILON) -> None:
        self._quantity_epsilon = quantity_epsilon

    def reconstruct(
            self,
            transactions: Iterable[TransactionRecord],
            index: ValuationIndex,
            assets: AssetsArg,
            today: date,
            interval: str | None = None,
            category_key: KeyExtractor | None = None,
    ) -> TimeSeries:
        """
        Reconstruct both series.

        Args:
            transactions: Transactions in scope (insertion order)
            index: Valuation index
            assets: Asset records
            today: Last date of the series
            interval: None for event dates, or "daily" / "weekly" / "monthly"
            category_key: Allocation bucket extractor (default: asset class)

        Returns:
            TimeSeries (empty if there are no transactions)

        Raises:
            InvalidIntervalError: If interval is not supported
        """
        if interval is not None and interval not in HISTORY_INTERVALS:
            raise InvalidIntervalError(interval)

        ordered = sort_transactions(transactions)
        if not ordered:
            return TimeSeries(
                value_points=[],
                allocation_rows=[],
                categories=[],
                interval=interval,
                warnings=["No transactions in scope"],
            )

        assets_by_id = index_assets(assets)
        key = category_key or asset_class_key

        event_dates = self._event_dates(ordered, index)
        if interval is None:
            target_dates = event_dates
        else:
            target_dates = self._generate_dates(event_dates[0], max(today, event_dates[-1]), interval)

        value_points, allocation_rows, categories, warnings = self._calculate_history_rolling(
            transactions=ordered,
            index=index,
            assets=assets_by_id,
            target_dates=target_dates,
            key=key,
        )

        # Carry the last point forward so the chart ends today
        if value_points[-1].date < today:
            last_point = value_points[-1]
            value_points.append(ValuePoint(today, last_point.value, last_point.cost_basis))
            allocation_rows.append(AllocationRow(today, dict(allocation_rows[-1].values)))

        unvalued = sorted(
            {txn.asset_id for txn in ordered if not index.has_valuations(txn.asset_id)}
        )
        if unvalued:
            warnings.append(
                f"{len(unvalued)} asset(s) have no valuation and count as 0: "
                + ", ".join(str(asset_id) for asset_id in unvalued)
            )

        logger.debug(
            f"Reconstructed {len(value_points)} history point(s) from "
            f"{len(ordered)} transaction(s), interval={interval or 'events'}"
        )

        return TimeSeries(
            value_points=value_points,
            allocation_rows=allocation_rows,
            categories=categories,
            interval=interval,
            warnings=warnings,
        )

    def _calculate_history_rolling(
            self,
            transactions: list[TransactionRecord],
            index: ValuationIndex,
            assets: dict[int, AssetRecord],
            target_dates: list[date],
            key: KeyExtractor,
    ) -> tuple[list[ValuePoint], list[AllocationRow], list[str], list[str]]:
        """
        Walk the sorted dates, applying only transactions new since the last date.

        Args:
            transactions: All transactions, already in replay order
            target_dates: Dates to snapshot (sorted)

        Returns:
            (value points, allocation rows, sorted categories, oversell warnings)
        """
        ledger = HoldingsLedger(assets, quantity_epsilon=self._quantity_epsilon)
        holdings_state: dict[tuple[int, int], HoldingState] = {}
        last_known: dict[str, Decimal] = {}
        warnings: list[str] = []

        value_points: list[ValuePoint] = []
        snapshots: list[tuple[date, dict[str, Decimal]]] = []

        txn_index = 0
        num_txns = len(transactions)

        for target_date in target_dates:
            # === PHASE 1: Apply all transactions up to and including target_date ===
            while txn_index < num_txns and transactions[txn_index].date <= target_date:
                txn = transactions[txn_index]
                state_key = (txn.portfolio_id, txn.asset_id)
                if state_key not in holdings_state:
                    holdings_state[state_key] = ledger.new_state(txn.portfolio_id, txn.asset_id)
                warning = ledger.apply(holdings_state[state_key], txn)
                if warning is not None:
                    warnings.append(warning)
                txn_index += 1

            # === PHASE 2: Snapshot ===
            total_value, total_cost, buckets = self._snapshot_state(
                holdings_state, index, assets, target_date, key
            )
            last_known.update(buckets)
            value_points.append(ValuePoint(target_date, money(total_value), money(total_cost)))
            snapshots.append((target_date, dict(last_known)))

        categories = sorted(last_known)
        allocation_rows = [
            AllocationRow(
                snapshot_date,
                {category: money(values.get(category, Decimal("0"))) for category in categories},
            )
            for snapshot_date, values in snapshots
        ]
        return value_points, allocation_rows, categories, warnings

    def _snapshot_state(
            self,
            holdings_state: dict[tuple[int, int], HoldingState],
            index: ValuationIndex,
            assets: dict[int, AssetRecord],
            target_date: date,
            key: KeyExtractor,
    ) -> tuple[Decimal, Decimal, dict[str, Decimal]]:
        """
        Value the current rolling state at target_date.

        Quantities are combined per asset across portfolios before the
        open-position check.

        Returns:
            (total value, total cost basis, value per category)
        """
        quantities: dict[int, Decimal] = {}
        cost_bases: dict[int, Decimal] = {}
        for (_, asset_id), state in holdings_state.items():
            quantities[asset_id] = quantities.get(asset_id, Decimal("0")) + state.quantity
            cost_bases[asset_id] = cost_bases.get(asset_id, Decimal("0")) + state.cost_basis

        total_value = Decimal("0")
        total_cost = Decimal("0")
        buckets: dict[str, Decimal] = {}

        for asset_id in sorted(quantities):
            quantity = quantities[asset_id]
            if quantity <= self._quantity_epsilon:
                continue

            asset = assets.get(asset_id) or AssetRecord.placeholder(asset_id)
            price = index.price_as_of(asset_id, target_date)
            value = price if asset.is_cash else quantity * price

            total_value += value
            total_cost += cost_bases[asset_id]
            category = category_label(key(asset))
            buckets[category] = buckets.get(category, Decimal("0")) + value

        return total_value, total_cost, buckets

    # =========================================================================
    # DATE GENERATION
    # =========================================================================

    def _event_dates(
            self,
            transactions: list[TransactionRecord],
            index: ValuationIndex,
    ) -> list[date]:
        """Sorted distinct transaction dates plus valuation dates of the traded assets."""
        asset_ids = {txn.asset_id for txn in transactions}
        dates = {txn.date for txn in transactions}
        dates.update(index.dates(asset_ids))
        return sorted(dates)

    def _generate_dates(self, start_date: date, end_date: date, interval: str) -> list[date]:
        """
        Generate a regular calendar between two dates.

        Args:
            start_date: First date
            end_date: Last date (always included)
            interval: "daily", "weekly", or "monthly"
        """
        if interval == "daily":
            return self._generate_daily(start_date, end_date)
        elif interval == "weekly":
            return self._generate_weekly(start_date, end_date)
        elif interval == "monthly":
            return self._generate_monthly(start_date, end_date)
        raise InvalidIntervalError(interval)

    def _generate_daily(self, start: date, end: date) -> list[date]:
        """Every calendar day."""
        return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]

    def _generate_weekly(self, start: date, end: date) -> list[date]:
        """Every Friday in range, plus the end date."""
        dates = []
        current = start + timedelta(days=(4 - start.weekday()) % 7)
        while current <= end:
            dates.append(current)
            current += timedelta(days=7)

        if not dates or dates[-1] != end:
            dates.append(end)
        return dates

    def _generate_monthly(self, start: date, end: date) -> list[date]:
        """Last calendar day of each month in range, plus the end date."""
        dates = []
        year, month = start.year, start.month

        while True:
            month_end = date(year, month, calendar.monthrange(year, month)[1])
            if month_end > end:
                break
            dates.append(month_end)
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

        if not dates or dates[-1] != end:
            dates.append(end)
        return dates
