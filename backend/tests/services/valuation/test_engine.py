# backend/tests/services/valuation/test_engine.py
"""
Tests for the ValuationEngine facade.

The engine is pure: identical snapshots must give identical results, and
each view (state, history, breakdown) must agree with the others.
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_tracker.models import TransactionType
from portfolio_tracker.services.exceptions import InvalidGroupingKeyError, InvalidIntervalError
from portfolio_tracker.services.valuation import ValuationEngine
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    AssetRecord,
    PortfolioSnapshot,
    TransactionRecord,
    ValuationRecord,
)


def txn(kind, asset_id, qty, price, on, portfolio_id=1):
    return TransactionRecord(
        portfolio_id=portfolio_id,
        asset_id=asset_id,
        transaction_type=kind,
        quantity=Decimal(qty),
        price_per_unit=Decimal(price),
        date=on,
    )


@pytest.fixture
def snapshot() -> PortfolioSnapshot:
    """
    Two portfolios:
        1: Acme BUY 5 @ 100 (Jan), SELL 2 @ 150 (Jun); Savings 500 cash
        2: Acme BUY 1 @ 110 (Mar); Flat BUY 1 @ 1000 (Feb)
    """
    return PortfolioSnapshot(
        transactions=[
            txn(TransactionType.BUY, 1, "5", "100", date(2024, 1, 10)),
            txn(TransactionType.BUY, 3, "500", "1", date(2024, 1, 10)),
            txn(TransactionType.BUY, 2, "1", "1000", date(2024, 2, 1), portfolio_id=2),
            txn(TransactionType.BUY, 1, "1", "110", date(2024, 3, 1), portfolio_id=2),
            txn(TransactionType.SELL, 1, "2", "150", date(2024, 6, 1)),
        ],
        valuations=[
            ValuationRecord(asset_id=1, date=date(2024, 1, 10), value=Decimal("100")),
            ValuationRecord(asset_id=1, date=date(2024, 7, 1), value=Decimal("120")),
            ValuationRecord(asset_id=2, date=date(2024, 2, 1), value=Decimal("1000")),
            ValuationRecord(asset_id=3, date=date(2024, 1, 10), value=Decimal("500")),
        ],
        assets=[
            AssetRecord(id=1, name="Acme", asset_class="Stock", metadata={"sector": "Industrials"}),
            AssetRecord(id=2, name="Flat", asset_class="Real Estate"),
            AssetRecord(id=3, name="Savings", asset_class="Cash"),
        ],
    )


@pytest.fixture
def engine() -> ValuationEngine:
    return ValuationEngine()


class TestPortfolioState:

    def test_single_portfolio_scenario(self, engine, snapshot):
        summary = engine.portfolio_state(snapshot.for_portfolios([1]))

        acme = next(s for s in summary.states if s.asset_id == 1)
        assert acme.current_value == Decimal("360.00")
        assert acme.unrealized_gain_loss == Decimal("60.00")
        assert summary.total_realized_gain_loss == Decimal("100.00")
        assert summary.total_value == Decimal("860.00")

    def test_as_of_ignores_later_transactions(self, engine, snapshot):
        summary = engine.portfolio_state(snapshot.for_portfolios([1]), as_of=date(2024, 3, 31))

        acme = next(s for s in summary.states if s.asset_id == 1)
        assert acme.quantity == Decimal("5")
        assert acme.current_value == Decimal("500.00")
        assert summary.total_realized_gain_loss == Decimal("0.00")

    def test_all_portfolios_keep_holdings_separate(self, engine, snapshot):
        summary = engine.portfolio_state(snapshot)

        assert [(s.portfolio_id, s.asset_id) for s in summary.states] == [(1, 1), (1, 3), (2, 1), (2, 2)]
        assert summary.total_value == Decimal("1980.00")

    def test_repeated_calls_are_identical(self, engine, snapshot):
        assert engine.portfolio_state(snapshot) == engine.portfolio_state(snapshot)
        assert engine.history(snapshot, today=date(2024, 8, 1)) == engine.history(snapshot, today=date(2024, 8, 1))


class TestHistory:

    def test_quantities_combine_across_portfolios(self, engine, snapshot):
        history = engine.history(snapshot, today=date(2024, 7, 1))

        last = history.value_points[-1]
        # Acme 4 x 120 + Flat 1000 + Savings 500
        assert last.date == date(2024, 7, 1)
        assert last.value == Decimal("1980.00")

    def test_last_point_matches_current_state(self, engine, snapshot):
        history = engine.history(snapshot, today=date(2024, 12, 31))
        summary = engine.portfolio_state(snapshot)

        assert history.value_points[-1].value == summary.total_value

    def test_group_by_name(self, engine, snapshot):
        history = engine.history(snapshot, today=date(2024, 7, 1), group_by="sector")

        assert history.categories == ["Industrials", "Uncategorized"]

    def test_invalid_arguments(self, engine, snapshot):
        with pytest.raises(InvalidIntervalError):
            engine.history(snapshot, today=date(2024, 7, 1), interval="yearly")
        with pytest.raises(InvalidGroupingKeyError):
            engine.history(snapshot, today=date(2024, 7, 1), group_by="colour")

    def test_empty_snapshot(self, engine):
        history = engine.history(PortfolioSnapshot(), today=date(2024, 7, 1))

        assert history.is_empty


class TestAllocationAndDashboard:

    def test_allocation_by_asset_class(self, engine, snapshot):
        pairs = engine.allocation(snapshot)

        assert pairs == [
            AggregationPair("Real Estate", Decimal("1000.00")),
            AggregationPair("Cash", Decimal("500.00")),
            AggregationPair("Stock", Decimal("480.00")),
        ]

    def test_allocation_as_of(self, engine, snapshot):
        pairs = engine.allocation(snapshot.for_portfolios([1]), as_of=date(2024, 1, 31))

        assert pairs == [
            AggregationPair("Cash", Decimal("500.00")),
            AggregationPair("Stock", Decimal("500.00")),
        ]

    def test_dashboard_views_agree(self, engine, snapshot):
        view = engine.dashboard(snapshot, today=date(2024, 8, 1), interval="monthly")

        assert view.portfolio_ids == [1, 2]
        assert view.history.interval == "monthly"
        assert view.history.value_points[-1].value == view.summary.total_value
        assert sum((p.value for p in view.allocation), Decimal("0")) == view.summary.total_value

    def test_custom_thresholds(self, snapshot):
        engine = ValuationEngine(aggregation_epsilon=Decimal("600"))

        pairs = engine.allocation(snapshot)

        assert [p.name for p in pairs] == ["Real Estate"]

    def test_cash_in_two_portfolios_counted_once(self, engine):
        # One savings account split 300 / 200 between two portfolios
        snapshot = PortfolioSnapshot(
            transactions=[
                txn(TransactionType.BUY, 3, "300", "1", date(2024, 1, 1), portfolio_id=1),
                txn(TransactionType.BUY, 3, "200", "1", date(2024, 1, 1), portfolio_id=2),
            ],
            valuations=[ValuationRecord(asset_id=3, date=date(2024, 1, 1), value=Decimal("500"))],
            assets=[AssetRecord(id=3, name="Savings", asset_class="Cash")],
        )

        view = engine.dashboard(snapshot, today=date(2024, 2, 1))

        assert view.summary.total_value == Decimal("500.00")
        assert view.history.value_points[-1].value == view.summary.total_value
        assert [s.current_value for s in view.summary.states] == [Decimal("300.00"), Decimal("200.00")]
        assert view.allocation == [AggregationPair("Cash", Decimal("500.00"))]
