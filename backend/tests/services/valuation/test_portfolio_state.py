# backend/tests/services/valuation/test_portfolio_state.py
"""
Unit tests for PortfolioStateCalculator.

Test Coverage:
- Valuation with latest vs. as-of valuations
- Cash assets valued at their balance (never quantity x balance)
- A Cash balance shared by several portfolios is split by quantity
- Missing valuations valued at 0 with a warning
- Portfolio totals and return percentage
- Closed holdings excluded, their realized gain kept
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_tracker.models import TransactionType
from portfolio_tracker.services.valuation.calculators import (
    HoldingsLedger,
    PortfolioStateCalculator,
)
from portfolio_tracker.services.valuation.index import ValuationIndex
from portfolio_tracker.services.valuation.types import (
    AssetRecord,
    TransactionRecord,
    ValuationRecord,
)


def txn(kind: TransactionType, asset_id: int, qty: str, price: str, on: date) -> TransactionRecord:
    return TransactionRecord(
        portfolio_id=1,
        asset_id=asset_id,
        transaction_type=kind,
        quantity=Decimal(qty),
        price_per_unit=Decimal(price),
        date=on,
    )


def val(asset_id: int, on: date, value: str) -> ValuationRecord:
    return ValuationRecord(asset_id=asset_id, date=on, value=Decimal(value))


ASSETS = [
    AssetRecord(id=1, name="Asset A", asset_class="Stock"),
    AssetRecord(id=2, name="Flat", asset_class="Real Estate"),
    AssetRecord(id=3, name="Checking", asset_class="Cash"),
]


@pytest.fixture
def calc() -> PortfolioStateCalculator:
    return PortfolioStateCalculator()


def summarize(calc, transactions, valuations, as_of=None):
    ledger = HoldingsLedger(ASSETS).replay(transactions)
    return calc.calculate(ledger, ValuationIndex(valuations), ASSETS, as_of=as_of)


class TestScenario:
    """BUY 5 @ 100, SELL 2 @ 150, valued at 120."""

    @pytest.fixture
    def summary(self, calc):
        return summarize(
            calc,
            [
                txn(TransactionType.BUY, 1, "5", "100", date(2023, 1, 1)),
                txn(TransactionType.SELL, 1, "2", "150", date(2023, 6, 1)),
            ],
            [val(1, date(2024, 1, 1), "120")],
        )

    def test_holding_state(self, summary):
        assert summary.holdings_count == 1
        state = summary.states[0]

        assert state.quantity == Decimal("3")
        assert state.cost_basis == Decimal("300.00")
        assert state.realized_gain_loss == Decimal("100.00")
        assert state.current_value == Decimal("360.00")
        assert state.unrealized_gain_loss == Decimal("60.00")
        assert state.unrealized_percentage == Decimal("20.00")
        assert state.price_date == date(2024, 1, 1)

    def test_totals(self, summary):
        assert summary.total_value == Decimal("360.00")
        assert summary.total_cost_basis == Decimal("300.00")
        assert summary.total_unrealized_gain_loss == Decimal("60.00")
        assert summary.total_realized_gain_loss == Decimal("100.00")
        assert summary.total_gain_loss == Decimal("160.00")
        assert summary.capital_invested == Decimal("300.00")
        assert summary.return_percentage == Decimal("53.33")
        assert summary.warnings == []


class TestCashValuation:
    """The valuation of a Cash asset is its balance."""

    def test_cash_value_is_not_squared(self, calc):
        summary = summarize(
            calc,
            [txn(TransactionType.BUY, 3, "1000", "1", date(2024, 1, 1))],
            [val(3, date(2024, 1, 31), "1000")],
        )

        state = summary.states[0]
        assert state.is_cash
        assert state.current_value == Decimal("1000.00")
        assert summary.total_value == Decimal("1000.00")

    def test_cash_balance_differs_from_quantity(self, calc):
        # Interest credited: balance moved without a transaction
        summary = summarize(
            calc,
            [txn(TransactionType.BUY, 3, "1000", "1", date(2024, 1, 1))],
            [val(3, date(2024, 6, 30), "1012.50")],
        )

        assert summary.states[0].current_value == Decimal("1012.50")
        assert summary.capital_invested == Decimal("0.00")
        assert summary.return_percentage is None


class TestMissingValuation:
    """Holdings with no valuation are valued at 0, never an error."""

    def test_missing_valuation_counts_as_zero(self, calc):
        summary = summarize(
            calc,
            [txn(TransactionType.BUY, 2, "1", "250000", date(2024, 1, 1))],
            [],
        )

        state = summary.states[0]
        assert not state.has_valuation
        assert state.price == Decimal("0")
        assert state.current_value == Decimal("0.00")
        assert state.unrealized_gain_loss == Decimal("-250000.00")
        assert any("Flat" in w for w in summary.warnings)

    def test_as_of_before_first_valuation(self, calc):
        summary = summarize(
            calc,
            [txn(TransactionType.BUY, 1, "2", "100", date(2024, 1, 1))],
            [val(1, date(2024, 6, 1), "130")],
            as_of=date(2024, 3, 1),
        )

        assert summary.as_of == date(2024, 3, 1)
        assert not summary.states[0].has_valuation
        assert summary.total_value == Decimal("0.00")


class TestAsOf:
    """as_of picks the valuation in effect on that date."""

    def test_as_of_uses_previous_valuation(self, calc):
        valuations = [
            val(1, date(2024, 1, 1), "100"),
            val(1, date(2024, 6, 1), "130"),
        ]
        transactions = [txn(TransactionType.BUY, 1, "2", "100", date(2024, 1, 1))]

        as_of = summarize(calc, transactions, valuations, as_of=date(2024, 5, 31))
        latest = summarize(calc, transactions, valuations)

        assert as_of.total_value == Decimal("200.00")
        assert latest.total_value == Decimal("260.00")


class TestOpenHoldings:
    """Only open holdings are valued."""

    def test_closed_holding_excluded_but_realized_kept(self, calc):
        summary = summarize(
            calc,
            [
                txn(TransactionType.BUY, 1, "5", "100", date(2024, 1, 1)),
                txn(TransactionType.SELL, 1, "5", "120", date(2024, 2, 1)),
                txn(TransactionType.BUY, 2, "1", "1000", date(2024, 1, 1)),
            ],
            [val(1, date(2024, 3, 1), "150"), val(2, date(2024, 3, 1), "1100")],
        )

        assert [s.asset_id for s in summary.states] == [2]
        assert summary.total_value == Decimal("1100.00")
        assert summary.total_realized_gain_loss == Decimal("100.00")
        assert summary.total_gain_loss == Decimal("200.00")

    def test_oversold_holding_flags_summary(self, calc):
        summary = summarize(
            calc,
            [
                txn(TransactionType.BUY, 1, "1", "100", date(2024, 1, 1)),
                txn(TransactionType.SELL, 1, "2", "100", date(2024, 2, 1)),
            ],
            [val(1, date(2024, 3, 1), "150")],
        )

        assert summary.has_inconsistencies
        assert summary.states == []
        assert any("Oversell" in w for w in summary.warnings)

    def test_empty_ledger(self, calc):
        summary = summarize(calc, [], [])

        assert summary.states == []
        assert summary.total_value == Decimal("0")
        assert summary.return_percentage is None


class TestSharedCash:
    """A Cash asset held by several portfolios."""

    def test_balance_split_by_quantity(self, calc):
        transactions = [
            txn(TransactionType.BUY, 3, "750", "1", date(2024, 1, 1)),
            TransactionRecord(
                portfolio_id=2,
                asset_id=3,
                transaction_type=TransactionType.BUY,
                quantity=Decimal("250"),
                price_per_unit=Decimal("1"),
                date=date(2024, 1, 1),
            ),
        ]

        summary = summarize(calc, transactions, [val(3, date(2024, 6, 30), "1020")])

        assert [(s.portfolio_id, s.current_value) for s in summary.states] == [
            (1, Decimal("765.00")),
            (2, Decimal("255.00")),
        ]
        assert summary.total_value == Decimal("1020.00")
