# backend/portfolio_tracker/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

- HoldingsLedger: Replays transactions into holdings (average cost)
- PortfolioStateCalculator: Values open holdings and totals them

Design Principles:
- Each calculator does ONE thing
- No hidden state between calls; inputs are passed explicitly
- Data problems (oversell, missing valuations, unknown assets) produce
  warnings and flags, never exceptions
- Uses Decimal for ALL financial calculations

Usage:
    ledger = HoldingsLedger(assets).replay(transactions)
    summary = PortfolioStateCalculator().calculate(
        ledger=ledger,
        index=ValuationIndex(valuations),
        assets=assets,
    )
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from collections.abc import Iterable, Mapping

from portfolio_tracker.models import TransactionType
from portfolio_tracker.services.constants import MONEY_QUANTUM, QUANTITY_EPSILON
from portfolio_tracker.services.valuation.index import ValuationIndex
from portfolio_tracker.services.valuation.types import (
    AssetRecord,
    Holding,
    HoldingState,
    LedgerResult,
    PortfolioState,
    PortfolioSummary,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

AssetsArg = Mapping[int, AssetRecord] | Iterable[AssetRecord] | None


def index_assets(assets: AssetsArg) -> dict[int, AssetRecord]:
    """Accept assets as a mapping or an iterable and return them keyed by id."""
    if assets is None:
        return {}
    if isinstance(assets, Mapping):
        return dict(assets)
    return {asset.id: asset for asset in assets}


def sort_transactions(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    """
    Replay order: date ascending, ties kept in insertion order.

    sorted() is stable, so the input order decides between same-day trades.
    """
    return sorted(transactions, key=lambda txn: txn.date)


def money(amount: Decimal) -> Decimal:
    """Round a monetary amount to cents."""
    return amount.quantize(MONEY_QUANTUM)


# =============================================================================
# HOLDINGS LEDGER
# =============================================================================

class HoldingsLedger:
    """
    Replays BUY/SELL transactions per (portfolio, asset) with average cost.

    BUY:
        quantity += qty
        cost_basis += qty x price
        capital_invested += qty x price        (non-Cash only)

    SELL:
        avg_cost = cost_basis / quantity        (0 if quantity <= 0)
        cost_of_sold = qty x avg_cost
        cost_basis -= cost_of_sold
        quantity -= qty
        realized += qty x price - cost_of_sold  (non-Cash only)
        capital_invested -= cost_of_sold        (non-Cash only)

    A SELL larger than the open quantity is not rejected. The arithmetic is
    kept as-is (quantity may go negative), the holding is flagged
    is_inconsistent and a warning is recorded. Fees are totalled but do not
    enter cost basis or realized gain/loss.
    """

    def __init__(
            self,
            assets: AssetsArg = None,
            quantity_epsilon: Decimal = QUANTITY_EPSILON,
    ) -> None:
        """
        Args:
            assets: Asset records (mapping by id or iterable); needed to
                    recognise Cash assets
            quantity_epsilon: Tolerance when comparing a SELL to the open quantity
        """
        self._assets = index_assets(assets)
        self._quantity_epsilon = quantity_epsilon

    def replay(self, transactions: Iterable[TransactionRecord]) -> LedgerResult:
        """
        Replay a transaction stream from scratch.

        Args:
            transactions: Transactions in insertion order (any dates, any
                          number of portfolios and assets)

        Returns:
            LedgerResult with one Holding per (portfolio, asset) pair seen
        """
        warnings: list[str] = []
        states: dict[tuple[int, int], HoldingState] = {}

        for txn in sort_transactions(transactions):
            key = (txn.portfolio_id, txn.asset_id)
            state = states.get(key)
            if state is None:
                if txn.asset_id not in self._assets:
                    message = (
                        f"Asset {txn.asset_id} referenced by portfolio {txn.portfolio_id} "
                        f"is unknown; treated as non-cash"
                    )
                    logger.warning(message)
                    warnings.append(message)
                state = self.new_state(txn.portfolio_id, txn.asset_id)
                states[key] = state

            warning = self.apply(state, txn)
            if warning is not None:
                warnings.append(warning)

        holdings = {key: state.to_holding() for key, state in states.items()}

        total_realized = sum((h.realized_gain_loss for h in holdings.values()), Decimal("0"))
        total_invested = sum((h.capital_invested for h in holdings.values()), Decimal("0"))
        total_fees = sum((h.total_fees for h in holdings.values()), Decimal("0"))

        if warnings:
            logger.info(f"Ledger replay of {len(holdings)} holding(s) produced {len(warnings)} warning(s)")

        return LedgerResult(
            holdings=holdings,
            total_realized_gain_loss=total_realized,
            total_capital_invested=total_invested,
            total_fees=total_fees,
            quantity_epsilon=self._quantity_epsilon,
            warnings=warnings,
        )

    def new_state(self, portfolio_id: int, asset_id: int) -> HoldingState:
        """Empty running state for a (portfolio, asset) pair."""
        asset = self._assets.get(asset_id)
        return HoldingState(
            portfolio_id=portfolio_id,
            asset_id=asset_id,
            is_cash=asset is not None and asset.is_cash,
        )

    def apply(self, state: HoldingState, txn: TransactionRecord) -> str | None:
        """
        Apply a single transaction to a running state (mutates state).

        Callers must apply transactions in replay order.

        Returns:
            An oversell warning, or None
        """
        amount = txn.amount
        state.transaction_count += 1
        state.total_fees += txn.fee

        if txn.transaction_type == TransactionType.BUY:
            state.quantity += txn.quantity
            state.cost_basis += amount
            if not state.is_cash:
                state.capital_invested += amount
            return None

        warning = None
        if state.quantity <= Decimal("0") or txn.quantity > state.quantity + self._quantity_epsilon:
            state.is_inconsistent = True
            warning = (
                f"Oversell in portfolio {txn.portfolio_id}: sold {txn.quantity} of asset "
                f"{txn.asset_id} on {txn.date.isoformat()} with {state.quantity} open"
            )
            logger.warning(warning)

        if state.quantity > Decimal("0"):
            avg_cost = state.cost_basis / state.quantity
        else:
            avg_cost = Decimal("0")

        cost_of_sold = txn.quantity * avg_cost
        state.cost_basis -= cost_of_sold
        state.quantity -= txn.quantity

        if not state.is_cash:
            state.realized_gain_loss += amount - cost_of_sold
            state.capital_invested -= cost_of_sold

        return warning


# =============================================================================
# PORTFOLIO STATE CALCULATOR
# =============================================================================

class PortfolioStateCalculator:
    """
    Values open holdings against the valuation index.

    For each holding with quantity above epsilon:
        price = latest valuation (or valuation as of a date)
        value = price                 (Cash: the valuation is the balance)
        value = quantity x price      (everything else)
        unrealized = value - cost_basis

    A Cash asset held in several portfolios splits its balance between them
    by quantity, so the balance is counted once.

    A holding without any valuation is valued at 0 and flagged
    has_valuation=False; it still contributes its cost basis.
    """

    def __init__(self, quantity_epsilon: Decimal = QUANTITY_EPSILON) -> None:
        self._quantity_epsilon = quantity_epsilon

    def calculate(
            self,
            ledger: LedgerResult,
            index: ValuationIndex,
            assets: AssetsArg,
            as_of: date | None = None,
    ) -> PortfolioSummary:
        """
        Value all open holdings of a ledger.

        Args:
            ledger: Replayed holdings (should only contain transactions up to as_of)
            index: Valuation index
            assets: Asset records, for class and naming
            as_of: Valuation date; None means "latest valuation available"

        Returns:
            PortfolioSummary with per-holding states and totals
        """
        assets_by_id = index_assets(assets)
        warnings = list(ledger.warnings)
        states: list[PortfolioState] = []

        open_holdings = ledger.open_holdings(self._quantity_epsilon)

        # A Cash balance is counted once per asset, shared across the
        # portfolios holding it in proportion to their quantity
        cash_quantities: dict[int, Decimal] = {}
        for holding in open_holdings:
            if holding.is_cash:
                cash_quantities[holding.asset_id] = (
                    cash_quantities.get(holding.asset_id, Decimal("0")) + holding.quantity
                )

        for holding in open_holdings:
            asset = assets_by_id.get(holding.asset_id) or AssetRecord.placeholder(holding.asset_id)
            share = Decimal("1")
            if asset.is_cash and cash_quantities.get(holding.asset_id):
                share = holding.quantity / cash_quantities[holding.asset_id]
            state = self.value_holding(holding, asset, index, as_of, share)
            if not state.has_valuation:
                logger.debug(f"No valuation for asset {asset.id} ({asset.name}); valued at 0")
                warnings.append(f"No valuation available for {asset.name}; valued at 0")
            states.append(state)

        total_value = sum((s.current_value for s in states), Decimal("0"))
        total_cost = sum((s.cost_basis for s in states), Decimal("0"))
        total_unrealized = sum((s.unrealized_gain_loss for s in states), Decimal("0"))
        total_realized = money(ledger.total_realized_gain_loss)

        return PortfolioSummary(
            as_of=as_of,
            states=states,
            total_value=total_value,
            total_cost_basis=total_cost,
            total_unrealized_gain_loss=total_unrealized,
            total_realized_gain_loss=total_realized,
            total_gain_loss=total_unrealized + total_realized,
            capital_invested=money(ledger.total_capital_invested),
            total_fees=money(ledger.total_fees),
            warnings=warnings,
            has_inconsistencies=ledger.has_inconsistencies,
        )

    def value_holding(
            self,
            holding: Holding,
            asset: AssetRecord,
            index: ValuationIndex,
            as_of: date | None = None,
            share: Decimal = Decimal("1"),
    ) -> PortfolioState:
        """
        Value one holding. Monetary fields are rounded to cents.

        share is this holding's fraction of a Cash balance held in several
        portfolios; it is ignored for non-Cash assets.
        """
        if as_of is None:
            record = index.latest(holding.asset_id)
        else:
            record = index.as_of(holding.asset_id, as_of)

        price = record.value if record is not None else Decimal("0")

        if asset.is_cash:
            current_value = price * share
        else:
            current_value = holding.quantity * price

        cost_basis = money(holding.cost_basis)
        current_value = money(current_value)

        return PortfolioState(
            portfolio_id=holding.portfolio_id,
            asset=asset,
            quantity=holding.quantity,
            cost_basis=cost_basis,
            price=price,
            price_date=record.date if record is not None else None,
            current_value=current_value,
            unrealized_gain_loss=current_value - cost_basis,
            realized_gain_loss=money(holding.realized_gain_loss),
            has_valuation=record is not None,
            is_inconsistent=holding.is_inconsistent,
        )
