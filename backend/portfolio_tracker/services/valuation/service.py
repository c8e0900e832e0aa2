# backend/portfolio_tracker/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

This is the single entry point the API uses:
- get_valuation(): Valued open holdings and totals for one portfolio
- get_holdings(): Open positions without valuation
- get_history(): Value and allocation series for charts
- get_allocation(): Breakdown of current value by a grouping key
- get_overview(): Dashboard view across several (or all) portfolios

Design Principles:
- Fetch Once: Each call reads one snapshot from the record store, fully,
  before any computation begins
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Composable: Calculation is delegated to the pure ValuationEngine

Usage:
    from portfolio_tracker.services.valuation import ValuationService

    service = ValuationService()

    summary = service.get_valuation(db, portfolio_id=1)
    history = service.get_history(db, portfolio_id=1, interval="monthly")
    pairs = service.get_allocation(db, portfolio_id=1, group_by="sector")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_tracker.models import Asset, AssetValuation, Portfolio, Transaction
from portfolio_tracker.services.constants import AGGREGATION_EPSILON, QUANTITY_EPSILON
from portfolio_tracker.services.exceptions import PortfolioNotFoundError
from portfolio_tracker.services.valuation.aggregation import GroupingKey
from portfolio_tracker.services.valuation.engine import ValuationEngine
from portfolio_tracker.services.valuation.types import (
    AggregationPair,
    AssetRecord,
    DashboardView,
    HoldingsResult,
    PortfolioSnapshot,
    PortfolioSummary,
    TimeSeries,
    TransactionRecord,
    ValuationRecord,
)

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Database-backed valuation operations.

    Attributes:
        engine: The pure valuation engine every call delegates to
    """

    def __init__(
            self,
            quantity_epsilon: Decimal | None = None,
            aggregation_epsilon: Decimal | None = None,
    ) -> None:
        """
        Initialize the valuation service.

        Args:
            quantity_epsilon: Open-position threshold (default: QUANTITY_EPSILON)
            aggregation_epsilon: Breakdown threshold (default: AGGREGATION_EPSILON)
        """
        self.engine = ValuationEngine(
            quantity_epsilon=quantity_epsilon if quantity_epsilon is not None else QUANTITY_EPSILON,
            aggregation_epsilon=(
                aggregation_epsilon if aggregation_epsilon is not None else AGGREGATION_EPSILON
            ),
        )
        logger.info("ValuationService initialized")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_valuation(
            self,
            db: Session,
            portfolio_id: int,
            valuation_date: date | None = None,
    ) -> PortfolioSummary:
        """
        Value all open holdings of a portfolio.

        Args:
            db: Database session
            portfolio_id: Portfolio to value
            valuation_date: Date to value at (default: latest valuations)

        Returns:
            PortfolioSummary with holdings and totals

        Raises:
            PortfolioNotFoundError: If portfolio not found
        """
        logger.info(
            f"Calculating valuation for portfolio {portfolio_id} "
            f"as of {valuation_date or 'latest'}"
        )
        snapshot = self.load_snapshot(db, [portfolio_id])
        return self.engine.portfolio_state(snapshot, as_of=valuation_date)

    def get_holdings(
            self,
            db: Session,
            portfolio_id: int,
            as_of_date: date | None = None,
    ) -> HoldingsResult:
        """
        Open positions (quantity above epsilon) without valuation.

        Raises:
            PortfolioNotFoundError: If portfolio not found
        """
        snapshot = self.load_snapshot(db, [portfolio_id])
        ledger = self.engine.ledger(snapshot, as_of=as_of_date)
        return HoldingsResult(
            holdings=ledger.open_holdings(),
            assets=snapshot.assets_by_id,
            warnings=list(ledger.warnings),
        )

    def get_history(
            self,
            db: Session,
            portfolio_id: int,
            today: date | None = None,
            interval: str | None = None,
            group_by: GroupingKey | str = GroupingKey.ASSET_CLASS,
    ) -> TimeSeries:
        """
        Value and allocation history of a portfolio.

        Args:
            db: Database session
            portfolio_id: Portfolio to query
            today: Last date of the series (default: today)
            interval: None for event dates, or "daily", "weekly", "monthly"
            group_by: Allocation categories (default: asset class)

        Raises:
            PortfolioNotFoundError: If portfolio not found
            InvalidIntervalError: If interval is not supported
            InvalidGroupingKeyError: If group_by is not a known key
        """
        group_by = GroupingKey.parse(group_by)
        logger.info(
            f"Calculating history for portfolio {portfolio_id} "
            f"({interval or 'event dates'}, by {group_by.value})"
        )
        snapshot = self.load_snapshot(db, [portfolio_id])
        return self.engine.history(
            snapshot,
            today=today or date.today(),
            interval=interval,
            group_by=group_by,
        )

    def get_allocation(
            self,
            db: Session,
            portfolio_id: int,
            group_by: GroupingKey | str = GroupingKey.ASSET_CLASS,
            as_of_date: date | None = None,
    ) -> list[AggregationPair]:
        """
        Breakdown of a portfolio's value by a grouping key.

        Raises:
            PortfolioNotFoundError: If portfolio not found
            InvalidGroupingKeyError: If group_by is not a known key
        """
        group_by = GroupingKey.parse(group_by)
        snapshot = self.load_snapshot(db, [portfolio_id])
        return self.engine.allocation(snapshot, group_by=group_by, as_of=as_of_date)

    def get_overview(
            self,
            db: Session,
            portfolio_ids: Iterable[int] | None = None,
            today: date | None = None,
            interval: str | None = None,
            group_by: GroupingKey | str = GroupingKey.ASSET_CLASS,
    ) -> DashboardView:
        """
        Combined dashboard for several portfolios.

        Args:
            portfolio_ids: Portfolios to combine (None: all portfolios)

        Raises:
            PortfolioNotFoundError: If any requested portfolio is not found
            InvalidIntervalError: If interval is not supported
            InvalidGroupingKeyError: If group_by is not a known key
        """
        group_by = GroupingKey.parse(group_by)
        snapshot = self.load_snapshot(db, portfolio_ids)
        return self.engine.dashboard(
            snapshot,
            today=today or date.today(),
            interval=interval,
            group_by=group_by,
        )

    # =========================================================================
    # SNAPSHOT LOADING
    # =========================================================================

    def load_snapshot(
            self,
            db: Session,
            portfolio_ids: Iterable[int] | None = None,
    ) -> PortfolioSnapshot:
        """
        Read everything the engine needs for a scope in one pass.

        Transactions are ordered by (date, id) so ids break same-day ties.
        Valuations are limited to the traded assets and ordered by
        (asset, date, id) so the latest inserted row wins a same-date tie.

        Args:
            db: Database session
            portfolio_ids: Portfolios in scope (None: all portfolios)

        Raises:
            PortfolioNotFoundError: For the first requested id that does not exist
        """
        txn_query = select(Transaction).order_by(Transaction.date, Transaction.id)

        if portfolio_ids is not None:
            wanted = sorted(set(portfolio_ids))
            self._verify_portfolios(db, wanted)
            txn_query = txn_query.where(Transaction.portfolio_id.in_(wanted))

        transactions = list(db.scalars(txn_query).all())
        asset_ids = {txn.asset_id for txn in transactions}

        if not asset_ids:
            return PortfolioSnapshot()

        assets = db.scalars(
            select(Asset).where(Asset.id.in_(asset_ids)).order_by(Asset.id)
        ).all()
        valuations = db.scalars(
            select(AssetValuation)
            .where(AssetValuation.asset_id.in_(asset_ids))
            .order_by(AssetValuation.asset_id, AssetValuation.date, AssetValuation.id)
        ).all()

        logger.debug(
            f"Loaded snapshot: {len(transactions)} transaction(s), "
            f"{len(assets)} asset(s), {len(valuations)} valuation(s)"
        )

        return PortfolioSnapshot(
            transactions=tuple(self._to_transaction_record(txn) for txn in transactions),
            valuations=tuple(self._to_valuation_record(v) for v in valuations),
            assets=tuple(self._to_asset_record(asset) for asset in assets),
        )

    def _verify_portfolios(self, db: Session, portfolio_ids: list[int]) -> None:
        """Raise for the first id with no Portfolio row."""
        if not portfolio_ids:
            return
        existing = set(
            db.scalars(select(Portfolio.id).where(Portfolio.id.in_(portfolio_ids))).all()
        )
        for portfolio_id in portfolio_ids:
            if portfolio_id not in existing:
                raise PortfolioNotFoundError(portfolio_id)

    # =========================================================================
    # ROW CONVERSION
    # =========================================================================

    @staticmethod
    def _to_transaction_record(txn: Transaction) -> TransactionRecord:
        return TransactionRecord(
            portfolio_id=txn.portfolio_id,
            asset_id=txn.asset_id,
            transaction_type=txn.transaction_type,
            quantity=Decimal(txn.quantity),
            price_per_unit=Decimal(txn.price_per_unit),
            date=txn.date,
            fee=Decimal(txn.fee) if txn.fee is not None else Decimal("0"),
        )

    @staticmethod
    def _to_valuation_record(valuation: AssetValuation) -> ValuationRecord:
        return ValuationRecord(
            asset_id=valuation.asset_id,
            date=valuation.date,
            value=Decimal(valuation.value),
            source=valuation.source,
        )

    @staticmethod
    def _to_asset_record(asset: Asset) -> AssetRecord:
        return AssetRecord(
            id=asset.id,
            name=asset.name,
            asset_class=asset.asset_class,
            currency=asset.currency,
            metadata=dict(asset.metadata_ or {}),
        )
