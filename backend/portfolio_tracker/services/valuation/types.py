# backend/portfolio_tracker/services/valuation/types.py
"""
Data types for the valuation engine.

These dataclasses are the engine's inputs and outputs. They are NOT Pydantic
schemas; API serialization lives in portfolio_tracker/schemas/valuation.py.

Design Principles:
- Input records are immutable snapshots of what the record store holds
- Derived state is recomputed on every call and never persisted
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for transaction and valuation dates
- Data problems become warnings and flags, never exceptions

Type Hierarchy:
    TransactionRecord   - One BUY/SELL as recorded
    ValuationRecord     - One per-asset valuation as recorded
    AssetRecord         - Asset with class and free-form classification
    PortfolioSnapshot   - The (transactions, valuations, assets) triple
    HoldingState        - Mutable running state while replaying a ledger
    Holding             - Final state of one (portfolio, asset) pair
    LedgerResult        - All holdings plus ledger-wide totals
    HoldingsResult      - Open holdings with their assets (no valuation)
    PortfolioState      - A valued open holding
    PortfolioSummary    - Valued holdings plus portfolio totals
    ValuePoint          - One point of the portfolio value series
    AllocationRow       - One row of the allocation-by-category series
    TimeSeries          - Both series over the same dates
    AggregationPair     - (label, value) for breakdown charts
    DashboardView       - Current state, history and breakdown together
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from portfolio_tracker.models import TransactionType, ValuationSource
from portfolio_tracker.services.constants import (
    CASH_ASSET_CLASS,
    PERCENT_QUANTUM,
    QUANTITY_EPSILON,
    UNCATEGORIZED_LABEL,
)


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class TransactionRecord:
    """
    A recorded BUY or SELL.

    Attributes:
        portfolio_id: Portfolio the transaction belongs to
        asset_id: Asset bought or sold
        transaction_type: BUY or SELL
        quantity: Units traded (positive)
        price_per_unit: Price per unit (for Cash assets usually 1)
        date: Trade date
        fee: Transaction fee; totalled but not part of cost basis
    """

    portfolio_id: int
    asset_id: int
    transaction_type: TransactionType
    quantity: Decimal
    price_per_unit: Decimal
    date: date
    fee: Decimal = Decimal("0")

    @property
    def amount(self) -> Decimal:
        """Gross amount (quantity x price), fees excluded."""
        return self.quantity * self.price_per_unit


@dataclass(frozen=True)
class ValuationRecord:
    """
    A recorded valuation of an asset on a date.

    For Cash assets value is the absolute balance, otherwise a price per unit.
    The source tag is informational only.
    """

    asset_id: int
    date: date
    value: Decimal
    source: ValuationSource = ValuationSource.MANUAL


@dataclass(frozen=True)
class AssetRecord:
    """
    An asset with its classification.

    Attributes:
        id: Asset identifier
        name: Display name
        asset_class: Categorical class ("Cash", "Stock", "ETF", ...)
        currency: Informational; the engine does no FX conversion
        metadata: Free-form classification (sector, geography, platform, ...)
    """

    id: int
    name: str
    asset_class: str = "Other"
    currency: str = "EUR"
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def placeholder(cls, asset_id: int) -> AssetRecord:
        """Stand-in for an asset referenced by transactions but missing from the asset list."""
        return cls(id=asset_id, name=f"Asset {asset_id}", asset_class="")

    @property
    def is_cash(self) -> bool:
        """True for Cash-class assets (valuation is the balance)."""
        return (self.asset_class or "").strip().lower() == CASH_ASSET_CLASS.lower()

    def classification(self, key: str) -> str:
        """Metadata value for key, or the "Uncategorized" label when absent or blank."""
        value = (self.metadata or {}).get(key)
        if value is None or not str(value).strip():
            return UNCATEGORIZED_LABEL
        return str(value).strip()

    @property
    def sector(self) -> str:
        return self.classification("sector")

    @property
    def geography(self) -> str:
        return self.classification("geography")

    @property
    def platform(self) -> str:
        return self.classification("platform")


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Fully materialized input for one engine invocation.

    Fetched once from the record store before any computation begins.
    Sequences are stored as tuples; transaction order is insertion order
    and is used to break ties between transactions on the same date.
    """

    transactions: tuple[TransactionRecord, ...] = ()
    valuations: tuple[ValuationRecord, ...] = ()
    assets: tuple[AssetRecord, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "transactions", tuple(self.transactions))
        object.__setattr__(self, "valuations", tuple(self.valuations))
        object.__setattr__(self, "assets", tuple(self.assets))

    @property
    def assets_by_id(self) -> dict[int, AssetRecord]:
        return {asset.id: asset for asset in self.assets}

    @property
    def portfolio_ids(self) -> list[int]:
        """Distinct portfolio ids referenced by transactions, sorted."""
        return sorted({txn.portfolio_id for txn in self.transactions})

    @property
    def is_empty(self) -> bool:
        return not self.transactions

    def for_portfolios(self, portfolio_ids: Iterable[int] | None) -> PortfolioSnapshot:
        """
        Narrow the snapshot to the given portfolios.

        Valuations and assets are shared across portfolios and kept whole.
        None means "all portfolios".
        """
        if portfolio_ids is None:
            return self
        wanted = set(portfolio_ids)
        return PortfolioSnapshot(
            transactions=tuple(t for t in self.transactions if t.portfolio_id in wanted),
            valuations=self.valuations,
            assets=self.assets,
        )


# =============================================================================
# LEDGER
# =============================================================================

@dataclass
class HoldingState:
    """
    Running average-cost state of one (portfolio, asset) pair.

    Mutated in place by HoldingsLedger.apply() while a ledger is replayed.
    """

    portfolio_id: int
    asset_id: int
    is_cash: bool = False
    quantity: Decimal = Decimal("0")
    cost_basis: Decimal = Decimal("0")
    realized_gain_loss: Decimal = Decimal("0")
    capital_invested: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    transaction_count: int = 0
    is_inconsistent: bool = False

    def to_holding(self) -> Holding:
        return Holding(
            portfolio_id=self.portfolio_id,
            asset_id=self.asset_id,
            is_cash=self.is_cash,
            quantity=self.quantity,
            cost_basis=self.cost_basis,
            realized_gain_loss=self.realized_gain_loss,
            capital_invested=self.capital_invested,
            total_fees=self.total_fees,
            transaction_count=self.transaction_count,
            is_inconsistent=self.is_inconsistent,
        )


@dataclass(frozen=True)
class Holding:
    """
    Final replayed state of one (portfolio, asset) pair.

    Attributes:
        quantity: Open quantity; negative only after an oversell
        cost_basis: Cost attributed to the open quantity (average cost)
        realized_gain_loss: Gains locked in by SELLs (0 for Cash)
        capital_invested: Non-cash cost still committed (0 for Cash)
        is_inconsistent: True if a SELL exceeded the open quantity

    Note:
        Values are raw Decimals straight from the replay; rounding happens
        when holdings are valued.
    """

    portfolio_id: int
    asset_id: int
    is_cash: bool
    quantity: Decimal
    cost_basis: Decimal
    realized_gain_loss: Decimal
    capital_invested: Decimal
    total_fees: Decimal
    transaction_count: int
    is_inconsistent: bool = False

    @property
    def key(self) -> tuple[int, int]:
        return self.portfolio_id, self.asset_id

    @property
    def average_cost(self) -> Decimal:
        """Blended cost per unit; 0 when nothing is open."""
        if self.quantity <= Decimal("0"):
            return Decimal("0")
        return self.cost_basis / self.quantity

    @property
    def is_open(self) -> bool:
        """True if quantity is above the default closed-position threshold."""
        return self.quantity > QUANTITY_EPSILON


@dataclass
class LedgerResult:
    """
    Result of replaying a transaction stream.

    Attributes:
        holdings: Final state per (portfolio_id, asset_id), closed ones included
        total_realized_gain_loss: Sum of realized gain/loss over all holdings
        total_capital_invested: Sum of non-cash capital still invested
        total_fees: Sum of fees over all transactions
        quantity_epsilon: Threshold used to decide which holdings are open
        warnings: Data integrity warnings (oversells, unknown assets)
    """

    holdings: dict[tuple[int, int], Holding]
    total_realized_gain_loss: Decimal
    total_capital_invested: Decimal
    total_fees: Decimal
    quantity_epsilon: Decimal = QUANTITY_EPSILON
    warnings: list[str] = field(default_factory=list)

    @property
    def has_inconsistencies(self) -> bool:
        return any(h.is_inconsistent for h in self.holdings.values())

    def get(self, portfolio_id: int, asset_id: int) -> Holding | None:
        return self.holdings.get((portfolio_id, asset_id))

    def open_holdings(self, epsilon: Decimal | None = None) -> list[Holding]:
        """Holdings with quantity above epsilon, ordered by (portfolio, asset)."""
        threshold = self.quantity_epsilon if epsilon is None else epsilon
        return [
            self.holdings[key]
            for key in sorted(self.holdings)
            if self.holdings[key].quantity > threshold
        ]


@dataclass
class HoldingsResult:
    """Open holdings without valuation, with the assets needed to label them."""

    holdings: list[Holding]
    assets: dict[int, AssetRecord]
    warnings: list[str] = field(default_factory=list)

    def asset_for(self, holding: Holding) -> AssetRecord:
        return self.assets.get(holding.asset_id) or AssetRecord.placeholder(holding.asset_id)


# =============================================================================
# CURRENT STATE
# =============================================================================

@dataclass(frozen=True)
class PortfolioState:
    """
    A valued open holding.

    Attributes:
        asset: The asset (placeholder if unknown to the asset list)
        price: Valuation used (price per unit, or balance for Cash); 0 if none
        price_date: Date of that valuation (None if no valuation)
        current_value: quantity x price, or price itself for Cash
        unrealized_gain_loss: current_value - cost_basis
        has_valuation: False when no valuation existed (value counted as 0)
    """

    portfolio_id: int
    asset: AssetRecord
    quantity: Decimal
    cost_basis: Decimal
    price: Decimal
    price_date: date | None
    current_value: Decimal
    unrealized_gain_loss: Decimal
    realized_gain_loss: Decimal
    has_valuation: bool = True
    is_inconsistent: bool = False

    @property
    def asset_id(self) -> int:
        return self.asset.id

    @property
    def asset_name(self) -> str:
        return self.asset.name

    @property
    def asset_class(self) -> str:
        return self.asset.asset_class

    @property
    def is_cash(self) -> bool:
        return self.asset.is_cash

    @property
    def unrealized_percentage(self) -> Decimal | None:
        """Unrealized gain/loss as % of cost basis (None if cost basis <= 0)."""
        if self.cost_basis <= Decimal("0"):
            return None
        return (self.unrealized_gain_loss / self.cost_basis * Decimal("100")).quantize(
            PERCENT_QUANTUM
        )


@dataclass
class PortfolioSummary:
    """
    Valued open holdings plus portfolio totals.

    Note:
        total_realized_gain_loss comes from the ledger and includes holdings
        that are fully closed; the other totals cover open holdings only.
    """

    as_of: date | None
    states: list[PortfolioState]
    total_value: Decimal
    total_cost_basis: Decimal
    total_unrealized_gain_loss: Decimal
    total_realized_gain_loss: Decimal
    total_gain_loss: Decimal
    capital_invested: Decimal
    total_fees: Decimal
    warnings: list[str] = field(default_factory=list)
    has_inconsistencies: bool = False

    @property
    def holdings_count(self) -> int:
        return len(self.states)

    @property
    def return_percentage(self) -> Decimal | None:
        """Total gain/loss as % of capital invested (None if nothing invested)."""
        if self.capital_invested <= Decimal("0"):
            return None
        return (self.total_gain_loss / self.capital_invested * Decimal("100")).quantize(
            PERCENT_QUANTUM
        )


# =============================================================================
# HISTORY
# =============================================================================

@dataclass(frozen=True)
class ValuePoint:
    """
    Total portfolio value on a date.

    cost_basis is the cost of the positions open on that date, for
    value-versus-invested charts.
    """

    date: date
    value: Decimal
    cost_basis: Decimal = Decimal("0")


@dataclass(frozen=True)
class AllocationRow:
    """
    Value per category on a date.

    values holds every category of the series; a category that had a
    position earlier but none now keeps its last known value.
    """

    date: date
    values: Mapping[str, Decimal] = field(default_factory=dict, hash=False)

    @property
    def total(self) -> Decimal:
        return sum(self.values.values(), Decimal("0"))

    def as_dict(self) -> dict[str, Any]:
        """Flat row: {"date": ..., category: value, ...}."""
        return {"date": self.date, **self.values}


@dataclass
class TimeSeries:
    """
    Portfolio value and allocation series over the same dates.

    Attributes:
        value_points: Total value per date, chronological
        allocation_rows: Category values per date, same dates as value_points
        categories: Every category appearing in allocation_rows, sorted
        interval: None for event dates, else "daily" / "weekly" / "monthly"
        warnings: Data quality notes
    """

    value_points: list[ValuePoint]
    allocation_rows: list[AllocationRow]
    categories: list[str]
    interval: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.value_points

    @property
    def start_date(self) -> date | None:
        return self.value_points[0].date if self.value_points else None

    @property
    def end_date(self) -> date | None:
        return self.value_points[-1].date if self.value_points else None


# =============================================================================
# BREAKDOWNS
# =============================================================================

@dataclass(frozen=True)
class AggregationPair:
    """One slice of a breakdown chart."""

    name: str
    value: Decimal


@dataclass
class DashboardView:
    """Current state, history and breakdown computed from one snapshot."""

    summary: PortfolioSummary
    history: TimeSeries
    allocation: list[AggregationPair]
    portfolio_ids: list[int] = field(default_factory=list)
