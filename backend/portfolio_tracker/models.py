# backend/portfolio_tracker/models.py
import enum
import datetime as dt
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, JSON, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class AssetClass(str, enum.Enum):
    """
    Known asset classes.

    Asset.asset_class is stored as a plain string so user-defined classes
    survive; these are the values the dashboard offers.
    """
    CASH = "Cash"
    STOCK = "Stock"
    ETF = "ETF"
    REAL_ESTATE = "Real Estate"
    VENTURE_CAPITAL = "Venture Capital"
    OTHER = "Other"


class ValuationSource(str, enum.Enum):
    """Where a valuation came from. Informational only."""
    API = "API"
    MANUAL = "MANUAL"


class Portfolio(Base):
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan"
    )


class Asset(Base):
    """
    An asset the user tracks (stock, fund, property, cash account...).

    Classification metadata (sector, geography, platform) is free-form and
    lives in a JSON column; missing keys are reported as "Uncategorized".
    """
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    asset_class: Mapped[str] = mapped_column(String, default=AssetClass.OTHER.value)
    currency: Mapped[str] = mapped_column(String, default="EUR")
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    transactions: Mapped[list["Transaction"]] = relationship(back_populates="asset")
    valuations: Mapped[list["AssetValuation"]] = relationship(
        back_populates="asset",
        cascade="all, delete-orphan"
    )


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # Snapshot loads read all transactions of a portfolio ordered by date
        Index('ix_transaction_portfolio_date', 'portfolio_id', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    fee: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))

    portfolio: Mapped["Portfolio"] = relationship(back_populates="transactions")
    asset: Mapped["Asset"] = relationship(back_populates="transactions")


class AssetValuation(Base):
    """
    A point-in-time valuation of an asset.

    For most assets value is a price per unit. For Cash assets it is the
    absolute balance. Several rows may share (asset_id, date); the most
    recently inserted one is authoritative.
    """
    __tablename__ = "asset_valuations"
    __table_args__ = (
        Index('ix_valuation_asset_date', 'asset_id', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    source: Mapped[ValuationSource] = mapped_column(Enum(ValuationSource), default=ValuationSource.MANUAL)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    asset: Mapped["Asset"] = relationship(back_populates="valuations")
