# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Test environment (in-memory SQLite, no DATABASE_URL needed)
- Database session fixtures
- Seed helpers for the record store
"""

import os

# Select the test environment BEFORE importing app modules; settings are
# validated at import time
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_tracker.models import (
    Asset,
    AssetValuation,
    Base,
    Portfolio,
    Transaction,
    TransactionType,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# RECORD STORE SEEDING
# =============================================================================

class Seeder:
    """Adds rows to a test session and commits them."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def portfolio(self, name: str = "Main") -> Portfolio:
        portfolio = Portfolio(name=name)
        self.db.add(portfolio)
        self.db.commit()
        return portfolio

    def asset(
            self,
            name: str,
            asset_class: str = "Stock",
            metadata: dict | None = None,
    ) -> Asset:
        asset = Asset(name=name, asset_class=asset_class, currency="EUR", metadata_=metadata)
        self.db.add(asset)
        self.db.commit()
        return asset

    def transaction(
            self,
            portfolio: Portfolio,
            asset: Asset,
            transaction_type: TransactionType,
            quantity: str,
            price: str,
            on: date,
            fee: str = "0",
    ) -> Transaction:
        txn = Transaction(
            portfolio_id=portfolio.id,
            asset_id=asset.id,
            transaction_type=transaction_type,
            quantity=Decimal(quantity),
            price_per_unit=Decimal(price),
            fee=Decimal(fee),
            date=on,
        )
        self.db.add(txn)
        self.db.commit()
        return txn

    def buy(self, portfolio: Portfolio, asset: Asset, quantity: str, price: str, on: date) -> Transaction:
        return self.transaction(portfolio, asset, TransactionType.BUY, quantity, price, on)

    def sell(self, portfolio: Portfolio, asset: Asset, quantity: str, price: str, on: date) -> Transaction:
        return self.transaction(portfolio, asset, TransactionType.SELL, quantity, price, on)

    def valuation(self, asset: Asset, value: str, on: date) -> AssetValuation:
        record = AssetValuation(asset_id=asset.id, value=Decimal(value), date=on)
        self.db.add(record)
        self.db.commit()
        return record


@pytest.fixture
def seed(db: Session) -> Seeder:
    """Seed helper bound to the test session."""
    return Seeder(db)
