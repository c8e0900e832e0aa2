# backend/portfolio_tracker/services/__init__.py
"""
Service layer for the Portfolio Tracker.

- valuation: holdings reconstruction, portfolio state, history and
  breakdowns (pure engine + database-backed orchestrator)
- constants: engine thresholds and labels
- exceptions: domain exceptions (no HTTP knowledge)
"""

from portfolio_tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidIntervalError,
    InvalidGroupingKeyError,
    NotFoundError,
    PortfolioNotFoundError,
)

__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidIntervalError",
    "InvalidGroupingKeyError",
    "NotFoundError",
    "PortfolioNotFoundError",
]
