# backend/portfolio_tracker/routers/__init__.py
"""
API routers for the Portfolio Tracker.

- valuation: Portfolio valuation, holdings, history and breakdowns (read-only)
"""

from portfolio_tracker.routers.valuation import (
    overview_router as valuation_overview_router,
    router as valuation_router,
)

__all__ = [
    "valuation_router",
    "valuation_overview_router",
]
