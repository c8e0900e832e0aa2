# backend/portfolio_tracker/utils/__init__.py
"""
Utility modules for the Portfolio Tracker.

- logging: Logging configuration and setup

Usage:
    from portfolio_tracker.utils import setup_logging, get_logger
"""

from portfolio_tracker.utils.logging import setup_logging, get_logger

__all__ = [
    "setup_logging",
    "get_logger",
]
