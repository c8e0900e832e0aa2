# backend/portfolio_tracker/__init__.py
"""
Portfolio Tracker backend.

Personal investment-tracking dashboard backend: turns recorded BUY/SELL
transactions and sparse per-asset valuations into holdings, gain/loss and
reconstructed value/allocation history.
"""

__version__ = "0.1.0"
