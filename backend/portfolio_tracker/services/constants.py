# backend/portfolio_tracker/services/constants.py
"""
Centralized constants for the valuation engine.

One definition per threshold, so the ledger, the state calculator and the
history reconstruction agree on what "open" means.

Usage:
    from portfolio_tracker.services.constants import QUANTITY_EPSILON
"""

from decimal import Decimal


# =============================================================================
# POSITION THRESHOLDS
# =============================================================================

# Quantities at or below this are "fully closed" and excluded from active
# holdings, current valuation and history sums. Negative quantities (oversell)
# fall below it as well.
QUANTITY_EPSILON: Decimal = Decimal("0.0001")


# =============================================================================
# BREAKDOWN SETTINGS
# =============================================================================

# Breakdown buckets whose total is at or below this are dropped (zero noise)
AGGREGATION_EPSILON: Decimal = Decimal("0.01")

# Label for assets without a value for the grouping key
UNCATEGORIZED_LABEL: str = "Uncategorized"


# =============================================================================
# ASSET CLASSES
# =============================================================================

# Asset class whose valuation is its balance (never quantity x price)
CASH_ASSET_CLASS: str = "Cash"


# =============================================================================
# ROUNDING
# =============================================================================

# Monetary outputs (values, gain/loss) are rounded to cents
MONEY_QUANTUM: Decimal = Decimal("0.01")

# Percentages are rounded to two decimals
PERCENT_QUANTUM: Decimal = Decimal("0.01")


# =============================================================================
# HISTORY
# =============================================================================

# Supported resampling intervals for history series
HISTORY_INTERVALS: tuple[str, ...] = ("daily", "weekly", "monthly")
