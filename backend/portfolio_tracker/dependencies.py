# backend/portfolio_tracker/dependencies.py
"""
Dependency injection module for FastAPI services.

Provides singleton service instances shared across all requests. Services
are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from portfolio_tracker.dependencies import get_valuation_service

    @router.get("/")
    def endpoint(service: ValuationService = Depends(get_valuation_service)):
        ...
"""

import logging
from functools import lru_cache

from portfolio_tracker.config import settings
from portfolio_tracker.services.valuation.service import ValuationService

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================

@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    """
    Get the singleton ValuationService instance.

    Engine thresholds come from settings.
    """
    logger.debug("Initializing singleton ValuationService")
    return ValuationService(
        quantity_epsilon=settings.quantity_epsilon,
        aggregation_epsilon=settings.aggregation_epsilon,
    )
