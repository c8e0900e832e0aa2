# backend/portfolio_tracker/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer maps them to HTTP responses.

The valuation engine never raises for data problems (missing valuations,
oversells, empty inputs); those become warnings and flags on the result.
These exceptions cover caller errors and lookups in the record store.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidIntervalError
    │   └── InvalidGroupingKeyError
    └── NotFoundError
        └── PortfolioNotFoundError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a caller passes an invalid parameter.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidIntervalError(ValidationError):
    """
    Raised when an invalid interval is specified for a history series.

    Valid intervals are: daily, weekly, monthly
    """

    def __init__(self, interval: str) -> None:
        self.interval = interval
        super().__init__(
            f"Invalid interval: '{interval}'. Valid options: daily, weekly, monthly",
            field="interval"
        )


class InvalidGroupingKeyError(ValidationError):
    """Raised when a breakdown is requested for an unknown grouping key."""

    def __init__(self, key: str, valid_keys: list[str]) -> None:
        self.key = key
        self.valid_keys = valid_keys
        super().__init__(
            f"Invalid grouping key: '{key}'. Valid options: {', '.join(valid_keys)}",
            field="group_by"
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """
    Raised when a portfolio cannot be found.

    Attributes:
        portfolio_id: ID of the portfolio that was not found
    """

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidIntervalError",
    "InvalidGroupingKeyError",
    "NotFoundError",
    "PortfolioNotFoundError",
]
