"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class ImpactError(Exception):
    """Base exception for impact tracker."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(ImpactError):
    """Resource not found (or owned by another tenant)."""

    pass


class ValidationError(ImpactError):
    """Malformed input or a reference to a missing KPI, claim or donor."""

    pass


class AllocationExceededError(ValidationError):
    """A credit write would push a scope's total above its ceiling."""

    def __init__(self, message: str, ceiling: float, available: float):
        super().__init__(message, details={"ceiling": ceiling, "available": available})
        self.ceiling = ceiling
        self.available = available


class AuthenticationError(ImpactError):
    """Authentication failed."""

    pass


class InfrastructureError(ImpactError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class ConcurrencyConflictError(InfrastructureError):
    """A concurrent writer holds the credit scope lock."""

    pass
