"""
DormFix exception system.

Usage:
    from dormfix.core.exceptions import DormFixError, RoutingError, exception_factory

    raise RoutingError("Unknown building", details={"building": "Foo Hall"})

    # Add new type on demand
    DispatchError = exception_factory("DispatchError", code="DISPATCH_ERROR", http_status=502)
    raise DispatchError("Contractor portal rejected the booking", cause=original_error)
"""
from dormfix.core.exceptions.base import DormFixError, exception_factory
from dormfix.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    GenerationError,
    NotFoundError,
    RoutingError,
)

__all__ = [
    "DormFixError",
    "exception_factory",
    "ConfigurationError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "GenerationError",
    "RoutingError",
]
