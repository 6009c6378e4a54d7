"""
Built-in exception types. Add new ones here or via exception_factory().
"""
from __future__ import annotations

from dormfix.core.exceptions.base import DormFixError


class ConfigurationError(DormFixError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class NotFoundError(DormFixError):
    """Conversation, case or contractor not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(DormFixError):
    """Concurrent modification of the same record (stale version)."""

    default_code = "CONFLICT"
    default_http_status = 409


class ExternalServiceError(DormFixError):
    """External service (LLM, DB, webhook receiver) failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


class GenerationError(ExternalServiceError):
    """The language model timed out or returned a response outside the triage schema."""

    default_code = "GENERATION_ERROR"


class RoutingError(DormFixError):
    """A case location cannot be mapped to a canonical building."""

    default_code = "ROUTING_ERROR"
    default_http_status = 422


