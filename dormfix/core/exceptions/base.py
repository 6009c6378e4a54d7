"""
Base exception types for DormFix.

Subclass DormFixError or use exception_factory() to add new exception types
on demand. Every error carries a machine-readable code and an HTTP status so
the API layer can render it without knowing the concrete class.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional, Type


class DormFixError(Exception):
    """
    Base exception for all DormFix errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable slug (defaults to the class default_code).
        http_status: Suggested HTTP status for API responses (default 500).
        details: Extra context, e.g. the conversation id or building name.
        cause: Optional chained exception.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or getattr(self.__class__, "default_code", self.__class__.__name__)
        self.http_status = http_status or getattr(self.__class__, "default_http_status", 500)
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, code={self.code!r}, "
            f"http_status={self.http_status})"
        )

    def __str__(self) -> str:
        return self.message

    def to_dict(self, *, include_traceback: bool = False) -> dict[str, Any]:
        """Serialize for logging or API responses.

        The cause traceback is only included on request; API responses
        should not leak it.
        """
        out: dict[str, Any] = {
            "message": self.message,
            "code": self.code,
            "http_status": self.http_status,
        }
        if self.details:
            out["details"] = self.details
        if self.cause is not None:
            out["cause"] = str(self.cause)
            if include_traceback:
                out["cause_traceback"] = traceback.format_exception(
                    type(self.cause), self.cause, self.cause.__traceback__
                )
        return out


def exception_factory(
    name: str,
    *,
    code: Optional[str] = None,
    http_status: int = 500,
    base: Type[DormFixError] = DormFixError,
) -> Type[DormFixError]:
    """
    Create a new exception class on demand.

    Example:
        DispatchError = exception_factory("DispatchError", http_status=502)
        raise DispatchError("Contractor portal rejected the booking")
    """
    code = code or name.upper().replace(" ", "_")
    return type(
        name,
        (base,),
        {
            "default_code": code,
            "default_http_status": http_status,
        },
    )
