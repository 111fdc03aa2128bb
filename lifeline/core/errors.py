"""Error Hierarchy — typed, categorized exceptions and the HttpRespondable capability.

Invariants:
    - Every LifelineError has a code (str), category, severity, http_status and kind
    - LifelineError implements HttpRespondable: its status is self-described
    - to_payload() never includes tracebacks — only the developer-chosen message
    - RegistryError subclasses are raised at start-up only, never during dispatch
    - status_for_error is PURE and total: every BaseException maps to a status

Design Decisions:
    - HttpRespondable as runtime-checkable Protocol: any exception type opts in by
      defining http_error_code(), no base class required
    - Stable string `kind` on each class: the catalog resolves kinds by declared
      identifier, not by walking the class hierarchy
"""

import asyncio
from enum import Enum
from typing import Protocol, runtime_checkable

from lifeline.core.domain_types import CANCELLED_STATUS, INTERNAL_ERROR_STATUS


@runtime_checkable
class HttpRespondable(Protocol):
    """Capability: an error that knows its own HTTP status."""
    def http_error_code(self) -> int: ...


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERMISSION = "permission"
    EXTERNAL_SERVICE = "external_service"
    INTERNAL = "internal"
    CONFIGURATION = "configuration"


class LifelineError(Exception):
    """Base exception for errors raised by application code."""

    kind = "lifeline"

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.http_status = http_status

    def http_error_code(self) -> int:
        return self.http_status

    def to_payload(self) -> dict:
        """Structured body for explicit handlers that choose to expose the message."""
        return {"error": self.message, "code": self.code}


# ─── Domain Errors ───────────────────────────────────────────────

class BadRequestError(LifelineError):
    """Request is syntactically valid but semantically unacceptable."""
    kind = "lifeline.bad_request"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message, "BAD_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, 400,
        )
        self.field = field


class ForbiddenError(LifelineError):
    kind = "lifeline.forbidden"

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, 403,
        )


class NotFoundError(LifelineError):
    """Requested resource does not exist."""
    kind = "lifeline.not_found"

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ServiceUnavailableError(LifelineError):
    """A downstream dependency is unreachable."""
    kind = "lifeline.unavailable"

    def __init__(self, message: str, service: str):
        super().__init__(
            f"{service} unavailable: {message}",
            "SERVICE_UNAVAILABLE", ErrorCategory.EXTERNAL_SERVICE,
            ErrorSeverity.CRITICAL, 503,
        )
        self.service = service


# ─── Configuration Errors (start-up only) ────────────────────────

class RegistryError(Exception):
    """Error-kind catalog or handler registry was built incorrectly."""


class UnknownErrorKindError(RegistryError):
    def __init__(self, kind: str):
        super().__init__(f"Error kind '{kind}' has not been declared")
        self.kind = kind


class DuplicateErrorKindError(RegistryError):
    def __init__(self, kind: str):
        super().__init__(f"Error kind '{kind}' is already declared")
        self.kind = kind


class DuplicateHandlerError(RegistryError):
    def __init__(self, kind: str):
        super().__init__(f"A handler is already registered for '{kind}'")
        self.kind = kind


def status_for_error(error: BaseException) -> int:
    """Status a request ends with when `error` escapes all handling."""
    if isinstance(error, asyncio.CancelledError):
        return CANCELLED_STATUS
    if isinstance(error, HttpRespondable):
        try:
            code = int(error.http_error_code())
        except Exception:
            return INTERNAL_ERROR_STATUS
        if 100 <= code < 600:
            return code
    return INTERNAL_ERROR_STATUS
