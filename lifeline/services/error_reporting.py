"""Error Reporting — the report(context, error) sink contract and a logging default.

Invariants:
    - The dispatcher never reports; handlers opt in via `reporting()` or by
      calling a reporter themselves
    - A failing reporter is logged and never changes the handler's response
"""

import inspect
import logging
from functools import wraps
from typing import Awaitable, Protocol

from lifeline.core.dispatch import ErrorHandler, ErrorResponse
from lifeline.core.errors import LifelineError
from lifeline.core.request_context import RequestContext

logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    """Side-effecting sink that ships an error somewhere (logs, tracker, pager)."""
    def report(
        self, context: RequestContext, error: BaseException,
    ) -> None | Awaitable[None]: ...


class LoggingErrorReporter:
    """Reports through stdlib logging with the traceback attached."""

    def __init__(self, name: str = "lifeline.errors"):
        self._logger = logging.getLogger(name)

    def report(self, context: RequestContext, error: BaseException) -> None:
        self._logger.error(
            f"Unhandled {type(error).__name__} on {context.method} {context.path}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "method": context.method,
                "path": context.path,
                "error_kind": getattr(error, "kind", type(error).__name__),
                "error_code": (
                    error.code if isinstance(error, LifelineError) else None
                ),
            },
        )


async def report_error(
    reporter: ErrorReporter, context: RequestContext, error: BaseException,
) -> None:
    """Invoke a sync or async reporter; failures are logged, never raised."""
    try:
        result = reporter.report(context, error)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning(
            f"Error reporter {type(reporter).__name__} failed", exc_info=True,
        )


def reporting(handler: ErrorHandler, reporter: ErrorReporter) -> ErrorHandler:
    """Wrap a handler so it reports the error before producing its response."""

    @wraps(handler)
    async def reporting_handler(
        error: BaseException, context: RequestContext,
    ) -> ErrorResponse:
        await report_error(reporter, context, error)
        result = handler(error, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    return reporting_handler
