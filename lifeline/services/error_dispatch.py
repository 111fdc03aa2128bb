"""Error Dispatcher — invokes the resolved handler and guarantees one response.

Invariants:
    - Every dispatch produces exactly one ErrorResponse and sets context.status_code
    - A handler that raises or returns a non-ErrorResponse fails closed to the
      built-in 500 (logged, never propagated)
    - The dispatcher never reports; reporting is the handler's responsibility
    - GenericErrorHandler attaches message + trace ONLY when show_debug_output

Design Decisions:
    - Handlers may be sync or async: awaited only when they return an awaitable
    - Handler failures logged with the kind that selected them, for triage
"""

import inspect
import logging
import traceback
from dataclasses import replace

from lifeline.core.dispatch import (
    DebugDetail, ErrorHandlerRegistry, ErrorResponse, Resolution,
    builtin_error_response, resolve, synthesize_response,
)
from lifeline.core.domain_types import CANCELLED_STATUS
from lifeline.core.lifecycle_config import ErrorHandlerConfig
from lifeline.core.request_context import RequestContext
from lifeline.services.error_reporting import ErrorReporter, report_error

logger = logging.getLogger(__name__)


def format_trace(error: BaseException) -> str:
    """Full traceback text — for debug pages and logs only."""
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__),
    )


class GenericErrorHandler:
    """Mandatory catch-all: 500, plus diagnostics in debug mode."""

    def __init__(
        self, config: ErrorHandlerConfig, reporter: ErrorReporter | None = None,
    ):
        self._config = config
        self._reporter = reporter

    async def __call__(
        self, error: BaseException, context: RequestContext,
    ) -> ErrorResponse:
        if self._reporter is not None:
            await report_error(self._reporter, context, error)
        response = builtin_error_response()
        if not self._config.show_debug_output:
            return response
        return replace(response, debug=DebugDetail(
            message=f"{type(error).__name__}: {error}",
            trace=format_trace(error),
        ))


def handle_cancelled(error: BaseException, context: RequestContext) -> ErrorResponse:
    """Cancellation is its own kind: 499, never silently dropped."""
    logger.info(f"Request cancelled: {context.method} {context.path}")
    return synthesize_response(CANCELLED_STATUS)


class ErrorDispatcher:
    """Resolves a raised error against a frozen registry and runs its handler."""

    def __init__(self, registry: ErrorHandlerRegistry):
        self._registry = registry
        if not registry.has_generic:
            logger.warning(
                "No generic error handler registered; unmatched errors "
                "will receive the built-in 500 response",
            )

    @property
    def registry(self) -> ErrorHandlerRegistry:
        return self._registry

    async def dispatch(
        self,
        error: BaseException,
        context: RequestContext,
        kind_hint: str | None = None,
    ) -> ErrorResponse:
        resolution = resolve(self._registry, error, kind_hint)
        if resolution.handler is None:
            response = synthesize_response(resolution.status)
        else:
            response = await self._invoke(resolution, error, context)
        context.status_code = response.status
        logger.debug(
            f"Dispatched {type(error).__name__} via {resolution.step.value}",
            extra={
                "error_kind": resolution.kind,
                "status_code": response.status,
                "path": context.path,
            },
        )
        return response

    async def _invoke(
        self, resolution: Resolution, error: BaseException,
        context: RequestContext,
    ) -> ErrorResponse:
        label = resolution.kind or resolution.step.value
        try:
            result = resolution.handler(error, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            logger.error(
                f"Error handler for '{label}' raised; using built-in 500",
                exc_info=True,
                extra={"error_kind": resolution.kind, "path": context.path},
            )
            return builtin_error_response()
        if not isinstance(result, ErrorResponse):
            logger.error(
                f"Error handler for '{label}' returned "
                f"{type(result).__name__}, expected ErrorResponse",
            )
            return builtin_error_response()
        return result
