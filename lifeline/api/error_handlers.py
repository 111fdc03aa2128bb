"""Error Handlers — default registry and FastAPI wiring for typed error dispatch.

Invariants:
    - HTTPException → its own status, developer-chosen detail as "error"
    - RequestValidationError → 400 with field-level details
    - LifelineError family → HttpRespondable capability (status from the error)
    - Anything else → GenericErrorHandler — never leaks internal details in production
    - All paths go through one ErrorDispatcher, so resolution order is uniform

Design Decisions:
    - HTTPException and RequestValidationError are claimed by Starlette's
      ExceptionMiddleware before user middleware sees them, so they are routed
      to the dispatcher via exception_handler; everything else via middleware
    - Both fastapi.HTTPException and starlette's HTTPException are bound to
      the `http` kind: catalog binding is by exact type
    - Subclasses are matched by Starlette's handler lookup, so the adapters pass
      the kind they were registered for as a hint to the dispatcher
"""

import logging
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifeline.api.error_pages import ErrorPageRenderer
from lifeline.api.middleware import ErrorDispatchMiddleware, dispatch_and_render
from lifeline.core.dispatch import (
    ErrorHandlerRegistry, ErrorResponse, RegistryBuilder, reason_phrase,
)
from lifeline.core.error_kinds import CANCELLED_KIND
from lifeline.core.errors import (
    BadRequestError, ForbiddenError, LifelineError, NotFoundError,
    ServiceUnavailableError,
)
from lifeline.core.lifecycle_config import ErrorHandlerConfig
from lifeline.core.request_context import RequestContext
from lifeline.services.error_dispatch import (
    ErrorDispatcher, GenericErrorHandler, handle_cancelled,
)
from lifeline.services.error_reporting import ErrorReporter

logger = logging.getLogger(__name__)

HTTP_KIND = "http"
VALIDATION_KIND = "validation"
LIFELINE_KIND = LifelineError.kind


def build_default_registry(
    config: ErrorHandlerConfig,
    reporter: ErrorReporter | None = None,
    extra: Callable[[RegistryBuilder], None] | None = None,
) -> ErrorHandlerRegistry:
    """Registry with the stock kinds and handlers; `extra` may add more."""
    builder = RegistryBuilder()
    _declare_default_kinds(builder)
    builder.register(CANCELLED_KIND, handle_cancelled)
    builder.register(HTTP_KIND, handle_http_exception)
    builder.register(VALIDATION_KIND, handle_validation_error)
    if extra is not None:
        extra(builder)
    builder.register_generic(GenericErrorHandler(config, reporter))
    return builder.build()


def _declare_default_kinds(builder: RegistryBuilder) -> None:
    builder.declare_kind(
        HTTP_KIND, binds=(StarletteHTTPException, HTTPException),
    )
    builder.declare_kind(
        VALIDATION_KIND, binds=(RequestValidationError,),
        http_error_code=status.HTTP_400_BAD_REQUEST,
    )
    builder.declare_kind(LIFELINE_KIND, binds=(LifelineError,))
    for error_type in (
        BadRequestError, ForbiddenError, NotFoundError, ServiceUnavailableError,
    ):
        builder.declare_kind(
            error_type.kind, extends=LIFELINE_KIND, binds=(error_type,),
        )


# ─── Stock Handlers ──────────────────────────────────────────────

def handle_http_exception(
    error: StarletteHTTPException, context: RequestContext,
) -> ErrorResponse:
    """HTTPException detail is chosen by the route author, so it is shown."""
    title = reason_phrase(error.status_code)
    detail = error.detail if isinstance(error.detail, str) else title
    return ErrorResponse(
        status=error.status_code,
        title=title,
        payload={"error": detail},
        headers=dict(error.headers or {}),
    )


def handle_validation_error(
    error: RequestValidationError, context: RequestContext,
) -> ErrorResponse:
    logger.warning(
        f"Validation error on {context.path}: {error.errors()}",
    )
    return ErrorResponse(
        status=status.HTTP_400_BAD_REQUEST,
        title="Invalid request data",
        payload=_build_validation_error_payload(error),
    )


def _build_validation_error_payload(error: RequestValidationError) -> dict:
    """Build structured validation error payload."""
    return {
        "error": "Invalid request data",
        "code": "VALIDATION_ERROR",
        "details": [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in error.errors()
        ],
    }


# ─── FastAPI Wiring ──────────────────────────────────────────────

def register_error_handlers(
    app: FastAPI, dispatcher: ErrorDispatcher, renderer: ErrorPageRenderer,
) -> None:
    """Route every error raised by the app through the dispatcher."""
    _register_http_error_handler(app, dispatcher, renderer)
    _register_validation_error_handler(app, dispatcher, renderer)
    _register_generic_error_handler(app, dispatcher, renderer)


def _register_http_error_handler(
    app: FastAPI, dispatcher: ErrorDispatcher, renderer: ErrorPageRenderer,
) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTPException (and subclasses) raised by routes or the router."""
        return await dispatch_and_render(
            request, exc, dispatcher, renderer, kind_hint=HTTP_KIND,
        )


def _register_validation_error_handler(
    app: FastAPI, dispatcher: ErrorDispatcher, renderer: ErrorPageRenderer,
) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        return await dispatch_and_render(
            request, exc, dispatcher, renderer, kind_hint=VALIDATION_KIND,
        )


def _register_generic_error_handler(
    app: FastAPI, dispatcher: ErrorDispatcher, renderer: ErrorPageRenderer,
) -> None:
    """Catch-all — installed as middleware so the request logger sees the result."""
    app.add_middleware(
        ErrorDispatchMiddleware, dispatcher=dispatcher, renderer=renderer,
    )
