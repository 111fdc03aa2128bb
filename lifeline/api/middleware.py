"""Lifecycle Middleware — Starlette adapters for the logger and the dispatcher.

Invariants:
    - One RequestContext per request, cached on request.state and shared by
      every layer (logger, dispatcher, exception handlers)
    - RequestLogMiddleware is OUTERMOST: it sees the final, post-dispatch status
    - ErrorDispatchMiddleware renders every Exception; CancelledError is
      dispatched (status 499, cancelled handler) and then re-raised, and other
      BaseExceptions propagate untouched
    - Neither middleware alters a successful response

Design Decisions:
    - BaseHTTPMiddleware: call_next re-raises downstream exceptions, which is
      exactly the dispatch boundary we need
    - Errors that reach ServerErrorMiddleware bypass user middleware, so
      unexpected errors are dispatched here instead of via exception_handler(Exception)
"""

import asyncio

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from lifeline.api.error_pages import ErrorPageRenderer
from lifeline.core.request_context import RequestContext, wants_html
from lifeline.services.error_dispatch import ErrorDispatcher
from lifeline.services.log_handler import LogHandler

CONTEXT_STATE_KEY = "lifeline_context"


def request_context(request: Request) -> RequestContext:
    """The request's shared RequestContext, created on first access."""
    context = getattr(request.state, CONTEXT_STATE_KEY, None)
    if context is None:
        context = RequestContext(
            method=request.method,
            path=request.url.path,
            wants_html=wants_html(request.headers.get("accept")),
        )
        setattr(request.state, CONTEXT_STATE_KEY, context)
    return context


async def dispatch_and_render(
    request: Request,
    error: Exception,
    dispatcher: ErrorDispatcher,
    renderer: ErrorPageRenderer,
    kind_hint: str | None = None,
) -> Response:
    context = request_context(request)
    response = await dispatcher.dispatch(error, context, kind_hint)
    return renderer.render(response, context)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Runs LogHandler around the rest of the stack."""

    def __init__(self, app: ASGIApp, log_handler: LogHandler):
        super().__init__(app)
        self._log_handler = log_handler

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        if not self._log_handler.enabled:
            return await call_next(request)
        context = request_context(request)

        async def downstream() -> Response:
            response = await call_next(request)
            context.status_code = response.status_code
            return response

        return await self._log_handler.handle(context, downstream)


class ErrorDispatchMiddleware(BaseHTTPMiddleware):
    """Dispatch boundary for errors no exception handler claimed."""

    def __init__(
        self,
        app: ASGIApp,
        dispatcher: ErrorDispatcher,
        renderer: ErrorPageRenderer,
    ):
        super().__init__(app)
        self._dispatcher = dispatcher
        self._renderer = renderer

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except asyncio.CancelledError as exc:
            # No response can be sent; dispatch for the cancelled handler's
            # side effects (499 status, log) and keep cancelling.
            await self._dispatcher.dispatch(exc, request_context(request))
            raise
        except Exception as exc:
            return await dispatch_and_render(
                request, exc, self._dispatcher, self._renderer,
            )
