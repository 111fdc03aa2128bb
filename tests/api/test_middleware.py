"""Lifecycle Middleware — tests for the dispatch boundary and shared context.

Tests cover:
    - One RequestContext per request, cached on request.state
    - Exceptions from downstream are dispatched and rendered
    - CancelledError reaches the cancelled handler (499) and is re-raised
"""

import asyncio

import pytest
from starlette.requests import Request

from lifeline.api.error_pages import ErrorPageRenderer
from lifeline.api.middleware import ErrorDispatchMiddleware, request_context
from lifeline.core.dispatch import RegistryBuilder, synthesize_response
from lifeline.core.domain_types import CANCELLED_STATUS
from lifeline.core.error_kinds import CANCELLED_KIND
from lifeline.core.lifecycle_config import ErrorHandlerConfig
from lifeline.services.error_dispatch import ErrorDispatcher, GenericErrorHandler


def _request(path: str = "/jobs/42") -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "path": path,
        "headers": [(b"accept", b"application/json")],
        "query_string": b"",
    })


async def _inner_app(scope, receive, send):
    pass


def _middleware(cancelled_calls: list) -> ErrorDispatchMiddleware:
    def handle_cancelled_job(error, context):
        cancelled_calls.append(context.path)
        return synthesize_response(CANCELLED_STATUS)

    registry = (
        RegistryBuilder()
        .register(CANCELLED_KIND, handle_cancelled_job)
        .register_generic(GenericErrorHandler(ErrorHandlerConfig()))
        .build()
    )
    return ErrorDispatchMiddleware(
        _inner_app, dispatcher=ErrorDispatcher(registry),
        renderer=ErrorPageRenderer(),
    )


def test_request_context_cached_per_request():
    request = _request()
    first = request_context(request)
    assert request_context(request) is first
    assert (first.method, first.path, first.wants_html) == ("POST", "/jobs/42", False)


@pytest.mark.asyncio
async def test_exception_dispatched_and_rendered():
    middleware = _middleware([])
    request = _request()

    async def call_next(request):
        raise RuntimeError("queue offline")

    response = await middleware.dispatch(request, call_next)
    assert response.status_code == 500
    assert request_context(request).status_code == 500


@pytest.mark.asyncio
async def test_cancellation_dispatched_then_reraised():
    calls = []
    middleware = _middleware(calls)
    request = _request()

    async def call_next(request):
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await middleware.dispatch(request, call_next)
    assert calls == ["/jobs/42"]
    assert request_context(request).status_code == CANCELLED_STATUS
