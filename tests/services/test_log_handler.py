"""Log Handler — tests for timing, emission and failure policy.

Tests cover:
    - enabled=False: no clock reads, no formatting, no emission
    - Exactly one line per request, reflecting the final status
    - Escaping errors set the error-derived status, emit, then re-raise
    - Cancellation emits a best-effort 499 line and propagates
    - Formatter failure degrades to the fallback line; result unaffected
    - Sink failure never reaches the caller
    - The sink receives one LogRecord snapshot per request
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from lifeline.core.errors import ForbiddenError
from lifeline.core.lifecycle_config import LoggerConfig
from lifeline.core.log_format import Colors, DefaultLogFormatter
from lifeline.core.request_context import LogRecord, RequestContext
from lifeline.services.log_handler import LogHandler
from tests.helpers import FailingSink

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _fixed_now() -> datetime:
    return FIXED_TIME


def _handler(sink, clock, **config) -> LogHandler:
    return LogHandler(LoggerConfig(**config), sink, clock=clock, now=_fixed_now)


@pytest.mark.asyncio
async def test_disabled_handler_emits_nothing(sink, context):
    clock = MagicMock(return_value=0.0)
    handler = LogHandler(LoggerConfig(enabled=False), sink, clock=clock)

    async def downstream():
        return "response"

    assert await handler.handle(context, downstream) == "response"
    assert sink.lines == []
    clock.assert_not_called()


@pytest.mark.asyncio
async def test_emits_one_formatted_line(sink, clock, context):
    handler = _handler(sink, clock, show_timestamps=True)

    async def downstream():
        clock.advance(0.000027)
        return "ok"

    assert await handler.handle(context, downstream) == "ok"
    assert sink.lines == [
        f"GET {Colors.GREEN}200{Colors.RESET} / 2024-01-01T00:00:00Z (27.0µs)"
    ]


@pytest.mark.asyncio
async def test_line_reflects_status_set_downstream(sink, clock):
    context = RequestContext(method="POST", path="/orders")
    handler = _handler(sink, clock)

    async def downstream():
        context.status_code = 503
        clock.advance(2.0)

    await handler.handle(context, downstream)
    assert sink.lines == [f"POST {Colors.RED}503{Colors.RESET} /orders (2.0s)"]


@pytest.mark.asyncio
async def test_escaping_error_logged_with_derived_status(sink, clock, context):
    handler = _handler(sink, clock)

    async def downstream():
        clock.advance(0.005)
        raise ForbiddenError()

    with pytest.raises(ForbiddenError):
        await handler.handle(context, downstream)
    assert context.status_code == 403
    assert sink.lines == [f"GET {Colors.YELLOW}403{Colors.RESET} / (5.0ms)"]


@pytest.mark.asyncio
async def test_unexpected_error_logged_as_500(sink, clock, context):
    handler = _handler(sink, clock)

    async def downstream():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await handler.handle(context, downstream)
    assert len(sink.lines) == 1
    assert f"{Colors.RED}500{Colors.RESET}" in sink.lines[0]


@pytest.mark.asyncio
async def test_cancellation_logged_best_effort(sink, clock, context):
    handler = _handler(sink, clock)

    async def downstream():
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await handler.handle(context, downstream)
    assert context.status_code == 499
    assert len(sink.lines) == 1
    assert "499" in sink.lines[0]


@pytest.mark.asyncio
async def test_cancelled_task_still_emits(sink, context):
    handler = LogHandler(LoggerConfig(), sink)
    started = asyncio.Event()

    async def downstream():
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(handler.handle(context, downstream))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(sink.lines) == 1
    assert "499" in sink.lines[0]


@pytest.mark.asyncio
async def test_formatter_failure_emits_fallback_line(sink, clock):
    class ExplodingFormatter:
        def format(self, context, time, elapsed):
            raise ValueError("bad template")

    context = RequestContext(method="GET", path="/health", status_code=200)
    handler = LogHandler(
        LoggerConfig(formatter=ExplodingFormatter()), sink, clock=clock,
    )

    async def downstream():
        return "response"

    assert await handler.handle(context, downstream) == "response"
    assert sink.lines == ["GET 200 /health"]


@pytest.mark.asyncio
async def test_formatter_failure_does_not_mask_original_error(sink, clock, context):
    class ExplodingFormatter:
        def format(self, context, time, elapsed):
            raise ValueError("bad template")

    handler = LogHandler(
        LoggerConfig(formatter=ExplodingFormatter()), sink, clock=clock,
    )

    async def downstream():
        raise RuntimeError("original")

    with pytest.raises(RuntimeError, match="original"):
        await handler.handle(context, downstream)
    assert sink.lines == ["GET 500 /"]


@pytest.mark.asyncio
async def test_sink_failure_is_swallowed(clock, context):
    handler = LogHandler(LoggerConfig(), FailingSink(), clock=clock)

    async def downstream():
        return "response"

    assert await handler.handle(context, downstream) == "response"


@pytest.mark.asyncio
async def test_custom_formatter_receives_elapsed_and_time(sink, clock, context):
    seen = {}

    class CapturingFormatter:
        def format(self, context, time, elapsed):
            seen.update(time=time, elapsed=elapsed, status=context.status_code)
            return "custom"

    handler = LogHandler(
        LoggerConfig(formatter=CapturingFormatter()), sink,
        clock=clock, now=_fixed_now,
    )

    async def downstream():
        clock.advance(0.25)

    await handler.handle(context, downstream)
    assert sink.lines == ["custom"]
    assert seen == {"time": FIXED_TIME, "elapsed": pytest.approx(0.25), "status": 200}


def test_default_formatter_used_when_none_given():
    config = LoggerConfig(show_timestamps=True)
    assert isinstance(config.formatter, DefaultLogFormatter)
    assert config.formatter.show_timestamps is True


@pytest.mark.asyncio
async def test_sink_receives_one_record_with_final_status(sink, clock):
    context = RequestContext(method="DELETE", path="/orders/9")
    handler = _handler(sink, clock)

    async def downstream():
        clock.advance(0.5)
        raise ForbiddenError()

    with pytest.raises(ForbiddenError):
        await handler.handle(context, downstream)
    assert sink.records == [
        LogRecord("DELETE", "/orders/9", 403, FIXED_TIME, pytest.approx(0.5)),
    ]
