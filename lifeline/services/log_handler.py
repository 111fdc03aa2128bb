"""Log Handler — times each request and emits exactly one formatted line.

Invariants:
    - enabled=False: downstream runs untouched — no clock reads, no formatting, no emit
    - Exactly one emit per request, including requests that raise or are cancelled
    - An escaping error sets context.status_code via status_for_error, then re-raises
    - Elapsed time comes from a monotonic clock; `now` is only for the timestamp
    - One LogRecord per request, captured after downstream, handed to the sink
    - Formatter failure → fallback_line; sink failure → logged at DEBUG and dropped
    - Never catches errors to handle them — dispatch happens further downstream

Design Decisions:
    - Clocks injected: tests drive elapsed spans without sleeping
    - Emission happens after downstream returns, i.e. after any synchronous
      error reporting performed by the handler that produced the response
"""

import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from lifeline.core.errors import status_for_error
from lifeline.core.lifecycle_config import LoggerConfig
from lifeline.core.log_format import fallback_line
from lifeline.core.request_context import LogRecord, RequestContext
from lifeline.infrastructure.log_sink import LogSink

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LogHandler:
    """Wraps a downstream call with timing, formatting and emission."""

    def __init__(
        self,
        config: LoggerConfig,
        sink: LogSink,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ):
        self._config = config
        self._sink = sink
        self._clock = clock
        self._now = now

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def handle(
        self, context: RequestContext, downstream: Callable[[], Awaitable[T]],
    ) -> T:
        if not self._config.enabled:
            return await downstream()

        start = self._clock()
        try:
            result = await downstream()
        except BaseException as exc:
            context.status_code = status_for_error(exc)
            self._emit(context, start)
            raise
        self._emit(context, start)
        return result

    def _emit(self, context: RequestContext, start: float) -> None:
        elapsed = self._clock() - start
        record = LogRecord.capture(context, self._now(), elapsed)
        try:
            line = self._config.formatter.format(
                context, record.timestamp, record.elapsed,
            )
        except Exception:
            logger.debug(
                f"Log formatter {type(self._config.formatter).__name__} failed",
                exc_info=True,
            )
            line = fallback_line(context)
        try:
            self._sink.emit(line, record)
        except Exception:
            logger.debug("Log sink rejected request line", exc_info=True)
