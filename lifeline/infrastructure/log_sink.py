"""Log Sinks — where formatted request lines go.

Invariants:
    - emit() is called once per request from the request task
    - The request's LogRecord fields travel as logging `extra`, so structured
      handlers (JSONFormatter) see method, path, status_code and elapsed
    - QueueLogSink.emit never blocks on IO while its listener runs: lines are
      enqueued and written by the QueueListener thread
    - QueueLogSink never drops lines: before start() or after stop() (no
      lifespan, mounted sub-app) it writes straight to the target handler
    - stop() drains the queue before returning

Design Decisions:
    - stdlib QueueHandler/QueueListener over a custom writer thread
    - Bare %(message)s format: the formatter already produced the full line
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import Protocol

from lifeline.core.request_context import LogRecord

ACCESS_LOGGER_NAME = "lifeline.access"


class LogSink(Protocol):
    """Contract for request-line output."""
    def emit(self, line: str, record: LogRecord | None = None) -> None: ...


def access_fields(record: LogRecord | None) -> dict:
    """LogRecord fields as logging `extra` keys."""
    if record is None:
        return {}
    return {
        "method": record.method,
        "path": record.path,
        "status_code": record.status_code,
        "elapsed": record.elapsed,
    }


class LoggerSink:
    """Writes each line through a stdlib logger at INFO."""

    def __init__(self, name: str = ACCESS_LOGGER_NAME):
        self._logger = logging.getLogger(name)

    def emit(self, line: str, record: LogRecord | None = None) -> None:
        self._logger.info(line, extra=access_fields(record))


class QueueLogSink:
    """Buffered sink: lines are queued and written off the request path."""

    def __init__(
        self,
        handler: logging.Handler | None = None,
        name: str = ACCESS_LOGGER_NAME,
    ):
        if handler is None:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(message)s"))
        self._target = handler
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._listener = QueueListener(self._queue, handler)
        self._queue_handler = QueueHandler(self._queue)
        self._name = name
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if not self._running:
            self._listener.start()
            self._running = True

    def stop(self) -> None:
        if self._running:
            self._listener.stop()
            self._running = False

    def emit(self, line: str, record: LogRecord | None = None) -> None:
        log_record = logging.makeLogRecord({
            "name": self._name,
            "msg": line,
            "levelno": logging.INFO,
            "levelname": "INFO",
            **access_fields(record),
        })
        if self._running:
            self._queue_handler.handle(log_record)
        else:
            self._target.handle(log_record)
