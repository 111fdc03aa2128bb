"""Test doubles shared across test packages.

Invariants:
    - No test double touches real IO or real clocks
"""

from lifeline.config import Settings
from lifeline.core.request_context import LogRecord


class RecordingSink:
    """LogSink that keeps every emitted line in memory."""

    def __init__(self):
        self.lines: list[str] = []
        self.records: list[LogRecord | None] = []

    def emit(self, line: str, record: LogRecord | None = None) -> None:
        self.lines.append(line)
        self.records.append(record)


class FailingSink:
    def emit(self, line: str, record: LogRecord | None = None) -> None:
        raise OSError("sink closed")


class FakeClock:
    """Monotonic clock stand-in; advance() moves time forward."""

    def __init__(self, start: float = 100.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def make_settings(**overrides) -> Settings:
    """Settings independent of the process environment and .env files."""
    values = {
        "environment": "testing",
        "log_buffered": False,
        "log_format": "text",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
