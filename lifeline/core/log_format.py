"""Log Formatting — the pluggable formatter contract and its helpers.

Invariants:
    - format(context, time, elapsed) is PURE: reads context, never mutates it
    - Timestamp segment omitted entirely (not blank-padded) when disabled
    - elapsed_text unit thresholds: < 1ms → µs, < 1s → ms, otherwise s
    - Helpers are module-level so custom formatters reuse them without subclassing

Design Decisions:
    - Protocol over ABC: any object with a matching format() is a formatter
    - ANSI SGR escapes for colour: no terminal library on the request path
"""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from lifeline.core.domain_types import StatusClass
from lifeline.core.request_context import RequestContext


class Colors:
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    RESET = "\033[0m"


_STATUS_COLORS: dict[StatusClass, str] = {
    StatusClass.SUCCESS: Colors.GREEN,
    StatusClass.CLIENT_ERROR: Colors.YELLOW,
    StatusClass.SERVER_ERROR: Colors.RED,
}

MICROSECOND: float = 1e-6
MILLISECOND: float = 1e-3


@runtime_checkable
class LogFormatter(Protocol):
    """Turns request/response/timing data into one log line."""
    def format(
        self, context: RequestContext, time: datetime, elapsed: float,
    ) -> str: ...


# ─── Helpers ─────────────────────────────────────────────────────

def status_class(code: int) -> StatusClass:
    if 200 <= code < 400:
        return StatusClass.SUCCESS
    if 400 <= code < 500:
        return StatusClass.CLIENT_ERROR
    if 500 <= code < 600:
        return StatusClass.SERVER_ERROR
    return StatusClass.UNTAGGED


def colored_status_code(code: int) -> str:
    """Wrap the code in the colour of its status class; untagged codes stay plain."""
    color = _STATUS_COLORS.get(status_class(code))
    if color is None:
        return str(code)
    return f"{color}{code}{Colors.RESET}"


def format_timestamp(time: datetime, show_timestamps: bool) -> str:
    """ISO-8601 UTC with a Z suffix, or "" when timestamps are disabled."""
    if not show_timestamps:
        return ""
    if time.tzinfo is None:
        time = time.replace(tzinfo=timezone.utc)
    return time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def elapsed_text(span: float) -> str:
    """Human-scaled duration, one decimal place. span is in seconds.

    The unit is chosen after rounding, so 0.99996 s reads "1.0s", not "1000.0ms".
    """
    micros = round(span / MICROSECOND, 1)
    if micros < 1000:
        return f"{micros:.1f}µs"
    millis = round(span / MILLISECOND, 1)
    if millis < 1000:
        return f"{millis:.1f}ms"
    return f"{span:.1f}s"


def fallback_line(context: RequestContext) -> str:
    """Minimal uncoloured line used when a formatter fails."""
    return f"{context.method} {context.status_code} {context.path}"


# ─── Default Formatter ───────────────────────────────────────────

class DefaultLogFormatter:
    """`GET 200 / 2024-01-01T00:00:00Z (27.0µs)` — timestamp only when enabled."""

    def __init__(self, show_timestamps: bool = False):
        self.show_timestamps = show_timestamps

    def timestamp(self, time: datetime) -> str:
        return format_timestamp(time, self.show_timestamps)

    def colored_status_code(self, code: int) -> str:
        return colored_status_code(code)

    def elapsed_text(self, span: float) -> str:
        return elapsed_text(span)

    def format(
        self, context: RequestContext, time: datetime, elapsed: float,
    ) -> str:
        parts = [
            context.method,
            self.colored_status_code(context.status_code),
            context.path,
        ]
        stamp = self.timestamp(time)
        if stamp:
            parts.append(stamp)
        parts.append(f"({self.elapsed_text(elapsed)})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"DefaultLogFormatter(show_timestamps={self.show_timestamps})"
