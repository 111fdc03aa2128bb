"""Lifecycle Configuration — immutable structs handed to the logger and dispatcher.

Invariants:
    - Built exactly once at start-up, before any request task runs
    - Frozen: no field can be reassigned while requests are in flight
    - Passed by reference into constructors — never looked up globally by core code
"""

from dataclasses import dataclass

from lifeline.core.log_format import DefaultLogFormatter, LogFormatter


@dataclass(frozen=True)
class LoggerConfig:
    """Request-logging switches. formatter defaults to DefaultLogFormatter."""
    show_timestamps: bool = False
    formatter: LogFormatter | None = None
    enabled: bool = True

    def __post_init__(self):
        if self.formatter is None:
            object.__setattr__(
                self, "formatter", DefaultLogFormatter(self.show_timestamps),
            )


@dataclass(frozen=True)
class ErrorHandlerConfig:
    show_debug_output: bool = False
