"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All settings come from LIFELINE_-prefixed environment variables or .env
    - get_settings() is cached (lru_cache) — single instance per process
    - show_timestamps / show_debug_output left unset are derived from environment:
      timestamps only in production, debug output everywhere except production
    - LoggerConfig / ErrorHandlerConfig are built from Settings once, at start-up

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Derived defaults in an after-validator: explicit values always win
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lifeline.core.domain_types import Environment
from lifeline.core.lifecycle_config import ErrorHandlerConfig, LoggerConfig
from lifeline.core.log_format import LogFormatter

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LIFELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT

    # Request logging
    logging_enabled: bool = True
    show_timestamps: bool | None = None
    log_buffered: bool = True

    # Error handling
    show_debug_output: bool | None = None

    # Observability
    log_level: str = "INFO"
    log_format: str = "text"

    # API
    app_title: str = "Lifeline"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def derive_environment_defaults(self) -> "Settings":
        is_production = self.environment is Environment.PRODUCTION
        if self.show_timestamps is None:
            self.show_timestamps = is_production
        if self.show_debug_output is None:
            self.show_debug_output = not is_production
        return self

    def logger_config(self, formatter: LogFormatter | None = None) -> LoggerConfig:
        return LoggerConfig(
            show_timestamps=bool(self.show_timestamps),
            formatter=formatter,
            enabled=self.logging_enabled,
        )

    def error_handler_config(self) -> ErrorHandlerConfig:
        return ErrorHandlerConfig(show_debug_output=bool(self.show_debug_output))


@lru_cache
def get_settings() -> Settings:
    return Settings()
