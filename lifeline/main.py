"""Lifeline API — FastAPI composition root for request logging and error dispatch.

Invariants:
    - Configs, catalog and registry are built once here, before the app serves,
      and are immutable afterwards (single writer before readers)
    - Middleware order: ErrorDispatchMiddleware (inner) then RequestLogMiddleware
      (outer) — errors are resolved before the log line is formatted
    - Routes registered explicitly (no auto-discovery)
    - Root logging is configured in the lifespan, never at import time
    - A buffered access sink is started and drained by the lifespan; without
      a lifespan it writes synchronously

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app factory: tests build isolated apps with their own sink/settings
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifeline.api.error_handlers import build_default_registry, register_error_handlers
from lifeline.api.error_pages import ErrorPageRenderer
from lifeline.api.middleware import RequestLogMiddleware
from lifeline.api.routes import health
from lifeline.config import Settings, get_settings
from lifeline.core.dispatch import ErrorHandlerRegistry
from lifeline.core.log_format import LogFormatter
from lifeline.infrastructure.log_sink import LoggerSink, LogSink, QueueLogSink
from lifeline.infrastructure.observability import setup_logging
from lifeline.services.error_dispatch import ErrorDispatcher
from lifeline.services.error_reporting import ErrorReporter, LoggingErrorReporter
from lifeline.services.log_handler import LogHandler

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    sink: LogSink | None = None,
    formatter: LogFormatter | None = None,
    registry: ErrorHandlerRegistry | None = None,
    reporter: ErrorReporter | None = None,
) -> FastAPI:
    """Build a FastAPI app with request logging and typed error dispatch installed."""
    settings = settings or get_settings()
    logger_config = settings.logger_config(formatter)
    error_config = settings.error_handler_config()

    if sink is None:
        sink = QueueLogSink() if settings.log_buffered else LoggerSink()
    if registry is None:
        registry = build_default_registry(
            error_config, reporter or LoggingErrorReporter(),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(
            settings.log_level, settings.log_format,
            static_fields={
                "service": settings.app_title,
                "environment": settings.environment.value,
            },
        )
        if isinstance(sink, QueueLogSink):
            sink.start()
        logger.info(
            f"{settings.app_title} started ({settings.environment.value})",
        )
        yield
        if isinstance(sink, QueueLogSink):
            sink.stop()
        logger.info(f"{settings.app_title} shutting down")

    app = FastAPI(title=settings.app_title, lifespan=lifespan)
    app.state.settings = settings

    # Routes — explicit registration
    app.include_router(health.router)

    # Error dispatch first (inner), request logging last (outer)
    register_error_handlers(app, ErrorDispatcher(registry), ErrorPageRenderer())
    app.add_middleware(
        RequestLogMiddleware, log_handler=LogHandler(logger_config, sink),
    )
    return app


app = create_app()
