import logging
from pathlib import Path

import structlog
from opentelemetry import trace
from rich.logging import RichHandler

from .config import settings


def setup_logging(log_level: str | None = None) -> None:
    """Configure logging for the application.

    Args:
        log_level: Override the log level from settings
    """
    requested = log_level or settings.log_level
    if requested:
        level = getattr(logging, requested.upper(), logging.INFO)
    else:
        level = logging.DEBUG if settings.debug else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_path=settings.debug,
        show_time=False,  # time comes from the formatter
    )
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if not settings.debug or settings.log_to_file:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        file_handler = logging.FileHandler(
            log_dir / f"{settings.app_name}.log", encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)

    _configure_third_party_loggers()
    _configure_structlog(level)

    logger = get_logger(__name__)
    logger.info("Logging configured", level=logging.getLevelName(level))


def _configure_third_party_loggers() -> None:
    """Configure logging levels for third-party libraries."""
    # httpx logs every upstream request at INFO; we log those ourselves
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


def _add_trace_context(logger, method_name, event_dict):
    """Add OpenTelemetry trace context to log entries."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.is_valid:
            event_dict["trace_id"] = f"0x{format(span_context.trace_id, '032x')}"
            event_dict["span_id"] = f"0x{format(span_context.span_id, '016x')}"
    return event_dict


def _configure_structlog(level: int = logging.INFO) -> None:
    """Configure structlog for structured logging.

    Events are written directly rather than through stdlib logging so the Rich
    console handler keeps its own format. Request-scoped values bound with
    ``structlog.contextvars`` (e.g. ``request_id``) are merged into every event.
    """
    if settings.debug:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()  # type: ignore[assignment]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_trace_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(max(level, logging.INFO)),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
