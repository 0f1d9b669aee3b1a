"""
Structured logging configuration with structlog.

Output goes to stdout, either as human-readable console lines or as one
JSON object per line for log aggregation. Modules log through
``structlog.get_logger()`` with key-value context instead of formatted
messages.
"""
import logging
import sys

import structlog

_VALID_LOG_FORMATS = {"json", "console"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level: str) -> int:
    value = level.upper()
    if value not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level {level!r}. Must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}.")
    return getattr(logging, value)


def _build_formatter(*, json_mode: bool, colors: bool) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog and the stdlib root logger behind it.

    ``log_format`` is "console" or "json". Safe to call more than once:
    existing root handlers are replaced.
    """
    if log_format not in _VALID_LOG_FORMATS:
        raise ValueError(f"Invalid log format {log_format!r}. Must be 'json' or 'console'.")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_resolve_log_level(level))
    root_logger.handlers.clear()

    # httpx logs every TestClient request
    logging.getLogger("httpx").setLevel(logging.WARNING)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(json_mode=log_format == "json", colors=sys.stdout.isatty()))
    root_logger.addHandler(handler)
