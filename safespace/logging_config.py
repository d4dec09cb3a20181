"""
Logging configuration using structlog.
Readable console output, plus JSON lines to a file when LOG_FILE is set.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog
from structlog.typing import EventDict, Processor

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def add_timestamp(logger: str, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to log entry."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    add_timestamp,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _handler(handler: logging.Handler, renderer: Processor, level: int) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=SHARED_PROCESSORS)
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: str = "INFO",
    debug: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Route structlog and stdlib records (uvicorn, sqlalchemy) through the same handlers:
    console for humans, optional JSON file for log shipping.
    """
    structlog.configure(
        processors=SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = [
        _handler(
            logging.StreamHandler(sys.stdout),
            structlog.dev.ConsoleRenderer(colors=debug),
            logging.DEBUG if debug else logging.INFO,
        )
    ]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(
                logging.FileHandler(log_file, encoding="utf-8"),
                structlog.processors.JSONRenderer(ensure_ascii=False),
                logging.DEBUG,
            )
        )

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)

    # uvicorn installs its own handlers; replace them so access logs share the format
    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers[:] = handlers
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
