"""
Logging configuration for the application.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict

import structlog
from pythonjsonlogger import jsonlogger

from journey_builder.utils.constants import (
    LOG_CONTEXT_ATTEMPT,
    LOG_CONTEXT_DURATION,
    LOG_CONTEXT_JOURNEY_ID,
    LOG_CONTEXT_NODE_ID,
    LOG_CONTEXT_REQUEST_ID,
    LOG_CONTEXT_RESOURCE,
    LOG_CONTEXT_SAVE_REASON,
)


class JSONFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with standard record fields."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("level", record.levelname)
        log_record.setdefault("logger", record.name)
        log_record.setdefault("module", record.module)
        log_record.setdefault("function", record.funcName)
        log_record.setdefault("line", record.lineno)
        log_record.setdefault("timestamp", self.formatTime(record, self.datefmt))


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, "")
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: str | None = None,
) -> None:
    """Setup application logging."""

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if format_type == "json":
        formatter = JSONFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s"
        )
    else:
        formatter = ColoredFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if log_level <= logging.DEBUG else logging.WARNING
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.info(
        "Logging configured",
        extra={
            "level": level,
            "format": format_type,
            "file": log_file,
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: Any,
) -> None:
    """Log message with additional context."""
    extra = {}

    if LOG_CONTEXT_REQUEST_ID in context:
        extra["request_id"] = context[LOG_CONTEXT_REQUEST_ID]
    if LOG_CONTEXT_JOURNEY_ID in context:
        extra["journey_id"] = context[LOG_CONTEXT_JOURNEY_ID]
    if LOG_CONTEXT_NODE_ID in context:
        extra["node_id"] = context[LOG_CONTEXT_NODE_ID]
    if LOG_CONTEXT_DURATION in context:
        extra["duration_ms"] = context[LOG_CONTEXT_DURATION]

    for key, value in context.items():
        if key not in extra:
            extra[key] = value

    getattr(logger, level.lower())(message, extra=extra)


class RequestLogger:
    """Logger for HTTP requests."""

    def __init__(self, logger_name: str = "request"):
        self.logger = get_logger(logger_name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        request_id: str | None = None,
    ) -> None:
        """Log HTTP request."""
        context = {
            "method": method,
            "path": path,
            "status_code": status_code,
            LOG_CONTEXT_DURATION: round(duration_ms, 2),
        }

        if request_id:
            context[LOG_CONTEXT_REQUEST_ID] = request_id

        level = "INFO" if status_code < 400 else "WARNING"
        log_with_context(
            self.logger,
            level,
            f"{method} {path} - {status_code}",
            **context
        )


class JourneyLogger:
    """Logger for journey persistence events."""

    def __init__(self, logger_name: str = "journey"):
        self.logger = get_logger(logger_name)

    def log_load(self, journey_id: str, source: str, node_count: int) -> None:
        """Log a journey being applied from storage, cache or draft."""
        log_with_context(
            self.logger,
            "INFO",
            "Journey loaded",
            **{
                LOG_CONTEXT_JOURNEY_ID: journey_id,
                "source": source,
                "node_count": node_count,
            }
        )

    def log_save_success(
        self,
        journey_id: str,
        reason: str,
        duration_ms: float,
        node_count: int,
        edge_count: int,
    ) -> None:
        """Log a successful save."""
        log_with_context(
            self.logger,
            "INFO",
            "Journey saved",
            **{
                LOG_CONTEXT_JOURNEY_ID: journey_id,
                LOG_CONTEXT_SAVE_REASON: reason,
                LOG_CONTEXT_DURATION: round(duration_ms, 2),
                "node_count": node_count,
                "edge_count": edge_count,
            }
        )

    def log_save_skipped(self, journey_id: str, reason: str) -> None:
        """Log a save short-circuited because nothing changed."""
        log_with_context(
            self.logger,
            "DEBUG",
            "Journey unchanged since last save, skipping",
            **{LOG_CONTEXT_JOURNEY_ID: journey_id, LOG_CONTEXT_SAVE_REASON: reason}
        )

    def log_save_error(self, journey_id: str, reason: str, error: str) -> None:
        """Log a failed save."""
        log_with_context(
            self.logger,
            "ERROR",
            "Journey save failed",
            **{
                LOG_CONTEXT_JOURNEY_ID: journey_id,
                LOG_CONTEXT_SAVE_REASON: reason,
                "error": error,
            }
        )

    def log_poll_failure(
        self,
        journey_id: str,
        resource: str,
        attempt: int,
        error: str,
        halted: bool,
    ) -> None:
        """Log a failed test-mode poll of one resource."""
        log_with_context(
            self.logger,
            "WARNING" if halted else "DEBUG",
            "Test mode polling halted" if halted else "Test mode poll failed",
            **{
                LOG_CONTEXT_JOURNEY_ID: journey_id,
                LOG_CONTEXT_RESOURCE: resource,
                LOG_CONTEXT_ATTEMPT: attempt,
                "error": error,
            }
        )
