"""
Structured logging for the Mina MCP server using structlog.

- JSON lines by default, an indented key/value layout when
  ``enable_pretty_print`` is set
- Logs go to stderr (and optionally a rotating file); stdout carries the
  MCP protocol stream and must never receive log output
- API keys are masked before rendering
"""

import logging
import logging.handlers
import sys
import time
from typing import Any, Callable, Dict, List, Optional

import structlog

from mina_mcp.common.config import Config

SECRET_FIELDS = frozenset({"api_key", "x-api-key", "x_api_key", "authorization"})
MASK = "***"

# Noisy third-party loggers kept at WARNING regardless of the configured level
QUIET_LOGGERS = ("httpx", "httpcore")

# RFC 5424 severities used by MCP logging/setLevel, mapped onto stdlib levels
MCP_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}

Processor = Callable[[Any, str, Dict[str, Any]], Any]


def redact_secrets(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask known secret fields of an event."""
    for key in SECRET_FIELDS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def render_pretty(_, __, event_dict: Dict[str, Any]) -> str:
    """Render one event as an ``EVENT:`` line followed by its fields."""
    fields = {
        k: v for k, v in event_dict.items() if k not in ("timestamp", "level", "logger")
    }
    lines = [f"EVENT: {fields.pop('event', 'unknown_event')}"]

    for key, value in fields.items():
        if isinstance(value, (dict, list)):
            value = str(value).replace(", ", ",\n    ")
        lines.append(f"{key}: {value}")

    lines.append("-" * 50)
    return "\n".join(lines)


def build_renderer(config: Config) -> Processor:
    """Pick the final renderer for the configured output style."""
    if config.enable_pretty_print:
        return render_pretty
    return structlog.processors.JSONRenderer()


def build_handlers(config: Config) -> List[logging.Handler]:
    """Stderr handler plus the optional rotating file handler."""
    formatter = logging.Formatter("%(message)s")

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [stderr_handler]

    if config.save_to_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file_path,
            maxBytes=config.max_log_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


def setup_logging(config: Config) -> None:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        config: Application configuration
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_secrets,
            build_renderer(config),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=build_handlers(config),
        format="%(message)s",
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_log_level(level: str) -> int:
    """
    Change the root logger level at runtime.

    Raises:
        ValueError: if ``level`` is not an MCP log level
    """
    try:
        numeric = MCP_LOG_LEVELS[level]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{level}'; expected one of {list(MCP_LOG_LEVELS)}"
        ) from None

    logging.getLogger().setLevel(numeric)
    return numeric


class TimedLogger:
    """
    Context manager logging how long a block took.

    Success is logged at INFO; a block that raised is logged at WARNING with
    the exception type, and the exception propagates.
    """

    def __init__(self, logger: structlog.BoundLogger, event: str, **context: Any):
        self.logger = logger
        self.event = event
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.start_time is None:
            return

        elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        if exc_type is None:
            self.logger.info(self.event, elapsed_ms=elapsed_ms, success=True, **self.context)
        else:
            self.logger.warning(
                self.event,
                elapsed_ms=elapsed_ms,
                success=False,
                error_type=exc_type.__name__,
                **self.context,
            )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger."""
    return structlog.get_logger(name)


def log_startup_message(message: str, **kwargs: Any) -> None:
    """Log startup messages under a dedicated logger name."""
    get_logger("startup").info(message, **kwargs)
