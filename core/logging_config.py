"""
Logging Configuration for the Sapien API.

Every module logs through `get_logger(__name__)`; this module decides where
those records go and what they look like.

Key Components:
- `CorrelationFilter`: Copies the current request's correlation ID (set by
  `CorrelationMiddleware`) onto each record.
- `StructuredFormatter`: One JSON object per line, with anything passed via
  `extra=` nested under `"extra"`. Used outside development.
- `ColoredConsoleFormatter`: Short, colored lines for a local terminal.
- `get_logging_config` / `setup_logging`: Build and apply the `dictConfig`
  for an environment and level. Production also writes to a rotating file
  (`LOG_FILE`, default `/var/log/sapien/app.log`).
- `log_function_call`: Decorator for service entry points that logs the call
  and its duration at DEBUG.

Architectural Design:
- The correlation ID is a `ContextVar`, so concurrent requests on one event
  loop never see each other's IDs.
- Application packages (`api`, `services`, `core`) log at the configured
  level; noisy third-party loggers are pinned to fixed levels.
"""

import functools
import inspect
import json
import logging
import logging.config
import os
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

APP_LOGGERS = ("api", "services", "core")
THIRD_PARTY_LEVELS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "sqlalchemy.engine": "WARNING",
}
DEFAULT_LOG_FILE = "/var/log/sapien/app.log"

# Attributes every LogRecord has; anything else on a record came from ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
    "correlation_id",
}


class CorrelationFilter(logging.Filter):
    """Attach the active correlation ID to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        current = correlation_id.get()
        if current:
            record.correlation_id = current
        return True


class ColoredConsoleFormatter(logging.Formatter):
    """Compact colored output for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        trace = getattr(record, "correlation_id", None)
        line = "{color}{when} {level:<8} {name}{trace} | {message}{reset}".format(
            color=self.COLORS.get(record.levelname, ""),
            when=when,
            level=record.levelname,
            name=record.name,
            trace=f" [{trace}]" if trace else "",
            message=record.getMessage(),
            reset=self.RESET,
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredFormatter(logging.Formatter):
    """Single-line JSON records for log collectors"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace = getattr(record, "correlation_id", None) or correlation_id.get()
        if trace:
            entry["correlation_id"] = trace

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def _logger_entry(level: str, handlers) -> Dict[str, Any]:
    return {"level": level, "handlers": list(handlers), "propagate": False}


def get_logging_config(
    environment: Optional[str] = None, log_level: Optional[str] = None
) -> Dict[str, Any]:
    """Build the dictConfig for an environment (defaults from ENVIRONMENT/LOG_LEVEL)"""
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "level": log_level,
            "filters": ["correlation"],
            "formatter": "colored_console" if environment == "development" else "structured",
        }
    }
    if environment == "production":
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": os.getenv("LOG_FILE", DEFAULT_LOG_FILE),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "level": log_level,
            "filters": ["correlation"],
            "formatter": "structured",
        }
    targets = list(handlers)

    loggers = {name: _logger_entry(log_level, targets) for name in APP_LOGGERS}
    loggers.update(
        {name: _logger_entry(level, targets) for name, level in THIRD_PARTY_LEVELS.items()}
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"correlation": {"()": CorrelationFilter}},
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "colored_console": {"()": ColoredConsoleFormatter},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": list(targets)},
    }


def setup_logging(environment: Optional[str] = None, log_level: Optional[str] = None):
    logging.config.dictConfig(get_logging_config(environment, log_level))
    logging.getLogger("core.logging").info(
        "Logging configured",
        extra={"environment": environment or os.getenv("ENVIRONMENT", "development")},
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(corr_id: str):
    correlation_id.set(corr_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id.get()


def log_function_call(logger: logging.Logger):
    """Log entry, exit and duration of the decorated (sync or async) function at DEBUG"""

    def decorator(func):
        name = func.__name__

        def started(args, kwargs) -> float:
            logger.debug(
                f"Calling {name}",
                extra={"call": name, "args_count": len(args), "kwargs_keys": list(kwargs)},
            )
            return time.perf_counter()

        def finished(start: float, error: Optional[BaseException] = None):
            details = {
                "call": name,
                "execution_time_ms": round((time.perf_counter() - start) * 1000, 2),
                "success": error is None,
            }
            if error is None:
                logger.debug(f"Completed {name}", extra=details)
            else:
                details["error_type"] = type(error).__name__
                logger.debug(f"Failed {name}: {error}", extra=details)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = started(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    finished(start, e)
                    raise
                finished(start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = started(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                finished(start, e)
                raise
            finished(start)
            return result

        return sync_wrapper

    return decorator
