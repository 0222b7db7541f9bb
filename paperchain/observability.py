"""
PAPERCHAIN Observability

Structured logging for registry components. Every log line carries the
layer that produced it, the operation name, an optional error code, and a
correlation id propagated through context variables.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Registry / Ledger                     │
    │  logger.info("msg", operation="register-paper", id=1)    │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                     RegistryLogger                       │
    │   layer, operation, error_code, correlation id, context  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │          StructuredHandler (json) │ TextHandler          │
    └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

# Context variable for request-scoped data
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RegistryLayer(Enum):
    """Components, for log categorization."""
    REGISTRY = "registry"
    LEDGER = "ledger"
    EVENTS = "events"
    ENVIRONMENT = "environment"
    CONFIG = "config"
    CLI = "cli"


class LogFormat(Enum):
    JSON = "json"
    TEXT = "text"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> Any:
        # Resolved per write so a replaced sys.stderr is honored.
        return self._stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextHandler(logging.Handler):
    """Plain-text handler: ``level layer operation message key=value ...``."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> Any:
        return self._stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.format(record) + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)

    def format(self, record: logging.LogRecord) -> str:
        parts = [record.levelname.lower(), getattr(record, "layer", "") or record.name]
        operation = getattr(record, "operation", "")
        if operation:
            parts.append(operation)
        parts.append(record.getMessage())
        error_code = getattr(record, "error_code", "")
        if error_code:
            parts.append(f"error_code={error_code}")
        for key, value in (getattr(record, "context", {}) or {}).items():
            parts.append(f"{key}={value}")
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


_HANDLER_TYPES = {
    LogFormat.JSON: StructuredHandler,
    LogFormat.TEXT: TextHandler,
}


class RegistryLogger:
    """
    Structured logger for registry components.

    Automatically includes the correlation id and layer in all log events.
    """

    def __init__(
        self,
        name: str,
        layer: RegistryLayer,
        level: LogLevel = LogLevel.INFO,
        fmt: LogFormat = LogFormat.JSON,
    ):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"paperchain.{layer.value}.{name}")
        self.configure(level, fmt)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def configure(self, level: LogLevel, fmt: LogFormat) -> None:
        """Set the level and swap in the handler for the requested format."""
        self._logger.setLevel(getattr(logging, level.value.upper()))

        handler_type = _HANDLER_TYPES[fmt]
        for h in list(self._logger.handlers):
            if isinstance(h, (StructuredHandler, TextHandler)) and type(h) is not handler_type:
                self._logger.removeHandler(h)
        if not any(type(h) is handler_type for h in self._logger.handlers):
            self._logger.addHandler(handler_type())

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


_loggers: Dict[Tuple[str, str], RegistryLogger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str, layer: RegistryLayer) -> RegistryLogger:
    """Get (or create) the logger for a component."""
    key = (layer.value, name)
    with _loggers_lock:
        if key not in _loggers:
            _loggers[key] = RegistryLogger(name, layer)
        return _loggers[key]


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Apply a log level and format to every component logger.

    Values left as None are read from the observability configuration.
    """
    if level is None or fmt is None:
        from paperchain.config import get_config
        observability = get_config().observability
        level = level or observability.log_level.get()
        fmt = fmt or observability.log_format.get()

    log_level = LogLevel(level)
    log_format = LogFormat(fmt)
    with _loggers_lock:
        for registry_logger in _loggers.values():
            registry_logger.configure(log_level, log_format)


T = TypeVar("T")


def timed_operation(
    logger: RegistryLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations.

    An operation fails when it raises or returns an Err result.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            context: Dict[str, Any] = {}
            try:
                result = func(*args, **kwargs)
                if getattr(result, "is_err", False):
                    success = False
                    code = getattr(result, "code", None)
                    context["error_code"] = getattr(code, "name", str(code))
                return result
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success, **context)
        return wrapper
    return decorator
