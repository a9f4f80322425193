"""
bitauth Observability

Structured logging for the wallet tooling. Every event is one JSON object per
line (or a compact text line), tagged with the layer that produced it and the
correlation id of the current run.

    Application Code
        logger.info("msg", entity_id=x)
            │
    BitauthLogger
        correlation ids, layer, operation, structured context
            │
    Handlers
        StructuredHandler (stderr / data-directory log file) │ TextHandler

Private key material must never be passed to a logger.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER_NAME = "bitauth"
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


class LogLevel(Enum):
    """Log severity levels."""
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        if self is LogLevel.TRACE:
            return TRACE
        return getattr(logging, self.value.upper())


class BitauthLayer(Enum):
    """bitauth layers for categorization."""
    CLI = "cli"
    CONFIG = "config"
    STORAGE = "storage"
    PROVISION = "provision"
    CRYPTO = "crypto"
    VALIDATION = "validation"


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
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


def _event_from_record(record: logging.LogRecord) -> LogEvent:
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
    return event


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON."""

    def __init__(self, stream: Any = None, owns_stream: bool = False):
        super().__init__()
        self.stream = stream or sys.stderr
        self.owns_stream = owns_stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(_event_from_record(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.owns_stream:
            self.stream.close()
        super().close()


class TextHandler(logging.Handler):
    """Logging handler that outputs one readable line per event."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = _event_from_record(record)
            context = " ".join(f"{k}={v}" for k, v in event.context.items())
            line = f"{event.timestamp} {event.level.upper():<8} [{event.layer}] {event.message}"
            if context:
                line = f"{line} {context}"
            self.stream.write(line + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class BitauthLogger:
    """
    Structured logger for bitauth components.

    Automatically includes the correlation id and layer in all log events.
    Handlers are attached once to the ``bitauth`` root logger by
    ``configure_logging``; component loggers only propagate.
    """

    def __init__(self, name: str, layer: BitauthLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{layer.value}.{name}")

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

    def trace(self, message: str, **context: Any) -> None:
        """Log trace message."""
        self._log(TRACE, message, **context)

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        """Log error message."""
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
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: BitauthLayer) -> BitauthLogger:
    """Get a logger for a bitauth component."""
    return BitauthLogger(name, layer)


def configure_logging(
    level: str = "info",
    log_format: str = "json",
    log_file: Optional[Path] = None,
    stream: Any = None,
    console: bool = True,
) -> logging.Logger:
    """Attach handlers to the ``bitauth`` root logger, replacing earlier ones.

    The console handler only shows warnings and above; the log file (when
    given) records everything down to ``level``. The command line passes
    ``console=False`` because it reports errors to the user itself.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    numeric = LogLevel(level).numeric
    root.setLevel(numeric)
    root.propagate = False

    if console:
        console_handler: logging.Handler = TextHandler(stream) if log_format == "text" else StructuredHandler(stream)
        console_handler.setLevel(max(numeric, logging.WARNING))
        root.addHandler(console_handler)
    else:
        root.addHandler(logging.NullHandler())

    if log_file is not None:
        file_handler = StructuredHandler(open(log_file, "a", encoding="utf-8"), owns_stream=True)
        file_handler.setLevel(numeric)
        root.addHandler(file_handler)

    return root


T = TypeVar("T")


def timed_operation(
    logger: BitauthLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                result = func(*args, **kwargs)
                ok = getattr(result, "ok", None)
                if ok is False:
                    success = False
                return result
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        wrapper.__wrapped__ = func  # type: ignore[attr-defined]
        return wrapper
    return decorator
