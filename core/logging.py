# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across all components
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured, JSON-formatted or human-readable logging for the
liveness sidecar.

Features:
- Component-based loggers
- Contextual fields (service, component, operation, dependency)
- JSON output for log aggregation
- Named checkpoints for connection pool transitions

Context is stored in a ContextVar, so each asyncio task (every dependency
probe, every poll cycle) sees its own fields.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("health.poller")

    with log_context(component="store", operation="verify"):
        logger.info("Database ping successful")
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union
from enum import Enum


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    STORE = "store"
    DEPENDENCIES = "dependencies"
    POLLER = "poller"
    API = "api"
    SECRETS = "secrets"


@dataclass(frozen=True)
class LogContext:
    """
    Context for structured logging.

    Immutable; nested contexts are built by merging with the parent.
    """
    service: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    dependency: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_current_context: ContextVar[LogContext] = ContextVar(
    "log_context", default=LogContext()
)


def get_current_context() -> LogContext:
    """Get current logging context."""
    return _current_context.get()


def set_base_context(**kwargs) -> None:
    """
    Set context fields for the current task and everything it spawns.

    Used at startup to stamp every log line with the service name.
    """
    parent = get_current_context()
    _current_context.set(_merge(parent, kwargs))


def _merge(parent: LogContext, kwargs: Dict[str, Any]) -> LogContext:
    return LogContext(
        service=kwargs.get("service", parent.service),
        component=kwargs.get("component", parent.component),
        operation=kwargs.get("operation", parent.operation),
        dependency=kwargs.get("dependency", parent.dependency),
        extra={**parent.extra, **kwargs.get("extra", {})},
    )


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add

    Example:
        with log_context(component="dependencies", dependency=url):
            logger.info("Probing dependency")
    """
    new_context = _merge(get_current_context(), kwargs)
    token = _current_context.set(new_context)
    try:
        yield new_context
    finally:
        _current_context.reset(token)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregators.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_context: bool = True,
        include_source: bool = True,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = _utcnow().isoformat().replace("+00:00", "Z")

        if self.include_level:
            log_data["level"] = record.levelname

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        # Extra fields from ContextLogger / log_checkpoint
        if hasattr(record, "extra") and record.extra:
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Includes context fields inline for easy reading.
    """

    CONTEXT_FIELDS: Tuple[Tuple[str, str], ...] = (
        ("service", "service"),
        ("component", "component"),
        ("operation", "op"),
        ("dependency", "dep"),
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human reading."""
        timestamp = _utcnow().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        for attr, label in self.CONTEXT_FIELDS:
            value = getattr(context, attr)
            if value:
                context_parts.append(f"{label}={value}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        message = record.getMessage()

        extra_str = ""
        if hasattr(record, "extra") and record.extra:
            extra_str = f" {record.extra}"

        result = f"{timestamp} {level} {record.name}{context_str}: {message}{extra_str}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that attaches structured data to log records.

    Data passed as extra={...} is stored on the record for the formatters.
    """

    def process(self, msg, kwargs):
        """Process log record to include component and extra data."""
        extra = dict(kwargs.get("extra") or {})
        if self.extra and self.extra.get("component"):
            extra.setdefault("component", self.extra["component"])

        kwargs["extra"] = {"extra": extra}

        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "health.poller")
        component: Optional component type for categorization

    Returns:
        ContextLogger instance
    """
    base_logger = logging.getLogger(name)
    component_value = component.value if component is not None else None
    return ContextLogger(base_logger, {"component": component_value})


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    include_source: bool = True,
    service: Optional[str] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON format (for production)
        include_source: Include source file/line info (JSON only)
        service: Service name stamped on every log line
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter = StructuredFormatter(
            include_context=True,
            include_source=include_source,
        )
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # httpx logs every request at INFO; the probes already log their outcome
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if service:
        set_base_context(service=service)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named checkpoint.

    Checkpoints mark connection pool transitions so the lifecycle
    can be reconstructed from logs.

    Args:
        name: Checkpoint name (e.g., "store_pool_created")
        data: Optional checkpoint data
        logger: Optional specific logger to use
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    checkpoint_data = {
        "checkpoint": name,
        "timestamp": _utcnow().isoformat().replace("+00:00", "Z"),
    }

    context = get_current_context()
    if context.service:
        checkpoint_data["service"] = context.service
    if context.component:
        checkpoint_data["component"] = context.component

    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"extra": checkpoint_data})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "set_base_context",
    "get_current_context",
    "log_checkpoint",
]
