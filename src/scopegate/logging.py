"""Centralized logging utilities for scopegate.

This module provides:
- Logging configuration from ScopeGateConfig
- Safe preview utilities for extra fields
- Structured (JSON) or plain text output
- Automatic principal_id / request_id propagation
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import LogLevel, ScopeGateConfig

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "asctime", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "principal_id", "request_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value for logging.

    Sets and frozensets (granted id sets) are rendered sorted so the same
    grant always logs the same way.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (set, frozenset)):
        try:
            items = sorted(value)
        except TypeError:
            items = sorted(value, key=str)
        s = json.dumps(items, default=str)
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


class AccessLogFormatter(logging.Formatter):
    """Formatter that includes principal_id/request_id and optional JSON output."""

    def __init__(
        self,
        json_format: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        principal_id = getattr(record, "principal_id", None)
        request_id = getattr(record, "request_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if principal_id is not None:
            log_data["principal_id"] = principal_id
        if request_id is not None:
            log_data["request_id"] = str(request_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if principal_id is not None:
            parts.append(f"principal_id={principal_id}")
        if request_id is not None:
            parts.append(f"request_id={request_id}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AccessLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds principal_id and request_id to every record.

    Usage:
        logger = get_access_logger(__name__, principal_id=42)
        logger.info("Resolved access", extra={"access_level": "project"})
    """

    def __init__(
        self,
        logger: logging.Logger,
        principal_id: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.principal_id = principal_id
        self.request_id = request_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        principal_id = kwargs.pop("principal_id", self.principal_id)
        request_id = kwargs.pop("request_id", self.request_id)

        extra = dict(kwargs.get("extra") or {})
        if principal_id is not None:
            extra["principal_id"] = principal_id
        if request_id is not None:
            extra["request_id"] = request_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[ScopeGateConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure root logging for a service embedding scopegate.

    Args:
        config: ScopeGateConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)
    use_json = config.log_json if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(AccessLogFormatter(json_format=use_json))
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_access_logger(
    name: str,
    principal_id: Optional[int] = None,
    request_id: Optional[str] = None,
) -> AccessLoggerAdapter:
    """Get a logger adapter bound to a principal and request.

    Example:
        logger = get_access_logger(__name__, principal_id=principal.id)
        logger.warning("Denied explicit location", extra={"location_id": 7})
    """
    return AccessLoggerAdapter(logging.getLogger(name), principal_id=principal_id, request_id=request_id)


__all__ = [
    "AccessLogFormatter",
    "AccessLoggerAdapter",
    "get_access_logger",
    "safe_preview",
    "setup_logging",
]
