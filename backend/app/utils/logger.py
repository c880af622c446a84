"""
Structured logging for Tubely.

Records are emitted either as one JSON object per line (production) or as
plain text (development). Upload code attaches ``video_id``, ``user_id`` and
``upload_kind`` to every record through :func:`add_log_context`, so a single
upload can be followed across the pipeline.

Usage:
    from app.utils.logger import add_log_context, setup_logging

    setup_logging(log_level="INFO", json_logs=True)

    ctx_logger = add_log_context(logger, video_id=str(video_id), upload_kind="video")
    ctx_logger.info("Upload staged")
"""

import json
import logging
import sys
import traceback

from datetime import UTC, datetime
from typing import Any


LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Chatty libraries held at a quieter level than the application
THIRD_PARTY_LOGGERS: list[str] = [
    "motor",
    "pymongo",
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "multipart",
    "asyncio",
]

UVICORN_LOGGERS: list[str] = ["uvicorn", "uvicorn.access", "uvicorn.error"]


class LogJSONEncoder(json.JSONEncoder):
    """Fallback encoder: anything json can't handle is logged as its string form."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, bytes):
            return obj.decode("utf-8", errors="replace")
        if isinstance(obj, set):
            return sorted(obj, key=str)
        return str(obj)


class JSONFormatter(logging.Formatter):
    """
    Formats a LogRecord as a compact JSON object.

    Example output:
        {"timestamp":"2026-01-15T10:30:45.123456+00:00","level":"INFO",
         "logger":"app.services.upload_service","message":"Upload uploaded",
         "extra":{"video_id":"...","upload_kind":"video","key":"landscape/..."}}
    """

    # Standard LogRecord attributes, never copied into "extra"
    RESERVED_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "thread",
            "threadName",
            "taskName",
        }
    )

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(
                timespec="microseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, cls=LogJSONEncoder, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """Human-readable ``[time] LEVEL logger: message`` lines for local development."""

    DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.DEFAULT_FORMAT, datefmt=self.DEFAULT_DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    third_party_level: str = "WARNING",
) -> None:
    """
    Configure the root logger and route uvicorn's loggers through it.

    Call once at application startup. Calling again replaces the handlers
    instead of stacking duplicates.

    Args:
        log_level: Application log level name
        json_logs: JSON lines if True, plain text otherwise
        third_party_level: Level applied to THIRD_PARTY_LOGGERS
    """
    level = LOG_LEVEL_MAP.get(log_level.upper(), logging.INFO)

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(include_source_location=level <= logging.DEBUG)
    else:
        formatter = StandardFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = True

    quiet_level = LOG_LEVEL_MAP.get(third_party_level.upper(), logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, json=%s", logging.getLevelName(level), json_logs
    )


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its context into each call's ``extra``.

    The stock adapter replaces ``extra`` wholesale; this one keeps per-call
    fields and only fills in context keys the call did not set.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **kwargs: Any) -> ContextLoggerAdapter:
    """
    Wrap ``logger`` so every record carries ``kwargs`` as extra fields.

    Example:
        ctx_logger = add_log_context(logger, video_id="...", upload_kind="thumbnail")
        ctx_logger.error("Store write failed", extra={"key": key})
        # record carries video_id, upload_kind and key
    """
    return ContextLoggerAdapter(logger, kwargs)


__all__ = [
    "LOG_LEVEL_MAP",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "StandardFormatter",
    "add_log_context",
    "setup_logging",
]
