"""
Root logging configuration: JSON lines in production, readable text elsewhere.

Every record carries the request correlation ID and has credential-looking
``extra`` fields redacted. Modules keep using ``logging.getLogger(__name__)``.

Environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default INFO)
- LOG_FORMAT: json or text (default json when ENVIRONMENT=production)
- ENVIRONMENT: development, staging, production
"""

import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "furniture-catalog-backend"
REDACTED = "[REDACTED]"
SENSITIVE_KEYS = frozenset({
    "password", "token", "api_key", "secret", "authorization",
    "database_url", "bucket_access_key_id", "bucket_secret_access_key",
})
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "botocore": logging.WARNING,
}

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


@contextmanager
def correlation_id_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID (a fresh ``req-...`` one when None) for the block."""
    value = correlation_id or f"req-{uuid.uuid4().hex[:16]}"
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(item) for item in value)
    return value


class RecordContextFilter(logging.Filter):
    """Stamps the correlation ID and redacts sensitive fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "none"
        if record.args:
            record.args = _redact(record.args)
        for key in [k for k in vars(record) if k.lower() in SENSITIVE_KEYS]:
            setattr(record, key, REDACTED)
        return True


class CatalogJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            level=record.levelname,
            logger=record.name,
            correlation_id=getattr(record, "correlation_id", "none"),
            environment=os.getenv("ENVIRONMENT", "development"),
            service=SERVICE_NAME,
        )


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return CatalogJsonFormatter("%(asctime)s %(message)s", rename_fields={"asctime": "@timestamp"})
    return logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging() -> None:
    """Replace root handlers with one stream handler. Safe to call repeatedly."""
    default_format = "json" if os.getenv("ENVIRONMENT") == "production" else "text"
    handler = logging.StreamHandler()
    handler.setFormatter(_build_formatter(os.getenv("LOG_FORMAT", default_format).lower()))
    handler.addFilter(RecordContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
