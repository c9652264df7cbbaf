"""Structured logging: correlation IDs for import and dispatch batches, timing, and PII masking."""

import asyncio
import logging
import re
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Iterator, Optional

from homenest.utils.logging_config import LoggingConfig, get_logger

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# (pattern, replacement) applied in order by mask_sensitive_data
_SENSITIVE_PATTERNS = [
    (re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE), "[REDACTED_EMAIL]"),
    (re.compile(r"\+?\d[\d\s().-]{7,}\d"), "[REDACTED_PHONE]"),
    (re.compile(r"(?i)(api[_-]?key|xi-api-key|token|secret|password)[\s:=]+[A-Za-z0-9_-]{16,}"), r"\1=[REDACTED]"),
    (re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[REDACTED_JWT]"),
]


def generate_correlation_id() -> str:
    """ID for a request that has no batch ID of its own."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Tag every log record inside the block with a correlation ID.

    Import runs and dispatch batches pass their batch ID; entry points pass
    nothing and get a generated request ID. The previous ID is restored on exit.
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


def mask_sensitive_data(text: str) -> str:
    """Redact emails, phone numbers, API keys and JWTs from free text."""
    if not text or not LoggingConfig.LOG_MASK_SENSITIVE:
        return text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Keep only the last four digits of a phone number."""
    if not phone or not LoggingConfig.LOG_MASK_SENSITIVE:
        return phone
    digits = re.sub(r"\D", "", phone)
    return f"***{digits[-4:]}" if len(digits) > 4 else "***"


class StructuredLogger:
    """Wraps a stdlib logger; keyword arguments become fields on the record."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        correlation_id = get_correlation_id()
        if correlation_id:
            fields.setdefault("correlation_id", correlation_id)
        self.logger.log(level, message, extra=fields, exc_info=exc_info)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """Log how long the block took; slower than the configured threshold also warns."""
    logger = logger or get_structured_logger(__name__)
    started = time.perf_counter()
    logger.debug(f"Starting {operation_name}", operation=operation_name, **context)
    try:
        yield
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            f"Completed {operation_name}",
            operation=operation_name,
            processing_time_ms=elapsed_ms,
            **context,
        )
        threshold = LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS
        if elapsed_ms > threshold:
            logger.warning(
                f"Slow operation: {operation_name}",
                operation=operation_name,
                processing_time_ms=elapsed_ms,
                threshold_ms=threshold,
                **context,
            )


def timed(operation_name: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator form of log_timing for sync and async functions."""
    def decorator(func: Callable) -> Callable:
        name = operation_name or f"{func.__module__}.{func.__name__}"
        log = logger or get_structured_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with log_timing(name, logger=log):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            with log_timing(name, logger=log):
                return func(*args, **kwargs)
        return wrapper

    return decorator
