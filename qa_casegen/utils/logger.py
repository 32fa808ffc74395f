# ==============================================
# Structured logging setup with JSON support
# ==============================================

import logging
import sys
import json
import os
import time
import uuid
from contextvars import ContextVar
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from qa_casegen.utils.exceptions import ErrorCode

# Correlation id of the batch currently running in this task/context
_correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_CONTEXT_FIELDS = ('task_id', 'batch_id', 'analytics_type', 'error_code', 'operation', 'duration_ms', 'context')


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter for structured logging with contextual fields

    Supports both human-readable and JSON formats
    """

    def __init__(self, json_format: bool = False):
        """
        Initialize structured formatter

        Args:
            json_format: If True, output JSON format; otherwise human-readable
        """
        super().__init__()
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with contextual fields"""

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        for field_name in _CONTEXT_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.json_format:
            return json.dumps(log_data, default=str)

        parts = [
            log_data['timestamp'],
            f"{log_data['level']:<8}",
            f"{log_data['logger']:<30}"
        ]

        context_parts = []
        if 'correlation_id' in log_data:
            context_parts.append(f"[{log_data['correlation_id'][-8:]}]")
        if 'task_id' in log_data:
            context_parts.append(f"[{log_data['task_id']}]")
        if 'error_code' in log_data:
            context_parts.append(f"[{log_data['error_code']}]")

        if context_parts:
            parts.append(' '.join(context_parts))

        parts.append(f"| {log_data['message']}")

        if 'exception' in log_data:
            parts.append(f"\n{log_data['exception']}")

        return ' '.join(parts)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds contextual fields to all log records

    Usage:
        logger = get_logger(__name__, task_id='PA-123')
        logger.info("Processing task", extra={'analytics_type': 'homepage'})
    """

    def process(self, msg, kwargs):
        """Add context to log record"""
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs


# ==============================================
# Correlation ID Management
# ==============================================

def set_correlation_id(correlation_id: str):
    """
    Set correlation ID for the current context

    Each batch runs in its own asyncio task, so ids never leak between
    concurrent batches.
    """
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID for the current context"""
    return _correlation_id.get()


def clear_correlation_id():
    """Clear correlation ID for the current context"""
    _correlation_id.set(None)


def generate_correlation_id(prefix: str = '') -> str:
    """
    Generate a new correlation ID

    Args:
        prefix: Optional prefix for the ID

    Returns:
        Generated correlation ID
    """
    unique_id = str(uuid.uuid4())[:8]
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
    if prefix:
        return f"{prefix}-{timestamp}-{unique_id}"
    return f"{timestamp}-{unique_id}"


# ==============================================
# Logger Factory
# ==============================================

def get_logger(
    name: str,
    level: Optional[int] = None,
    json_format: Optional[bool] = None,
    **context
) -> logging.Logger:
    """
    Get configured logger with structured formatting

    Args:
        name: Logger name (usually __name__)
        level: Logging level (default: LOG_LEVEL env or INFO)
        json_format: Use JSON format (default: from env LOG_FORMAT=json)
        **context: Default context fields (task_id, batch_id, etc.)

    Returns:
        Configured logger instance (StructuredLogger if context provided)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        if json_format is None:
            json_format = os.environ.get('LOG_FORMAT', 'text').lower() == 'json'

        handler.setFormatter(StructuredFormatter(json_format=json_format))
        logger.addHandler(handler)
        if level is None:
            level = logging.getLevelName(os.environ.get('LOG_LEVEL', 'INFO').upper())
            if not isinstance(level, int):
                level = logging.INFO
        logger.setLevel(level)
        logger.propagate = False

    if context:
        return StructuredLogger(logger, context)

    return logger


# ==============================================
# Performance Tracking
# ==============================================

class PerformanceTimer:
    """
    Context manager for timing operations and logging duration

    Usage:
        with PerformanceTimer(logger, "process_task", task_id="PA-123"):
            # ... operation code
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        log_level: int = logging.INFO,
        failure_level: int = logging.ERROR,
        **context
    ):
        self.logger = logger
        self.operation = operation
        self.log_level = log_level
        self.failure_level = failure_level
        self.context = context
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        """Start timing"""
        self.start_time = time.monotonic()
        self.logger.debug(
            f"Starting {self.operation}",
            extra={'operation': self.operation, **self.context}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Stop timing and log duration"""
        self.duration_ms = int((time.monotonic() - self.start_time) * 1000)

        if exc_type is None:
            self.logger.log(
                self.log_level,
                f"✓ {self.operation} completed in {self.duration_ms}ms",
                extra={'operation': self.operation, 'duration_ms': self.duration_ms, **self.context}
            )
        else:
            self.logger.log(
                self.failure_level,
                f"✗ {self.operation} failed after {self.duration_ms}ms: {exc_val}",
                extra={'operation': self.operation, 'duration_ms': self.duration_ms, **self.context}
            )
        return False  # Don't suppress exception

    def get_duration(self) -> Optional[int]:
        """Get duration in milliseconds"""
        return self.duration_ms


# ==============================================
# Error Code Logging
# ==============================================

def log_error_with_code(
    logger: logging.Logger,
    error_code: str,
    message: str,
    exception: Optional[Exception] = None,
    **context: Any
):
    """
    Log error with standardized error code

    Args:
        logger: Logger instance
        error_code: Error code from ErrorCode
        message: Error message
        exception: Optional exception object
        **context: Additional context fields

    Example:
        log_error_with_code(
            logger,
            ErrorCode.TEST_CASE_CREATION_FAILED,
            "Failed to create test case",
            exception=e,
            task_id="PA-123"
        )
    """
    extra: Dict[str, Any] = {'error_code': error_code, **context}
    if exception is not None:
        extra['context'] = {
            'error_description': ErrorCode.get_description(error_code),
            'error_type': type(exception).__name__,
        }

    logger.error(
        f"[{error_code}] {message}",
        exc_info=exception is not None,
        extra=extra
    )
