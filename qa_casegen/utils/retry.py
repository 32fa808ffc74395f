# ==============================================
# Exponential backoff retry for collaborator calls
# ==============================================

import time
from typing import Callable, Optional, TypeVar

import requests
from google.api_core import exceptions as google_exceptions

from qa_casegen.utils.exceptions import CaseGenException
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_retryable(exception: BaseException) -> bool:
    """
    Check if an error is transient (network failure, rate limit, 5xx)

    Gemini raises google-api-core errors, which carry the HTTP status as code.

    Client exceptions carry the HTTP status in their context and the
    underlying requests error in original_exception.
    """
    if isinstance(exception, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return True
    if isinstance(exception, google_exceptions.GoogleAPICallError):
        return exception.code in RETRYABLE_STATUS_CODES
    if isinstance(exception, CaseGenException):
        if exception.context.get('status_code') in RETRYABLE_STATUS_CODES:
            return True
        if exception.original_exception is not None:
            return is_retryable(exception.original_exception)
    return False


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    backoff_multiplier: float = 2.0,
    retryable: Callable[[BaseException], bool] = is_retryable,
    sleep: Optional[Callable[[float], None]] = None,
    operation: str = "operation",
) -> T:
    """
    Execute a function with exponential backoff retry

    Args:
        fn: Zero-argument callable to execute
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        backoff_multiplier: Growth factor between delays
        retryable: Predicate deciding whether an error is worth retrying
        sleep: Sleep function (time.sleep by default)
        operation: Name used in log messages

    Returns:
        The function result

    Raises:
        The last error, immediately when it is not retryable
    """
    sleep = sleep or time.sleep
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as e:
            if not retryable(e) or attempt >= max_retries:
                raise
            delay = min(initial_delay * (backoff_multiplier ** attempt), max_delay)
            attempt += 1
            logger.warning(
                f"{operation} failed ({e}); retry {attempt}/{max_retries} in {delay:.1f}s"
            )
            sleep(delay)
