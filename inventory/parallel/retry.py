"""
inventory/parallel/retry.py - Error classification and retry policy

Classifies provider exceptions into ErrorCategory values and decides whether
a failure is worth retrying within the current refresh cycle.

Components:
- RetryConfig: exponential backoff with jitter
- categorize_error: exception -> ErrorCategory
- get_error_code: exception -> error code string
- is_retryable: retry decision
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from inventory.exceptions import (
    AuthError,
    TransientFetchError,
    is_access_denied,
    is_not_found,
    is_throttling,
)

from .types import ErrorCategory

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Retry settings

    Attributes:
        max_retries: Maximum retries (0 disables retrying)
        base_delay: Base delay in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Backoff multiplier
        jitter: Randomize delays (full jitter)
    """

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 20.0
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int) -> float:
        """Delay before the next attempt

        Args:
            attempt: Zero-based attempt number that just failed

        Returns:
            Seconds to wait
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay = random.uniform(0, delay)

        return delay


RETRYABLE_ERROR_CODES: set[str] = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalError",
    "InternalServiceError",
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
}

_TIMEOUT_ERRORS = (FutureTimeoutError, TimeoutError, ReadTimeoutError, ConnectTimeoutError)
_NETWORK_ERRORS = (EndpointConnectionError, ConnectionError)


def _response_code(error: Exception) -> str | None:
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return None


def categorize_error(error: Exception) -> ErrorCategory:
    """Classify an exception

    Args:
        error: Exception to classify

    Returns:
        Error category
    """
    if is_throttling(error):
        return ErrorCategory.THROTTLING
    if isinstance(error, (AuthError, NoCredentialsError)) or is_access_denied(error):
        return ErrorCategory.ACCESS_DENIED
    if is_not_found(error):
        return ErrorCategory.NOT_FOUND

    code = _response_code(error)
    if isinstance(error, TransientFetchError):
        code = error.error_code or ""
    if code:
        if "Timeout" in code:
            return ErrorCategory.TIMEOUT
        if code in ("ExpiredToken", "ExpiredTokenException", "RequestExpired"):
            return ErrorCategory.EXPIRED_TOKEN
        if code in ("InternalError", "InternalServiceError", "ServiceUnavailable", "ServiceUnavailableException"):
            return ErrorCategory.SERVICE_ERROR
        if "Invalid" in code or "Validation" in code or "Malformed" in code:
            return ErrorCategory.INVALID_REQUEST

    if isinstance(error, _TIMEOUT_ERRORS):
        return ErrorCategory.TIMEOUT
    if isinstance(error, _NETWORK_ERRORS):
        return ErrorCategory.NETWORK
    if isinstance(error, (KeyError, TypeError, ValueError)):
        # malformed provider response
        return ErrorCategory.INVALID_REQUEST

    return ErrorCategory.UNKNOWN


def get_error_code(error: Exception) -> str:
    """Extract the provider error code, or the exception class name"""
    if isinstance(error, TransientFetchError) and error.error_code:
        return error.error_code
    code = _response_code(error)
    if code:
        return code
    return error.__class__.__name__


def is_retryable(error: Exception) -> bool:
    """Whether a failure may succeed if retried in this cycle"""
    code = _response_code(error)
    if code is not None:
        return code in RETRYABLE_ERROR_CODES

    return isinstance(error, _TIMEOUT_ERRORS + _NETWORK_ERRORS)
