"""
inventory/parallel - Parallel execution

Runs provider calls on worker threads with isolated failure capture.

Components:
- ParallelExecutor: fan-out / join with batch timeout and retries
- TokenBucketRateLimiter: per-service call pacing
- get_client: boto3 client with shared retry/timeout Config, paced per service

Example:
    from inventory.parallel import ParallelConfig, ParallelExecutor, TaskSpec

    result = ParallelExecutor(ParallelConfig(max_workers=6, timeout=60)).execute(tasks)
    if result.error_count:
        print(result.get_error_summary())
"""

from .client import get_client
from .executor import ParallelConfig, ParallelExecutor, TaskSpec
from .rate_limiter import (
    RateLimiterConfig,
    TokenBucketRateLimiter,
    get_rate_limiter,
    reset_rate_limiters,
)
from .retry import RetryConfig, categorize_error, get_error_code, is_retryable
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Executor
    "ParallelExecutor",
    "ParallelConfig",
    "TaskSpec",
    # Client
    "get_client",
    # Retry
    "RetryConfig",
    "categorize_error",
    "get_error_code",
    "is_retryable",
    # Rate limiter
    "TokenBucketRateLimiter",
    "RateLimiterConfig",
    "get_rate_limiter",
    "reset_rate_limiters",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
