"""
inventory/parallel/rate_limiter.py - Token bucket rate limiter

Paces provider API calls per service so that a wide account fan-out does not
trip provider-side throttling.

Example:
    limiter = get_rate_limiter("ec2")
    if limiter.acquire():
        client.describe_instances()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Rate limiter settings

    Attributes:
        requests_per_second: Token refill rate
        burst_size: Bucket capacity
        wait_timeout: Maximum seconds acquire() blocks
    """

    requests_per_second: float = 10.0
    burst_size: int = 20
    wait_timeout: float = 30.0


# Per-service defaults (calls per second)
SERVICE_RATE_LIMITS: dict[str, RateLimiterConfig] = {
    "ec2": RateLimiterConfig(requests_per_second=20.0, burst_size=40),
    "rds": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
    "s3": RateLimiterConfig(requests_per_second=25.0, burst_size=50),
    "ecs": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
    "eks": RateLimiterConfig(requests_per_second=5.0, burst_size=10),
    "sts": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
}


class TokenBucketRateLimiter:
    """Thread-safe token bucket"""

    def __init__(self, config: RateLimiterConfig | None = None):
        self.config = config or RateLimiterConfig()
        self._tokens = float(self.config.burst_size)
        self._last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(
            float(self.config.burst_size),
            self._tokens + elapsed * self.config.requests_per_second,
        )
        self._last_refill = now

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def try_acquire(self, tokens: int = 1) -> bool:
        """Take tokens without waiting"""
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    def acquire(self, tokens: int = 1) -> bool:
        """Take tokens, waiting up to config.wait_timeout

        Returns:
            False if the wait timed out
        """
        deadline = time.monotonic() + self.config.wait_timeout

        while True:
            with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return True
                wait = (tokens - self._tokens) / self.config.requests_per_second

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(wait, remaining))


_limiters: dict[str, TokenBucketRateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(service: str) -> TokenBucketRateLimiter:
    """Return the shared limiter for a service"""
    with _limiters_lock:
        limiter = _limiters.get(service)
        if limiter is None:
            limiter = TokenBucketRateLimiter(SERVICE_RATE_LIMITS.get(service))
            _limiters[service] = limiter
        return limiter


def reset_rate_limiters() -> None:
    """Drop all shared limiters (tests)"""
    with _limiters_lock:
        _limiters.clear()
