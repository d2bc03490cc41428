"""
inventory/parallel/client.py - boto3 client factory for fetchers

Every client shares one botocore Config (adaptive retries, connect/read
timeouts from settings, a pool sized for the fetcher fan-out) and, unless
pacing is turned off, takes a token from its service's shared rate limiter
before each API call. Paginated fetchers therefore pace every page, not
just the first request.

Example:
    ec2 = get_client(session, "ec2", region_name="us-east-1")
    sts = get_client(session, "sts", paced=False)
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any, cast

from botocore.config import Config

from inventory.config import settings

from .rate_limiter import get_rate_limiter

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
MAX_POOL_CONNECTIONS = 25


@lru_cache(maxsize=None)
def client_config(
    connect_timeout: int = settings.API_CONNECT_TIMEOUT,
    read_timeout: int = settings.API_READ_TIMEOUT,
) -> Config:
    """Shared botocore Config for the given timeouts"""
    return Config(
        retries={"max_attempts": MAX_ATTEMPTS, "mode": "adaptive"},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=MAX_POOL_CONNECTIONS,
    )


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    paced: bool = True,
    config: Config | None = None,
) -> Any:
    """Create a boto3 client for a fetcher or credential check

    Args:
        session: boto3 Session (one per fetcher; sessions are not thread-safe)
        service_name: Service name (ec2, rds, s3, ...)
        region_name: Region (session default if None)
        paced: Acquire a token from the service's rate limiter before each call
        config: Overrides merged on top of client_config()

    Returns:
        boto3 client
    """
    merged = client_config() if config is None else client_config().merge(config)
    client = session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=merged,
    )

    if paced:
        client.meta.events.register("before-call.*.*", _pacer(service_name))
    return client


def _pacer(service_name: str) -> Any:
    limiter = get_rate_limiter(service_name)

    def pace(**kwargs: Any) -> None:
        if not limiter.acquire():
            # botocore's adaptive retries take over if the provider throttles
            logger.debug(f"{service_name}: rate limiter wait timed out, calling anyway")

    return pace
