"""
inventory/collector/collector.py - Account collector

Runs every registered fetcher for an account concurrently, isolates their
failures and normalizes what came back into a CollectionSnapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from inventory.auth.provider import validate_credentials
from inventory.auth.types import AccountDescriptor, CredentialProvider
from inventory.config import get_env_float, get_env_int, settings
from inventory.exceptions import ConfigError, NormalizationAnomaly, TransientFetchError
from inventory.parallel import (
    ParallelConfig,
    ParallelExecutionResult,
    ParallelExecutor,
    RetryConfig,
    TaskResult,
    TaskSpec,
    get_rate_limiter,
)

from .fetchers import Fetcher, default_fetchers
from .normalizer import FIELD_MAPS, normalize
from .types import CollectionError, CollectionSnapshot, DroppedRecord, Resource

logger = logging.getLogger(__name__)


@dataclass
class CollectorConfig:
    """Collector settings

    Attributes:
        fetch_timeout: Seconds each fetcher gets before it counts as failed
        max_account_workers: Accounts collected at the same time
        refresh_deadline: Seconds for a whole collect_all; accounts still
            running afterwards are reported as failed. None disables it.
        retry_config: In-cycle retries for throttling / network errors
        rate_limit: Pace fetcher calls with per-service token buckets
    """

    fetch_timeout: float = settings.FETCH_TIMEOUT_SECONDS
    max_account_workers: int = settings.MAX_ACCOUNT_WORKERS
    refresh_deadline: float | None = None
    retry_config: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=settings.MAX_RETRIES))
    rate_limit: bool = True

    @classmethod
    def from_env(cls) -> CollectorConfig:
        """INVENTORY_FETCH_TIMEOUT, INVENTORY_MAX_ACCOUNTS, INVENTORY_REFRESH_DEADLINE, INVENTORY_MAX_RETRIES"""
        return cls(
            fetch_timeout=get_env_float("INVENTORY_FETCH_TIMEOUT", settings.FETCH_TIMEOUT_SECONDS)
            or settings.FETCH_TIMEOUT_SECONDS,
            max_account_workers=get_env_int("INVENTORY_MAX_ACCOUNTS", settings.MAX_ACCOUNT_WORKERS),
            refresh_deadline=get_env_float("INVENTORY_REFRESH_DEADLINE"),
            retry_config=RetryConfig(max_retries=get_env_int("INVENTORY_MAX_RETRIES", settings.MAX_RETRIES)),
        )


class Collector:
    """Collects CollectionSnapshots for accounts

    Two levels of concurrency:
    - fetchers within one account all run at once, each with its own timeout
      and failure domain
    - accounts run concurrently up to config.max_account_workers

    Example:
        collector = Collector(ChainCredentialProvider())
        snapshot = collector.collect(account)
        for error in snapshot.errors:
            print(error)
    """

    def __init__(
        self,
        credential_provider: CredentialProvider,
        fetchers: Sequence[Fetcher] | None = None,
        config: CollectorConfig | None = None,
    ):
        """Initialize collector

        Args:
            credential_provider: Resolves accounts to credentials
            fetchers: Fetchers to run (default_fetchers() if None)
            config: Collector settings (defaults if None)

        Raises:
            ConfigError: Two fetchers share a type, or a type has no field map
        """
        self._credential_provider = credential_provider
        self._fetchers = list(fetchers) if fetchers is not None else default_fetchers()
        self.config = config or CollectorConfig()

        seen: set[str] = set()
        for fetcher in self._fetchers:
            if fetcher.resource_type in seen:
                raise ConfigError("fetchers", f"more than one fetcher for {fetcher.resource_type}")
            if fetcher.resource_type not in FIELD_MAPS:
                raise ConfigError("fetchers", f"no field map registered for {fetcher.resource_type}")
            seen.add(fetcher.resource_type)

    @property
    def resource_types(self) -> list[str]:
        return [f.resource_type for f in self._fetchers]

    def check_credentials(self, account: AccountDescriptor) -> bool:
        """Resolve the account's credentials and confirm them with STS

        Raises:
            AuthError: Credentials could not be obtained
        """
        credentials = self._credential_provider.get_credentials(account)
        return validate_credentials(credentials, account.region, expected_account_id=account.account_id)

    # =========================================================================
    # Single account
    # =========================================================================

    def collect(self, account: AccountDescriptor) -> CollectionSnapshot:
        """Collect one account's resources in its primary region

        Fetcher failures (including timeouts) become CollectionErrors with an
        empty result for that type; they never fail the snapshot.

        Raises:
            AuthError: Credentials could not be obtained
        """
        credentials = self._credential_provider.get_credentials(account)
        region = account.region

        def make_task(fetcher: Fetcher) -> TaskSpec[list[dict[str, Any]]]:
            # boto3 sessions are not thread-safe; one per fetcher
            return TaskSpec(
                identifier=fetcher.resource_type,
                region=region,
                func=lambda: _run_fetcher(fetcher, credentials.create_session(region), region),
                rate_limiter=get_rate_limiter(fetcher.service) if self.config.rate_limit else None,
            )

        executor = ParallelExecutor(
            ParallelConfig(
                max_workers=max(len(self._fetchers), 1),
                timeout=self.config.fetch_timeout,
                retry_config=self.config.retry_config,
                name=f"fetch-{account.account_id}",
            )
        )
        result = executor.execute([make_task(f) for f in self._fetchers])

        resources: dict[str, tuple[Resource, ...]] = {}
        errors: list[CollectionError] = []
        anomalies: list[DroppedRecord] = []

        for task_result in result.results:
            resource_type = task_result.identifier
            if not task_result.success or task_result.error is not None:
                resources[resource_type] = ()
                errors.append(self._to_collection_error(task_result))
                continue

            items, dropped = self._normalize_all(task_result.data, account, resource_type)
            resources[resource_type] = items
            anomalies.extend(dropped)

        snapshot = CollectionSnapshot(
            account_id=account.account_id,
            collected_at=datetime.now(timezone.utc),
            resources=resources,
            errors=tuple(errors),
            anomalies=tuple(anomalies),
        )
        logger.info(
            f"[{account.account_id}] collected {snapshot.resource_count} resource(s), "
            f"{len(errors)} service error(s), {len(anomalies)} dropped record(s)"
        )
        return snapshot

    def _to_collection_error(self, task_result: TaskResult[Any]) -> CollectionError:
        error = task_result.error
        assert error is not None
        logger.warning(f"Fetch failed {error}")
        return CollectionError(
            service=task_result.identifier,
            region=task_result.region,
            message=error.message,
            timestamp=error.timestamp,
            category=error.category,
            error_code=error.error_code,
        )

    def _normalize_all(
        self,
        records: Sequence[dict[str, Any]],
        account: AccountDescriptor,
        resource_type: str,
    ) -> tuple[tuple[Resource, ...], list[DroppedRecord]]:
        """Normalize fetched records, dropping (and logging) malformed ones"""
        items: list[Resource] = []
        dropped: list[DroppedRecord] = []

        for record in records:
            try:
                items.append(normalize(record, account.account_id, account.region, resource_type))
            except NormalizationAnomaly as e:
                logger.warning(f"[{account.account_id}] {e}")
                dropped.append(DroppedRecord(resource_type=resource_type, region=account.region, reason=e.reason))

        return tuple(items), dropped

    # =========================================================================
    # Many accounts
    # =========================================================================

    def collect_all(
        self,
        accounts: Iterable[AccountDescriptor],
        on_result: Callable[[TaskResult[CollectionSnapshot]], None] | None = None,
    ) -> ParallelExecutionResult[CollectionSnapshot]:
        """Collect many accounts concurrently

        Args:
            accounts: Accounts to collect
            on_result: Called on the calling thread as each account finishes

        Returns:
            One TaskResult per account (identifier = account id). Failed
            results carry the credential error, or a TIMEOUT error for
            accounts still running at the refresh deadline.
        """
        accounts = list(accounts)
        tasks = [
            TaskSpec(identifier=account.account_id, region=account.region, func=self._bind_collect(account))
            for account in accounts
        ]

        executor = ParallelExecutor(
            ParallelConfig(
                max_workers=max(self.config.max_account_workers, 1),
                timeout=self.config.refresh_deadline,
                name="collect",
            )
        )
        result = executor.execute(tasks, on_result=on_result)

        if result.error_count:
            logger.warning(result.get_error_summary())
        return result

    def _bind_collect(self, account: AccountDescriptor) -> Callable[[], CollectionSnapshot]:
        return lambda: self.collect(account)


def _run_fetcher(fetcher: Fetcher, session: Any, region: str) -> list[dict[str, Any]]:
    """Call a fetcher and check it returned a record list

    Raises:
        TransientFetchError: The fetcher returned something other than a
            list or tuple (None, a raw response dict, ...). The type then
            counts as failed and its stored partition is kept.
    """
    records = fetcher(session, region)
    if not isinstance(records, (list, tuple)):
        raise TransientFetchError(
            fetcher.resource_type,
            region,
            f"malformed response: expected a list of records, got {type(records).__name__}",
            error_code="MalformedResponse",
        )
    return list(records)
