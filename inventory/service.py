"""
inventory/service.py - Inventory facade

Wires the account source, collector, store and query engine together:

    refresh  -> collect snapshots per account and merge them into the store
    query    -> filtered, paginated reads
    summarize-> aggregate counts
    last_sync-> time of an account's last merged snapshot
    check_account -> credentials of one account verified with STS

Account-level failures (credentials, refresh deadline, merge conflict) mark
only that account as failed; its previously stored resources are kept.
"""

from __future__ import annotations

import logging
from datetime import datetime

from inventory.auth.types import AccountDescriptor, AccountSource
from inventory.collector import AccountRefresh, Collector, CollectionSnapshot, RefreshReport
from inventory.exceptions import AccountNotFoundError, MergeConflict
from inventory.parallel import TaskResult
from inventory.query import QueryEngine, QueryResult, ResourceFilter, Summary
from inventory.store import ResourceStore

logger = logging.getLogger(__name__)

ALL_ACCOUNTS = "*"


class InventoryService:
    """Multi-account resource inventory

    Example:
        service = InventoryService(YamlAccountSource("accounts.yaml"), Collector(provider), store)
        report = service.refresh()
        page = service.query(ResourceFilter(search="prod"))
    """

    def __init__(
        self,
        account_source: AccountSource,
        collector: Collector,
        store: ResourceStore | None = None,
    ):
        self.account_source = account_source
        self.collector = collector
        self.store = store if store is not None else ResourceStore()
        self.engine = QueryEngine(self.store)

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh(self, account_id: str = ALL_ACCOUNTS) -> RefreshReport:
        """Collect and merge one account, or every active account with "*"

        An explicitly named account is refreshed even when marked inactive.

        Raises:
            AccountNotFoundError: account_id is not known to the account source
        """
        accounts = self._resolve_accounts(account_id)
        if not accounts:
            logger.info("No active accounts to refresh")
            return RefreshReport()

        logger.info(f"Refreshing {len(accounts)} account(s)")
        outcomes: dict[str, AccountRefresh] = {}

        def on_result(result: TaskResult[CollectionSnapshot]) -> None:
            outcomes[result.identifier] = self._apply(result)

        self.collector.collect_all(accounts, on_result=on_result)

        report = RefreshReport(accounts=tuple(outcomes[a.account_id] for a in accounts))
        logger.info(
            f"Refresh done: {report.total_resources} resource(s), "
            f"{len(report.failed_accounts)} failed account(s), {report.error_count} error(s)"
        )
        return report

    def _resolve_accounts(self, account_id: str) -> list[AccountDescriptor]:
        if account_id == ALL_ACCOUNTS:
            return self.account_source.list_active_accounts()

        account = self.account_source.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return [account]

    def _apply(self, result: TaskResult[CollectionSnapshot]) -> AccountRefresh:
        """Merge one account's snapshot, or record why there is none"""
        account_id = result.identifier

        if not result.success or result.data is None:
            error = result.error
            message = str(error.original_exception or error.message) if error else "collection failed"
            logger.warning(f"[{account_id}] refresh failed, keeping stored data: {message}")
            return AccountRefresh(account_id=account_id, success=False, error=message)

        snapshot = result.data
        try:
            self.store.merge(snapshot)
        except MergeConflict as e:
            logger.exception(f"[{account_id}] merge rejected")
            return AccountRefresh(
                account_id=account_id,
                success=False,
                errors=snapshot.errors,
                anomalies=snapshot.anomalies,
                error=str(e),
            )

        return AccountRefresh(
            account_id=account_id,
            success=True,
            resource_count=snapshot.resource_count,
            errors=snapshot.errors,
            anomalies=snapshot.anomalies,
        )

    def check_account(self, account_id: str) -> bool:
        """Whether the account's credentials work and belong to that account

        Raises:
            AccountNotFoundError: account_id is not known to the account source
            AuthError: Credentials could not be obtained
        """
        account = self.account_source.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return self.collector.check_credentials(account)

    # =========================================================================
    # Read
    # =========================================================================

    def query(self, resource_filter: ResourceFilter | None = None) -> QueryResult:
        return self.engine.query(resource_filter)

    def summarize(self, resource_filter: ResourceFilter | None = None) -> Summary:
        return self.engine.summarize(resource_filter)

    def last_sync(self, account_id: str) -> datetime | None:
        return self.store.last_sync(account_id)
