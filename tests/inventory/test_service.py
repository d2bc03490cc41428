"""
tests/inventory/test_service.py - InventoryService refresh / query / summarize
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from inventory import InventoryService, ResourceFilter, ResourceStore
from inventory.auth import AccountDescriptor, StaticAccountSource
from inventory.exceptions import AccountNotFoundError, AuthError

ACCOUNT_A = "111111111111"
ACCOUNT_B = "222222222222"


@pytest.fixture
def make_service(make_collector, account_source):
    def _make(source=None, store=None, **collector_kwargs):
        return InventoryService(
            source or account_source,
            make_collector(**collector_kwargs),
            store if store is not None else ResourceStore(),
        )

    return _make


def native_ids(result):
    return sorted(r.native_id for r in result.resources)


class TestRefresh:
    """InventoryService.refresh"""

    def test_stale_instance_is_removed(self, make_service, fake_fetchers, ec2_instance):
        service = make_service()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1"), ec2_instance("i-2"), ec2_instance("i-3")])
        service.refresh(ACCOUNT_A)

        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1"), ec2_instance("i-2")])
        report = service.refresh(ACCOUNT_A)

        assert report.get(ACCOUNT_A).success is True
        result = service.query(ResourceFilter(account_ids={ACCOUNT_A}, resource_types={"compute"}))
        assert native_ids(result) == ["i-1", "i-2"]
        assert all(r.region == "us-east-1" for r in result.resources)

    def test_timed_out_type_keeps_previous_data(self, make_service, fake_fetchers, ec2_instance):
        service = make_service(fetch_timeout=0.3)
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1")])
        fake_fetchers.set(ACCOUNT_A, "database", [{"DBInstanceIdentifier": "orders", "DBInstanceStatus": "available"}])
        service.refresh(ACCOUNT_A)

        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1"), ec2_instance("i-2")])
        fake_fetchers.block(ACCOUNT_A, "database")
        report = service.refresh(ACCOUNT_A)

        outcome = report.get(ACCOUNT_A)
        assert outcome.success is True
        assert [e.service for e in outcome.errors] == ["database"]
        assert native_ids(service.query(ResourceFilter(resource_types={"compute"}))) == ["i-1", "i-2"]
        assert native_ids(service.query(ResourceFilter(resource_types={"database"}))) == ["orders"]

    @pytest.mark.parametrize("response", [None, {"Reservations": "garbage"}])
    def test_malformed_response_keeps_previous_data(self, make_service, fake_fetchers, ec2_instance, response):
        service = make_service()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1"), ec2_instance("i-2")])
        service.refresh(ACCOUNT_A)

        fake_fetchers.set(ACCOUNT_A, "compute", response)
        outcome = service.refresh(ACCOUNT_A).get(ACCOUNT_A)

        assert [e.error_code for e in outcome.errors] == ["MalformedResponse"]
        assert native_ids(service.query(ResourceFilter(resource_types={"compute"}))) == ["i-1", "i-2"]

    def test_search_across_accounts_by_recency(self, make_service, fake_fetchers, ec2_instance):
        service = make_service()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-a", name="web-prod")])
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-b", name="staging")])
        fake_fetchers.set(ACCOUNT_B, "database", [{"DBInstanceIdentifier": "prod-db"}])
        service.refresh(ACCOUNT_A)
        service.refresh(ACCOUNT_B)

        result = service.query(ResourceFilter(search="PROD"))

        assert [r.native_id for r in result.resources] == ["prod-db", "i-a"]
        assert result.resources[0].last_updated > result.resources[1].last_updated

    def test_all_accounts(self, make_service, fake_fetchers, ec2_instance):
        service = make_service()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-a")])
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-b")])

        report = service.refresh()

        assert [a.account_id for a in report.accounts] == [ACCOUNT_A, ACCOUNT_B]
        assert report.total_resources == 2
        assert report.failed_accounts == []

    def test_inactive_accounts_skipped_unless_named(self, make_service, fake_fetchers, ec2_instance):
        source = StaticAccountSource(
            [AccountDescriptor(account_id=ACCOUNT_A), AccountDescriptor(account_id=ACCOUNT_B, is_active=False)]
        )
        service = make_service(source=source)
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-b")])

        assert [a.account_id for a in service.refresh().accounts] == [ACCOUNT_A]
        assert service.refresh(ACCOUNT_B).get(ACCOUNT_B).resource_count == 1

    def test_no_active_accounts(self, make_service):
        report = make_service(source=StaticAccountSource([])).refresh()
        assert report.accounts == ()

    def test_unknown_account(self, make_service):
        with pytest.raises(AccountNotFoundError):
            make_service().refresh("999999999999")

    def test_auth_failure_keeps_data_and_other_accounts(self, make_service, make_collector, fake_fetchers, ec2_instance):
        store = ResourceStore()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-a")])
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-b")])
        make_service(store=store).refresh()

        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-b2")])
        # credentials for A are gone
        report = make_service(store=store, account_ids=[ACCOUNT_B]).refresh()

        failed = report.get(ACCOUNT_A)
        assert failed.success is False
        assert "no credentials" in failed.error
        assert report.get(ACCOUNT_B).success is True
        assert sorted(r.native_id for r in store.resources()) == ["i-a", "i-b2"]

    def test_merge_conflict_is_reported(self, make_service, fake_fetchers, caplog):
        service = make_service()
        # bucket identifiers are global, so one bucket reported by two accounts collides
        fake_fetchers.set(ACCOUNT_A, "object-store", [{"Name": "shared-bucket"}])
        fake_fetchers.set(ACCOUNT_B, "object-store", [{"Name": "shared-bucket"}, {"Name": "b-only"}])
        service.refresh(ACCOUNT_A)

        with caplog.at_level(logging.ERROR, logger="inventory.service"):
            report = service.refresh(ACCOUNT_B)

        outcome = report.get(ACCOUNT_B)
        assert outcome.success is False
        assert "shared-bucket" in outcome.error
        assert any(record.levelno == logging.ERROR for record in caplog.records)
        # nothing from the rejected snapshot was stored
        assert service.query(ResourceFilter(account_ids={ACCOUNT_B})).total == 0

    def test_report_to_dict(self, make_service, fake_fetchers, ec2_instance):
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-a"), {"bogus": True}])

        data = make_service().refresh(ACCOUNT_A).to_dict()

        account = data["accounts"][0]
        assert account["account_id"] == ACCOUNT_A
        assert account["success"] is True
        assert account["resource_count"] == 1
        assert account["anomalies"][0]["resource_type"] == "compute"


class TestCheckAccount:
    """InventoryService.check_account"""

    def _sts(self, account_id):
        sts = MagicMock()
        sts.get_caller_identity.return_value = {"Account": account_id}
        return sts

    def test_valid(self, make_service):
        with patch("inventory.auth.provider.get_client", return_value=self._sts(ACCOUNT_A)):
            assert make_service().check_account(ACCOUNT_A) is True

    def test_credentials_for_another_account(self, make_service):
        with patch("inventory.auth.provider.get_client", return_value=self._sts(ACCOUNT_B)):
            assert make_service().check_account(ACCOUNT_A) is False

    def test_missing_credentials(self, make_service):
        with pytest.raises(AuthError, match="no credentials"):
            make_service(account_ids=[ACCOUNT_B]).check_account(ACCOUNT_A)

    def test_unknown_account(self, make_service):
        with pytest.raises(AccountNotFoundError):
            make_service().check_account("999999999999")


class TestReads:
    """query / summarize / last_sync"""

    def test_last_sync(self, make_service, fake_fetchers):
        service = make_service()
        assert service.last_sync(ACCOUNT_A) is None

        service.refresh(ACCOUNT_A)

        assert service.last_sync(ACCOUNT_A) is not None
        assert service.last_sync(ACCOUNT_B) is None

    def test_summarize(self, make_service, fake_fetchers, ec2_instance):
        service = make_service()
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1"), ec2_instance("i-2", state="stopped")])
        fake_fetchers.set(ACCOUNT_A, "network", [{"VpcId": "vpc-1", "State": "available"}])
        service.refresh(ACCOUNT_A)

        summary = service.summarize()

        assert summary.total == 3
        assert [(g.key, g.count) for g in summary.by_type] == [("compute", 2), ("network", 1)]
