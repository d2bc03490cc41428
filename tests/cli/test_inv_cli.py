"""
tests/cli/test_inv_cli.py - inv refresh / check / query / summary
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cli.app import cli
from inventory.store import ResourceStore

ACCOUNT_A = "111111111111"
ACCOUNT_B = "222222222222"

ACCOUNTS_YAML = f"""
accounts:
  - account_id: "{ACCOUNT_A}"
    name: prod
    region: us-east-1
  - account_id: "{ACCOUNT_B}"
    name: dev
    region: us-east-1
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def files(tmp_path):
    accounts = tmp_path / "accounts.yaml"
    accounts.write_text(ACCOUNTS_YAML, encoding="utf-8")
    return {"accounts": str(accounts), "store": str(tmp_path / "inventory.json")}


@pytest.fixture
def stored(files, make_resource, make_snapshot):
    """Store file with three resources across two accounts"""
    store = ResourceStore()
    store.merge(
        make_snapshot(
            ACCOUNT_A,
            compute=[make_resource("i-web", name="web-prod"), make_resource("i-batch", status="stopped")],
        )
    )
    store.merge(make_snapshot(ACCOUNT_B, database=[make_resource("db", account_id=ACCOUNT_B, resource_type="database")]))
    store.save(files["store"])
    return files


@pytest.fixture
def fake_collector(monkeypatch, make_collector):
    """Route `inv refresh` and `inv check` through FakeFetchers"""
    monkeypatch.setattr("cli.app.Collector", lambda provider, config: make_collector())


class TestCLI:
    """cli group"""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "inv" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("refresh", "check", "query", "summary"):
            assert command in result.output


class TestRefreshCommand:
    """inv refresh"""

    def test_refresh_all_saves_store(self, runner, files, fake_collector, fake_fetchers, ec2_instance):
        fake_fetchers.set(ACCOUNT_A, "compute", [ec2_instance("i-1")])
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-2")])

        result = runner.invoke(
            cli, ["refresh", "--accounts", files["accounts"], "--store", files["store"], "--json"]
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert [a["account_id"] for a in report["accounts"]] == [ACCOUNT_A, ACCOUNT_B]
        assert len(ResourceStore.load(files["store"])) == 2

    def test_refresh_one_account(self, runner, files, fake_collector, fake_fetchers, ec2_instance):
        fake_fetchers.set(ACCOUNT_B, "compute", [ec2_instance("i-2")])

        result = runner.invoke(cli, ["refresh", ACCOUNT_B, "--accounts", files["accounts"], "--store", files["store"]])

        assert result.exit_code == 0, result.output
        assert [r.account_id for r in ResourceStore.load(files["store"]).resources()] == [ACCOUNT_B]

    def test_unknown_account(self, runner, files, fake_collector):
        result = runner.invoke(
            cli, ["refresh", "999999999999", "--accounts", files["accounts"], "--store", files["store"]]
        )

        assert result.exit_code == 1
        assert "999999999999" in result.output

    def test_failed_account_exits_nonzero(self, runner, files, monkeypatch, make_collector):
        monkeypatch.setattr("cli.app.Collector", lambda provider, config: make_collector(account_ids=[ACCOUNT_A]))

        result = runner.invoke(
            cli, ["refresh", "--accounts", files["accounts"], "--store", files["store"], "--json"]
        )

        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert [a["success"] for a in report["accounts"]] == [True, False]

    def test_missing_accounts_file(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["refresh", "--accounts", str(tmp_path / "nope.yaml"), "--store", str(tmp_path / "s.json")]
        )

        assert result.exit_code == 1
        assert "Config error" in result.output


class TestCheckCommand:
    """inv check"""

    def _sts(self, account_id):
        sts = MagicMock()
        sts.get_caller_identity.return_value = {"Account": account_id}
        return sts

    def test_valid(self, runner, files, fake_collector):
        with patch("inventory.auth.provider.get_client", return_value=self._sts(ACCOUNT_A)):
            result = runner.invoke(cli, ["check", ACCOUNT_A, "--accounts", files["accounts"]])

        assert result.exit_code == 0, result.output
        assert "credentials OK" in result.output

    def test_wrong_account(self, runner, files, fake_collector):
        with patch("inventory.auth.provider.get_client", return_value=self._sts(ACCOUNT_B)):
            result = runner.invoke(cli, ["check", ACCOUNT_A, "--accounts", files["accounts"]])

        assert result.exit_code == 1

    def test_unknown_account(self, runner, files, fake_collector):
        result = runner.invoke(cli, ["check", "999999999999", "--accounts", files["accounts"]])

        assert result.exit_code == 1
        assert "account not found" in result.output


class TestQueryCommand:
    """inv query"""

    def test_json_output(self, runner, stored):
        result = runner.invoke(cli, ["query", "--store", stored["store"], "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["pagination"] == {"total": 3, "limit": 100, "offset": 0, "has_more": False}

    def test_filters(self, runner, stored):
        result = runner.invoke(
            cli, ["query", "--store", stored["store"], "-a", ACCOUNT_A, "-s", "running", "-s", "stopped", "--json"]
        )

        data = json.loads(result.stdout)
        assert sorted(r["native_id"] for r in data["resources"]) == ["i-batch", "i-web"]

    def test_search_and_paging(self, runner, stored):
        result = runner.invoke(cli, ["query", "--store", stored["store"], "--search", "WEB", "--limit", "1", "--json"])

        data = json.loads(result.stdout)
        assert [r["name"] for r in data["resources"]] == ["web-prod"]
        assert data["pagination"]["has_more"] is False

    def test_table_output(self, runner, stored):
        result = runner.invoke(cli, ["query", "--store", stored["store"], "--limit", "2"])

        assert result.exit_code == 0, result.output
        assert "1-2 of 3" in result.output

    def test_invalid_limit(self, runner, stored):
        result = runner.invoke(cli, ["query", "--store", stored["store"], "--limit", "5000"])

        assert result.exit_code == 1
        assert "limit" in result.output

    def test_empty_store(self, runner, tmp_path):
        result = runner.invoke(cli, ["query", "--store", str(tmp_path / "none.json"), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["pagination"]["total"] == 0

    def test_corrupt_store(self, runner, tmp_path):
        path = tmp_path / "inventory.json"
        path.write_text("{oops", encoding="utf-8")

        result = runner.invoke(cli, ["query", "--store", str(path)])

        assert result.exit_code == 1


class TestSummaryCommand:
    """inv summary"""

    def test_json_output(self, runner, stored):
        result = runner.invoke(cli, ["summary", "--store", stored["store"], "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["total"] == 3
        assert data["by_type"] == [{"key": "compute", "count": 2}, {"key": "database", "count": 1}]

    def test_filtered(self, runner, stored):
        result = runner.invoke(cli, ["summary", "--store", stored["store"], "-t", "database", "--json"])

        assert json.loads(result.stdout)["total"] == 1

    def test_table_output(self, runner, stored):
        result = runner.invoke(cli, ["summary", "--store", stored["store"]])

        assert result.exit_code == 0
        assert "Total:" in result.output
