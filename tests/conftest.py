"""
tests/conftest.py - shared pytest fixtures

Builders for resources, snapshots and accounts, plus fake fetchers that let
the collector run without touching AWS.

Usage:
    def test_something(make_resource, make_snapshot):
        snapshot = make_snapshot("111111111111", compute=[make_resource("i-1")])
"""

import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from inventory.auth import (  # noqa: E402
    AccountDescriptor,
    Credentials,
    StaticAccountSource,
    StaticCredentialProvider,
)
from inventory.collector import (  # noqa: E402
    CollectionError,
    CollectionSnapshot,
    Collector,
    CollectorConfig,
    Fetcher,
    Resource,
)
from inventory.parallel import RetryConfig, reset_rate_limiters  # noqa: E402

ACCOUNT_A = "111111111111"
ACCOUNT_B = "222222222222"
REGION = "us-east-1"

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Fake AWS credentials and fresh rate limiters for every test"""
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    for key in (
        "INVENTORY_FETCH_TIMEOUT",
        "INVENTORY_MAX_ACCOUNTS",
        "INVENTORY_REFRESH_DEADLINE",
        "INVENTORY_MAX_RETRIES",
        "LOG_LEVEL",
        "AWS_REGION",
        "AWS_PROFILE",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_rate_limiters()
    yield
    reset_rate_limiters()


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_resource():
    """Resource factory with compute defaults"""

    def _make(
        native_id: str,
        account_id: str = ACCOUNT_A,
        resource_type: str = "compute",
        region: str = REGION,
        name: str | None = None,
        status: str = "running",
        last_updated: datetime | None = None,
        **kwargs: Any,
    ) -> Resource:
        return Resource(
            identifier=f"arn:aws:test:{region}:{account_id}:{resource_type}/{native_id}",
            native_id=native_id,
            account_id=account_id,
            region=region,
            resource_type=resource_type,
            name=name or native_id,
            status=status,
            last_updated=last_updated,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_snapshot():
    """CollectionSnapshot factory

    Keyword arguments map resource types (underscores for dashes) to
    resource lists; ``failed`` lists types whose fetch failed.
    """

    def _make(
        account_id: str = ACCOUNT_A,
        collected_at: datetime = T0,
        failed: tuple[str, ...] = (),
        **resources: list[Resource],
    ) -> CollectionSnapshot:
        by_type = {key.replace("_", "-"): items for key, items in resources.items()}
        for resource_type in failed:
            by_type[resource_type] = []
        errors = tuple(
            CollectionError(service=t, region=REGION, message="boom", timestamp=collected_at) for t in failed
        )
        return CollectionSnapshot(account_id=account_id, collected_at=collected_at, resources=by_type, errors=errors)

    return _make


@pytest.fixture
def account_a():
    return AccountDescriptor(account_id=ACCOUNT_A, name="prod", region=REGION)


@pytest.fixture
def account_b():
    return AccountDescriptor(account_id=ACCOUNT_B, name="dev", region=REGION)


@pytest.fixture
def account_source(account_a, account_b):
    return StaticAccountSource([account_a, account_b])


@pytest.fixture
def credential_provider():
    creds = Credentials(access_key_id="testing", secret_access_key="testing", session_token="testing")
    return StaticCredentialProvider({ACCOUNT_A: creds, ACCOUNT_B: creds})


# =============================================================================
# Fake fetchers
# =============================================================================


class FakeFetchers:
    """Programmable fetchers for the six built-in types

    ``records[(account_id, resource_type)]`` is returned by the fetcher; an
    Exception instance there is raised instead. ``blockers`` holds Events a
    fetcher waits on before returning (used to force timeouts).
    """

    TYPES = {
        "compute": "ec2",
        "database": "rds",
        "object-store": "s3",
        "container-service": "ecs",
        "container-cluster": "eks",
        "network": "ec2",
    }

    def __init__(self):
        self.records: dict[tuple[str, str], Any] = {}
        self.blockers: dict[tuple[str, str], threading.Event] = {}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def set(self, account_id: str, resource_type: str, value: Any) -> None:
        self.records[(account_id, resource_type)] = value

    def block(self, account_id: str, resource_type: str) -> threading.Event:
        event = threading.Event()
        self.blockers[(account_id, resource_type)] = event
        return event

    def release_all(self) -> None:
        for event in self.blockers.values():
            event.set()

    def _fetch(self, resource_type: str, session: Any) -> list[dict[str, Any]]:
        account_id = session.account_id
        key = (account_id, resource_type)
        with self._lock:
            self.calls.append(key)
        blocker = self.blockers.get(key)
        if blocker is not None:
            blocker.wait(10)
        value = self.records.get(key, [])
        if isinstance(value, Exception):
            raise value
        return value

    def fetchers(self) -> list[Fetcher]:
        return [
            Fetcher(t, service, lambda session, region, t=t: self._fetch(t, session))
            for t, service in self.TYPES.items()
        ]


class _AccountSession:
    """Stand-in for a boto3 Session that only remembers its account"""

    def __init__(self, account_id: str):
        self.account_id = account_id


class FakeCredentials(Credentials):
    def create_session(self, region: str):  # type: ignore[override]
        return _AccountSession(self.access_key_id)


class FakeCredentialProvider(StaticCredentialProvider):
    """Credentials whose sessions carry the account id to FakeFetchers"""

    def __init__(self, account_ids: list[str]):
        super().__init__({a: FakeCredentials(access_key_id=a, secret_access_key="x") for a in account_ids})


@pytest.fixture
def fake_fetchers():
    fakes = FakeFetchers()
    yield fakes
    fakes.release_all()


@pytest.fixture
def make_collector(fake_fetchers):
    """Collector wired to FakeFetchers, without retries or rate limiting"""

    def _make(account_ids=(ACCOUNT_A, ACCOUNT_B), provider=None, **config: Any) -> Collector:
        config.setdefault("retry_config", RetryConfig(max_retries=0))
        config.setdefault("rate_limit", False)
        config.setdefault("fetch_timeout", 5.0)
        return Collector(
            provider or FakeCredentialProvider(list(account_ids)),
            fetchers=fake_fetchers.fetchers(),
            config=CollectorConfig(**config),
        )

    return _make


@pytest.fixture
def ec2_instance():
    """Minimal DescribeInstances record factory"""

    def _make(instance_id: str, name: str | None = None, state: str = "running") -> dict[str, Any]:
        record: dict[str, Any] = {
            "InstanceId": instance_id,
            "InstanceType": "t3.micro",
            "State": {"Name": state},
            "LaunchTime": T0 - timedelta(days=30),
        }
        if name:
            record["Tags"] = [{"Key": "Name", "Value": name}]
        return record

    return _make
