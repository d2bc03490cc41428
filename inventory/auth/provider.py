"""
inventory/auth/provider.py - Credential providers

Implementations:
    - StaticCredentialProvider: injected account_id -> Credentials mapping
    - ProfileCredentialProvider: local named profiles (credential_ref = profile)
    - AssumeRoleCredentialProvider: STS AssumeRole (credential_ref = role ARN)
    - ChainCredentialProvider: role ARNs via AssumeRole, everything else via profiles

validate_credentials() checks a credential set with STS GetCallerIdentity.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from inventory.exceptions import AuthError
from inventory.parallel.client import get_client

from .types import AccountDescriptor, CredentialProvider, Credentials

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

ROLE_SESSION_NAME = "cloud-inventory"
# refresh assumed credentials this long before they expire
EXPIRY_MARGIN = timedelta(minutes=5)


class StaticCredentialProvider(CredentialProvider):
    """Credentials handed in by the caller, keyed by account id"""

    def __init__(self, credentials: Mapping[str, Credentials]):
        self._credentials = dict(credentials)

    def get_credentials(self, account: AccountDescriptor) -> Credentials:
        credentials = self._credentials.get(account.account_id)
        if credentials is None:
            raise AuthError(account.account_id, "no credentials configured")
        return credentials

    def close(self) -> None:
        self._credentials.clear()


class ProfileCredentialProvider(CredentialProvider):
    """Credentials from a local named profile

    The account's credential_ref names the profile; without one the default
    credential chain is used.
    """

    def get_credentials(self, account: AccountDescriptor) -> Credentials:
        import boto3

        profile = account.credential_ref or None
        try:
            session = boto3.Session(profile_name=profile, region_name=account.region)
            resolved = session.get_credentials()
        except (ProfileNotFound, BotoCoreError) as e:
            raise AuthError(account.account_id, f"profile '{profile}' unusable", cause=e) from e

        if resolved is None:
            raise AuthError(account.account_id, f"no credentials found for profile '{profile or 'default'}'")

        frozen = resolved.get_frozen_credentials()
        return Credentials(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token,
        )


class AssumeRoleCredentialProvider(CredentialProvider):
    """Temporary credentials via STS AssumeRole

    Assumed credentials are cached per role until shortly before they expire.
    """

    def __init__(
        self,
        base_session: boto3.Session | None = None,
        duration_seconds: int = 3600,
        session_name: str = ROLE_SESSION_NAME,
    ):
        self._base_session = base_session
        self._duration_seconds = duration_seconds
        self._session_name = session_name
        self._cache: dict[str, Credentials] = {}
        self._lock = threading.Lock()

    def _get_base_session(self) -> boto3.Session:
        if self._base_session is None:
            import boto3

            self._base_session = boto3.Session()
        return self._base_session

    def get_credentials(self, account: AccountDescriptor) -> Credentials:
        role_arn = account.credential_ref
        if not role_arn:
            raise AuthError(account.account_id, "no role ARN configured")

        with self._lock:
            cached = self._cache.get(role_arn)
        if cached is not None and not _is_expiring(cached):
            return cached

        params = {
            "RoleArn": role_arn,
            "RoleSessionName": self._session_name,
            "DurationSeconds": self._duration_seconds,
        }
        if account.external_id:
            params["ExternalId"] = account.external_id

        try:
            sts = get_client(self._get_base_session(), "sts", region_name=account.region)
            response = sts.assume_role(**params)
        except (ClientError, BotoCoreError) as e:
            raise AuthError(account.account_id, f"cannot assume {role_arn}", cause=e) from e

        data = response["Credentials"]
        credentials = Credentials(
            access_key_id=data["AccessKeyId"],
            secret_access_key=data["SecretAccessKey"],
            session_token=data.get("SessionToken"),
            expiration=data.get("Expiration"),
        )
        with self._lock:
            self._cache[role_arn] = credentials
        logger.debug(f"[{account.account_id}] assumed {role_arn}")
        return credentials

    def close(self) -> None:
        with self._lock:
            self._cache.clear()


class ChainCredentialProvider(CredentialProvider):
    """Role ARNs go through AssumeRole, anything else is a profile name"""

    def __init__(
        self,
        assume_role: AssumeRoleCredentialProvider | None = None,
        profile: ProfileCredentialProvider | None = None,
    ):
        self._assume_role = assume_role or AssumeRoleCredentialProvider()
        self._profile = profile or ProfileCredentialProvider()

    def get_credentials(self, account: AccountDescriptor) -> Credentials:
        ref = account.credential_ref or ""
        if ref.startswith("arn:") and ":role/" in ref:
            return self._assume_role.get_credentials(account)
        return self._profile.get_credentials(account)

    def close(self) -> None:
        self._assume_role.close()
        self._profile.close()


def _is_expiring(credentials: Credentials) -> bool:
    if credentials.expiration is None:
        return False
    expiration = credentials.expiration
    if expiration.tzinfo is None:
        expiration = expiration.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) + EXPIRY_MARGIN >= expiration


def validate_credentials(credentials: Credentials, region: str, expected_account_id: str | None = None) -> bool:
    """Check credentials with STS GetCallerIdentity

    Args:
        credentials: Credential set to check
        region: Region for the STS call
        expected_account_id: If given, the identity must belong to this account

    Returns:
        True if the credentials are accepted (and match the account)
    """
    try:
        sts = get_client(credentials.create_session(region), "sts", region_name=region)
        identity = sts.get_caller_identity()
    except (ClientError, BotoCoreError) as e:
        logger.warning(f"Credential validation failed: {e}")
        return False

    if expected_account_id and identity.get("Account") != expected_account_id:
        logger.warning(f"Credentials belong to {identity.get('Account')}, expected {expected_account_id}")
        return False
    return True
