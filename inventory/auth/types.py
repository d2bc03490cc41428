"""
inventory/auth/types.py - Account and credential types

Contents:
    - AccountDescriptor: one configured cloud account
    - Credentials: a usable credential set for one account
    - CredentialProvider: interface resolving an account to Credentials
    - AccountSource: interface listing the accounts to inventory
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountDescriptor:
    """A configured cloud account

    Attributes:
        account_id: Provider account id (12 digits for AWS)
        name: Display name
        region: Primary region, where fetchers run
        is_active: Inactive accounts are never collected
        credential_ref: Opaque reference handed to the CredentialProvider
            (role ARN, profile name, ...). Never a secret.
        external_id: Optional external id for role assumption
    """

    account_id: str
    name: str = ""
    region: str = "us-east-1"
    is_active: bool = True
    credential_ref: str | None = None
    external_id: str | None = None

    def __post_init__(self):
        if not self.account_id:
            raise ValueError("account_id is required")
        if len(self.account_id) != 12 or not self.account_id.isdigit():
            logger.warning("Unusual AWS account id: '%s' (expected 12 digits)", self.account_id)
        if not self.name:
            object.__setattr__(self, "name", f"account-{self.account_id}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "name": self.name,
            "region": self.region,
            "is_active": self.is_active,
            "credential_ref": self.credential_ref,
        }


@dataclass(frozen=True)
class Credentials:
    """A credential set scoped to one account"""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    expiration: datetime | None = None

    def create_session(self, region: str) -> boto3.Session:
        """Build a boto3 Session from these credentials"""
        import boto3

        return boto3.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token,
            region_name=region,
        )


class CredentialProvider(ABC):
    """Resolves an account to usable credentials

    Implementations own their storage and lifecycle; the collector only calls
    get_credentials() and never persists what it receives.
    """

    @abstractmethod
    def get_credentials(self, account: AccountDescriptor) -> Credentials:
        """Return credentials for the account

        Raises:
            AuthError: Credentials are missing, expired or rejected
        """

    def close(self) -> None:
        """Release cached credentials"""


class AccountSource(ABC):
    """Lists accounts known to the inventory"""

    @abstractmethod
    def list_accounts(self) -> list[AccountDescriptor]:
        """All configured accounts, active or not"""

    def list_active_accounts(self) -> list[AccountDescriptor]:
        """Accounts eligible for collection"""
        return [a for a in self.list_accounts() if a.is_active]

    def get_account(self, account_id: str) -> AccountDescriptor | None:
        for account in self.list_accounts():
            if account.account_id == account_id:
                return account
        return None
