"""
inventory/auth - Accounts and credentials

The collector never stores credentials; it asks an injected
CredentialProvider for them on every refresh.

Usage:
    from inventory.auth import ChainCredentialProvider, YamlAccountSource

    accounts = YamlAccountSource("accounts.yaml").list_active_accounts()
    provider = ChainCredentialProvider()
    credentials = provider.get_credentials(accounts[0])
"""

from .accounts import StaticAccountSource, YamlAccountSource, parse_accounts
from .provider import (
    AssumeRoleCredentialProvider,
    ChainCredentialProvider,
    ProfileCredentialProvider,
    StaticCredentialProvider,
    validate_credentials,
)
from .types import AccountDescriptor, AccountSource, CredentialProvider, Credentials

__all__ = [
    # Types
    "AccountDescriptor",
    "AccountSource",
    "CredentialProvider",
    "Credentials",
    # Account sources
    "StaticAccountSource",
    "YamlAccountSource",
    "parse_accounts",
    # Credential providers
    "StaticCredentialProvider",
    "ProfileCredentialProvider",
    "AssumeRoleCredentialProvider",
    "ChainCredentialProvider",
    "validate_credentials",
]
