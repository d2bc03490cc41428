"""
inventory/auth/accounts.py - Account sources

    - StaticAccountSource: accounts handed in by the caller
    - YamlAccountSource: accounts read from a YAML file

Accounts file format:

    accounts:
      - account_id: "111111111111"
        name: prod
        region: us-east-1
        active: true
        credential_ref: arn:aws:iam::111111111111:role/InventoryReadOnly
      - account_id: "222222222222"
        name: dev
        credential_ref: dev-profile
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from inventory.config import get_default_region
from inventory.exceptions import ConfigError

from .types import AccountDescriptor, AccountSource

logger = logging.getLogger(__name__)

ACCOUNT_ID_PATTERN = re.compile(r"[0-9]{12}")


class StaticAccountSource(AccountSource):
    """In-memory account list"""

    def __init__(self, accounts: Iterable[AccountDescriptor]):
        self._accounts = list(accounts)

    def list_accounts(self) -> list[AccountDescriptor]:
        return list(self._accounts)


class YamlAccountSource(AccountSource):
    """Accounts from a YAML file, re-read on every call"""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def list_accounts(self) -> list[AccountDescriptor]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigError(str(self.path), "accounts file not found", cause=e) from e
        except yaml.YAMLError as e:
            raise ConfigError(str(self.path), "invalid YAML", cause=e) from e

        return parse_accounts(data, source=str(self.path))


def parse_accounts(data: Any, source: str = "accounts") -> list[AccountDescriptor]:
    """Build AccountDescriptors from parsed YAML/JSON data

    Raises:
        ConfigError: Structure is invalid or an account id repeats
    """
    if not isinstance(data, dict) or not isinstance(data.get("accounts", []), list):
        raise ConfigError(source, "expected a mapping with an 'accounts' list")

    default_region = get_default_region()
    accounts: list[AccountDescriptor] = []
    seen: set[str] = set()

    for index, entry in enumerate(data.get("accounts", [])):
        if not isinstance(entry, dict):
            raise ConfigError(f"{source}[{index}]", "account entry must be a mapping")

        raw_id = entry.get("account_id")
        if raw_id is None or raw_id == "":
            raise ConfigError(f"{source}[{index}]", "account_id is required")
        # YAML 1.1 reads unquoted ids as ints; a leading zero makes them octal
        account_id = str(raw_id).strip()
        if isinstance(raw_id, bool) or not ACCOUNT_ID_PATTERN.fullmatch(account_id):
            raise ConfigError(
                f"{source}[{index}]",
                f"account_id must be 12 digits, got {account_id!r} (quote the account id)",
            )
        if account_id in seen:
            raise ConfigError(f"{source}[{index}]", f"duplicate account_id {account_id}")
        seen.add(account_id)

        accounts.append(
            AccountDescriptor(
                account_id=account_id,
                name=str(entry.get("name", "")),
                region=str(entry.get("region") or default_region),
                is_active=bool(entry.get("active", True)),
                credential_ref=entry.get("credential_ref"),
                external_id=entry.get("external_id"),
            )
        )

    logger.debug(f"Loaded {len(accounts)} account(s) from {source}")
    return accounts
