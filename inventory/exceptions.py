"""
inventory/exceptions.py - Exception hierarchy

Exception classes shared by the collector, store and query layers.

Hierarchy:
    InventoryError (base)
    ├── AuthError (credential retrieval / validation)
    │   └── AccountNotFoundError
    ├── TransientFetchError (one service fetch failed)
    ├── NormalizationAnomaly (malformed provider record)
    ├── ValidationError (malformed query filter)
    ├── MergeConflict (identifier collision at merge time)
    ├── ConfigError (invalid configuration)
    └── StoreError (unreadable inventory file)

Usage:
    from inventory.exceptions import AuthError, is_throttling

    try:
        credentials = provider.get_credentials(account)
    except AuthError as e:
        logger.warning(f"[{account.account_id}] {e}")
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Base
# =============================================================================


class InventoryError(Exception):
    """Base class for all inventory errors

    Attributes:
        message: Error message
        cause: Underlying exception (for chaining)
        details: Extra structured details
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Return the error as a serializable dict"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# Authentication
# =============================================================================


class AuthError(InventoryError):
    """Credentials for an account could not be obtained or were rejected"""

    def __init__(
        self,
        account_id: str,
        message: str,
        cause: Exception | None = None,
    ):
        super().__init__(f"Auth error [{account_id}]: {message}", cause)
        self.account_id = account_id
        self.details["account_id"] = account_id


class AccountNotFoundError(AuthError):
    """The requested account is not known to the account source"""

    def __init__(self, account_id: str):
        super().__init__(account_id, "account not found")


# =============================================================================
# Collection
# =============================================================================


class TransientFetchError(InventoryError):
    """One service fetch failed (network, timeout, throttling, ...)

    Raised by fetcher code and captured by the collector as a CollectionError;
    it never propagates past the collector.
    """

    def __init__(
        self,
        service: str,
        region: str,
        message: str,
        error_code: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"{service}/{region}: {message}", cause)
        self.service = service
        self.region = region
        self.error_code = error_code
        self.details.update({"service": service, "region": region, "error_code": error_code})


class NormalizationAnomaly(InventoryError):
    """A provider record could not be normalized and was dropped"""

    def __init__(
        self,
        resource_type: str,
        reason: str,
        record: Any = None,
    ):
        super().__init__(f"Dropped {resource_type} record: {reason}")
        self.resource_type = resource_type
        self.reason = reason
        self.record = record
        self.details.update({"resource_type": resource_type, "reason": reason})


# =============================================================================
# Store / query
# =============================================================================


class MergeConflict(InventoryError):
    """An identifier collided while merging a snapshot

    Identifiers embed account, region and type, so a collision means the
    identifier construction is broken. Never swallow this.
    """

    def __init__(
        self,
        identifier: str,
        existing_key: tuple[str, str] | None,
        incoming_key: tuple[str, str],
    ):
        if existing_key is None:
            message = f"Duplicate identifier '{identifier}' within {incoming_key[0]}/{incoming_key[1]}"
        else:
            message = (
                f"Identifier '{identifier}' owned by {existing_key[0]}/{existing_key[1]} "
                f"also reported by {incoming_key[0]}/{incoming_key[1]}"
            )
        super().__init__(message)
        self.identifier = identifier
        self.existing_key = existing_key
        self.incoming_key = incoming_key
        self.details["identifier"] = identifier


class ValidationError(InventoryError):
    """Input validation error"""

    def __init__(
        self,
        field: str,
        value: Any,
        expected: str,
        cause: Exception | None = None,
    ):
        message = f"Validation error [{field}]: expected {expected}, got {value!r}"
        super().__init__(message, cause)
        self.field = field
        self.value = value
        self.expected = expected
        self.details.update(
            {
                "field": field,
                "value": str(value),
                "expected": expected,
            }
        )


class ConfigError(InventoryError):
    """Configuration error"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Exception | None = None,
    ):
        super().__init__(f"Config error [{key}]: {message}", cause)
        self.config_key = key
        self.details["config_key"] = key


class StoreError(InventoryError):
    """The persisted inventory file could not be read"""

    def __init__(self, path: str, message: str, cause: Exception | None = None):
        super().__init__(f"Store error [{path}]: {message}", cause)
        self.path = path
        self.details["path"] = path


# =============================================================================
# Helpers
# =============================================================================

ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedAccess",
    "UnauthorizedOperation",
    "AuthFailure",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
}

THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "SlowDown",
}

NOT_FOUND_CODES = {
    "ResourceNotFoundException",
    "NotFoundException",
    "NoSuchEntity",
    "NoSuchBucket",
    "ClusterNotFoundException",
    "DBInstanceNotFound",
}


def _client_error_code(error: Exception) -> str:
    if isinstance(error, TransientFetchError):
        return error.error_code or ""
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return ""


def is_access_denied(error: Exception) -> bool:
    """Check whether the error is an access-denied / bad-credentials error"""
    return _client_error_code(error) in ACCESS_DENIED_CODES


def is_throttling(error: Exception) -> bool:
    """Check whether the error is a throttling error"""
    return _client_error_code(error) in THROTTLING_CODES


def is_not_found(error: Exception) -> bool:
    """Check whether the error is a not-found error"""
    return _client_error_code(error) in NOT_FOUND_CODES


def format_error_for_user(error: Exception) -> str:
    """Format an error for display

    Args:
        error: Exception

    Returns:
        Human-friendly message
    """
    if isinstance(error, InventoryError):
        return str(error)

    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error", {})
        code = error_info.get("Code", "UnknownError")
        message = error_info.get("Message", str(error))

        friendly_messages = {
            "AccessDenied": "Access denied. Check the IAM policy of the inventory role.",
            "ExpiredToken": "Credentials have expired. Refresh the session.",
            "InvalidClientTokenId": "Invalid credentials.",
            "Throttling": "Too many requests. The next refresh cycle will retry.",
        }

        return friendly_messages.get(code, f"{code}: {message}")

    return str(error)
