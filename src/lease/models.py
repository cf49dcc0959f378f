from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

DEFAULT_BLOB_NAME = "azblobleaseblob"

MIN_LEASE_DURATION_SECONDS = 15
MAX_LEASE_DURATION_SECONDS = 60
MIN_ACQUIRE_WAIT_SECONDS = 0
MAX_ACQUIRE_WAIT_SECONDS = 59
MIN_RENEW_WAIT_SECONDS = 1
MAX_RENEW_WAIT_SECONDS = 59


class LeaseStatus(str, Enum):
    SUCCESS = "Success"
    SUCCESS_ALREADY_EXISTS = "SuccessAlreadyExists"
    SUCCESS_ON_RENEW = "SuccessOnRenew"
    FAIL = "Fail"


class LeaseArgumentError(ValueError):
    """Raised when lease parameters are rejected before any backend call."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class LeaseTarget:
    subscription_id: str
    resource_group_name: str
    account_name: str
    container_name: str
    blob_name: str = DEFAULT_BLOB_NAME

    def __post_init__(self) -> None:
        _expect_non_empty(
            self.subscription_id,
            code="ErrInvalidArgumentMissingSubscriptionID",
            name="subscription id",
        )
        _expect_non_empty(
            self.resource_group_name,
            code="ErrInvalidArgumentMissingResourceGroupName",
            name="resource group name",
        )
        _expect_non_empty(
            self.account_name,
            code="ErrInvalidArgumentMissingAccountName",
            name="storage account name",
        )
        _expect_non_empty(
            self.container_name,
            code="ErrInvalidArgumentMissingContainer",
            name="container name",
        )
        _expect_non_empty(self.blob_name, code="ErrInvalidArgument", name="blob name")


@dataclass(frozen=True)
class LeaseOutcome:
    """What one pass through an engine component observed."""

    status: LeaseStatus
    lease_token: str | None = None
    error_message: str | None = None
    attempts: int = 0
    request_ids: tuple[str, ...] = ()


def new_lease_token() -> str:
    return str(uuid4())


def validate_lease_duration(seconds: int) -> int:
    if not MIN_LEASE_DURATION_SECONDS <= seconds <= MAX_LEASE_DURATION_SECONDS:
        raise LeaseArgumentError(
            "ErrInvalidArgumentInvalidLeaseDuration",
            f"lease duration must be between {MIN_LEASE_DURATION_SECONDS} and "
            f"{MAX_LEASE_DURATION_SECONDS} seconds, got {seconds}",
        )
    return seconds


def validate_retries(retries: int) -> int:
    if retries < 1:
        raise LeaseArgumentError(
            "ErrInvalidArgumentRetryCount",
            f"retries must be at least 1, got {retries}",
        )
    return retries


def validate_acquire_wait(seconds: int) -> int:
    if not MIN_ACQUIRE_WAIT_SECONDS <= seconds <= MAX_ACQUIRE_WAIT_SECONDS:
        raise LeaseArgumentError(
            "ErrInvalidArgumentWaitTimeAcquire",
            f"acquire wait time must be between {MIN_ACQUIRE_WAIT_SECONDS} and "
            f"{MAX_ACQUIRE_WAIT_SECONDS} seconds, got {seconds}",
        )
    return seconds


def validate_iterations(iterations: int) -> int:
    if iterations < 1:
        raise LeaseArgumentError(
            "ErrInvalidArgumentIterationsCount",
            f"iterations must be at least 1, got {iterations}",
        )
    return iterations


def validate_renew_wait(seconds: int) -> int:
    if not MIN_RENEW_WAIT_SECONDS <= seconds <= MAX_RENEW_WAIT_SECONDS:
        raise LeaseArgumentError(
            "ErrInvalidArgumentWaitTime",
            f"renew wait time must be between {MIN_RENEW_WAIT_SECONDS} and "
            f"{MAX_RENEW_WAIT_SECONDS} seconds, got {seconds}",
        )
    return seconds


def validate_lease_token(token: str | None) -> str:
    normalized = (token or "").strip()
    if not normalized:
        raise LeaseArgumentError("ErrInvalidArgumentMissingLeaseID", "lease id is required")
    return normalized


def _expect_non_empty(value: str, *, code: str, name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise LeaseArgumentError(code, f"{name} is required")
