from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Mapping

from .models import LeaseOutcome, LeaseStatus, LeaseTarget

RESULT_FIELDS = ("operation", "leaseId", "status", "errorMessage")


class ResultFormatError(ValueError):
    """Raised when a serialized result cannot be parsed back."""


@dataclass(frozen=True)
class OperationResult:
    operation: str | None
    status: str | None
    lease_id: str | None = None
    error_message: str | None = None
    subscription_id: str | None = None
    resource_group_name: str | None = None
    storage_account_name: str | None = None
    container_name: str | None = None
    blob_name: str | None = None

    @property
    def echoes_target(self) -> bool:
        return any(
            value is not None
            for value in (
                self.subscription_id,
                self.resource_group_name,
                self.storage_account_name,
                self.container_name,
                self.blob_name,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "operation": self.operation,
            "leaseId": self.lease_id,
            "status": self.status,
            "errorMessage": self.error_message,
        }
        if self.echoes_target:
            payload.update(
                {
                    "subscriptionId": self.subscription_id,
                    "resourceGroupName": self.resource_group_name,
                    "storageAccountName": self.storage_account_name,
                    "containerName": self.container_name,
                    "blobName": self.blob_name,
                }
            )
        return {key: _none_if_empty(value) for key, value in payload.items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)


class ResultReporter:
    """Turn engine outcomes into the one result record a command emits.

    A failed result never carries a lease id and a successful one never
    carries an error message.
    """

    def __init__(self, *, echo_target: bool = True) -> None:
        self.echo_target = echo_target

    def render(
        self,
        operation: str,
        outcome: LeaseOutcome,
        target: LeaseTarget | None = None,
    ) -> OperationResult:
        status = outcome.status
        lease_id = _none_if_empty(outcome.lease_token)
        error_message = _none_if_empty(_strip_quotes(outcome.error_message))

        if status is LeaseStatus.FAIL:
            lease_id = None
        else:
            error_message = None

        coordinates: dict[str, str | None] = {}
        if self.echo_target and target is not None:
            coordinates = {
                "subscription_id": target.subscription_id,
                "resource_group_name": target.resource_group_name,
                "storage_account_name": target.account_name,
                "container_name": target.container_name,
                "blob_name": target.blob_name,
            }

        return OperationResult(
            operation=operation,
            status=status.value,
            lease_id=lease_id,
            error_message=error_message,
            **coordinates,
        )

    def render_error(
        self,
        operation: str,
        message: str,
        target: LeaseTarget | None = None,
    ) -> OperationResult:
        return self.render(
            operation,
            LeaseOutcome(status=LeaseStatus.FAIL, error_message=message),
            target,
        )


def parse_result(text: str) -> OperationResult:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResultFormatError("result is not valid JSON") from exc
    if not isinstance(payload, Mapping):
        raise ResultFormatError("result must be a JSON object")

    for key in RESULT_FIELDS:
        if key not in payload:
            raise ResultFormatError(f"result is missing field '{key}'")

    return OperationResult(
        operation=_optional_text(payload, "operation"),
        status=_optional_text(payload, "status"),
        lease_id=_optional_text(payload, "leaseId"),
        error_message=_optional_text(payload, "errorMessage"),
        subscription_id=_optional_text(payload, "subscriptionId"),
        resource_group_name=_optional_text(payload, "resourceGroupName"),
        storage_account_name=_optional_text(payload, "storageAccountName"),
        container_name=_optional_text(payload, "containerName"),
        blob_name=_optional_text(payload, "blobName"),
    )


def _optional_text(payload: Mapping[str, Any], key: str) -> str | None:
    value = _none_if_empty(payload.get(key))
    if value is None:
        return None
    if not isinstance(value, str):
        raise ResultFormatError(f"result field '{key}' must be a string or null")
    return value


def _strip_quotes(value: str | None) -> str | None:
    if value is None:
        return None
    return value.replace('"', "")


def _none_if_empty(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value
