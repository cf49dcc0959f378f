from __future__ import annotations

from typing import Any, Mapping

from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError
from azure.mgmt.storage import StorageManagementClient
from azure.storage.blob import BlobLeaseClient, BlobServiceClient

from cloud.environments import CloudEnvironment

from .backend import BackendError, LeaseReceipt, ResourceNotFoundError

NOT_FOUND_ERROR_CODES = frozenset({"ContainerNotFound", "BlobNotFound"})
REQUEST_ID_HEADER = "x-ms-request-id"


class _RequestIdCapture:
    """``raw_response_hook`` that remembers the service request id."""

    def __init__(self) -> None:
        self.request_id: str | None = None

    def __call__(self, response: Any) -> None:
        http_response = getattr(response, "http_response", None)
        headers = getattr(http_response, "headers", None) or {}
        value = headers.get(REQUEST_ID_HEADER)
        if value:
            self.request_id = str(value)


class AzureBlobLeaseBackend:
    """``LeaseBackend`` over an azure-storage-blob ``BlobServiceClient``."""

    def __init__(
        self,
        *,
        service_client: Any,
        lease_client_type: Any,
        not_found_types: tuple[type[BaseException], ...] = (),
    ) -> None:
        self._service = service_client
        self._lease_client_type = lease_client_type
        self._not_found_types = not_found_types

    def get_container_properties(self, container: str) -> Mapping[str, Any]:
        try:
            properties = self._service.get_container_client(container).get_container_properties()
        except Exception as exc:
            raise self._translate(exc) from exc
        return _properties_summary(properties, fallback_name=container)

    def create_container(self, container: str) -> None:
        try:
            self._service.get_container_client(container).create_container()
        except Exception as exc:
            raise self._translate(exc) from exc

    def get_blob_properties(self, container: str, blob: str) -> Mapping[str, Any]:
        try:
            properties = self._service.get_blob_client(container, blob).get_blob_properties()
        except Exception as exc:
            raise self._translate(exc) from exc
        return _properties_summary(properties, fallback_name=blob)

    def upload_blob(self, container: str, blob: str, data: bytes) -> None:
        try:
            self._service.get_blob_client(container, blob).upload_blob(data, overwrite=False)
        except Exception as exc:
            raise self._translate(exc) from exc

    def acquire_lease(
        self,
        container: str,
        blob: str,
        *,
        lease_id: str,
        duration: int,
    ) -> LeaseReceipt:
        capture = _RequestIdCapture()
        try:
            lease = self._lease_client(container, blob, lease_id)
            lease.acquire(lease_duration=duration, raw_response_hook=capture)
        except Exception as exc:
            raise self._translate(exc) from exc
        return LeaseReceipt(lease_id=str(lease.id or lease_id), request_id=capture.request_id)

    def renew_lease(self, container: str, blob: str, *, lease_id: str) -> LeaseReceipt:
        capture = _RequestIdCapture()
        try:
            lease = self._lease_client(container, blob, lease_id)
            lease.renew(raw_response_hook=capture)
        except Exception as exc:
            raise self._translate(exc) from exc
        return LeaseReceipt(lease_id=str(lease.id or lease_id), request_id=capture.request_id)

    def _lease_client(self, container: str, blob: str, lease_id: str) -> Any:
        blob_client = self._service.get_blob_client(container, blob)
        return self._lease_client_type(blob_client, lease_id=lease_id)

    def _translate(self, exc: Exception) -> BackendError:
        return classify_backend_error(exc, not_found_types=self._not_found_types)


def classify_backend_error(
    exc: BaseException,
    *,
    not_found_types: tuple[type[BaseException], ...] = (),
) -> BackendError:
    """Map an SDK exception onto ``ResourceNotFoundError`` or ``BackendError``.

    The exception type and the service error code decide first; matching the
    error codes inside the message text is the fallback.
    """
    if isinstance(exc, BackendError):
        return exc
    message = str(exc)
    error_code = getattr(exc, "error_code", None)
    if not_found_types and isinstance(exc, not_found_types):
        return ResourceNotFoundError(message)
    if error_code is not None and str(error_code) in NOT_FOUND_ERROR_CODES:
        return ResourceNotFoundError(message)
    if any(code in message for code in NOT_FOUND_ERROR_CODES):
        return ResourceNotFoundError(message)
    return BackendError(message)


def open_azure_backend(
    *,
    subscription_id: str,
    resource_group_name: str,
    account_name: str,
    credential: Any,
    cloud: CloudEnvironment,
    management_client_type: Any = StorageManagementClient,
    service_client_type: Any = BlobServiceClient,
    lease_client_type: Any = BlobLeaseClient,
) -> AzureBlobLeaseBackend:
    """Discover the account's blob endpoint and bind a backend to it.

    Account property lookup goes through the management API of ``cloud``;
    any failure there is raised as ``BackendError``.
    """
    try:
        management_client = management_client_type(
            credential,
            subscription_id,
            base_url=cloud.resource_manager_endpoint,
            credential_scopes=[cloud.credential_scope],
        )
        account = management_client.storage_accounts.get_properties(
            resource_group_name,
            account_name,
        )
    except Exception as exc:
        raise BackendError(
            f"an error occurred while getting storage account properties: {exc}"
        ) from exc

    endpoints = getattr(account, "primary_endpoints", None)
    blob_endpoint = getattr(endpoints, "blob", None)
    if not isinstance(blob_endpoint, str) or not blob_endpoint.strip():
        raise BackendError(f"storage account {account_name} does not expose a blob endpoint")

    try:
        service_client = service_client_type(
            account_url=blob_endpoint,
            credential=credential,
        )
    except Exception as exc:
        raise BackendError(f"an error occurred while obtaining az blob client: {exc}") from exc

    return AzureBlobLeaseBackend(
        service_client=service_client,
        lease_client_type=lease_client_type,
        not_found_types=(AzureResourceNotFoundError,),
    )


def _properties_summary(properties: Any, *, fallback_name: str) -> dict[str, Any]:
    return {
        "name": getattr(properties, "name", None) or fallback_name,
        "etag": getattr(properties, "etag", None),
        "last_modified": getattr(properties, "last_modified", None),
    }
