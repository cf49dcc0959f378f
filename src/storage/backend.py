from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable


class BackendError(RuntimeError):
    """Raised for any failure reported by the storage or management service."""


class ResourceNotFoundError(BackendError):
    """Raised when a container or blob does not exist."""


@dataclass(frozen=True)
class LeaseReceipt:
    lease_id: str
    request_id: str | None = None


@runtime_checkable
class LeaseBackend(Protocol):
    """Blob storage operations needed to provision, acquire and renew a lease.

    Implementations are bound to one storage account. Every method raises
    ``ResourceNotFoundError`` when the addressed container or blob is missing
    and ``BackendError`` for everything else.
    """

    def get_container_properties(self, container: str) -> Mapping[str, Any]: ...

    def create_container(self, container: str) -> None: ...

    def get_blob_properties(self, container: str, blob: str) -> Mapping[str, Any]: ...

    def upload_blob(self, container: str, blob: str, data: bytes) -> None: ...

    def acquire_lease(
        self,
        container: str,
        blob: str,
        *,
        lease_id: str,
        duration: int,
    ) -> LeaseReceipt: ...

    def renew_lease(self, container: str, blob: str, *, lease_id: str) -> LeaseReceipt: ...


def error_text(exc: BaseException) -> str:
    """Backend error text as surfaced in results: double quotes removed."""
    text = str(exc).replace('"', "").strip()
    return text or type(exc).__name__
