"""Blob storage backends used as the lease substrate."""

from .azure import AzureBlobLeaseBackend, classify_backend_error, open_azure_backend
from .backend import (
    BackendError,
    LeaseBackend,
    LeaseReceipt,
    ResourceNotFoundError,
    error_text,
)

__all__ = [
    "AzureBlobLeaseBackend",
    "BackendError",
    "LeaseBackend",
    "LeaseReceipt",
    "ResourceNotFoundError",
    "classify_backend_error",
    "error_text",
    "open_azure_backend",
]
