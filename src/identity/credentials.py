from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

from cloud.environments import CloudEnvironment


class AuthenticationError(RuntimeError):
    """Raised when a token credential cannot be obtained."""


@dataclass(frozen=True)
class DefaultCredential:
    """Ambient credential chain (environment, workload identity, Azure CLI, ...)."""

    def describe(self) -> str:
        return "default credential chain"


@dataclass(frozen=True)
class SystemAssignedIdentity:
    def describe(self) -> str:
        return "system assigned managed identity"


@dataclass(frozen=True)
class UserAssignedIdentity:
    identity_id: str

    @property
    def is_resource_id(self) -> bool:
        return "/" in self.identity_id

    def describe(self) -> str:
        kind = "resource id" if self.is_resource_id else "client id"
        return f"user assigned managed identity ({kind} {self.identity_id})"


CredentialSelection = Union[DefaultCredential, SystemAssignedIdentity, UserAssignedIdentity]


def select_credential(
    managed_identity_id: str | None = None,
    use_system_managed_identity: bool = False,
) -> CredentialSelection:
    """Map the identity flags onto a credential selection.

    The system identity flag wins when both flags are given.
    """
    if use_system_managed_identity:
        return SystemAssignedIdentity()
    identity_id = (managed_identity_id or "").strip()
    if identity_id:
        return UserAssignedIdentity(identity_id=identity_id)
    return DefaultCredential()


def resolve_credential(
    selection: CredentialSelection,
    cloud: CloudEnvironment,
    *,
    default_credential_type: Any = DefaultAzureCredential,
    managed_identity_type: Any = ManagedIdentityCredential,
) -> Any:
    """Build an azure-identity token credential for ``selection``."""
    try:
        if isinstance(selection, SystemAssignedIdentity):
            return managed_identity_type()
        if isinstance(selection, UserAssignedIdentity):
            if selection.is_resource_id:
                return managed_identity_type(identity_config={"mi_res_id": selection.identity_id})
            return managed_identity_type(client_id=selection.identity_id)
        if isinstance(selection, DefaultCredential):
            return default_credential_type(authority=cloud.authority_host)
    except Exception as exc:
        raise AuthenticationError(f"an error occurred while obtaining token credential: {exc}") from exc

    raise AuthenticationError(f"authentication method not supported: {selection!r}")
