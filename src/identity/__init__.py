"""Credential selection and resolution."""

from .credentials import (
    AuthenticationError,
    CredentialSelection,
    DefaultCredential,
    SystemAssignedIdentity,
    UserAssignedIdentity,
    resolve_credential,
    select_credential,
)

__all__ = [
    "AuthenticationError",
    "CredentialSelection",
    "DefaultCredential",
    "SystemAssignedIdentity",
    "UserAssignedIdentity",
    "resolve_credential",
    "select_credential",
]
