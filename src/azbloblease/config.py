from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from cloud.environments import AZURE_PUBLIC_CLOUD
from lease.models import DEFAULT_BLOB_NAME

ENV_ENVIRONMENT = "AZBLOBLEASE_ENVIRONMENT"
ENV_MANAGED_IDENTITY_ID = "AZBLOBLEASE_MANAGED_IDENTITY_ID"
ENV_USE_SYSTEM_MANAGED_IDENTITY = "AZBLOBLEASE_USE_SYSTEM_MANAGED_IDENTITY"
ENV_CUSTOM_CLOUDCONFIG_FILE = "AZBLOBLEASE_CUSTOM_CLOUDCONFIG_FILE"
ENV_BLOB_NAME = "AZBLOBLEASE_BLOB_NAME"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class SettingsError(ValueError):
    """Raised when an environment-provided default cannot be interpreted."""


@dataclass(frozen=True)
class CliDefaults:
    environment: str = AZURE_PUBLIC_CLOUD
    managed_identity_id: str | None = None
    use_system_managed_identity: bool = False
    custom_cloudconfig_file: str | None = None
    blob_name: str = DEFAULT_BLOB_NAME


def load_project_env(start: Path | None = None) -> None:
    """Load the nearest ``.env`` without overriding variables already set."""
    root = (start or Path.cwd()).resolve()
    for parent in (root, *root.parents):
        candidate = parent / ".env"
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            return


def resolve_cli_defaults(env: Mapping[str, str] | None = None) -> CliDefaults:
    env_values = os.environ if env is None else env
    return CliDefaults(
        environment=_text(env_values, ENV_ENVIRONMENT) or AZURE_PUBLIC_CLOUD,
        managed_identity_id=_text(env_values, ENV_MANAGED_IDENTITY_ID),
        use_system_managed_identity=_flag(env_values, ENV_USE_SYSTEM_MANAGED_IDENTITY),
        custom_cloudconfig_file=_text(env_values, ENV_CUSTOM_CLOUDCONFIG_FILE),
        blob_name=_text(env_values, ENV_BLOB_NAME) or DEFAULT_BLOB_NAME,
    )


def pick(explicit: Any, default: Any) -> Any:
    return default if explicit is None else explicit


def _text(env: Mapping[str, str], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    normalized = value.strip()
    return normalized if normalized else None


def _flag(env: Mapping[str, str], key: str) -> bool:
    raw = env.get(key)
    if raw is None:
        return False
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise SettingsError(f"{key} must be a boolean flag, got {raw!r}")
