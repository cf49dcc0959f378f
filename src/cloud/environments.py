from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Mapping

AZURE_PUBLIC_CLOUD = "AZUREPUBLICCLOUD"
AZURE_US_GOVERNMENT_CLOUD = "AZUREUSGOVERNMENTCLOUD"
AZURE_CHINA_CLOUD = "AZURECHINACLOUD"
CUSTOM_CLOUD = "CUSTOMCLOUD"

VALID_ENVIRONMENTS = (
    AZURE_PUBLIC_CLOUD,
    AZURE_US_GOVERNMENT_CLOUD,
    AZURE_CHINA_CLOUD,
    CUSTOM_CLOUD,
)


class CloudConfigError(ValueError):
    """Raised when a cloud environment selection or descriptor file is invalid."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class CloudEnvironment:
    name: str
    authority_host: str
    resource_manager_endpoint: str
    resource_manager_audience: str

    @property
    def credential_scope(self) -> str:
        return self.resource_manager_audience.rstrip("/") + "/.default"


KNOWN_CLOUDS: Mapping[str, CloudEnvironment] = {
    AZURE_PUBLIC_CLOUD: CloudEnvironment(
        name=AZURE_PUBLIC_CLOUD,
        authority_host="https://login.microsoftonline.com",
        resource_manager_endpoint="https://management.azure.com",
        resource_manager_audience="https://management.core.windows.net/",
    ),
    AZURE_US_GOVERNMENT_CLOUD: CloudEnvironment(
        name=AZURE_US_GOVERNMENT_CLOUD,
        authority_host="https://login.microsoftonline.us",
        resource_manager_endpoint="https://management.usgovcloudapi.net",
        resource_manager_audience="https://management.core.usgovcloudapi.net/",
    ),
    AZURE_CHINA_CLOUD: CloudEnvironment(
        name=AZURE_CHINA_CLOUD,
        authority_host="https://login.chinacloudapi.cn",
        resource_manager_endpoint="https://management.chinacloudapi.cn",
        resource_manager_audience="https://management.core.chinacloudapi.cn/",
    ),
}


def normalize_environment_name(name: str | None) -> str:
    normalized = (name or AZURE_PUBLIC_CLOUD).strip().upper()
    if normalized not in VALID_ENVIRONMENTS:
        raise CloudConfigError(
            "ErrInvalidCloudType",
            f"unsupported cloud environment '{name}', valid values are: {', '.join(VALID_ENVIRONMENTS)}",
        )
    return normalized


def validate_cloud_selection(environment: str | None, cloud_config_file: str | None) -> str:
    """Check the environment/descriptor pairing without reading the descriptor."""
    name = normalize_environment_name(environment)
    config_file = (cloud_config_file or "").strip()

    if name != CUSTOM_CLOUD and config_file:
        raise CloudConfigError(
            "ErrCloudConfigFileOnlyForCustomCloud",
            "custom cloud configuration file is only supported with CUSTOMCLOUD environment",
        )
    if name == CUSTOM_CLOUD and not config_file:
        raise CloudConfigError(
            "ErrCloudConfigFileRequiredForCustomCloud",
            "CUSTOMCLOUD environment requires a custom cloud configuration file",
        )
    if name == CUSTOM_CLOUD and not Path(config_file).is_file():
        raise CloudConfigError(
            "ErrCloudConfigFileNotFound",
            f"custom cloud configuration file not found: {config_file}",
        )
    return name


def resolve_cloud_environment(
    environment: str | None,
    cloud_config_file: str | None = None,
) -> CloudEnvironment:
    name = validate_cloud_selection(environment, cloud_config_file)
    if name == CUSTOM_CLOUD:
        return load_custom_cloud(Path(str(cloud_config_file).strip()))
    return KNOWN_CLOUDS[name]


def load_custom_cloud(path: Path) -> CloudEnvironment:
    """Build a descriptor from ``az cloud show -o json`` output.

    ``endpoints.activeDirectory`` becomes the authority host,
    ``endpoints.resourceManager`` the management endpoint, and
    ``endpoints.activeDirectoryResourceId`` (when present) the token audience.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CloudConfigError(
            "ErrCloudConfigFileNotFound",
            f"unable to read custom cloud configuration file {path}: {exc}",
        ) from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CloudConfigError(
            "ErrCloudConfigFileNotFound",
            f"{path}: invalid JSON",
        ) from exc

    if not isinstance(payload, dict):
        raise CloudConfigError("ErrCloudConfigFileNotFound", f"{path}: expected JSON object")

    endpoints = payload.get("endpoints")
    if not isinstance(endpoints, dict):
        raise CloudConfigError("ErrCloudConfigFileNotFound", f"{path}: missing 'endpoints' object")

    authority = _require_endpoint(endpoints, "activeDirectory", path=path)
    resource_manager = _require_endpoint(endpoints, "resourceManager", path=path)
    audience = _optional_endpoint(endpoints, "activeDirectoryResourceId") or resource_manager

    return CloudEnvironment(
        name=CUSTOM_CLOUD,
        authority_host=authority,
        resource_manager_endpoint=resource_manager,
        resource_manager_audience=audience,
    )


def _require_endpoint(endpoints: Mapping[str, Any], key: str, *, path: Path) -> str:
    value = _optional_endpoint(endpoints, key)
    if value is None:
        raise CloudConfigError(
            "ErrCloudConfigFileNotFound",
            f"{path}: endpoints.{key} must be a non-empty string",
        )
    return value


def _optional_endpoint(endpoints: Mapping[str, Any], key: str) -> str | None:
    value = endpoints.get(key)
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized if normalized else None
