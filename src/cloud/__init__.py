"""Azure cloud environment descriptors."""

from .environments import (
    AZURE_CHINA_CLOUD,
    AZURE_PUBLIC_CLOUD,
    AZURE_US_GOVERNMENT_CLOUD,
    CUSTOM_CLOUD,
    KNOWN_CLOUDS,
    VALID_ENVIRONMENTS,
    CloudConfigError,
    CloudEnvironment,
    load_custom_cloud,
    normalize_environment_name,
    resolve_cloud_environment,
    validate_cloud_selection,
)

__all__ = [
    "AZURE_CHINA_CLOUD",
    "AZURE_PUBLIC_CLOUD",
    "AZURE_US_GOVERNMENT_CLOUD",
    "CUSTOM_CLOUD",
    "KNOWN_CLOUDS",
    "VALID_ENVIRONMENTS",
    "CloudConfigError",
    "CloudEnvironment",
    "load_custom_cloud",
    "normalize_environment_name",
    "resolve_cloud_environment",
    "validate_cloud_selection",
]
