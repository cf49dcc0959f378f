from __future__ import annotations

from storage.backend import BackendError, LeaseBackend, ResourceNotFoundError, error_text

from .config import LeaseEngineConfig
from .models import LeaseOutcome, LeaseStatus, LeaseTarget


class LeaseTargetProvisioner:
    """Create-if-absent for the container and blob used as the lease object."""

    def __init__(self, *, backend: LeaseBackend, config: LeaseEngineConfig | None = None) -> None:
        self.backend = backend
        self.config = config or LeaseEngineConfig()

    def provision(self, target: LeaseTarget) -> LeaseOutcome:
        container = target.container_name
        blob = target.blob_name

        try:
            self.backend.get_container_properties(container)
        except ResourceNotFoundError:
            try:
                self.backend.create_container(container)
            except BackendError as exc:
                return self._fail(f"an error occurred trying to create container {container}", exc)
        except BackendError as exc:
            return self._fail(f"an error occurred while checking if container {container} exists", exc)

        try:
            self.backend.get_blob_properties(container, blob)
        except ResourceNotFoundError:
            payload = self.config.random_bytes(self.config.placeholder_size)
            try:
                self.backend.upload_blob(container, blob, payload)
            except BackendError as exc:
                return self._fail(f"an error occurred while uploading blob {blob}", exc)
            return LeaseOutcome(status=LeaseStatus.SUCCESS)
        except BackendError as exc:
            return self._fail(f"an error occurred while checking if blob {blob} exists", exc)

        return LeaseOutcome(status=LeaseStatus.SUCCESS_ALREADY_EXISTS)

    def _fail(self, context: str, exc: BackendError) -> LeaseOutcome:
        self.config.error_log(f"{context}: {exc}")
        return LeaseOutcome(status=LeaseStatus.FAIL, error_message=error_text(exc))
