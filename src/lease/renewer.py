from __future__ import annotations

from storage.backend import BackendError, LeaseBackend, error_text

from .config import LeaseEngineConfig
from .models import (
    LeaseOutcome,
    LeaseStatus,
    LeaseTarget,
    validate_iterations,
    validate_lease_token,
    validate_renew_wait,
)


class LeaseRenewer:
    """Extend a held lease a fixed number of times at a fixed interval.

    A failed renewal means the lease is most likely gone (expired or taken),
    so the loop stops at the first failure. Getting the lease back is left to
    a fresh acquisition by the caller.
    """

    def __init__(self, *, backend: LeaseBackend, config: LeaseEngineConfig | None = None) -> None:
        self.backend = backend
        self.config = config or LeaseEngineConfig()

    def renew(
        self,
        target: LeaseTarget,
        *,
        lease_token: str,
        iterations: int,
        wait_seconds: int,
    ) -> LeaseOutcome:
        token = validate_lease_token(lease_token)
        validate_iterations(iterations)
        validate_renew_wait(wait_seconds)

        try:
            self.backend.get_blob_properties(target.container_name, target.blob_name)
        except BackendError as exc:
            self.config.error_log(
                f"an error occurred while checking blob {target.blob_name}: {exc}"
            )
            return LeaseOutcome(status=LeaseStatus.FAIL, error_message=error_text(exc))

        confirmed_token = token
        request_ids: list[str] = []
        for iteration in range(iterations):
            try:
                receipt = self.backend.renew_lease(
                    target.container_name,
                    target.blob_name,
                    lease_id=token,
                )
            except BackendError as exc:
                self.config.error_log(
                    f"an error occurred while renewing lease, iteration {iteration}: {exc}"
                )
                return LeaseOutcome(
                    status=LeaseStatus.FAIL,
                    error_message=error_text(exc),
                    attempts=iteration + 1,
                    request_ids=tuple(request_ids),
                )

            confirmed_token = receipt.lease_id or confirmed_token
            if receipt.request_id:
                request_ids.append(receipt.request_id)
            self.config.diagnostics(
                f"Renewed lease {confirmed_token}, iteration {iteration}, "
                f"request id {receipt.request_id}"
            )
            self.config.sleep(wait_seconds)

        return LeaseOutcome(
            status=LeaseStatus.SUCCESS_ON_RENEW,
            lease_token=confirmed_token,
            attempts=iterations,
            request_ids=tuple(request_ids),
        )
