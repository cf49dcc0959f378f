from __future__ import annotations

from storage.backend import BackendError, LeaseBackend, error_text

from .config import LeaseEngineConfig
from .models import (
    LeaseOutcome,
    LeaseStatus,
    LeaseTarget,
    validate_acquire_wait,
    validate_lease_duration,
    validate_retries,
)


class LeaseAcquirer:
    """Bounded-retry attempt to become the sole holder of a blob lease.

    One token is proposed for the whole session and reused by every retry.
    The storage service reports "already leased" the same way it reports a
    transient fault, so both are retried alike and only the text of the last
    failure is surfaced once every attempt has been used.
    """

    def __init__(self, *, backend: LeaseBackend, config: LeaseEngineConfig | None = None) -> None:
        self.backend = backend
        self.config = config or LeaseEngineConfig()

    def acquire(
        self,
        target: LeaseTarget,
        *,
        duration_seconds: int,
        retries: int = 1,
        wait_seconds: int = 0,
    ) -> LeaseOutcome:
        validate_lease_duration(duration_seconds)
        validate_retries(retries)
        validate_acquire_wait(wait_seconds)

        proposed_token = self.config.token_factory()

        try:
            self.backend.get_blob_properties(target.container_name, target.blob_name)
        except BackendError as exc:
            self.config.error_log(
                f"an error occurred while checking blob {target.blob_name}: {exc}"
            )
            return LeaseOutcome(status=LeaseStatus.FAIL, error_message=error_text(exc))

        last_error: str | None = None
        for attempt in range(1, retries + 1):
            try:
                receipt = self.backend.acquire_lease(
                    target.container_name,
                    target.blob_name,
                    lease_id=proposed_token,
                    duration=duration_seconds,
                )
            except BackendError as exc:
                self.config.error_log(
                    f"an error occurred while acquiring lease (attempt {attempt} of {retries}): {exc}"
                )
                last_error = error_text(exc)
                if attempt < retries:
                    self.config.sleep(wait_seconds)
                continue

            return LeaseOutcome(
                status=LeaseStatus.SUCCESS,
                lease_token=proposed_token,
                attempts=attempt,
                request_ids=_request_ids(receipt.request_id),
            )

        return LeaseOutcome(
            status=LeaseStatus.FAIL,
            error_message=last_error,
            attempts=retries,
        )


def _request_ids(request_id: str | None) -> tuple[str, ...]:
    return (request_id,) if request_id else ()
