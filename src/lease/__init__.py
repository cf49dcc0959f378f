"""Lease lifecycle engine: provisioning, acquisition, renewal and results."""

from .acquirer import LeaseAcquirer
from .config import LeaseEngineConfig
from .models import (
    DEFAULT_BLOB_NAME,
    LeaseArgumentError,
    LeaseOutcome,
    LeaseStatus,
    LeaseTarget,
    new_lease_token,
)
from .provisioner import LeaseTargetProvisioner
from .renewer import LeaseRenewer
from .reporting import OperationResult, ResultFormatError, ResultReporter, parse_result

__all__ = [
    "DEFAULT_BLOB_NAME",
    "LeaseAcquirer",
    "LeaseArgumentError",
    "LeaseEngineConfig",
    "LeaseOutcome",
    "LeaseRenewer",
    "LeaseStatus",
    "LeaseTarget",
    "LeaseTargetProvisioner",
    "OperationResult",
    "ResultFormatError",
    "ResultReporter",
    "new_lease_token",
    "parse_result",
]
