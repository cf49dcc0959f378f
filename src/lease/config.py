from __future__ import annotations

from dataclasses import dataclass
import os
import time
from typing import Callable

from .models import new_lease_token

PLACEHOLDER_BLOB_SIZE = 1024


def _discard(message: str) -> None:
    _ = message


@dataclass(frozen=True)
class LeaseEngineConfig:
    """Collaborators shared by the engine components for one invocation.

    ``diagnostics`` receives one line per successful renewal; ``error_log``
    receives the narration of backend failures. Neither is the channel the
    final result is written to.
    """

    sleep: Callable[[float], None] = time.sleep
    token_factory: Callable[[], str] = new_lease_token
    diagnostics: Callable[[str], None] = _discard
    error_log: Callable[[str], None] = _discard
    placeholder_size: int = PLACEHOLDER_BLOB_SIZE
    random_bytes: Callable[[int], bytes] = os.urandom

    def __post_init__(self) -> None:
        if self.placeholder_size < 1:
            raise ValueError("placeholder_size must be a positive integer")
