from __future__ import annotations

from datetime import datetime
import sys

from lease.reporting import OperationResult

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def stderr_line(message: str) -> None:
    """Timestamped line on stderr, the channel for diagnostics and narration."""
    stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    print(f"{stamp} {message}", file=sys.stderr, flush=True)


def emit_result(result: OperationResult) -> None:
    print(result.to_json(), flush=True)
