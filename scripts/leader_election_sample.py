#!/usr/bin/env python3
"""Leader election loop for one host, driven through the azbloblease CLI.

Every participating host runs this script against the same storage account.
The host that acquires the lease keeps it alive with a background ``renew``
process while it does the leader-only work; the others log and exit.
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import random
import shlex
import socket
import subprocess
import sys
import time
from typing import Any, Callable, Sequence

from lease.reporting import ResultFormatError, parse_result

Runner = Callable[..., "subprocess.CompletedProcess[str]"]
Spawner = Callable[..., Any]


@dataclass(frozen=True)
class SampleOptions:
    cli: tuple[str, ...]
    subscription_id: str
    resource_group_name: str
    account_name: str
    container: str
    blob_name: str
    lease_duration: int = 60
    renew_iterations: int = 60
    renew_wait_sec: int = 30
    work_seconds: int = 0
    log_file: Path = Path("leader_election_sample.log")

    def target_args(self) -> list[str]:
        return [
            "--subscription-id",
            self.subscription_id,
            "--resource-group-name",
            self.resource_group_name,
            "--account-name",
            self.account_name,
            "--container",
            self.container,
            "--blob-name",
            self.blob_name,
        ]


def _build_parser() -> argparse.ArgumentParser:
    hostname = socket.gethostname()
    parser = argparse.ArgumentParser(
        prog="leader-election-sample",
        description="Try to become leader through a blob lease and do leader-only work.",
    )
    parser.add_argument("--subscription-id", required=True)
    parser.add_argument("--resource-group-name", required=True)
    parser.add_argument("--account-name", required=True)
    parser.add_argument("--container", default=hostname.lower(), help="Defaults to the host name")
    parser.add_argument("--blob-name", default=hostname, help="Defaults to the host name")
    parser.add_argument("--lease-duration", type=int, default=60)
    parser.add_argument("--renew-iterations", type=int, default=60)
    parser.add_argument("--renew-wait-sec", type=int, default=30)
    parser.add_argument(
        "--work-seconds",
        type=int,
        default=None,
        help="Simulated leader work; random up to 30 minutes when omitted",
    )
    parser.add_argument("--log-file", default="leader_election_sample.log")
    parser.add_argument(
        "--cli",
        default=f"{shlex.quote(sys.executable)} -m azbloblease",
        help="Command used to invoke azbloblease",
    )
    return parser


def log_line(path: Path, message: str) -> None:
    stamp = datetime.now().astimezone().strftime("%m/%d/%y %H:%M:%S %Z")
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"{stamp} - {message}\n")


def run_leader_cycle(
    options: SampleOptions,
    *,
    run: Runner = subprocess.run,
    spawn: Spawner = subprocess.Popen,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Return ``True`` when this host held the lease and did the work."""
    run(
        [*options.cli, "createleaseblob", *options.target_args()],
        check=False,
    )

    acquired = run(
        [
            *options.cli,
            "acquire",
            *options.target_args(),
            "--lease-duration",
            str(options.lease_duration),
        ],
        capture_output=True,
        text=True,
        check=False,
    )

    lease_id = None
    try:
        lease_id = parse_result(acquired.stdout).lease_id
    except ResultFormatError as exc:
        log_line(options.log_file, f"Unreadable acquire result (exit code {acquired.returncode}): {exc}")

    if lease_id is None:
        log_line(options.log_file, "Could not obtain lease, therefore not being leader, exiting")
        log_line(options.log_file, "End of script")
        return False

    spawn(
        [
            *options.cli,
            "renew",
            *options.target_args(),
            "--lease-id",
            lease_id,
            "--iterations",
            str(options.renew_iterations),
            "--wait-time-sec",
            str(options.renew_wait_sec),
        ],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    log_line(options.log_file, f"I'm the leader (lease id: {lease_id}), doing stuff...")
    sleep(options.work_seconds)
    log_line(options.log_file, "End of script")
    return True


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    work_seconds = args.work_seconds
    if work_seconds is None:
        work_seconds = 1 + random.randrange(1800)

    options = SampleOptions(
        cli=tuple(shlex.split(args.cli)),
        subscription_id=args.subscription_id,
        resource_group_name=args.resource_group_name,
        account_name=args.account_name,
        container=args.container,
        blob_name=args.blob_name,
        lease_duration=args.lease_duration,
        renew_iterations=args.renew_iterations,
        renew_wait_sec=args.renew_wait_sec,
        work_seconds=work_seconds,
        log_file=Path(args.log_file),
    )
    run_leader_cycle(options)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
