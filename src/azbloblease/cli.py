from __future__ import annotations

import argparse
from dataclasses import dataclass
import sys
from typing import Any, Callable, Mapping, Sequence

from cloud.environments import (
    VALID_ENVIRONMENTS,
    CloudConfigError,
    CloudEnvironment,
    resolve_cloud_environment,
)
from identity.credentials import (
    AuthenticationError,
    CredentialSelection,
    DefaultCredential,
    resolve_credential,
    select_credential,
)
from lease.acquirer import LeaseAcquirer
from lease.config import LeaseEngineConfig
from lease.models import (
    LeaseArgumentError,
    LeaseOutcome,
    LeaseTarget,
    validate_acquire_wait,
    validate_iterations,
    validate_lease_duration,
    validate_lease_token,
    validate_renew_wait,
    validate_retries,
)
from lease.provisioner import LeaseTargetProvisioner
from lease.renewer import LeaseRenewer
from lease.reporting import ResultReporter
from storage.azure import open_azure_backend
from storage.backend import BackendError, LeaseBackend, error_text

from . import __version__
from .config import (
    CliDefaults,
    SettingsError,
    load_project_env,
    pick,
    resolve_cli_defaults,
)
from .console import emit_result, stderr_line
from .exit_codes import INTERRUPTED, error_code

PROG = "azbloblease"

CredentialProvider = Callable[[CredentialSelection, CloudEnvironment], Any]
BackendOpener = Callable[..., LeaseBackend]


@dataclass(eq=False)
class CliCommandError(Exception):
    code: str
    message: str
    exit_code: int = 1
    show_usage: bool = False

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True)
class CliRuntime:
    """External collaborators for one invocation, replaceable in tests."""

    credential_provider: CredentialProvider = resolve_credential
    backend_opener: BackendOpener = open_azure_backend
    engine_config: LeaseEngineConfig | None = None
    env: Mapping[str, str] | None = None


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise CliCommandError(
            "ErrInvalidArgument",
            message,
            exit_code=error_code("ErrInvalidArgument"),
            show_usage=True,
        )


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--subscription-id",
        "-subscriptionid",
        dest="subscription_id",
        help="Subscription where the Storage Account is located",
    )
    parser.add_argument(
        "--resource-group-name",
        "-resourcegroupname",
        dest="resource_group_name",
        help="Storage Account Resource Group Name",
    )
    parser.add_argument(
        "--account-name",
        "-accountname",
        dest="account_name",
        help="Storage Account Name",
    )
    parser.add_argument(
        "--container",
        "-container",
        dest="container",
        help="Blob container name (lower-cased before use)",
    )
    parser.add_argument(
        "--blob-name",
        "-blobname",
        dest="blob_name",
        help="Blob name (default: azblobleaseblob)",
    )
    parser.add_argument(
        "--environment",
        "-environment",
        dest="environment",
        help=f"Azure cloud type, one of: {', '.join(VALID_ENVIRONMENTS)} (default: AZUREPUBLICCLOUD)",
    )
    parser.add_argument(
        "--managed-identity-id",
        "-managed-identity-id",
        dest="managed_identity_id",
        help="Use a user assigned managed identity (resource id or client id)",
    )
    parser.add_argument(
        "--use-system-managed-identity",
        "-use-system-managed-identity",
        dest="use_system_managed_identity",
        action="store_true",
        default=None,
        help="Use the system assigned managed identity",
    )
    parser.add_argument(
        "--custom-cloudconfig-file",
        "-custom-cloudconfig-file",
        dest="custom_cloudconfig_file",
        help="Cloud descriptor (az cloud show -o json) for the CUSTOMCLOUD environment",
    )


def _build_parser() -> tuple[argparse.ArgumentParser, dict[str, argparse.ArgumentParser]]:
    parser = _ArgumentParser(
        prog=PROG,
        description="CLI tool to help on leader elections based on Azure Blob Storage blob leases",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command")

    create_parser = subparsers.add_parser(
        "createleaseblob",
        help="Create the container and blob used for the lease process",
        allow_abbrev=False,
        epilog=(
            "example: azbloblease createleaseblob --account-name mystorageaccount "
            "--container azbloblease --blob-name myblob --resource-group-name my-rg "
            "--subscription-id 11111111-1111-1111-1111-111111111111"
        ),
    )
    _add_target_arguments(create_parser)

    acquire_parser = subparsers.add_parser(
        "acquire",
        help="Acquire a lease",
        allow_abbrev=False,
        epilog=(
            "example: azbloblease acquire --account-name mystorageaccount "
            "--container azbloblease --blob-name myblob --lease-duration 60 "
            "--resource-group-name my-rg --subscription-id 11111111-1111-1111-1111-111111111111"
        ),
    )
    _add_target_arguments(acquire_parser)
    acquire_parser.add_argument(
        "--lease-duration",
        "-leaseduration",
        dest="lease_duration",
        type=int,
        default=60,
        help="Lease duration in seconds, between 15 and 60 (infinite leases are not supported)",
    )
    acquire_parser.add_argument(
        "--retries",
        "-retries",
        dest="retries",
        type=int,
        default=1,
        help="Number of acquire attempts",
    )
    acquire_parser.add_argument(
        "--wait-time-sec",
        "-waittimesec",
        dest="wait_time_sec",
        type=int,
        default=0,
        help="Seconds between acquire attempts, between 0 and 59",
    )

    renew_parser = subparsers.add_parser(
        "renew",
        help="Renew a lease a number of times with a fixed interval in between",
        allow_abbrev=False,
        epilog=(
            "example: azbloblease renew --account-name mystorageaccount "
            "--container azbloblease --blob-name myblob "
            "--lease-id d3d63201-153b-453b-85ef-6c3bee3082f0 --resource-group-name my-rg "
            "--subscription-id 11111111-1111-1111-1111-111111111111 --iterations 10 --wait-time-sec 30"
        ),
    )
    _add_target_arguments(renew_parser)
    renew_parser.add_argument(
        "--lease-id",
        "-leaseid",
        dest="lease_id",
        help="GUID of the acquired lease",
    )
    renew_parser.add_argument(
        "--iterations",
        "-iterations",
        dest="iterations",
        type=int,
        default=20,
        help="Number of renew operations",
    )
    renew_parser.add_argument(
        "--wait-time-sec",
        "-waittimesec",
        dest="wait_time_sec",
        type=int,
        default=30,
        help="Seconds between renew operations, between 1 and 59, ideally half the lease duration",
    )

    version_parser = subparsers.add_parser("version", help="Print the tool version", allow_abbrev=False)

    commands = {
        "createleaseblob": create_parser,
        "acquire": acquire_parser,
        "renew": renew_parser,
        "version": version_parser,
    }
    return parser, commands


def main(argv: Sequence[str] | None = None, *, runtime: CliRuntime | None = None) -> int:
    runtime = runtime or CliRuntime()
    parser, commands = _build_parser()

    try:
        args = parser.parse_args(argv)
    except CliCommandError as exc:
        _print_usage(parser)
        print(str(exc), file=sys.stderr)
        return exc.exit_code

    if args.command is None:
        header = f"{PROG} - CLI tool to help on leader elections based on Azure Blob Storage blob leasing process - v{__version__}"
        print(header, file=sys.stderr)
        print("-" * len(header), file=sys.stderr)
        _print_usage(parser)
        return error_code("ErrInvalidArgument")

    if args.command == "version":
        print(__version__)
        return 0

    handlers = {
        "createleaseblob": _cmd_createleaseblob,
        "acquire": _cmd_acquire,
        "renew": _cmd_renew,
    }

    try:
        return handlers[args.command](args, runtime)
    except CliCommandError as exc:
        if exc.show_usage:
            _print_usage(commands.get(args.command, parser))
        print(str(exc), file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        print("E_INTERRUPTED: interrupted by user", file=sys.stderr)
        return INTERRUPTED


@dataclass(frozen=True)
class _Invocation:
    target: LeaseTarget
    cloud: CloudEnvironment
    credential_selection: CredentialSelection


def _cmd_createleaseblob(args: argparse.Namespace, runtime: CliRuntime) -> int:
    invocation = _prepare(args, runtime)
    return _run(
        args.command,
        invocation,
        runtime,
        lambda backend, config: LeaseTargetProvisioner(backend=backend, config=config).provision(
            invocation.target
        ),
    )


def _cmd_acquire(args: argparse.Namespace, runtime: CliRuntime) -> int:
    invocation = _prepare(args, runtime)
    return _run(
        args.command,
        invocation,
        runtime,
        lambda backend, config: LeaseAcquirer(backend=backend, config=config).acquire(
            invocation.target,
            duration_seconds=args.lease_duration,
            retries=args.retries,
            wait_seconds=args.wait_time_sec,
        ),
    )


def _cmd_renew(args: argparse.Namespace, runtime: CliRuntime) -> int:
    invocation = _prepare(args, runtime)
    lease_id = args.lease_id.strip()
    return _run(
        args.command,
        invocation,
        runtime,
        lambda backend, config: LeaseRenewer(backend=backend, config=config).renew(
            invocation.target,
            lease_token=lease_id,
            iterations=args.iterations,
            wait_seconds=args.wait_time_sec,
        ),
    )


def _prepare(args: argparse.Namespace, runtime: CliRuntime) -> _Invocation:
    defaults = _cli_defaults(runtime)
    try:
        target = LeaseTarget(
            subscription_id=(args.subscription_id or "").strip(),
            resource_group_name=(args.resource_group_name or "").strip(),
            account_name=(args.account_name or "").strip(),
            container_name=(args.container or "").strip().lower(),
            blob_name=(pick(args.blob_name, defaults.blob_name) or "").strip(),
        )
    except LeaseArgumentError as exc:
        raise _argument_error(exc) from exc

    _validate_command_arguments(args)

    try:
        cloud = resolve_cloud_environment(
            pick(args.environment, defaults.environment),
            pick(args.custom_cloudconfig_file, defaults.custom_cloudconfig_file),
        )
    except CloudConfigError as exc:
        raise CliCommandError(
            exc.code,
            str(exc),
            exit_code=error_code(exc.code),
            show_usage=True,
        ) from exc

    selection = select_credential(
        pick(args.managed_identity_id, defaults.managed_identity_id),
        bool(pick(args.use_system_managed_identity, defaults.use_system_managed_identity)),
    )
    return _Invocation(target=target, cloud=cloud, credential_selection=selection)


def _run(
    operation: str,
    invocation: _Invocation,
    runtime: CliRuntime,
    execute: Callable[[LeaseBackend, LeaseEngineConfig], LeaseOutcome],
) -> int:
    selection = invocation.credential_selection
    if not isinstance(selection, DefaultCredential):
        stderr_line(f"Using {selection.describe()}")

    try:
        credential = runtime.credential_provider(selection, invocation.cloud)
    except AuthenticationError as exc:
        raise CliCommandError(
            "ErrAuthentication",
            str(exc),
            exit_code=error_code("ErrAuthentication"),
        ) from exc

    reporter = ResultReporter()
    target = invocation.target
    try:
        backend = runtime.backend_opener(
            subscription_id=target.subscription_id,
            resource_group_name=target.resource_group_name,
            account_name=target.account_name,
            credential=credential,
            cloud=invocation.cloud,
        )
    except BackendError as exc:
        stderr_line(f"an error occurred while obtaining storage client: {exc}")
        emit_result(reporter.render_error(operation, error_text(exc), target))
        return 0

    config = runtime.engine_config or LeaseEngineConfig(
        diagnostics=stderr_line,
        error_log=stderr_line,
    )
    outcome = execute(backend, config)
    emit_result(reporter.render(operation, outcome, target))
    return 0


def _validate_command_arguments(args: argparse.Namespace) -> None:
    if args.command == "acquire":
        _validated(validate_lease_duration, args.lease_duration)
        _validated(validate_retries, args.retries)
        _validated(validate_acquire_wait, args.wait_time_sec)
    elif args.command == "renew":
        _validated(validate_lease_token, args.lease_id)
        _validated(validate_iterations, args.iterations)
        _validated(validate_renew_wait, args.wait_time_sec)


def _cli_defaults(runtime: CliRuntime) -> CliDefaults:
    if runtime.env is None:
        load_project_env()
    try:
        return resolve_cli_defaults(runtime.env)
    except SettingsError as exc:
        raise CliCommandError(
            "ErrInvalidArgument",
            str(exc),
            exit_code=error_code("ErrInvalidArgument"),
        ) from exc


def _validated(validator: Callable[[Any], Any], value: Any) -> Any:
    try:
        return validator(value)
    except LeaseArgumentError as exc:
        raise _argument_error(exc) from exc


def _argument_error(exc: LeaseArgumentError) -> CliCommandError:
    return CliCommandError(
        exc.code,
        str(exc),
        exit_code=error_code(exc.code),
        show_usage=True,
    )


def _print_usage(parser: argparse.ArgumentParser) -> None:
    print(parser.format_help(), file=sys.stderr)
