from __future__ import annotations

import contextlib
import functools
import io
import json
from pathlib import Path
import tempfile
from typing import Any
import unittest

from azbloblease import __version__
from azbloblease.cli import CliRuntime, main
from identity.credentials import AuthenticationError, SystemAssignedIdentity
from lease.config import LeaseEngineConfig
from storage.azure import open_azure_backend
from storage.backend import BackendError, LeaseReceipt, ResourceNotFoundError

SUBSCRIPTION_ID = "11111111-1111-1111-1111-111111111111"
LEASE_ID = "d3d63201-153b-453b-85ef-6c3bee3082f0"


class _InMemoryBackend:
    def __init__(self) -> None:
        self.containers: set[str] = set()
        self.blobs: set[tuple[str, str]] = set()
        self.held_by: str | None = None
        self.calls: list[str] = []

    def get_container_properties(self, container: str) -> dict[str, Any]:
        self.calls.append("get_container_properties")
        if container not in self.containers:
            raise ResourceNotFoundError("ContainerNotFound")
        return {"name": container}

    def create_container(self, container: str) -> None:
        self.calls.append("create_container")
        self.containers.add(container)

    def get_blob_properties(self, container: str, blob: str) -> dict[str, Any]:
        self.calls.append("get_blob_properties")
        if (container, blob) not in self.blobs:
            raise ResourceNotFoundError("BlobNotFound")
        return {"name": blob}

    def upload_blob(self, container: str, blob: str, data: bytes) -> None:
        self.calls.append("upload_blob")
        self.blobs.add((container, blob))

    def acquire_lease(self, container: str, blob: str, *, lease_id: str, duration: int) -> LeaseReceipt:
        self.calls.append("acquire_lease")
        if self.held_by not in (None, lease_id):
            raise BackendError('There is already a lease present. ErrorCode:"LeaseAlreadyPresent"')
        self.held_by = lease_id
        return LeaseReceipt(lease_id=lease_id, request_id="req-a")

    def renew_lease(self, container: str, blob: str, *, lease_id: str) -> LeaseReceipt:
        self.calls.append("renew_lease")
        if self.held_by != lease_id:
            raise BackendError("LeaseIdMismatchWithLeaseOperation")
        return LeaseReceipt(lease_id=lease_id, request_id="req-r")


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = _InMemoryBackend()
        self.sleeps: list[float] = []
        self.diagnostics: list[str] = []
        self.opened: list[dict[str, Any]] = []
        self.credential_requests: list[Any] = []

    def _runtime(self, **overrides: Any) -> CliRuntime:
        def _credential(selection: Any, cloud: Any) -> str:
            self.credential_requests.append((selection, cloud))
            return "token-credential"

        def _open(**kwargs: Any) -> _InMemoryBackend:
            self.opened.append(kwargs)
            return self.backend

        values: dict[str, Any] = {
            "credential_provider": _credential,
            "backend_opener": _open,
            "engine_config": LeaseEngineConfig(
                sleep=self.sleeps.append,
                token_factory=lambda: LEASE_ID,
                diagnostics=self.diagnostics.append,
                random_bytes=lambda size: b"\x00" * size,
            ),
            "env": {},
        }
        values.update(overrides)
        return CliRuntime(**values)

    def _invoke(self, argv: list[str], runtime: CliRuntime | None = None) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            exit_code = main(argv, runtime=runtime or self._runtime())
        return exit_code, stdout.getvalue(), stderr.getvalue()

    def _target_args(self, **overrides: str) -> list[str]:
        values = {
            "--subscription-id": SUBSCRIPTION_ID,
            "--resource-group-name": "rg-leader",
            "--account-name": "leaderstore",
            "--container": "AzBlobLease",
        }
        values.update(overrides)
        argv: list[str] = []
        for flag, value in values.items():
            if value:
                argv.extend([flag, value])
        return argv

    def test_version_prints_version(self) -> None:
        exit_code, stdout, _ = self._invoke(["version"])

        self.assertEqual(exit_code, 0)
        self.assertEqual(stdout.strip(), __version__)

    def test_no_command_prints_usage_and_fails(self) -> None:
        exit_code, stdout, stderr = self._invoke([])

        self.assertEqual(exit_code, 100)
        self.assertEqual(stdout, "")
        self.assertIn("createleaseblob", stderr)

    def test_unknown_flag_is_invalid_argument(self) -> None:
        exit_code, stdout, stderr = self._invoke(["acquire", "--lease-forever"])

        self.assertEqual(exit_code, 100)
        self.assertEqual(stdout, "")
        self.assertIn("ErrInvalidArgument", stderr)

    def test_createleaseblob_is_idempotent(self) -> None:
        argv = ["createleaseblob", *self._target_args()]

        first_code, first_out, _ = self._invoke(argv)
        second_code, second_out, _ = self._invoke(argv)

        self.assertEqual((first_code, second_code), (0, 0))
        first = json.loads(first_out)
        second = json.loads(second_out)
        self.assertEqual(first["status"], "Success")
        self.assertEqual(second["status"], "SuccessAlreadyExists")
        self.assertIsNone(first["leaseId"])
        self.assertIsNone(first["errorMessage"])
        self.assertEqual(first["operation"], "createleaseblob")
        self.assertEqual(first["containerName"], "azbloblease")
        self.assertEqual(first["blobName"], "azblobleaseblob")
        self.assertIn(("azbloblease", "azblobleaseblob"), self.backend.blobs)

    def test_acquire_then_renew(self) -> None:
        self._invoke(["createleaseblob", *self._target_args()])

        code, stdout, _ = self._invoke(["acquire", *self._target_args(), "--lease-duration", "30"])
        acquired = json.loads(stdout)

        self.assertEqual(code, 0)
        self.assertEqual(acquired["status"], "Success")
        self.assertEqual(acquired["leaseId"], LEASE_ID)

        code, stdout, _ = self._invoke(
            [
                "renew",
                *self._target_args(),
                "--lease-id",
                f" {LEASE_ID} ",
                "--iterations",
                "3",
                "--wait-time-sec",
                "10",
            ]
        )
        renewed = json.loads(stdout)

        self.assertEqual(code, 0)
        self.assertEqual(renewed["status"], "SuccessOnRenew")
        self.assertEqual(renewed["leaseId"], LEASE_ID)
        self.assertIsNone(renewed["errorMessage"])
        self.assertEqual(self.sleeps, [10, 10, 10])
        self.assertEqual(len(self.diagnostics), 3)

    def test_contended_acquire_reports_fail_with_exit_zero(self) -> None:
        self._invoke(["createleaseblob", *self._target_args()])
        self.backend.held_by = "someone-else"

        code, stdout, _ = self._invoke(
            ["acquire", *self._target_args(), "--retries", "3", "--wait-time-sec", "5"]
        )
        result = json.loads(stdout)

        self.assertEqual(code, 0)
        self.assertEqual(result["status"], "Fail")
        self.assertIsNone(result["leaseId"])
        self.assertEqual(result["errorMessage"], "There is already a lease present. ErrorCode:LeaseAlreadyPresent")
        self.assertEqual(self.sleeps, [5, 5])

    def test_single_dash_aliases_are_accepted(self) -> None:
        code, stdout, _ = self._invoke(
            [
                "createleaseblob",
                "-subscriptionid",
                SUBSCRIPTION_ID,
                "-resourcegroupname",
                "rg-leader",
                "-accountname",
                "leaderstore",
                "-container",
                "leases",
                "-blobname",
                "scheduler",
            ]
        )

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["blobName"], "scheduler")

    def test_missing_target_arguments_map_to_exit_codes(self) -> None:
        cases = {
            "--subscription-id": 160,
            "--resource-group-name": 110,
            "--account-name": 120,
            "--container": 130,
        }
        for flag, expected in cases.items():
            with self.subTest(flag=flag):
                code, stdout, _ = self._invoke(["createleaseblob", *self._target_args(**{flag: ""})])
                self.assertEqual(code, expected)
                self.assertEqual(stdout, "")
        self.assertEqual(self.opened, [])

    def test_numeric_bounds_map_to_exit_codes_before_any_backend_call(self) -> None:
        cases = (
            (["acquire", "--lease-duration", "14"], 140),
            (["acquire", "--lease-duration", "61"], 140),
            (["acquire", "--retries", "0"], 170),
            (["acquire", "--wait-time-sec", "60"], 180),
            (["acquire", "--wait-time-sec", "-1"], 180),
            (["renew", "--iterations", "2"], 150),
            (["renew", "--lease-id", LEASE_ID, "--iterations", "0"], 500),
            (["renew", "--lease-id", LEASE_ID, "--wait-time-sec", "0"], 501),
            (["renew", "--lease-id", LEASE_ID, "--wait-time-sec", "60"], 501),
        )
        for extra, expected in cases:
            with self.subTest(argv=extra):
                code, stdout, _ = self._invoke([extra[0], *self._target_args(), *extra[1:]])
                self.assertEqual(code, expected)
                self.assertEqual(stdout, "")
        self.assertEqual(self.opened, [])
        self.assertEqual(self.credential_requests, [])

    def test_cloud_selection_errors_map_to_exit_codes(self) -> None:
        cases = (
            (["--environment", "AZUREMOONCLOUD"], 200),
            (["--custom-cloudconfig-file", "cloud.json"], 210),
            (["--environment", "CUSTOMCLOUD"], 220),
            (["--environment", "CUSTOMCLOUD", "--custom-cloudconfig-file", "/nonexistent/cloud.json"], 230),
        )
        for extra, expected in cases:
            with self.subTest(argv=extra):
                code, _, _ = self._invoke(["createleaseblob", *self._target_args(), *extra])
                self.assertEqual(code, expected)

    def test_custom_cloud_descriptor_is_passed_to_backend(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cloud.json"
            path.write_text(
                json.dumps(
                    {"endpoints": {"activeDirectory": "https://login.local", "resourceManager": "https://arm.local/"}}
                ),
                encoding="utf-8",
            )
            code, _, _ = self._invoke(
                [
                    "createleaseblob",
                    *self._target_args(),
                    "--environment",
                    "customcloud",
                    "--custom-cloudconfig-file",
                    str(path),
                ]
            )

        self.assertEqual(code, 0)
        self.assertEqual(self.opened[0]["cloud"].resource_manager_endpoint, "https://arm.local/")
        self.assertEqual(self.opened[0]["credential"], "token-credential")
        self.assertEqual(self.opened[0]["account_name"], "leaderstore")

    def test_authentication_failure_exits_300(self) -> None:
        def _fail(selection: Any, cloud: Any) -> Any:
            raise AuthenticationError("no identity endpoint")

        code, stdout, stderr = self._invoke(
            ["createleaseblob", *self._target_args()],
            runtime=self._runtime(credential_provider=_fail),
        )

        self.assertEqual(code, 300)
        self.assertEqual(stdout, "")
        self.assertIn("ErrAuthentication", stderr)

    def test_backend_connection_failure_is_reported_as_fail_result(self) -> None:
        def _open(**kwargs: Any) -> Any:
            raise BackendError('storage account "leaderstore" was not found')

        code, stdout, stderr = self._invoke(
            ["acquire", *self._target_args()],
            runtime=self._runtime(backend_opener=_open),
        )
        result = json.loads(stdout)

        self.assertEqual(code, 0)
        self.assertEqual(result["status"], "Fail")
        self.assertEqual(result["errorMessage"], "storage account leaderstore was not found")
        self.assertIn("obtaining storage client", stderr)

    def test_storage_client_setup_failure_still_emits_one_result(self) -> None:
        def _management_unavailable(*args: Any, **kwargs: Any) -> Any:
            raise ImportError("cannot import name 'StorageManagementClient'")

        opener = functools.partial(open_azure_backend, management_client_type=_management_unavailable)

        code, stdout, stderr = self._invoke(
            ["acquire", *self._target_args()],
            runtime=self._runtime(backend_opener=opener),
        )
        result = json.loads(stdout)

        self.assertEqual(code, 0)
        self.assertEqual(result["operation"], "acquire")
        self.assertEqual(result["status"], "Fail")
        self.assertIsNone(result["leaseId"])
        self.assertIn("StorageManagementClient", result["errorMessage"])
        self.assertIn("obtaining storage client", stderr)

    def test_argument_error_prints_the_subcommand_help(self) -> None:
        code, _, stderr = self._invoke(["acquire", *self._target_args(), "--lease-duration", "14"])

        self.assertEqual(code, 140)
        self.assertIn("--retries", stderr)
        self.assertIn("ErrInvalidArgumentInvalidLeaseDuration", stderr)

    def test_environment_defaults_apply_when_flags_absent(self) -> None:
        runtime = self._runtime(
            env={
                "AZBLOBLEASE_BLOB_NAME": "from-env",
                "AZBLOBLEASE_USE_SYSTEM_MANAGED_IDENTITY": "true",
            }
        )

        code, stdout, stderr = self._invoke(["createleaseblob", *self._target_args()], runtime=runtime)

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["blobName"], "from-env")
        self.assertIsInstance(self.credential_requests[0][0], SystemAssignedIdentity)
        self.assertIn("Using system assigned managed identity", stderr)

    def test_explicit_flag_beats_environment_default(self) -> None:
        runtime = self._runtime(env={"AZBLOBLEASE_BLOB_NAME": "from-env"})

        _, stdout, _ = self._invoke(
            ["createleaseblob", *self._target_args(), "--blob-name", "from-flag"],
            runtime=runtime,
        )

        self.assertEqual(json.loads(stdout)["blobName"], "from-flag")

    def test_malformed_environment_flag_is_invalid_argument(self) -> None:
        runtime = self._runtime(env={"AZBLOBLEASE_USE_SYSTEM_MANAGED_IDENTITY": "maybe"})

        code, _, stderr = self._invoke(["createleaseblob", *self._target_args()], runtime=runtime)

        self.assertEqual(code, 100)
        self.assertIn("AZBLOBLEASE_USE_SYSTEM_MANAGED_IDENTITY", stderr)


if __name__ == "__main__":
    unittest.main()
