"""Tests for AzureCLI."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

from webinfra.core.services.cloud.azure import AzureCLI


def _proc(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(["az"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestAzureCLIJson:
    @patch.object(AzureCLI, "_run")
    def test_success(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout='{"name": "test"}')
        az = AzureCLI()
        assert az.json("account", "show") == {"name": "test"}
        cmd = mock_run.call_args[0][0]
        assert cmd == ["az", "account", "show", "--output", "json"]

    @patch.object(AzureCLI, "_run")
    def test_failure(self, mock_run) -> None:
        mock_run.return_value = _proc(returncode=1, stderr="error")
        az = AzureCLI()
        assert az.json("fail") is None
        assert "error" in az.last_stderr

    @patch.object(AzureCLI, "_run")
    def test_invalid_json(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout="not json")
        az = AzureCLI()
        assert az.json("bad") is None

    @patch.object(AzureCLI, "_run")
    def test_empty_output_is_success(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout="")
        az = AzureCLI()
        assert az.json("role", "assignment", "create") == {}

    @patch.object(AzureCLI, "_run")
    def test_returns_list(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout='[{"id": 1}]')
        az = AzureCLI()
        assert isinstance(az.json("resource", "list"), list)


class TestAzureCLIJsonCached:
    @patch.object(AzureCLI, "_run")
    def test_caches(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout='{"cached": true}')
        az = AzureCLI()
        assert az.json_cached("account", "show") == az.json_cached("account", "show")
        assert mock_run.call_count == 1

    @patch.object(AzureCLI, "_run")
    def test_invalidate_cache(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout='{"cached": true}')
        az = AzureCLI()
        az.json_cached("account", "show")
        az.invalidate_cache("account", "show")
        az.json_cached("account", "show")
        assert mock_run.call_count == 2

    @patch.object(AzureCLI, "_run")
    def test_invalidate_all(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout="{}")
        az = AzureCLI()
        az.json_cached("a")
        az.json_cached("b")
        az.invalidate_cache()
        assert len(az._cache) == 0


class TestAzureCLIOk:
    @patch.object(AzureCLI, "_run")
    def test_success(self, mock_run) -> None:
        mock_run.return_value = _proc()
        result = AzureCLI().ok("bicep", "version")
        assert result.success is True
        assert bool(result) is True

    @patch.object(AzureCLI, "_run")
    def test_failure(self, mock_run) -> None:
        mock_run.return_value = _proc(returncode=1, stderr="error msg")
        az = AzureCLI()
        ok, message = az.ok("group", "delete")
        assert ok is False
        assert "error msg" in message
        assert az.last_stderr == "error msg"


class TestAzureCLITsv:
    @patch.object(AzureCLI, "_run")
    def test_returns_stripped_field(self, mock_run) -> None:
        mock_run.return_value = _proc(stdout="Running\n")
        az = AzureCLI()
        assert az.tsv("webapp", "show", query="state") == "Running"
        cmd = mock_run.call_args[0][0]
        assert cmd[-4:] == ["--query", "state", "--output", "tsv"]

    @patch.object(AzureCLI, "_run")
    def test_failure_returns_none(self, mock_run) -> None:
        mock_run.return_value = _proc(returncode=3, stderr="ResourceNotFound")
        az = AzureCLI()
        assert az.tsv("webapp", "show", query="state") is None
        assert az.last_stderr == "ResourceNotFound"


class TestAzureCLIAccountInfo:
    @patch.object(AzureCLI, "json_cached")
    def test_returns_dict(self, mock_cached) -> None:
        mock_cached.return_value = {"id": "123", "name": "sub"}
        assert AzureCLI().account_info() == {"id": "123", "name": "sub"}

    @patch.object(AzureCLI, "json_cached")
    def test_returns_none(self, mock_cached) -> None:
        mock_cached.return_value = None
        assert AzureCLI().account_info() is None

    @patch.object(AzureCLI, "json_cached")
    def test_returns_none_for_list(self, mock_cached) -> None:
        mock_cached.return_value = [1, 2]
        assert AzureCLI().account_info() is None


class TestAzureCLIProcess:
    def test_is_installed_uses_path_lookup(self) -> None:
        with patch("webinfra.core.services.cloud.azure.shutil.which", return_value=None):
            assert AzureCLI().is_installed() is False
        with patch("webinfra.core.services.cloud.azure.shutil.which", return_value="/usr/bin/az"):
            assert AzureCLI().is_installed() is True

    def test_missing_executable_is_a_failed_call(self) -> None:
        with patch(
            "webinfra.core.services.cloud.azure.subprocess.Popen",
            side_effect=FileNotFoundError("az"),
        ):
            az = AzureCLI()
            assert az.json("account", "show") is None
            assert "not found" in az.last_stderr

    def test_timeout_setting(self) -> None:
        assert AzureCLI().timeout == AzureCLI.TIMEOUT
        assert AzureCLI(timeout=5).timeout == 5


def test_services_package_is_plain() -> None:
    import webinfra.core.services as services

    assert not hasattr(services, "__getattr__")
    assert not hasattr(services, "__all__")
