"""Tests for GitHubCLI."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from webinfra.core.services.cloud.github import GitHubCLI


def _proc(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(["gh"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture(autouse=True)
def _no_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


class TestStatus:
    def test_token_in_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GH_TOKEN", "ghp_x")
        with patch("webinfra.core.services.cloud.github.subprocess.run") as mock_run:
            assert GitHubCLI().status()["authenticated"] is True
        mock_run.assert_not_called()

    @patch("webinfra.core.services.cloud.github.subprocess.run")
    def test_auth_status(self, mock_run) -> None:
        mock_run.return_value = _proc(stderr="Logged in to github.com")
        status = GitHubCLI().status()
        assert status["authenticated"] is True
        assert "Logged in" in status["details"]

    @patch("webinfra.core.services.cloud.github.subprocess.run", side_effect=FileNotFoundError)
    def test_gh_missing(self, _mock_run) -> None:
        assert GitHubCLI().status() == {"authenticated": False, "details": "gh CLI not available"}


class TestSetSecret:
    @patch("webinfra.core.services.cloud.github.subprocess.run")
    def test_value_goes_to_stdin(self, mock_run) -> None:
        mock_run.return_value = _proc()
        result = GitHubCLI().set_secret("contoso/web", "AZURE_CLIENT_ID", "client-789")
        assert result
        cmd = mock_run.call_args.args[0]
        assert cmd == ["gh", "secret", "set", "AZURE_CLIENT_ID", "--repo", "contoso/web"]
        assert "client-789" not in cmd
        assert mock_run.call_args.kwargs["input"] == "client-789"

    @patch("webinfra.core.services.cloud.github.subprocess.run")
    def test_failure(self, mock_run) -> None:
        mock_run.return_value = _proc(returncode=1, stderr="HTTP 404")
        result = GitHubCLI().set_secret("contoso/web", "X", "y")
        assert not result
        assert result.message == "HTTP 404"

    @patch("webinfra.core.services.cloud.github.subprocess.run")
    def test_set_secrets_steps(self, mock_run) -> None:
        mock_run.side_effect = [_proc(), _proc(returncode=1, stderr="denied")]
        steps = GitHubCLI().set_secrets("contoso/web", {"AZURE_CLIENT_ID": "c", "AZURE_TENANT_ID": "t"})
        assert steps == [
            {"step": "secret_azure_client_id", "status": "ok", "detail": "AZURE_CLIENT_ID"},
            {"step": "secret_azure_tenant_id", "status": "failed", "detail": "denied"},
        ]
