"""Tests for the ``webinfra-deploy`` console script."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from webinfra.cli.deploy import _build_parser, _build_request, _run, main
from webinfra.core.services.deployment.deployer import DeploymentOutputs, DeployResult
from webinfra.core.services.deployment.prerequisites import PrerequisiteReport
from webinfra.core.state.deploy_state import DeploymentReceipt

MODULE = "webinfra.cli.deploy"


@pytest.fixture()
def parser():
    return _build_parser()


@pytest.fixture()
def ready_report() -> PrerequisiteReport:
    return PrerequisiteReport(ok=True, subscription_name="Contoso", subscription_id="sub-123")


def _success_result() -> DeployResult:
    receipt = DeploymentReceipt.new(
        resource_group_name="rg-dotnet-app-1",
        web_app_name="webapp-dotnet-1",
        web_app_url="https://webapp-dotnet-1.azurewebsites.net",
        deployment_name="infrastructure-deployment-1",
    )
    return DeployResult(
        ok=True,
        steps=[{"step": "validate", "status": "ok"}, {"step": "deploy", "status": "ok"}],
        outputs=DeploymentOutputs(web_app_url=receipt.web_app_url),
        receipt=receipt,
    )


class TestBuildParser:
    def test_defaults(self, parser) -> None:
        args = parser.parse_args([])
        assert args.location is None
        assert args.yes is False
        assert args.validate_only is False
        assert args.parameters is None

    def test_location_and_overrides(self, parser) -> None:
        args = parser.parse_args(["westeurope", "--sku", "S1", "--runtime", "v7.0", "-e", "prod", "-y"])
        assert args.location == "westeurope"
        assert args.sku == "S1"
        assert args.runtime == "v7.0"
        assert args.environment == "prod"
        assert args.yes is True


class TestBuildRequest:
    def test_uses_environment_parameter_file(self, parser) -> None:
        req = _build_request(parser.parse_args(["-e", "prod"]))
        assert req.parameter_file is not None
        assert req.parameter_file.name == "prod.parameters.json"
        assert req.parameters()["appServicePlanSku"] == "P1v3"

    def test_unknown_environment_has_no_parameter_file(self, parser) -> None:
        req = _build_request(parser.parse_args(["-e", "qa"]))
        assert req.parameter_file is None

    def test_location_from_parameter_file(self, parser, tmp_path: Path) -> None:
        params = tmp_path / "eu.parameters.json"
        params.write_text(json.dumps({
            "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentParameters.json#",
            "contentVersion": "1.0.0.0",
            "parameters": {"location": {"value": "westeurope"}},
        }))
        req = _build_request(parser.parse_args(["-p", str(params)]))
        assert req.resolved_location() == "westeurope"

        req = _build_request(parser.parse_args(["northeurope", "-p", str(params)]))
        assert req.resolved_location() == "northeurope"

    def test_explicit_values(self, parser, tmp_path: Path) -> None:
        params = tmp_path / "custom.parameters.json"
        args = parser.parse_args(["northeurope", "-g", "rg-x", "-n", "app-x", "-p", str(params)])
        req = _build_request(args)
        assert req.location == "northeurope"
        assert req.resource_group == "rg-x"
        assert req.web_app_name == "app-x"
        assert req.parameter_file == params
        assert req.deployment_name.startswith("infrastructure-deployment-")


class TestRun:
    def test_declined_confirmation(self, parser) -> None:
        with patch(f"{MODULE}.AzureCLI") as mock_az, patch(f"{MODULE}.out.confirm", return_value=False):
            assert _run(parser.parse_args([])) == 0
        mock_az.assert_not_called()

    def test_prerequisites_failure_stops_before_deploy(self, parser) -> None:
        report = PrerequisiteReport(ok=False, error="Azure CLI is not installed. Please install it first.")
        with (
            patch(f"{MODULE}.AzureCLI"),
            patch(f"{MODULE}.check_prerequisites", return_value=report),
            patch(f"{MODULE}.InfraDeployer") as mock_deployer,
        ):
            assert _run(parser.parse_args(["-y"])) == 1
        mock_deployer.return_value.run.assert_not_called()

    def test_deployment_failure(self, parser, ready_report) -> None:
        failed = DeployResult(ok=False, error="Template validation failed: bad sku")
        with (
            patch(f"{MODULE}.AzureCLI"),
            patch(f"{MODULE}.check_prerequisites", return_value=ready_report),
            patch(f"{MODULE}.InfraDeployer") as mock_deployer,
        ):
            mock_deployer.return_value.run.return_value = failed
            assert _run(parser.parse_args(["-y"])) == 1

    def test_success(self, parser, ready_report, capsys) -> None:
        with (
            patch(f"{MODULE}.AzureCLI"),
            patch(f"{MODULE}.check_prerequisites", return_value=ready_report),
            patch(f"{MODULE}.InfraDeployer") as mock_deployer,
        ):
            mock_deployer.return_value.run.return_value = _success_result()
            assert _run(parser.parse_args(["-y", "--sku", "S1"])) == 0

        req = mock_deployer.return_value.run.call_args.args[0]
        assert req.sku == "S1"
        assert mock_deployer.return_value.run.call_args.kwargs == {"validate_only": False}
        out = capsys.readouterr().out
        assert "https://webapp-dotnet-1.azurewebsites.net" in out
        assert "config-zip" in out

    def test_validate_only(self, parser, ready_report) -> None:
        with (
            patch(f"{MODULE}.AzureCLI"),
            patch(f"{MODULE}.check_prerequisites", return_value=ready_report),
            patch(f"{MODULE}.InfraDeployer") as mock_deployer,
        ):
            mock_deployer.return_value.run.return_value = DeployResult(ok=True)
            assert _run(parser.parse_args(["-y", "--validate-only"])) == 0
        assert mock_deployer.return_value.run.call_args.kwargs == {"validate_only": True}


class TestMain:
    def _main(self, argv: list[str], run: MagicMock) -> int:
        with patch("sys.argv", ["webinfra-deploy", *argv]), patch(f"{MODULE}._run", run):
            with pytest.raises(SystemExit) as exc:
                main()
        return exc.value.code

    def test_exit_code_from_run(self) -> None:
        assert self._main(["-y"], MagicMock(return_value=0)) == 0
        assert self._main(["-y"], MagicMock(return_value=1)) == 1

    def test_interrupt(self) -> None:
        assert self._main(["-y"], MagicMock(side_effect=KeyboardInterrupt)) == 130

    def test_unexpected_error(self) -> None:
        assert self._main(["-y"], MagicMock(side_effect=RuntimeError("boom"))) == 1
