"""Deploy the App Service infrastructure.

Checks the local tooling and login, validates the subscription-level
template, submits the deployment, then prints the outputs and writes
``deployment-info.json``.

Usage::

    webinfra-deploy
    webinfra-deploy westeurope --sku S1 --environment prod
    webinfra-deploy --yes --validate-only
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from webinfra.core.config.settings import cfg
from webinfra.core.services.cloud.azure import AzureCLI
from webinfra.core.services.deployment.deployer import (
    DeployRequest,
    DeployResult,
    InfraDeployer,
)
from webinfra.core.services.deployment.prerequisites import check_prerequisites
from webinfra.core.state.deploy_state import DeploymentReceiptStore

from . import _console as out

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webinfra-deploy",
        description="Deploy the .NET App Service infrastructure to Azure.",
    )
    parser.add_argument(
        "location", nargs="?", default=None,
        help="Azure region (default: AZURE_LOCATION or 'East US').",
    )
    parser.add_argument("-g", "--resource-group", default=None, help="Resource group name (default: timestamped).")
    parser.add_argument("-n", "--name", default=None, help="Web App name (default: timestamped).")
    parser.add_argument("--deployment-name", default=None, help="Deployment name (default: timestamped).")
    parser.add_argument("--sku", default=None, help="App Service Plan tier, e.g. B1, S1, P1v3.")
    parser.add_argument("--runtime", default=None, help=".NET version, e.g. v8.0.")
    parser.add_argument(
        "-e", "--environment", default=None,
        help="Environment name; selects infra/parameters/<env>.parameters.json.",
    )
    parser.add_argument("-p", "--parameters", type=Path, default=None, help="Explicit parameter file.")
    parser.add_argument("--template", type=Path, default=None, help="Override the subscription-level template.")
    parser.add_argument("-y", "--yes", action="store_true", default=False, help="Skip the confirmation prompt.")
    parser.add_argument(
        "--validate-only", action="store_true", default=False,
        help="Stop after template validation.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Verbose logging.")
    return parser


def _build_request(args: argparse.Namespace) -> DeployRequest:
    environment = args.environment or cfg.environment
    parameter_file = args.parameters
    if parameter_file is None:
        candidate = cfg.parameter_file(environment)
        parameter_file = candidate if candidate.is_file() else None
    return DeployRequest.with_defaults(
        resource_group=args.resource_group,
        web_app_name=args.name,
        deployment_name=args.deployment_name,
        location=args.location,
        sku=args.sku or cfg.sku,
        dotnet_version=args.runtime or cfg.dotnet_version,
        environment=environment,
        template_path=args.template,
        parameter_file=parameter_file,
    )


def _print_results(result: DeployResult) -> None:
    out.header("Deployment Results")
    receipt = result.receipt
    if receipt is None:
        return
    out.success("Deployment completed successfully!")
    out.console.print()
    out.info("Deployment Details:")
    out.console.print(out.key_value_table({
        "🌐 Web App URL": receipt.web_app_url,
        "📱 Web App Name": receipt.web_app_name,
        "📦 Resource Group": receipt.resource_group_name,
        "🕒 Deployment Name": receipt.deployment_name,
    }))
    out.console.print()
    out.info("Next Steps:")
    out.console.print("  1. Build and publish your .NET application")
    out.console.print("  2. Deploy your application using:")
    out.console.print(
        "     az webapp deployment source config-zip \\\n"
        f"       --resource-group \"{receipt.resource_group_name}\" \\\n"
        f"       --name \"{receipt.web_app_name}\" \\\n"
        "       --src \"./publish.zip\"",
        markup=False, highlight=False,
    )
    out.console.print()
    out.info("To clean up resources later:")
    out.console.print(
        f"  az group delete --name \"{receipt.resource_group_name}\" --yes --no-wait",
        markup=False, highlight=False,
    )


def _run(args: argparse.Namespace) -> int:
    out.header("Azure Infrastructure Deployment")
    out.console.print("This script will deploy infrastructure for hosting a .NET application on Azure\n")

    if not out.confirm("Do you want to proceed with deployment?", assume_yes=args.yes):
        out.info("Deployment cancelled")
        return 0

    az = AzureCLI(timeout=cfg.az_timeout)

    out.header("Checking Prerequisites")
    report = check_prerequisites(az)
    out.print_steps(report.steps)
    if not report.ok:
        out.error(report.error)
        return 1
    out.info(f"Current subscription: {report.subscription_name} ({report.subscription_id})")

    req = _build_request(args)
    deployer = InfraDeployer(az, DeploymentReceiptStore())

    out.header("Deploying Infrastructure" if not args.validate_only else "Validating Bicep Templates")
    out.info(f"Resource Group: {req.resource_group}")
    out.info(f"Web App Name: {req.web_app_name}")
    out.info(f"Location: {req.resolved_location()}")
    if req.parameter_file:
        out.info(f"Parameter file: {req.parameter_file}")

    with out.console.status("Running az deployment sub ..."):
        result = deployer.run(req, validate_only=args.validate_only)
    out.print_steps(result.steps)
    if not result.ok:
        out.error(result.error)
        return 1

    if args.validate_only:
        out.success("Template validation passed")
        return 0

    _print_results(result)
    out.success("🎉 All done! Your infrastructure is ready for deployment.")
    return 0


def main() -> None:
    """CLI entry point for ``webinfra-deploy``."""
    args = _build_parser().parse_args()
    out.setup_logging(args.verbose)

    try:
        code = _run(args)
    except KeyboardInterrupt:
        out.console.print("\n[dim]Interrupted.[/dim]")
        code = 130
    except Exception as exc:
        logger.debug("[cli.deploy] unhandled error", exc_info=True)
        out.error(f"Deployment failed: {exc}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
