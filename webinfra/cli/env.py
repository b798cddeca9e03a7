"""Inspect or tear down the last deployment recorded in ``deployment-info.json``."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from webinfra.core.config.settings import cfg
from webinfra.core.services.cloud.azure import AzureCLI
from webinfra.core.services.deployment.deployer import InfraDeployer
from webinfra.core.state.deploy_state import DeploymentReceipt, DeploymentReceiptStore
from webinfra.core.state.oidc_state import OidcReceiptStore

from . import _console as out

logger = logging.getLogger(__name__)


def _load_receipt(store: DeploymentReceiptStore) -> DeploymentReceipt | None:
    receipt = store.load()
    if receipt is None:
        out.error(f"No deployment recorded at {store.path}. Run webinfra-deploy first.")
    return receipt


def cmd_show(args: argparse.Namespace) -> int:
    store = DeploymentReceiptStore()
    receipt = _load_receipt(store)
    if receipt is None:
        return 1

    if args.json:
        out.console.print_json(json.dumps(store.to_json(receipt)))
        return 0

    out.header("Last Deployment")
    out.console.print(out.key_value_table({
        "Web App URL": receipt.web_app_url,
        "Web App Name": receipt.web_app_name,
        "Resource Group": receipt.resource_group_name,
        "Deployment Name": receipt.deployment_name,
        "Deployed At": receipt.timestamp,
    }))

    oidc = OidcReceiptStore().load()
    if oidc:
        out.console.print()
        out.header("OIDC")
        out.console.print(out.key_value_table({
            "Repository": oidc.repository,
            **oidc.github_secrets(),
        }))
    return 0


def cmd_status(_args: argparse.Namespace) -> int:
    receipt = _load_receipt(DeploymentReceiptStore())
    if receipt is None:
        return 1

    deployer = InfraDeployer(AzureCLI(timeout=cfg.az_timeout))
    state = deployer.site_state(receipt.resource_group_name, receipt.web_app_name)
    if state is None:
        out.error(f"Web App {receipt.web_app_name} not found in {receipt.resource_group_name}")
        return 1
    if state == "Running":
        out.success(f"{receipt.web_app_name} is {state} at {receipt.web_app_url}")
    else:
        out.warning(f"{receipt.web_app_name} is {state}")
    return 0


def cmd_destroy(args: argparse.Namespace) -> int:
    store = DeploymentReceiptStore()
    receipt = _load_receipt(store)
    if receipt is None:
        return 1

    rg = receipt.resource_group_name
    out.warning(f"This deletes resource group {rg} and everything in it.")
    if not out.confirm(f"Delete {rg}?", assume_yes=args.yes):
        out.info("Aborted.")
        return 0

    result = InfraDeployer(AzureCLI(timeout=cfg.az_timeout)).destroy(rg)
    if not result:
        out.error(result.message)
        return 1
    out.success(result.message)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webinfra-env",
        description="Show, check or delete the last deployed environment.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Verbose logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_show = sub.add_parser("show", help="Print the deployment receipt")
    p_show.add_argument("--json", action="store_true", help="Output as JSON")

    sub.add_parser("status", help="Query the Web App state from Azure")

    p_destroy = sub.add_parser("destroy", help="Delete the deployment's resource group")
    p_destroy.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")
    return parser


COMMANDS = {"show": cmd_show, "status": cmd_status, "destroy": cmd_destroy}


def main() -> None:
    """CLI entry point for ``webinfra-env``."""
    args = _build_parser().parse_args()
    out.setup_logging(args.verbose)

    try:
        code = COMMANDS[args.command](args)
    except KeyboardInterrupt:
        code = 130
    except Exception as exc:
        logger.debug("[cli.env] unhandled error", exc_info=True)
        out.error(str(exc))
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
