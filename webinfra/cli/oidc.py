"""Configure GitHub Actions OIDC access to Azure.

Usage::

    webinfra-oidc --org contoso --repo web-frontend
    webinfra-oidc contoso web-frontend github-actions-web --set-secrets
"""

from __future__ import annotations

import argparse
import logging
import sys

from webinfra.core.config.settings import cfg
from webinfra.core.services.cloud.azure import AzureCLI
from webinfra.core.services.cloud.github import GitHubCLI
from webinfra.core.services.cloud.oidc import OidcProvisioner, OidcRequest, federated_subjects
from webinfra.core.state.oidc_state import OidcReceipt, OidcReceiptStore

from . import _console as out

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webinfra-oidc",
        description="Create an Entra ID app with federated credentials for GitHub Actions.",
    )
    parser.add_argument("org", nargs="?", default=None, help="GitHub organization or user.")
    parser.add_argument("repo", nargs="?", default=None, help="GitHub repository name.")
    parser.add_argument("app_name", nargs="?", default=None, help="Entra ID application display name.")
    parser.add_argument("--org", dest="org_opt", default=None, help="Same as ORG.")
    parser.add_argument("--repo", dest="repo_opt", default=None, help="Same as REPO.")
    parser.add_argument("--app-name", dest="app_name_opt", default=None, help="Same as APP_NAME.")
    parser.add_argument("--branch", default="main", help="Branch trusted for deployments (default: main).")
    parser.add_argument("--role", default=None, help="Role to assign (default: OIDC_ROLE or Contributor).")
    parser.add_argument(
        "-g", "--resource-group", default="",
        help="Scope the role to this resource group instead of the subscription.",
    )
    parser.add_argument(
        "--set-secrets", action="store_true", default=False,
        help="Store the identifiers as GitHub Actions secrets with the gh CLI.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Verbose logging.")
    return parser


def _build_request(args: argparse.Namespace) -> OidcRequest:
    return OidcRequest(
        github_org=args.org_opt or args.org or cfg.github_org,
        github_repo=args.repo_opt or args.repo or cfg.github_repo,
        app_name=args.app_name_opt or args.app_name or cfg.oidc_app_name,
        branch=args.branch,
        role=args.role or cfg.oidc_role,
        resource_group=args.resource_group,
    )


def _print_receipt(receipt: OidcReceipt) -> None:
    out.header("GitHub Actions Secrets")
    out.info(f"Add these secrets to {receipt.repository}:")
    out.console.print(out.key_value_table(receipt.github_secrets()))


def _publish_secrets(receipt: OidcReceipt) -> bool:
    gh = GitHubCLI()
    status = gh.status()
    if not status["authenticated"]:
        out.error("gh CLI is not authenticated. Run 'gh auth login' or set GH_TOKEN.")
        return False
    steps = gh.set_secrets(receipt.repository, receipt.github_secrets())
    out.print_steps(steps)
    return all(s["status"] == "ok" for s in steps)


def _run(args: argparse.Namespace) -> int:
    req = _build_request(args)
    out.header("GitHub OIDC Setup")
    out.info(f"Repository: {req.repository}")
    out.info(f"Application: {req.app_name}")
    for subj in federated_subjects(req.github_org, req.github_repo, req.branch):
        out.info(f"Trust subject: {subj.subject}")

    az = AzureCLI(timeout=cfg.az_timeout)
    if not az.is_installed():
        out.error("Azure CLI is not installed. Please install it first.")
        return 1

    result = OidcProvisioner(az, OidcReceiptStore()).setup(req)
    out.print_steps(result.steps)
    if not result.ok or result.receipt is None:
        out.error(result.error or "OIDC setup failed")
        return 1

    out.success("OIDC setup completed")
    _print_receipt(result.receipt)

    if args.set_secrets:
        out.header("Publishing Secrets")
        if not _publish_secrets(result.receipt):
            out.error("Could not store all secrets in GitHub")
            return 1
        out.success("Secrets stored in GitHub")
    return 0


def main() -> None:
    """CLI entry point for ``webinfra-oidc``."""
    args = _build_parser().parse_args()
    out.setup_logging(args.verbose)

    try:
        code = _run(args)
    except KeyboardInterrupt:
        out.console.print("\n[dim]Interrupted.[/dim]")
        code = 130
    except Exception as exc:
        logger.debug("[cli.oidc] unhandled error", exc_info=True)
        out.error(f"OIDC setup failed: {exc}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
