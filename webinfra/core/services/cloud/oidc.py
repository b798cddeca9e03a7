"""GitHub Actions OIDC setup -- federated credentials instead of client secrets.

Creates (or reuses) an Entra ID application for the pipeline, gives its
service principal a role on the subscription, and registers two federated
credentials so that workflow runs on the default branch and on pull
requests can exchange their GitHub token for an Azure token:

* ``repo:<org>/<repo>:ref:refs/heads/<branch>``
* ``repo:<org>/<repo>:pull_request``

Re-running is safe: the application is looked up by display name, and
subjects that are already registered are skipped.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ...state.oidc_state import OidcReceipt, OidcReceiptStore
from ._azure_rbac import (
    CONTRIBUTOR_ROLE,
    GITHUB_OIDC_ISSUER,
    TOKEN_EXCHANGE_AUDIENCE,
    is_already_exists,
    resource_group_scope,
    subscription_scope,
)
from .azure import AzureCLI

logger = logging.getLogger(__name__)


@dataclass
class FederatedSubject:
    name: str
    subject: str
    description: str = ""

    def parameters(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "issuer": GITHUB_OIDC_ISSUER,
            "subject": self.subject,
            "description": self.description,
            "audiences": [TOKEN_EXCHANGE_AUDIENCE],
        }


def _credential_name(*parts: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", "-".join(parts)).strip("-")[:120]


def federated_subjects(org: str, repo: str, branch: str = "main") -> list[FederatedSubject]:
    """The two trust subjects the pipeline authenticates with."""
    slug = f"{org}/{repo}"
    return [
        FederatedSubject(
            name=_credential_name(org, repo, branch, "branch"),
            subject=f"repo:{slug}:ref:refs/heads/{branch}",
            description=f"GitHub Actions on {slug}@{branch}",
        ),
        FederatedSubject(
            name=_credential_name(org, repo, "pull-request"),
            subject=f"repo:{slug}:pull_request",
            description=f"GitHub Actions pull requests on {slug}",
        ),
    ]


@dataclass
class OidcRequest:
    github_org: str
    github_repo: str
    app_name: str
    branch: str = "main"
    role: str = CONTRIBUTOR_ROLE
    resource_group: str = ""  # empty scopes the role to the whole subscription

    @property
    def repository(self) -> str:
        return f"{self.github_org}/{self.github_repo}"


@dataclass
class OidcResult:
    ok: bool
    steps: list[dict[str, Any]] = field(default_factory=list)
    receipt: OidcReceipt | None = None
    error: str = ""


class OidcProvisioner:
    """Runs the identity-management sequence for GitHub OIDC."""

    def __init__(self, az: AzureCLI, store: OidcReceiptStore | None = None) -> None:
        self._az = az
        self._store = store

    def setup(self, req: OidcRequest) -> OidcResult:
        steps: list[dict[str, Any]] = []
        logger.info(
            "Starting OIDC setup: repo=%s, app=%s, role=%s",
            req.repository, req.app_name, req.role,
        )

        account = self._az.account_info()
        if not account:
            steps.append({"step": "account", "status": "failed", "detail": "Not logged in"})
            return OidcResult(ok=False, steps=steps, error="Not logged in to Azure. Run 'az login' first.")
        sub_id = account.get("id", "")
        tenant_id = account.get("tenantId", "")
        steps.append({"step": "account", "status": "ok", "detail": account.get("name", sub_id)})

        logger.info("Step 1/4: Creating application identity '%s'...", req.app_name)
        app_id, object_id = self._ensure_app(req.app_name, steps)
        if not app_id:
            return OidcResult(ok=False, steps=steps, error=f"App registration failed: {self._az.last_stderr}")

        logger.info("Step 2/4: Creating service principal for %s...", app_id)
        if not self._ensure_service_principal(app_id, steps):
            return OidcResult(ok=False, steps=steps, error=f"Service principal creation failed: {self._az.last_stderr}")

        scope = (
            resource_group_scope(sub_id, req.resource_group)
            if req.resource_group else subscription_scope(sub_id)
        )
        logger.info("Step 3/4: Assigning '%s' on %s...", req.role, scope)
        if not self._assign_role(app_id, req.role, scope, steps):
            return OidcResult(ok=False, steps=steps, error=f"Role assignment failed: {self._az.last_stderr}")

        logger.info("Step 4/4: Registering federated credentials...")
        if not self._ensure_federated_credentials(object_id or app_id, req, steps):
            return OidcResult(ok=False, steps=steps, error=f"Federated credential failed: {self._az.last_stderr}")

        receipt = OidcReceipt.new(
            client_id=app_id, tenant_id=tenant_id,
            subscription_id=sub_id, repository=req.repository,
        )
        if self._store:
            self._store.save(receipt)
            steps.append({"step": "receipt", "status": "ok", "detail": str(self._store.path)})

        logger.info("OIDC setup completed: app_id=%s, repo=%s", app_id, req.repository)
        return OidcResult(ok=True, steps=steps, receipt=receipt)

    def _ensure_app(self, display_name: str, steps: list[dict]) -> tuple[str, str]:
        existing_list = self._az.json("ad", "app", "list", "--display-name", display_name)
        existing = existing_list[0] if isinstance(existing_list, list) and existing_list else None
        if isinstance(existing, dict) and existing.get("appId"):
            app_id = existing["appId"]
            logger.info("Reusing existing app registration: %s (appId=%s)", display_name, app_id)
            steps.append({"step": "app_registration", "status": "ok", "detail": app_id, "reused": True})
            return app_id, existing.get("id", "")

        app = self._az.json(
            "ad", "app", "create", "--display-name", display_name,
            "--sign-in-audience", "AzureADMyOrg",
        )
        if not isinstance(app, dict) or not app.get("appId"):
            steps.append({"step": "app_registration", "status": "failed", "detail": self._az.last_stderr})
            return "", ""
        steps.append({"step": "app_registration", "status": "ok", "detail": app["appId"]})
        return app["appId"], app.get("id", "")

    def _ensure_service_principal(self, app_id: str, steps: list[dict]) -> bool:
        sp = self._az.json("ad", "sp", "create", "--id", app_id)
        if sp is None and not is_already_exists(self._az.last_stderr):
            steps.append({"step": "service_principal", "status": "failed", "detail": self._az.last_stderr})
            return False
        reused = sp is None
        if reused:
            logger.info("Service principal already exists for %s -- continuing", app_id)
        steps.append({"step": "service_principal", "status": "ok", "detail": app_id, "reused": reused})
        return True

    def _assign_role(self, app_id: str, role: str, scope: str, steps: list[dict]) -> bool:
        result = self._az.json(
            "role", "assignment", "create",
            "--assignee", app_id,
            "--role", role,
            "--scope", scope,
        )
        if result is None and not is_already_exists(self._az.last_stderr):
            steps.append({"step": "role_assignment", "status": "failed", "detail": self._az.last_stderr})
            return False
        steps.append({"step": "role_assignment", "status": "ok", "detail": f"{role} on {scope}"})
        return True

    def _registered_subjects(self, app_ref: str) -> set[str]:
        listed = self._az.json("ad", "app", "federated-credential", "list", "--id", app_ref)
        if not isinstance(listed, list):
            return set()
        return {c.get("subject", "") for c in listed if isinstance(c, dict)}

    def _ensure_federated_credentials(
        self, app_ref: str, req: OidcRequest, steps: list[dict],
    ) -> bool:
        registered = self._registered_subjects(app_ref)

        for subj in federated_subjects(req.github_org, req.github_repo, req.branch):
            step = f"federated_{subj.name}"
            if subj.subject in registered:
                logger.info("Federated credential already registered: %s", subj.subject)
                steps.append({"step": step, "status": "skip", "detail": subj.subject})
                continue
            created = self._az.json(
                "ad", "app", "federated-credential", "create",
                "--id", app_ref,
                "--parameters", json.dumps(subj.parameters()),
            )
            if created is None:
                error = self._az.last_stderr
                # A name clash only counts when the subject really is trusted now.
                if not (is_already_exists(error) and subj.subject in self._registered_subjects(app_ref)):
                    self._az.last_stderr = error
                    steps.append({"step": step, "status": "failed", "detail": error})
                    return False
            steps.append({"step": step, "status": "ok", "detail": subj.subject})
        return True
