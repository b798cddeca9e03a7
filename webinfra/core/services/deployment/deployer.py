"""Subscription-level template deployment: validate, create, read outputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from ...config.settings import cfg
from ...state.deploy_state import DeploymentReceipt, DeploymentReceiptStore
from ...templates.contract import (
    TemplateError,
    check_template_tree,
    load_parameter_file,
    parse_template,
)
from ...util.result import Result
from ..cloud.azure import AzureCLI

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class DeploymentNames:
    resource_group: str
    web_app: str
    deployment: str


def default_names(now: datetime | None = None) -> DeploymentNames:
    """Timestamp-derived names; one-second resolution."""
    ts = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return DeploymentNames(
        resource_group=f"rg-dotnet-app-{ts}",
        web_app=f"webapp-dotnet-{ts}",
        deployment=f"infrastructure-deployment-{ts}",
    )


@dataclass
class DeployRequest:
    resource_group: str
    web_app_name: str
    deployment_name: str
    location: str = ""
    sku: str | None = None
    dotnet_version: str | None = None
    environment: str | None = None
    template_path: Path | None = None
    parameter_file: Path | None = None

    @classmethod
    def with_defaults(cls, now: datetime | None = None, **overrides: Any) -> DeployRequest:
        names = default_names(now)
        values: dict[str, Any] = {
            "resource_group": names.resource_group,
            "web_app_name": names.web_app,
            "deployment_name": names.deployment,
        }
        values.update({k: v for k, v in overrides.items() if v is not None and v != ""})
        return cls(**values)

    @property
    def template(self) -> Path:
        return self.template_path or cfg.template_path

    def parameters(self) -> dict[str, Any]:
        """Parameter file values overlaid with the request's explicit values.

        ``location`` falls back to the configured default only when neither
        the request nor the parameter file names one.
        """
        params: dict[str, Any] = {}
        if self.parameter_file:
            params.update(load_parameter_file(self.parameter_file).values())
        explicit = {
            "resourceGroupName": self.resource_group,
            "location": self.location,
            "webAppName": self.web_app_name,
            "appServicePlanSku": self.sku,
            "dotnetVersion": self.dotnet_version,
            "environment": self.environment,
        }
        params.update({k: v for k, v in explicit.items() if v})
        if not params.get("location"):
            params["location"] = cfg.location
        return params

    def resolved_location(self) -> str:
        """Region sent as ``--location``: explicit, then parameter file, then settings."""
        return str(self.parameters()["location"])

    def parameter_args(self) -> list[str]:
        return ["--parameters", *(f"{k}={v}" for k, v in self.parameters().items())]


@dataclass
class DeploymentOutputs:
    web_app_url: str = ""
    web_app_name: str = ""
    resource_group_name: str = ""

    @staticmethod
    def from_arm(outputs: dict[str, Any]) -> DeploymentOutputs:
        def _value(key: str) -> str:
            entry = outputs.get(key) or {}
            return str(entry.get("value", "")) if isinstance(entry, dict) else ""

        return DeploymentOutputs(
            web_app_url=_value("webAppUrl"),
            web_app_name=_value("webAppName"),
            resource_group_name=_value("resourceGroupName"),
        )


@dataclass
class DeployResult:
    ok: bool
    steps: list[dict[str, Any]] = field(default_factory=list)
    outputs: DeploymentOutputs | None = None
    receipt: DeploymentReceipt | None = None
    error: str = ""


class InfraDeployer:
    """Orchestrates the validate -> deploy -> outputs pipeline."""

    def __init__(self, az: AzureCLI, store: DeploymentReceiptStore | None = None) -> None:
        self._az = az
        self._store = store

    def check_locally(self, req: DeployRequest) -> list[str]:
        """Problems found by reading the template, without calling Azure."""
        try:
            contract = parse_template(req.template)
            problems = contract.validate(req.parameters())
            problems.extend(check_template_tree(req.template))
        except TemplateError as exc:
            return [str(exc)]
        return problems

    def validate(self, req: DeployRequest) -> Result:
        problems = self.check_locally(req)
        if problems:
            for problem in problems:
                logger.error("Template check: %s", problem)
            return Result.fail("; ".join(problems))
        result = self._az.json(
            "deployment", "sub", "validate",
            "--location", req.resolved_location(),
            "--template-file", str(req.template),
            *req.parameter_args(),
        )
        if result is None:
            return Result.fail(self._az.last_stderr or "Template validation failed")
        return Result.ok("Template validation passed")

    def deploy(self, req: DeployRequest) -> Result:
        logger.info(
            "Deploying %s: rg=%s, webapp=%s, location=%s",
            req.deployment_name, req.resource_group, req.web_app_name, req.resolved_location(),
        )
        result = self._az.json(
            "deployment", "sub", "create",
            "--location", req.resolved_location(),
            "--template-file", str(req.template),
            *req.parameter_args(),
            "--name", req.deployment_name,
        )
        if result is None:
            return Result.fail(self._az.last_stderr or "Deployment failed")
        state = (result.get("properties") or {}).get("provisioningState", "") if isinstance(result, dict) else ""
        if state and state != "Succeeded":
            return Result.fail(f"Deployment finished in state {state}")
        return Result.ok("Infrastructure deployment completed")

    def outputs(self, deployment_name: str) -> DeploymentOutputs | None:
        raw = self._az.json(
            "deployment", "sub", "show",
            "--name", deployment_name,
            "--query", "properties.outputs",
        )
        if not isinstance(raw, dict):
            return None
        return DeploymentOutputs.from_arm(raw)

    def run(self, req: DeployRequest, *, validate_only: bool = False) -> DeployResult:
        steps: list[dict[str, Any]] = []

        logger.info("Step 1/3: Validating template %s...", req.template)
        validated = self.validate(req)
        if not validated:
            steps.append({"step": "validate", "status": "failed", "detail": validated.message})
            return DeployResult(ok=False, steps=steps, error=f"Template validation failed: {validated.message}")
        steps.append({"step": "validate", "status": "ok", "detail": validated.message})
        if validate_only:
            return DeployResult(ok=True, steps=steps)

        logger.info("Step 2/3: Deploying '%s'...", req.deployment_name)
        deployed = self.deploy(req)
        if not deployed:
            steps.append({"step": "deploy", "status": "failed", "detail": deployed.message})
            return DeployResult(ok=False, steps=steps, error=f"Deployment failed: {deployed.message}")
        steps.append({"step": "deploy", "status": "ok", "detail": deployed.message})

        logger.info("Step 3/3: Reading deployment outputs...")
        outputs = self.outputs(req.deployment_name)
        if outputs is None:
            steps.append({"step": "outputs", "status": "failed", "detail": self._az.last_stderr})
            return DeployResult(ok=False, steps=steps, error=f"Could not read deployment outputs: {self._az.last_stderr}")
        steps.append({"step": "outputs", "status": "ok", "detail": outputs.web_app_url})

        receipt = DeploymentReceipt.new(
            resource_group_name=outputs.resource_group_name or req.resource_group,
            web_app_name=outputs.web_app_name or req.web_app_name,
            web_app_url=outputs.web_app_url,
            deployment_name=req.deployment_name,
        )
        if self._store:
            self._store.save(receipt)
            steps.append({"step": "receipt", "status": "ok", "detail": str(self._store.path)})

        logger.info("Deployment completed: %s", outputs.web_app_url)
        return DeployResult(ok=True, steps=steps, outputs=outputs, receipt=receipt)

    def destroy(self, resource_group: str) -> Result:
        logger.info("Deleting resource group %s (no-wait)", resource_group)
        result = self._az.ok("group", "delete", "--name", resource_group, "--yes", "--no-wait")
        if not result:
            return Result.fail(result.message or f"Could not delete {resource_group}")
        return Result.ok(f"Deletion of {resource_group} started")

    def site_state(self, resource_group: str, web_app_name: str) -> str | None:
        """``Running`` / ``Stopped`` as reported by ``az webapp show``; *None* if not found."""
        return self._az.tsv(
            "webapp", "show", "--resource-group", resource_group, "--name", web_app_name,
            query="state",
        )
