"""Prerequisite checks run before anything touches the subscription."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..cloud.azure import AzureCLI

logger = logging.getLogger(__name__)


@dataclass
class PrerequisiteReport:
    ok: bool
    steps: list[dict[str, Any]] = field(default_factory=list)
    subscription_name: str = ""
    subscription_id: str = ""
    tenant_id: str = ""
    error: str = ""


def check_prerequisites(az: AzureCLI, *, install_bicep: bool = True) -> PrerequisiteReport:
    """Check tool availability, then authentication.

    Stops at the first fatal check. A missing Bicep CLI is installed on
    the fly (with a warning) unless *install_bicep* is false.
    """
    steps: list[dict[str, Any]] = []

    if not az.is_installed():
        steps.append({"step": "azure_cli", "status": "failed", "detail": "az not found on PATH"})
        return PrerequisiteReport(
            ok=False, steps=steps,
            error="Azure CLI is not installed. Please install it first.",
        )
    steps.append({"step": "azure_cli", "status": "ok", "detail": "Azure CLI is installed"})

    if az.ok("bicep", "version"):
        steps.append({"step": "bicep", "status": "ok", "detail": "Bicep is available"})
    elif not install_bicep:
        steps.append({"step": "bicep", "status": "failed", "detail": az.last_stderr})
        return PrerequisiteReport(ok=False, steps=steps, error="Bicep is not installed.")
    else:
        logger.warning("Bicep is not installed -- installing now")
        steps.append({"step": "bicep", "status": "warning", "detail": "Bicep is not installed. Installing now..."})
        installed = az.ok("bicep", "install")
        if not installed:
            steps.append({"step": "bicep_install", "status": "failed", "detail": installed.message})
            return PrerequisiteReport(
                ok=False, steps=steps, error=f"Bicep installation failed: {installed.message}",
            )
        steps.append({"step": "bicep_install", "status": "ok", "detail": "Bicep is available"})

    account = az.account_info()
    if not account:
        steps.append({"step": "login", "status": "failed", "detail": az.last_stderr})
        return PrerequisiteReport(
            ok=False, steps=steps,
            error="Not logged in to Azure. Please run 'az login' first.",
        )
    steps.append({"step": "login", "status": "ok", "detail": "Logged in to Azure"})

    return PrerequisiteReport(
        ok=True,
        steps=steps,
        subscription_name=account.get("name", ""),
        subscription_id=account.get("id", ""),
        tenant_id=account.get("tenantId", ""),
    )
