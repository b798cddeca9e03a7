"""Receipt of the last infrastructure deployment.

Written to ``deployment-info.json`` only after the deployment and the
output query both succeeded, so its values always match what the provider
returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..config.settings import cfg
from ._base import BaseReceiptStore


def utc_now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class DeploymentReceipt:
    resource_group_name: str = ""
    web_app_name: str = ""
    web_app_url: str = ""
    deployment_name: str = ""
    timestamp: str = ""

    @staticmethod
    def new(
        resource_group_name: str,
        web_app_name: str,
        web_app_url: str,
        deployment_name: str,
    ) -> DeploymentReceipt:
        return DeploymentReceipt(
            resource_group_name=resource_group_name,
            web_app_name=web_app_name,
            web_app_url=web_app_url,
            deployment_name=deployment_name,
            timestamp=utc_now(),
        )


class DeploymentReceiptStore(BaseReceiptStore[DeploymentReceipt]):
    """``deployment-info.json`` in the data directory."""

    _receipt_type = DeploymentReceipt
    _json_keys = {
        "resource_group_name": "resourceGroupName",
        "web_app_name": "webAppName",
        "web_app_url": "webAppUrl",
        "deployment_name": "deploymentName",
        "timestamp": "timestamp",
    }
    _log_label = "deployment receipt"

    def __init__(self, path: Path | None = None) -> None:
        super().__init__(path or cfg.deployment_receipt_path)
