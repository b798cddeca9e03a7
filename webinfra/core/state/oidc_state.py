"""Receipt of the last OIDC setup: the identifiers GitHub Actions needs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config.settings import cfg
from ._base import BaseReceiptStore
from .deploy_state import utc_now


@dataclass
class OidcReceipt:
    client_id: str = ""
    tenant_id: str = ""
    subscription_id: str = ""
    repository: str = ""
    timestamp: str = ""

    @staticmethod
    def new(client_id: str, tenant_id: str, subscription_id: str, repository: str) -> OidcReceipt:
        return OidcReceipt(
            client_id=client_id,
            tenant_id=tenant_id,
            subscription_id=subscription_id,
            repository=repository,
            timestamp=utc_now(),
        )

    def github_secrets(self) -> dict[str, str]:
        """Secret names the ``azure/login`` action reads."""
        return {
            "AZURE_CLIENT_ID": self.client_id,
            "AZURE_TENANT_ID": self.tenant_id,
            "AZURE_SUBSCRIPTION_ID": self.subscription_id,
        }


class OidcReceiptStore(BaseReceiptStore[OidcReceipt]):
    """``oidc-setup.json`` in the data directory."""

    _receipt_type = OidcReceipt
    _json_keys = {
        "client_id": "clientId",
        "tenant_id": "tenantId",
        "subscription_id": "subscriptionId",
        "repository": "repository",
        "timestamp": "timestamp",
    }
    _log_label = "OIDC receipt"

    def __init__(self, path: Path | None = None) -> None:
        super().__init__(path or cfg.oidc_receipt_path)
