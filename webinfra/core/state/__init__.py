"""Local JSON receipts of the last operation."""

from __future__ import annotations

from ._base import BaseReceiptStore
from .deploy_state import DeploymentReceipt, DeploymentReceiptStore
from .oidc_state import OidcReceipt, OidcReceiptStore

__all__ = [
    "BaseReceiptStore",
    "DeploymentReceipt",
    "DeploymentReceiptStore",
    "OidcReceipt",
    "OidcReceiptStore",
]
