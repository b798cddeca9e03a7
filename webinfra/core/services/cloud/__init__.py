"""Cloud identity and CLI integrations."""

from __future__ import annotations

from .azure import AzureCLI
from .github import GitHubCLI
from .oidc import OidcProvisioner, OidcRequest, OidcResult, federated_subjects

__all__ = [
    "AzureCLI",
    "GitHubCLI",
    "OidcProvisioner",
    "OidcRequest",
    "OidcResult",
    "federated_subjects",
]
