"""Shared Azure identity constants and scope helpers."""

from __future__ import annotations

GITHUB_OIDC_ISSUER = "https://token.actions.githubusercontent.com"
TOKEN_EXCHANGE_AUDIENCE = "api://AzureADTokenExchange"

CONTRIBUTOR_ROLE = "Contributor"

# Substrings in ``az`` stderr meaning the object is already there.
ALREADY_EXISTS_MARKERS = ("already in use", "already exists", "RoleAssignmentExists")


def subscription_scope(subscription_id: str) -> str:
    return f"/subscriptions/{subscription_id}"


def resource_group_scope(subscription_id: str, resource_group: str) -> str:
    return f"{subscription_scope(subscription_id)}/resourceGroups/{resource_group}"


def is_already_exists(stderr: str) -> bool:
    return any(marker in (stderr or "") for marker in ALREADY_EXISTS_MARKERS)
