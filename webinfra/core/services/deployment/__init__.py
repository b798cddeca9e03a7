"""Infrastructure deployment pipeline."""

from __future__ import annotations

from .deployer import (
    DeploymentNames,
    DeploymentOutputs,
    DeployRequest,
    DeployResult,
    InfraDeployer,
    default_names,
)
from .prerequisites import PrerequisiteReport, check_prerequisites

__all__ = [
    "DeployRequest",
    "DeployResult",
    "DeploymentNames",
    "DeploymentOutputs",
    "InfraDeployer",
    "PrerequisiteReport",
    "check_prerequisites",
    "default_names",
]
