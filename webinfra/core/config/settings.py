"""Operator settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "East US"
DEFAULT_GITHUB_ORG = "my-org"
DEFAULT_GITHUB_REPO = "my-repo"
DEFAULT_OIDC_APP_NAME = "github-actions-oidc"
DEFAULT_OIDC_ROLE = "Contributor"
DEFAULT_AZ_TIMEOUT = 1200


def _int_setting(key: str, raw: str, default: int) -> int:
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %d", key, raw, default)
        return default


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "WEBINFRA_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            dotenv = str(Path(data_dir) / ".env") if data_dir else ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.location: str = e("AZURE_LOCATION") or DEFAULT_LOCATION
        # Empty means "use the parameter file or template default".
        self.sku: str = e("WEBAPP_SKU")
        self.dotnet_version: str = e("WEBAPP_DOTNET_VERSION")
        self.environment: str = e("WEBAPP_ENVIRONMENT") or "dev"
        self.az_timeout: int = _int_setting("AZ_TIMEOUT", e("AZ_TIMEOUT"), DEFAULT_AZ_TIMEOUT)

        self.github_org: str = e("GITHUB_ORG") or DEFAULT_GITHUB_ORG
        self.github_repo: str = e("GITHUB_REPO") or DEFAULT_GITHUB_REPO
        self.oidc_app_name: str = e("OIDC_APP_NAME") or DEFAULT_OIDC_APP_NAME
        self.oidc_role: str = e("OIDC_ROLE") or DEFAULT_OIDC_ROLE

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.cwd())))

    @property
    def deployment_receipt_path(self) -> Path:
        return self.data_dir / "deployment-info.json"

    @property
    def oidc_receipt_path(self) -> Path:
        return self.data_dir / "oidc-setup.json"

    @property
    def project_root(self) -> Path:
        env_root = os.getenv("WEBINFRA_PROJECT_ROOT")
        if env_root:
            return Path(env_root)
        p = Path(__file__).resolve().parent
        for _ in range(5):
            p = p.parent
            if (p / "infra").is_dir() or (p / "pyproject.toml").is_file():
                return p
        return Path.cwd()

    @property
    def infra_dir(self) -> Path:
        return self.project_root / "infra"

    @property
    def template_path(self) -> Path:
        return self.infra_dir / "bicep" / "deploy.bicep"

    def parameter_file(self, environment: str) -> Path:
        return self.infra_dir / "parameters" / f"{environment}.parameters.json"

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")


cfg = Settings()


def _reset_cfg() -> None:
    # Modules hold ``cfg`` by reference, so rebuild it in place.
    cfg.__init__()  # type: ignore[misc]


register_singleton(_reset_cfg)
