"""Shared pytest fixtures for webinfra tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("WEBINFRA_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in (
        "AZURE_LOCATION", "WEBAPP_SKU", "WEBAPP_DOTNET_VERSION", "WEBAPP_ENVIRONMENT",
        "GITHUB_ORG", "GITHUB_REPO", "OIDC_APP_NAME", "OIDC_ROLE", "AZ_TIMEOUT",
    ):
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from webinfra.core.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture()
def infra_dir() -> Path:
    return REPO_ROOT / "infra"


@pytest.fixture()
def az() -> MagicMock:
    mock = MagicMock()
    mock.is_installed.return_value = True
    mock.json.return_value = None
    mock.last_stderr = ""
    return mock
