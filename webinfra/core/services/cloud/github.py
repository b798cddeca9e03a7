"""GitHub CLI integration -- publishes the OIDC identifiers as repo secrets."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Any

from ...util.result import Result

logger = logging.getLogger(__name__)


class GitHubCLI:
    """Wraps the handful of ``gh`` calls the OIDC setup needs."""

    TIMEOUT = 30

    def status(self) -> dict[str, Any]:
        if os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN"):
            return {"authenticated": True, "details": "Using token from environment"}
        try:
            result = subprocess.run(
                ["gh", "auth", "status"],
                capture_output=True, text=True, timeout=self.TIMEOUT,
            )
            output = (result.stdout + "\n" + result.stderr).strip()
            return {"authenticated": result.returncode == 0, "details": output}
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return {"authenticated": False, "details": "gh CLI not available"}

    def set_secret(self, repository: str, name: str, value: str) -> Result:
        """Create or overwrite an Actions secret on *repository* (``org/repo``).

        The value is passed on stdin so it never appears in the process list.
        """
        try:
            result = subprocess.run(
                ["gh", "secret", "set", name, "--repo", repository],
                input=value, capture_output=True, text=True, timeout=self.TIMEOUT,
            )
        except FileNotFoundError:
            return Result.fail("gh CLI not found.")
        except subprocess.TimeoutExpired:
            return Result.fail(f"gh secret set {name} timed out")
        if result.returncode != 0:
            logger.warning(
                "[gh] secret set %s on %s failed: %s", name, repository, result.stderr.strip(),
            )
            return Result.fail(result.stderr.strip() or f"gh exited with {result.returncode}")
        logger.info("[gh] secret %s set on %s", name, repository)
        return Result.ok(name)

    def set_secrets(self, repository: str, secrets: dict[str, str]) -> list[dict[str, str]]:
        steps: list[dict[str, str]] = []
        for name, value in secrets.items():
            result = self.set_secret(repository, name, value)
            steps.append({
                "step": f"secret_{name.lower()}",
                "status": "ok" if result else "failed",
                "detail": name if result else result.message,
            })
        return steps
