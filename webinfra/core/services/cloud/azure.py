"""Azure CLI wrapper.

Every call goes through :meth:`AzureCLI._run`, which waits on the child in
one-second slices so long deployments can log progress and be killed once
:attr:`AzureCLI.timeout` is exceeded.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from time import time as _time
from typing import Any

from ...util.result import Result

logger = logging.getLogger(__name__)


def _mm_ss(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


class AzureCLI:
    """Thin wrapper around ``az`` with JSON output parsing."""

    EXECUTABLE = "az"
    CACHE_TTL = 30
    HEARTBEAT_INTERVAL = 15
    TIMEOUT = 1200

    def __init__(self, timeout: int | None = None) -> None:
        self.last_stderr: str = ""
        self.timeout = self.TIMEOUT if timeout is None else timeout
        self._cache: dict[str, tuple[float, Any]] = {}

    def is_installed(self) -> bool:
        return shutil.which(self.EXECUTABLE) is not None

    # -- process handling ------------------------------------------------

    def _run(self, cmd: list[str], cmd_summary: str) -> subprocess.CompletedProcess[str]:
        env = {**os.environ, "AZURE_EXTENSION_USE_DYNAMIC_INSTALL": "yes_without_prompt"}
        try:
            proc = subprocess.Popen(
                cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, env=env,
            )
        except FileNotFoundError:
            return subprocess.CompletedProcess(
                cmd, 127, stdout="", stderr=f"{self.EXECUTABLE}: command not found",
            )

        started = _time()
        last_beat = started
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=1)
                return subprocess.CompletedProcess(cmd, proc.returncode, stdout or "", stderr or "")
            except subprocess.TimeoutExpired:
                pass

            now = _time()
            elapsed = now - started
            if self.timeout and elapsed > self.timeout:
                proc.kill()
                stdout, _ = proc.communicate()
                logger.error("[az] TIMEOUT after %ds: az %s", self.timeout, cmd_summary)
                return subprocess.CompletedProcess(
                    cmd, -1, stdout or "", f"Timed out after {self.timeout}s",
                )
            if now - last_beat >= self.HEARTBEAT_INTERVAL:
                self._heartbeat(elapsed, cmd_summary)
                last_beat = now

    def _heartbeat(self, elapsed: float, cmd_summary: str) -> None:
        if self.timeout:
            logger.info(
                "[az] %s elapsed | timeout in %s | az %s",
                _mm_ss(elapsed), _mm_ss(max(0.0, self.timeout - elapsed)), cmd_summary,
            )
        else:
            logger.info("[az] still waiting (%s): az %s", _mm_ss(elapsed), cmd_summary)

    def _call(
        self, args: tuple[str, ...], extra: list[str], *, quiet: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``az <args> <extra>``, log the outcome, record stderr."""
        summary = " ".join(args[:5])
        log = logger.debug if quiet else logger.info
        log("[az] starting: az %s", summary)
        started = _time()
        proc = self._run([self.EXECUTABLE, *args, *extra], summary)
        self.last_stderr = proc.stderr.strip()
        if proc.returncode == 0:
            log("[az] OK (%.1fs): az %s", _time() - started, summary)
        else:
            logger.warning(
                "[az] FAILED (%.1fs, rc=%d): az %s -- %s",
                _time() - started, proc.returncode, summary, self.last_stderr[:800],
            )
        return proc

    # -- public API ------------------------------------------------------

    def json(self, *args: str, quiet: bool = False) -> dict | list | None:
        """Parsed ``--output json`` result; ``{}`` for empty output, *None* on failure."""
        proc = self._call(args, ["--output", "json"], quiet=quiet)
        if proc.returncode != 0:
            return None
        if not proc.stdout.strip():
            return {}
        try:
            return json.loads(proc.stdout)
        except ValueError:
            logger.warning("[az] could not parse JSON output for: az %s", " ".join(args[:5]))
            return None

    def json_cached(self, *args: str, ttl: int | None = None) -> dict | list | None:
        key = " ".join(args)
        hit = self._cache.get(key)
        if hit is not None and _time() < hit[0]:
            logger.debug("[az] cache hit: az %s", key)
            return hit[1]
        value = self.json(*args, quiet=True)
        self._cache[key] = (_time() + (self.CACHE_TTL if ttl is None else ttl), value)
        return value

    def invalidate_cache(self, *args: str) -> None:
        if not args:
            self._cache.clear()
            return
        self._cache.pop(" ".join(args), None)

    def ok(self, *args: str) -> Result:
        proc = self._call(args, [])
        return Result(success=proc.returncode == 0, message=self.last_stderr)

    def tsv(self, *args: str, query: str) -> str | None:
        """Return a single ``--query`` field as plain text, or *None* on failure."""
        proc = self._call(args, ["--query", query, "--output", "tsv"], quiet=True)
        return proc.stdout.strip() if proc.returncode == 0 else None

    def account_info(self) -> dict[str, Any] | None:
        account = self.json_cached("account", "show")
        return account if isinstance(account, dict) else None
