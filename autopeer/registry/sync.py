"""
Keep a local clone of the DN42 registry up to date.

sync() is serialized by a process-wide lock: concurrent callers wait for
the running clone/pull instead of racing on the working tree. A failed pull
(diverged history, corrupt checkout) falls back to a fresh clone.

Git credentials are passed via GIT_CONFIG_* environment variables as an
HTTP Basic header, never on the command line where ``ps`` would show them.
"""

from __future__ import annotations

import base64
import logging
import os
import shutil
import subprocess
import threading
from pathlib import Path

from autopeer import REGISTRY_DEFAULT_URL, REGISTRY_SYNC_TIMEOUT_SECS

logger = logging.getLogger(__name__)

_SYNC_LOCK = threading.Lock()


class RegistrySyncError(Exception):
    """git clone / pull of the registry failed."""


class RegistrySync:
    """Clone-or-pull for the registry checkout used by Registry."""

    def __init__(
        self,
        path: str | Path,
        url: str = REGISTRY_DEFAULT_URL,
        username: str = "",
        token: str = "",
        timeout: float = REGISTRY_SYNC_TIMEOUT_SECS,
    ) -> None:
        self.path = Path(path)
        self.url = url
        self.username = username
        self.token = token
        self.timeout = timeout

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self.token:
            basic = base64.b64encode(f"{self.username}:{self.token}".encode("utf-8")).decode("ascii")
            env["GIT_CONFIG_COUNT"] = "1"
            env["GIT_CONFIG_KEY_0"] = "http.extraHeader"
            env["GIT_CONFIG_VALUE_0"] = f"Authorization: Basic {basic}"
        return env

    def _git(self, *args: str) -> str:
        cmd = ["git", *args]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env(),
            )
        except FileNotFoundError:
            raise RegistrySyncError("git not found")
        except subprocess.TimeoutExpired:
            raise RegistrySyncError(f"git {args[0]} timed out after {self.timeout}s")
        if proc.returncode != 0:
            raise RegistrySyncError(f"git {args[0]} failed: {proc.stderr.strip()}")
        return proc.stdout

    def _clone(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning registry %s into %s", self.url, self.path)
        self._git("clone", "--depth", "1", self.url, str(self.path))

    def _pull(self) -> None:
        logger.info("Pulling registry in %s", self.path)
        self._git("-C", str(self.path), "pull", "--ff-only")

    def sync(self) -> None:
        """Bring the checkout up to date. Raises RegistrySyncError."""
        with _SYNC_LOCK:
            if not self.path.exists():
                self._clone()
                return
            try:
                self._pull()
            except RegistrySyncError as e:
                logger.warning("Registry pull failed (%s), re-cloning", e)
                shutil.rmtree(self.path)
                self._clone()
