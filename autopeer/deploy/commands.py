"""
Subprocess wrapper for the network tools (wg, wg-quick, birdc).

Every call is bounded by a timeout. A missing binary, a timeout, or a
non-zero exit (when ``check`` is set) raises DeployError.
"""

from __future__ import annotations

import logging
import subprocess

from autopeer import DEPLOY_TIMEOUT_SECS
from autopeer.errors import InternalError

logger = logging.getLogger(__name__)


class DeployError(InternalError):
    """A deploy tool failed, timed out, or is not installed."""


def run_cmd(
    cmd: list[str],
    timeout: float = DEPLOY_TIMEOUT_SECS,
    check: bool = True,
) -> subprocess.CompletedProcess:
    logger.debug("Running %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise DeployError(f"{cmd[0]} not found; is it installed?")
    except subprocess.TimeoutExpired:
        raise DeployError(f"{' '.join(cmd)} timed out after {timeout}s")

    if check and proc.returncode != 0:
        detail = (proc.stderr or proc.stdout).strip()
        raise DeployError(f"{' '.join(cmd)} failed (exit {proc.returncode}): {detail}")
    return proc
