"""
WireGuard keys and tunnel lifecycle.

Keys are X25519 key pairs, base64 encoded exactly like ``wg genkey`` /
``wg pubkey`` output, generated in-process with ``cryptography``.

Tunnels are managed with wg-quick:
    deploy   write <wireguard_dir>/<iface>.conf (0600), wg-quick up
    remove   wg-quick down (a missing interface is fine), delete the file
    active   wg show <iface> exits 0
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from autopeer import DEPLOY_TIMEOUT_SECS, WIREGUARD_DIR
from autopeer._fsutil import atomic_write
from autopeer.deploy.commands import DeployError, run_cmd

logger = logging.getLogger(__name__)

# wg-quick down output when there is nothing to take down
_MISSING_INTERFACE_MARKERS = (
    "is not a WireGuard interface",
    "does not exist",
    "Cannot find device",
)


def _public_b64(private: X25519PrivateKey) -> str:
    raw = private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return base64.b64encode(raw).decode("ascii")


def generate_keypair() -> tuple[str, str]:
    """Return (private_key, public_key), both base64."""
    private = X25519PrivateKey.generate()
    raw = private.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(raw).decode("ascii"), _public_b64(private)


def public_key_from_private(private_key: str) -> str:
    try:
        raw = base64.b64decode(private_key, validate=True)
        private = X25519PrivateKey.from_private_bytes(raw)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid WireGuard private key: {e}") from e
    return _public_b64(private)


def _conf_path(wireguard_dir: str | Path, interface: str) -> Path:
    return Path(wireguard_dir) / f"{interface}.conf"


def deploy_tunnel(
    config_text: str,
    interface: str,
    wireguard_dir: str | Path = WIREGUARD_DIR,
    timeout: float = DEPLOY_TIMEOUT_SECS,
) -> None:
    path = _conf_path(wireguard_dir, interface)
    try:
        atomic_write(path, config_text.encode("utf-8"), mode=0o600)
    except OSError as e:
        raise DeployError(f"Cannot write {path}: {e}") from e
    run_cmd(["wg-quick", "up", str(path)], timeout=timeout)
    logger.info("Tunnel %s is up", interface)


def remove_tunnel(
    interface: str,
    wireguard_dir: str | Path = WIREGUARD_DIR,
    timeout: float = DEPLOY_TIMEOUT_SECS,
) -> None:
    """Take the tunnel down and delete its config. Idempotent."""
    path = _conf_path(wireguard_dir, interface)
    if path.exists():
        proc = run_cmd(["wg-quick", "down", str(path)], timeout=timeout, check=False)
        output = proc.stderr + proc.stdout
        if proc.returncode != 0 and not any(m in output for m in _MISSING_INTERFACE_MARKERS):
            raise DeployError(f"wg-quick down {interface} failed: {output.strip()}")
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise DeployError(f"Cannot remove {path}: {e}") from e
    elif is_interface_active(interface, timeout=timeout):
        # Config already gone but the link is still there
        run_cmd(["ip", "link", "delete", "dev", interface], timeout=timeout)
    logger.info("Tunnel %s removed", interface)


def is_interface_active(interface: str, timeout: float = DEPLOY_TIMEOUT_SECS) -> bool:
    try:
        proc = run_cmd(["wg", "show", interface], timeout=timeout, check=False)
    except DeployError as e:
        logger.warning("Cannot query interface %s: %s", interface, e)
        return False
    return proc.returncode == 0
