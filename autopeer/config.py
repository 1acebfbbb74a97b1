"""
Service configuration from environment variables.

Secret sources (priority order):
    1. AUTOPEER_SECRET environment variable
    2. file named by AUTOPEER_SECRET_FILE (default ~/.autopeer/secret)

Other variables:
    MY_ASN              local ASN                     (4242420257)
    BIND_ADDRESS        host:port for the API         (127.0.0.1:3000)
    DATA_PENDING_DIR    pending store                 (./data/pending)
    DATA_VERIFIED_DIR   verified store                (./data/verified)
    COOKIE_DOMAINS      comma-separated               (localhost)
    COOKIE_SECURE       set Secure on cookies         (on)
    DN42_REGISTRY_URL   registry git remote
    DN42_REGISTRY_PATH  local checkout                (./data/dn42-registry)
    DN42_GIT_USERNAME / DN42_GIT_TOKEN   git credentials (optional)
    WIREGUARD_DIR       wg-quick config dir           (/etc/wireguard)
    BIRD_PEERS_DIR      BIRD include dir              (/etc/bird/peers)
    DEPLOY_TIMEOUT      seconds per tool invocation   (30)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from autopeer import (
    API_DEFAULT_HOST,
    API_DEFAULT_PORT,
    ASN_MAX,
    ASN_MIN,
    BIRD_PEERS_DIR,
    DEFAULT_LOCAL_ASN,
    DEPLOY_TIMEOUT_SECS,
    MIN_SECRET_LENGTH,
    REGISTRY_DEFAULT_URL,
    WIREGUARD_DIR,
)

_SECRET_FILE = Path.home() / ".autopeer" / "secret"

_FALSE_VALUES = frozenset({"0", "off", "false", "no"})


class ConfigurationError(Exception):
    """Environment does not describe a usable configuration."""


def load_secret(environ: Mapping[str, str] | None = None) -> str:
    """Load the credential signing secret from env var or file.

    Returns empty string if not set.
    """
    env = os.environ if environ is None else environ
    secret = env.get("AUTOPEER_SECRET", "").strip()
    if secret:
        return secret
    secret_file = Path(env.get("AUTOPEER_SECRET_FILE", "") or _SECRET_FILE)
    if secret_file.is_file():
        try:
            return secret_file.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
    return ""


def parse_bind_address(value: str) -> tuple[str, int]:
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit() or not 0 <= int(port) <= 65535:
        raise ConfigurationError(f"BIND_ADDRESS must be host:port, got {value!r}")
    return host.strip("[]") or API_DEFAULT_HOST, int(port)


@dataclass
class RegistryConfig:
    url: str = REGISTRY_DEFAULT_URL
    path: Path = Path("data/dn42-registry")
    username: str = ""
    token: str = ""


@dataclass
class AppConfig:
    secret: str
    local_asn: int = DEFAULT_LOCAL_ASN
    host: str = API_DEFAULT_HOST
    port: int = API_DEFAULT_PORT
    pending_dir: Path = Path("data/pending")
    verified_dir: Path = Path("data/verified")
    cookie_domains: list[str] = field(default_factory=lambda: ["localhost"])
    cookie_secure: bool = True
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    wireguard_dir: Path = Path(WIREGUARD_DIR)
    bird_peers_dir: Path = Path(BIRD_PEERS_DIR)
    deploy_timeout: float = DEPLOY_TIMEOUT_SECS

    def __post_init__(self) -> None:
        if len(self.secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"AUTOPEER_SECRET must be at least {MIN_SECRET_LENGTH} characters"
            )
        if not ASN_MIN <= self.local_asn <= ASN_MAX:
            raise ConfigurationError(f"MY_ASN {self.local_asn} is outside the DN42 range")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ

        try:
            local_asn = int(env.get("MY_ASN", DEFAULT_LOCAL_ASN))
        except ValueError:
            raise ConfigurationError(f"MY_ASN must be an integer, got {env.get('MY_ASN')!r}")
        try:
            timeout = float(env.get("DEPLOY_TIMEOUT", DEPLOY_TIMEOUT_SECS))
        except ValueError:
            raise ConfigurationError("DEPLOY_TIMEOUT must be a number of seconds")
        if timeout <= 0:
            raise ConfigurationError("DEPLOY_TIMEOUT must be positive")

        host, port = parse_bind_address(env.get("BIND_ADDRESS", f"{API_DEFAULT_HOST}:{API_DEFAULT_PORT}"))
        domains = [d.strip() for d in env.get("COOKIE_DOMAINS", "localhost").split(",") if d.strip()]

        return cls(
            secret=load_secret(env),
            local_asn=local_asn,
            host=host,
            port=port,
            pending_dir=Path(env.get("DATA_PENDING_DIR", "./data/pending")),
            verified_dir=Path(env.get("DATA_VERIFIED_DIR", "./data/verified")),
            cookie_domains=domains,
            cookie_secure=env.get("COOKIE_SECURE", "on").strip().lower() not in _FALSE_VALUES,
            registry=RegistryConfig(
                url=env.get("DN42_REGISTRY_URL", REGISTRY_DEFAULT_URL),
                path=Path(env.get("DN42_REGISTRY_PATH", "./data/dn42-registry")),
                username=env.get("DN42_GIT_USERNAME", ""),
                token=env.get("DN42_GIT_TOKEN", ""),
            ),
            wireguard_dir=Path(env.get("WIREGUARD_DIR", WIREGUARD_DIR)),
            bird_peers_dir=Path(env.get("BIRD_PEERS_DIR", BIRD_PEERS_DIR)),
            deploy_timeout=timeout,
        )
