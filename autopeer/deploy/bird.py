"""
BIRD BGP session per peer.

Each peering gets one file, ``<bird_peers_dir>/autopeer_as<asn>.conf``,
included by the operator's bird.conf and inheriting the ``dnpeers``
template. After writing or deleting it, ``birdc configure`` reloads BIRD.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from autopeer import BIRD_PEERS_DIR, BIRD_TEMPLATE, DEPLOY_TIMEOUT_SECS
from autopeer._fsutil import atomic_write
from autopeer.deploy.commands import DeployError, run_cmd
from autopeer.ipalloc import protocol_name

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_. -]")

PEER_TEMPLATE = """\
# AutoPeer - {peer_name} - AS{peer_asn}
protocol bgp {protocol} from {template} {{
    description "AutoPeer - {peer_name} - AS{peer_asn}";
    local {local_ip} as {local_asn};
    neighbor {neighbor_ip} as {peer_asn};
    interface "{interface}";
{channels}}}
"""

IPV4_CHANNEL = """\
    ipv4 {{
        extended next hop {enh};
    }};
"""

IPV6_CHANNEL = """\
    ipv6 {
    };
"""


@dataclass
class BirdPeerConfig:
    local_asn: int
    peer_asn: int
    peer_name: str
    interface: str
    local_ip: str
    neighbor_ip: str
    mpbgp: bool = True
    extended_next_hop: bool = True

    def render(self) -> str:
        # IPv4 routes ride the IPv6 session only with MP-BGP
        channels = ""
        if self.mpbgp:
            channels += IPV4_CHANNEL.format(enh="yes" if self.extended_next_hop else "no")
        channels += IPV6_CHANNEL
        name = _UNSAFE_NAME_RE.sub("", self.peer_name).strip() or f"AS{self.peer_asn}"
        return PEER_TEMPLATE.format(
            peer_name=name,
            peer_asn=self.peer_asn,
            protocol=protocol_name(self.peer_asn),
            template=BIRD_TEMPLATE,
            local_ip=self.local_ip,
            local_asn=self.local_asn,
            neighbor_ip=self.neighbor_ip,
            interface=self.interface,
            channels=channels,
        )


def _conf_path(peers_dir: str | Path, asn: int) -> Path:
    return Path(peers_dir) / f"{protocol_name(asn)}.conf"


def _reconfigure(timeout: float) -> None:
    proc = run_cmd(["birdc", "configure"], timeout=timeout)
    # birdc exits 0 even when the new config is rejected
    for line in proc.stdout.splitlines():
        if "error" in line.lower():
            raise DeployError(f"birdc configure: {line.strip()}")


def deploy_routing(
    config_text: str,
    asn: int,
    peers_dir: str | Path = BIRD_PEERS_DIR,
    timeout: float = DEPLOY_TIMEOUT_SECS,
) -> None:
    path = _conf_path(peers_dir, asn)
    try:
        atomic_write(path, config_text.encode("utf-8"), mode=0o644)
    except OSError as e:
        raise DeployError(f"Cannot write {path}: {e}") from e
    try:
        _reconfigure(timeout)
    except DeployError:
        # Leave BIRD loadable for the next reconfigure
        path.unlink(missing_ok=True)
        raise
    logger.info("BGP session %s configured", protocol_name(asn))


def remove_routing(
    asn: int,
    peers_dir: str | Path = BIRD_PEERS_DIR,
    timeout: float = DEPLOY_TIMEOUT_SECS,
) -> None:
    path = _conf_path(peers_dir, asn)
    if not path.exists():
        return
    try:
        path.unlink()
    except OSError as e:
        raise DeployError(f"Cannot remove {path}: {e}") from e
    _reconfigure(timeout)
    logger.info("BGP session %s removed", protocol_name(asn))
