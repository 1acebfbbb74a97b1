"""
Deploy collaborator backed by the host's wg-quick and birdc.

The orchestrator only sees this five-method interface, so tests (or a
remote-router implementation) can substitute their own object.
"""

from __future__ import annotations

from pathlib import Path

from autopeer import BIRD_PEERS_DIR, DEPLOY_TIMEOUT_SECS, WIREGUARD_DIR
from autopeer.deploy import bird, wireguard


class SystemDeployer:
    """Apply tunnel and BGP configs on the local machine."""

    def __init__(
        self,
        wireguard_dir: str | Path = WIREGUARD_DIR,
        bird_peers_dir: str | Path = BIRD_PEERS_DIR,
        timeout: float = DEPLOY_TIMEOUT_SECS,
    ) -> None:
        self.wireguard_dir = Path(wireguard_dir)
        self.bird_peers_dir = Path(bird_peers_dir)
        self.timeout = timeout

    def deploy_tunnel(self, config_text: str, interface: str) -> None:
        wireguard.deploy_tunnel(config_text, interface, self.wireguard_dir, self.timeout)

    def remove_tunnel(self, interface: str) -> None:
        wireguard.remove_tunnel(interface, self.wireguard_dir, self.timeout)

    def is_interface_active(self, interface: str) -> bool:
        return wireguard.is_interface_active(interface, self.timeout)

    def deploy_routing(self, config_text: str, asn: int) -> None:
        bird.deploy_routing(config_text, asn, self.bird_peers_dir, self.timeout)

    def remove_routing(self, asn: int) -> None:
        bird.remove_routing(asn, self.bird_peers_dir, self.timeout)
