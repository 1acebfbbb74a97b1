"""
Push generated configs to the router: WireGuard via wg-quick, BGP via BIRD.
"""

from autopeer.deploy.commands import DeployError, run_cmd
from autopeer.deploy.wireguard import generate_keypair, public_key_from_private
from autopeer.deploy.bird import BirdPeerConfig
from autopeer.deploy.system import SystemDeployer

__all__ = [
    "DeployError",
    "run_cmd",
    "generate_keypair",
    "public_key_from_private",
    "BirdPeerConfig",
    "SystemDeployer",
]
