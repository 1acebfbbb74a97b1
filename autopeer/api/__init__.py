"""
AutoPeer API: the peering lifecycle over HTTP.

Challenge issue and PGP verification, then token-authenticated deploy,
status and teardown of WireGuard + BIRD peerings.
"""

from autopeer.api.server import PeeringAPIServer, run_api

__all__ = ["PeeringAPIServer", "run_api"]
