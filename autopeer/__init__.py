"""
AutoPeer - automated DN42 peering: challenge, verify, deploy.

Lifecycle:
    init    -> challenge issued, skeleton config written to the pending store
    verify  -> PGP-signed challenge checked against the registry, credential issued
    deploy  -> WireGuard tunnel + BIRD session rendered and pushed to the router

Layout:
    pending store:   <DATA_PENDING_DIR>/wg-as<asn>.conf
    verified store:  <DATA_VERIFIED_DIR>/wg-as<asn>.conf + state.json
"""

__version__ = "0.1.0"

# DN42 private ASN range (inclusive)
ASN_MIN = 4_200_000_000
ASN_MAX = 4_294_967_294
DEFAULT_LOCAL_ASN = 4242420257

# Challenge constants
CHALLENGE_PREFIX = "AUTOPEER"
CHALLENGE_RANDOM_BYTES = 16  # 32 hex chars, 128 bits

# Tunnel addressing
TUNNEL_PREFIX = "wg"
LISTEN_PORT_BASE = 30000
LINK_LOCAL_PREFIX_LEN = 64
DEFAULT_ALLOWED_IPS = ("0.0.0.0/0", "::/0")
DEFAULT_KEEPALIVE_SECS = 25
BIRD_PROTOCOL_PREFIX = "autopeer_as"
BIRD_TEMPLATE = "dnpeers"

# Credential constants
CREDENTIAL_VALIDITY_SECS = 7 * 24 * 3600  # 7 days
CREDENTIAL_COOKIE_NAME = "autopeer_token"
MIN_SECRET_LENGTH = 32

# API constants
API_DEFAULT_HOST = "127.0.0.1"
API_DEFAULT_PORT = 3000
API_MAX_BODY_BYTES = 64 * 1024  # 64 KB, armored keys are a few KB

# Deploy constants
DEPLOY_TIMEOUT_SECS = 30
WIREGUARD_DIR = "/etc/wireguard"
BIRD_PEERS_DIR = "/etc/bird/peers"

# Registry constants
REGISTRY_DEFAULT_URL = "https://git.dn42.dev/dn42/registry"
REGISTRY_SYNC_TIMEOUT_SECS = 300
