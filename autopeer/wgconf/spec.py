"""
Peering config format.

Layout (WireGuard ini style, plus two extension sections):
    [Interface]
    Address = <ip/prefix>            (repeatable)
    PrivateKey = <base64>
    ListenPort = <uint16>
    Table = off                      (optional)

    [Peer]                           (optional)
    PublicKey = <base64>
    Endpoint = <host:port>           (optional)
    AllowedIPs = <cidr>              (repeatable)
    PersistentKeepalive = <uint16>   (optional)

    [Challenge]                      (optional, pending records only)
    Code = <string>
    ASN = <uint32>

    [BGP]                            (optional)
    MPBGP = on|true|off|false
    ExtendedNextHop = on|true|off|false
    Local = <ipv6>
    Neighbor = <ipv6>

Section names are case-sensitive. Repeated keys become ordered lists.
Lines starting with '#' or ';' are comments.
"""

SECTION_INTERFACE = "Interface"
SECTION_PEER = "Peer"
SECTION_CHALLENGE = "Challenge"
SECTION_BGP = "BGP"

# Render order
SECTION_ORDER = (SECTION_INTERFACE, SECTION_PEER, SECTION_CHALLENGE, SECTION_BGP)
KNOWN_SECTIONS = frozenset(SECTION_ORDER)

# What wg-quick understands; the rest is ours
TUNNEL_SECTIONS = frozenset({SECTION_INTERFACE, SECTION_PEER})

# Keys per section, in render order
INTERFACE_KEYS = ("Address", "PrivateKey", "ListenPort", "Table")
PEER_KEYS = ("PublicKey", "Endpoint", "AllowedIPs", "PersistentKeepalive")
CHALLENGE_KEYS = ("Code", "ASN")
BGP_KEYS = ("MPBGP", "ExtendedNextHop", "Local", "Neighbor")

SECTION_KEYS = {
    SECTION_INTERFACE: INTERFACE_KEYS,
    SECTION_PEER: PEER_KEYS,
    SECTION_CHALLENGE: CHALLENGE_KEYS,
    SECTION_BGP: BGP_KEYS,
}

COMMENT_PREFIXES = ("#", ";")

TRUE_VALUES = frozenset({"on", "true"})
FALSE_VALUES = frozenset({"off", "false"})

MAX_CONFIG_SIZE = 64 * 1024


def format_bool(value: bool) -> str:
    return "on" if value else "off"


def parse_bool(value: str) -> bool:
    """Parse on/true/off/false (any case). Raises ValueError otherwise."""
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"expected on/off/true/false, got {value!r}")


def has_control_chars(value: str) -> bool:
    return any(c < " " or c == "\x7f" for c in value)
