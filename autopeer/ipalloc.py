"""
Deterministic addressing for a peering between two ASNs.

Both sides derive the same values from the pair of ASNs alone, so nothing
has to be negotiated or stored beyond the ASN itself:

    local   fe80::<remote % 10000>:<local % 10000>:0/64
    peer    fe80::<remote % 10000>:<local % 10000>:1
    iface   wg-as<remote>
    port    30000 + remote % 10000

Two remote ASNs sharing their last four digits collide on the same local
ASN. That is a known limitation of the scheme, not something to paper over.
"""

from __future__ import annotations

from dataclasses import dataclass

from autopeer import (
    BIRD_PROTOCOL_PREFIX,
    LINK_LOCAL_PREFIX_LEN,
    LISTEN_PORT_BASE,
    TUNNEL_PREFIX,
)


@dataclass(frozen=True)
class LinkLocalPair:
    """Link-local addresses for both ends of a tunnel.

    Attributes:
        local: Our address with prefix length (e.g. ``fe80::2225:257:0/64``).
        peer: The remote address, no prefix (e.g. ``fe80::2225:257:1``).
    """

    local: str
    peer: str

    @property
    def local_addr(self) -> str:
        """Our address without the prefix length."""
        return self.local.split("/", 1)[0]


def _short(asn: int) -> int:
    return asn % 10000


def derive_addresses(local_asn: int, remote_asn: int) -> LinkLocalPair:
    base = f"fe80::{_short(remote_asn)}:{_short(local_asn)}"
    return LinkLocalPair(
        local=f"{base}:0/{LINK_LOCAL_PREFIX_LEN}",
        peer=f"{base}:1",
    )


def interface_name(asn: int) -> str:
    return f"{TUNNEL_PREFIX}-as{asn}"


def listen_port(asn: int) -> int:
    return LISTEN_PORT_BASE + _short(asn)


def protocol_name(asn: int) -> str:
    """BIRD protocol name for the session with ``asn``."""
    return f"{BIRD_PROTOCOL_PREFIX}{asn}"
