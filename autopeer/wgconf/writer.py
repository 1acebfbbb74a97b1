"""
Writer for peering config text.

Output is byte-stable for a given PeeringConfig: sections and keys are
always emitted in the fixed order from spec.py, one ``Key = value`` per
line, list values as repeated keys, a blank line between sections.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from autopeer._fsutil import atomic_write
from autopeer.wgconf.document import PeeringConfig
from autopeer.wgconf.spec import (
    KNOWN_SECTIONS,
    SECTION_BGP,
    SECTION_CHALLENGE,
    SECTION_INTERFACE,
    SECTION_ORDER,
    SECTION_PEER,
    format_bool,
    has_control_chars,
)

Pairs = list[tuple[str, str]]


class ConfigError(ValueError):
    """The config cannot be rendered (bad value or broken invariant)."""


def _interface_pairs(config: PeeringConfig) -> Pairs:
    iface = config.interface
    pairs = [("Address", addr) for addr in iface.addresses]
    pairs.append(("PrivateKey", iface.private_key))
    pairs.append(("ListenPort", str(iface.listen_port)))
    if iface.table is not None:
        pairs.append(("Table", iface.table))
    return pairs


def _peer_pairs(config: PeeringConfig) -> Pairs | None:
    peer = config.peer
    if peer is None:
        return None
    pairs = [("PublicKey", peer.public_key)]
    if peer.endpoint:
        pairs.append(("Endpoint", peer.endpoint))
    pairs.extend(("AllowedIPs", cidr) for cidr in peer.allowed_ips)
    if peer.persistent_keepalive is not None:
        pairs.append(("PersistentKeepalive", str(peer.persistent_keepalive)))
    return pairs


def _challenge_pairs(config: PeeringConfig) -> Pairs | None:
    if config.challenge is None:
        return None
    return [("Code", config.challenge.code), ("ASN", str(config.challenge.asn))]


def _bgp_pairs(config: PeeringConfig) -> Pairs | None:
    bgp = config.bgp
    if bgp is None:
        return None
    return [
        ("MPBGP", format_bool(bgp.mpbgp)),
        ("ExtendedNextHop", format_bool(bgp.extended_next_hop)),
        ("Local", bgp.local),
        ("Neighbor", bgp.neighbor),
    ]


_SECTION_PAIRS = {
    SECTION_INTERFACE: _interface_pairs,
    SECTION_PEER: _peer_pairs,
    SECTION_CHALLENGE: _challenge_pairs,
    SECTION_BGP: _bgp_pairs,
}


class ConfigWriter:

    @staticmethod
    def render(config: PeeringConfig, sections: Iterable[str] | None = None) -> str:
        """Render ``config`` to text.

        Args:
            config: The config to render.
            sections: Restrict output to these section names. The tunnel
                rendering handed to wg-quick uses ``TUNNEL_SECTIONS``.

        Raises:
            ConfigError: on a broken invariant or a value with control
                characters (a newline in a value would inject new keys).
        """
        problems = config.invariant_errors()
        if problems:
            raise ConfigError("; ".join(problems))

        wanted = KNOWN_SECTIONS if sections is None else frozenset(sections)
        blocks: list[str] = []
        for name in SECTION_ORDER:
            if name not in wanted:
                continue
            pairs = _SECTION_PAIRS[name](config)
            if pairs is None:
                continue
            lines = [f"[{name}]"]
            for key, value in pairs:
                if not value or has_control_chars(value) or value != value.strip():
                    raise ConfigError(f"[{name}] invalid value for {key}: {value!r}")
                lines.append(f"{key} = {value}")
            blocks.append("\n".join(lines))

        return "\n\n".join(blocks) + "\n"

    @classmethod
    def write(cls, path: str | Path, config: PeeringConfig, mode: int = 0o600) -> None:
        """Render and atomically write ``config``. Private key inside, so 0600."""
        atomic_write(path, cls.render(config).encode("utf-8"), mode)
