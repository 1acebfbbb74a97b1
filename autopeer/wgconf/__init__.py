"""
Peering config format: WireGuard [Interface]/[Peer] plus the [Challenge]
and [BGP] extension sections.
"""

from autopeer.wgconf.spec import SECTION_ORDER, TUNNEL_SECTIONS
from autopeer.wgconf.document import (
    BgpSection,
    ChallengeSection,
    InterfaceSection,
    ParseResult,
    PeerSection,
    PeeringConfig,
    SectionWarning,
)
from autopeer.wgconf.reader import ConfigParseError, ConfigReader
from autopeer.wgconf.writer import ConfigError, ConfigWriter

__all__ = [
    "SECTION_ORDER",
    "TUNNEL_SECTIONS",
    "BgpSection",
    "ChallengeSection",
    "InterfaceSection",
    "ParseResult",
    "PeerSection",
    "PeeringConfig",
    "SectionWarning",
    "ConfigParseError",
    "ConfigReader",
    "ConfigError",
    "ConfigWriter",
]
