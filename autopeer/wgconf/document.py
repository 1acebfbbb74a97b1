"""
In-memory model of a peering config.

A PeeringConfig is the on-disk unit of truth for one ASN. The
``interface`` section is always present; the others appear as the
peering progresses:

    pending   Interface + Challenge
    verified  Interface
    deployed  Interface + Peer + BGP
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from autopeer.wgconf.spec import SECTION_BGP, SECTION_PEER


@dataclass
class InterfaceSection:
    addresses: list[str]
    private_key: str
    listen_port: int
    table: str | None = None


@dataclass
class PeerSection:
    public_key: str
    allowed_ips: list[str] = field(default_factory=list)
    endpoint: str | None = None
    persistent_keepalive: int | None = None


@dataclass
class ChallengeSection:
    code: str
    asn: int


@dataclass
class BgpSection:
    """Extension section describing the BGP session over the tunnel."""

    local: str
    neighbor: str
    mpbgp: bool = True
    extended_next_hop: bool = True


@dataclass
class PeeringConfig:
    interface: InterfaceSection
    peer: PeerSection | None = None
    challenge: ChallengeSection | None = None
    bgp: BgpSection | None = None

    def invariant_errors(self) -> list[str]:
        """Return violated invariants (empty if the config is consistent)."""
        errors = []
        if self.bgp is not None and (self.peer is None or not self.peer.endpoint):
            errors.append(f"[{SECTION_BGP}] requires a [{SECTION_PEER}] section with an Endpoint")
        return errors

    @property
    def is_finalized(self) -> bool:
        """True once both the tunnel peer and the BGP session are known."""
        return self.peer is not None and self.bgp is not None

    def without_challenge(self) -> PeeringConfig:
        return replace(self, challenge=None)

    def to_text(self) -> str:
        from autopeer.wgconf.writer import ConfigWriter

        return ConfigWriter.render(self)

    @classmethod
    def from_text(cls, text: str) -> PeeringConfig:
        from autopeer.wgconf.reader import ConfigReader

        return ConfigReader.parse(text).config


@dataclass(frozen=True)
class SectionWarning:
    """Something in the text that did not make it into the config.

    ``dropped`` is True when a whole section was discarded, False when only
    a line or key inside an otherwise usable section was skipped.
    """

    section: str
    message: str
    dropped: bool = True

    def __str__(self) -> str:
        return f"[{self.section}] {self.message}"


@dataclass
class ParseResult:
    """Parsed config plus section-level warnings.

    A missing optional section yields no warning. A malformed one is dropped
    from ``config`` and listed in ``warnings``, so callers can tell the two
    apart and decide whether an absent section is fatal for them.
    """

    config: PeeringConfig
    warnings: list[SectionWarning] = field(default_factory=list)

    def is_malformed(self, section: str) -> bool:
        return any(w.section == section and w.dropped for w in self.warnings)
