"""
Reader for peering config text.

The [Interface] section is mandatory; its absence (or a missing PrivateKey
or ListenPort) is a ConfigParseError. [Peer], [Challenge] and [BGP] are each
optional and fail-soft: a malformed one is dropped and reported as a
SectionWarning instead of failing the whole parse. Values carrying control
characters are malformed wherever they appear.
"""

from __future__ import annotations

import re
from pathlib import Path

from autopeer.wgconf.document import (
    BgpSection,
    ChallengeSection,
    InterfaceSection,
    ParseResult,
    PeerSection,
    PeeringConfig,
    SectionWarning,
)
from autopeer.wgconf.spec import (
    COMMENT_PREFIXES,
    KNOWN_SECTIONS,
    MAX_CONFIG_SIZE,
    SECTION_BGP,
    SECTION_CHALLENGE,
    SECTION_INTERFACE,
    SECTION_KEYS,
    SECTION_PEER,
    has_control_chars,
    parse_bool,
)

_SECTION_RE = re.compile(r"^\[([^\[\]]+)\]$")

# Keys match case-insensitively and are stored under their canonical spelling
_KEY_LOOKUP = {
    section: {key.lower(): key for key in keys}
    for section, keys in SECTION_KEYS.items()
}

RawSection = dict[str, list[str]]


class ConfigParseError(ValueError):
    """The config text has no usable [Interface] section."""


def _check_values(key: str, items: list[str]) -> None:
    # The writer refuses these, so a parsed config must never carry one
    for item in items:
        if has_control_chars(item):
            raise ValueError(f"{key} contains control characters: {item!r}")


def _single(values: RawSection, key: str, required: bool = True) -> str | None:
    items = values.get(key, [])
    _check_values(key, items)
    if len(items) > 1:
        raise ValueError(f"{key} given {len(items)} times")
    if not items or not items[0]:
        if required:
            raise ValueError(f"missing {key}")
        return None
    return items[0]


def _int(value: str, key: str, high: int) -> int:
    if not value.isdigit():
        raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    number = int(value)
    if number > high:
        raise ValueError(f"{key} out of range: {number}")
    return number


def _list(values: RawSection, key: str) -> list[str]:
    # WireGuard allows both repeated keys and comma-separated values
    out: list[str] = []
    items = values.get(key, [])
    _check_values(key, items)
    for item in items:
        out.extend(part.strip() for part in item.split(",") if part.strip())
    return out


def _interface_from(values: RawSection) -> InterfaceSection:
    return InterfaceSection(
        addresses=_list(values, "Address"),
        private_key=_single(values, "PrivateKey"),
        listen_port=_int(_single(values, "ListenPort"), "ListenPort", 65535),
        table=_single(values, "Table", required=False),
    )


def _peer_from(values: RawSection) -> PeerSection:
    keepalive = _single(values, "PersistentKeepalive", required=False)
    return PeerSection(
        public_key=_single(values, "PublicKey"),
        allowed_ips=_list(values, "AllowedIPs"),
        endpoint=_single(values, "Endpoint", required=False),
        persistent_keepalive=(
            _int(keepalive, "PersistentKeepalive", 65535) if keepalive is not None else None
        ),
    )


def _challenge_from(values: RawSection) -> ChallengeSection:
    return ChallengeSection(
        code=_single(values, "Code"),
        asn=_int(_single(values, "ASN"), "ASN", 0xFFFFFFFF),
    )


def _bgp_from(values: RawSection) -> BgpSection:
    section = BgpSection(
        local=_single(values, "Local"),
        neighbor=_single(values, "Neighbor"),
    )
    mpbgp = _single(values, "MPBGP", required=False)
    if mpbgp is not None:
        section.mpbgp = parse_bool(mpbgp)
    enh = _single(values, "ExtendedNextHop", required=False)
    if enh is not None:
        section.extended_next_hop = parse_bool(enh)
    return section


_OPTIONAL_SECTIONS = (
    (SECTION_PEER, "peer", _peer_from),
    (SECTION_CHALLENGE, "challenge", _challenge_from),
    (SECTION_BGP, "bgp", _bgp_from),
)


class ConfigReader:
    """
    Peering config parser.

    Usage:
        result = ConfigReader.read("data/verified/wg-as4242422225.conf")
        for warning in result.warnings:
            logger.warning("%s", warning)
        config = result.config
    """

    @staticmethod
    def split_sections(text: str) -> tuple[dict[str, RawSection], list[SectionWarning]]:
        """Split text into known sections of ``key -> [values]``.

        Unknown sections, unknown keys, duplicate sections and stray lines
        are skipped and reported.
        """
        sections: dict[str, RawSection] = {}
        warnings: list[SectionWarning] = []
        current: RawSection | None = None
        current_name = ""

        for lineno, raw_line in enumerate(text.splitlines(), 1):
            line = raw_line.strip()
            if not line or line.startswith(COMMENT_PREFIXES):
                continue

            m = _SECTION_RE.match(line)
            if m:
                current_name = m.group(1).strip()
                if current_name not in KNOWN_SECTIONS:
                    warnings.append(SectionWarning(current_name, f"unknown section ignored (line {lineno})"))
                    current = None
                elif current_name in sections:
                    warnings.append(SectionWarning(
                        current_name, f"duplicate section ignored (line {lineno})", dropped=False,
                    ))
                    current = None
                else:
                    current = sections[current_name] = {}
                continue

            if current is None:
                if not current_name:
                    warnings.append(SectionWarning(
                        "", f"line {lineno} outside any section ignored", dropped=False,
                    ))
                continue

            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                warnings.append(SectionWarning(
                    current_name, f"line {lineno} is not 'key = value'", dropped=False,
                ))
                continue

            canonical = _KEY_LOOKUP[current_name].get(key.lower())
            if canonical is None:
                warnings.append(SectionWarning(
                    current_name, f"unknown key {key!r} ignored", dropped=False,
                ))
                continue
            current.setdefault(canonical, []).append(value.strip())

        return sections, warnings

    @classmethod
    def parse(cls, text: str) -> ParseResult:
        if len(text) > MAX_CONFIG_SIZE:
            raise ConfigParseError(f"config too large ({len(text)} bytes, max {MAX_CONFIG_SIZE})")

        sections, warnings = cls.split_sections(text)

        if SECTION_INTERFACE not in sections:
            raise ConfigParseError(f"missing [{SECTION_INTERFACE}] section")
        try:
            interface = _interface_from(sections[SECTION_INTERFACE])
        except ValueError as e:
            raise ConfigParseError(f"[{SECTION_INTERFACE}] {e}") from e

        config = PeeringConfig(interface=interface)
        for name, attr, build in _OPTIONAL_SECTIONS:
            if name not in sections:
                continue
            try:
                setattr(config, attr, build(sections[name]))
            except ValueError as e:
                warnings.append(SectionWarning(name, str(e)))

        for problem in config.invariant_errors():
            warnings.append(SectionWarning(SECTION_BGP, problem))
            config.bgp = None

        return ParseResult(config=config, warnings=warnings)

    @classmethod
    def read(cls, path: str | Path) -> ParseResult:
        """Read and parse a config file. OSError propagates."""
        return cls.parse(Path(path).read_text(encoding="utf-8"))
