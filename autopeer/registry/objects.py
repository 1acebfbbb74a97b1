"""
DN42 registry objects.

Records are plain-text files of ``key: value`` lines:

    aut-num:            AS4242422225
    as-name:            EXAMPLE-AS
    mnt-by:             EXAMPLE-MNT
    source:             DN42

Keys are case-insensitive, repeated keys accumulate, and a line starting
with whitespace or ``+`` continues the previous value.

Lookups used for peering:
    data/aut-num/AS<asn>      -> mnt-by maintainers
    data/mntner/<name>        -> auth: pgp-fingerprint <fp> | auth: PGPKEY-<id>
    data/key-cert/PGPKEY-<id> -> fingerpr: <fp>
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from autopeer.errors import NotFound

logger = logging.getLogger(__name__)

# Object names double as file names; keep them path-safe
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")
_FINGERPRINT_RE = re.compile(r"^[0-9A-F]{40}$")


class RegistryError(NotFound):
    """Registry object missing, unreadable, or without a usable key."""


def parse_object(text: str) -> dict[str, list[str]]:
    """Parse a registry record into ``{key: [values]}``."""
    fields: dict[str, list[str]] = {}
    last_key = ""
    for raw_line in text.splitlines():
        if not raw_line.strip():
            continue
        if raw_line[0] in " \t+":
            if last_key:
                continuation = raw_line[1:].strip() if raw_line[0] == "+" else raw_line.strip()
                fields[last_key][-1] = f"{fields[last_key][-1]}\n{continuation}".strip("\n")
            continue
        key, sep, value = raw_line.partition(":")
        if not sep:
            continue
        last_key = key.strip().lower()
        fields.setdefault(last_key, []).append(value.strip())
    return fields


@dataclass
class AsObject:
    asn: int
    as_name: str = ""
    descr: str = ""
    mnt_by: list[str] = field(default_factory=list)

    @classmethod
    def from_fields(cls, asn: int, fields: dict[str, list[str]]) -> AsObject:
        return cls(
            asn=asn,
            as_name=fields.get("as-name", [""])[0],
            descr=fields.get("descr", [""])[0],
            mnt_by=fields.get("mnt-by", []),
        )


@dataclass
class Maintainer:
    name: str
    auth: list[str] = field(default_factory=list)

    @property
    def pgp_fingerprints(self) -> list[str]:
        """Fingerprints given inline as ``auth: pgp-fingerprint <fp>``."""
        out = []
        for entry in self.auth:
            method, _, value = entry.partition(" ")
            if method.lower() == "pgp-fingerprint":
                out.append(normalize_fingerprint(value))
        return out

    @property
    def key_cert_refs(self) -> list[str]:
        """Names of key-cert objects referenced as ``auth: PGPKEY-<id>``."""
        return [
            entry.split()[0] for entry in self.auth
            if entry.split() and entry.split()[0].upper().startswith("PGPKEY-")
        ]


@dataclass
class KeyCert:
    name: str
    method: str = ""
    fingerprint: str = ""


def normalize_fingerprint(value: str) -> str:
    return "".join(value.split()).upper()


class Registry:
    """Read-only view of a local DN42 registry checkout.

    Usage:
        registry = Registry("data/dn42-registry")
        fp = registry.lookup_fingerprint(4242422225)
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.data_dir = self.path / "data"

    def _read(self, kind: str, name: str) -> dict[str, list[str]]:
        if not _NAME_RE.fullmatch(name):
            raise RegistryError(f"Invalid registry object name: {name!r}")
        obj_path = self.data_dir / kind / name
        if not obj_path.is_file():
            raise RegistryError(f"No {kind} object {name} in registry")
        try:
            return parse_object(obj_path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            raise RegistryError(f"Cannot read {kind}/{name}: {e}") from e

    def lookup_as_object(self, asn: int) -> AsObject:
        return AsObject.from_fields(asn, self._read("aut-num", f"AS{asn}"))

    def lookup_maintainer(self, name: str) -> Maintainer:
        fields = self._read("mntner", name)
        return Maintainer(name=name, auth=fields.get("auth", []))

    def lookup_key_cert(self, name: str) -> KeyCert:
        fields = self._read("key-cert", name)
        return KeyCert(
            name=name,
            method=fields.get("method", [""])[0],
            fingerprint=normalize_fingerprint(fields.get("fingerpr", [""])[0]),
        )

    def lookup_fingerprints(self, asn: int) -> list[str]:
        """All PGP fingerprints authorised for ``asn``, in registry order."""
        as_object = self.lookup_as_object(asn)
        if not as_object.mnt_by:
            raise RegistryError(f"AS{asn} has no mnt-by maintainer")

        found: list[str] = []
        for mnt in as_object.mnt_by:
            try:
                maintainer = self.lookup_maintainer(mnt)
            except RegistryError as e:
                logger.warning("AS%d: skipping maintainer %s: %s", asn, mnt, e)
                continue
            found.extend(maintainer.pgp_fingerprints)
            for ref in maintainer.key_cert_refs:
                try:
                    cert = self.lookup_key_cert(ref)
                except RegistryError as e:
                    logger.warning("AS%d: skipping key-cert %s: %s", asn, ref, e)
                    continue
                if cert.fingerprint:
                    found.append(cert.fingerprint)

        return [fp for fp in dict.fromkeys(found) if _FINGERPRINT_RE.fullmatch(fp)]

    def lookup_fingerprint(self, asn: int) -> str:
        """First PGP fingerprint authorised for ``asn``."""
        fingerprints = self.lookup_fingerprints(asn)
        if not fingerprints:
            raise RegistryError(f"No PGP fingerprint registered for AS{asn}")
        return fingerprints[0]
