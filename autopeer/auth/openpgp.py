"""
OpenPGP signature verification for the challenge handshake (RFC 4880).

Covers exactly what a peer can hand us:
    - an ASCII-armored public key (primary key + subkeys)
    - a signed challenge, as one of
        * a cleartext-signed message   (gpg --clearsign)
        * an inline-signed message     (gpg --sign --armor), optionally compressed
        * a detached signature         (gpg --detach-sign --armor)

Supported key algorithms: RSA (1, 3), ECDSA on NIST P-256/384/521 (19),
EdDSA Ed25519 (22 legacy, 27 native). Hashes: SHA-1, SHA-224/256/384/512.
Only v4 keys and signatures.

Signature math is done by the ``cryptography`` package; this module only
parses packets and builds the hashed data.

Errors:
    OpenPGPError    input is malformed or unsupported   (BadRequest)
    SignatureError  verification ran and failed        (Unauthorized)
"""

from __future__ import annotations

import base64
import binascii
import bz2
import hashlib
import re
import zlib
from dataclasses import dataclass, field
from typing import Iterator

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from autopeer.errors import BadRequest, Unauthorized


class OpenPGPError(BadRequest):
    """Malformed or unsupported OpenPGP data."""


class SignatureError(Unauthorized):
    """Signature did not validate, or signed content is not the challenge."""


# Packet tags
TAG_SIGNATURE = 2
TAG_ONE_PASS = 4
TAG_SECRET_KEY = 5
TAG_PUBLIC_KEY = 6
TAG_SECRET_SUBKEY = 7
TAG_COMPRESSED = 8
TAG_MARKER = 10
TAG_LITERAL = 11
TAG_PUBLIC_SUBKEY = 14

# Public key algorithms
ALGO_RSA = 1
ALGO_RSA_SIGN = 3
ALGO_ECDSA = 19
ALGO_EDDSA_LEGACY = 22
ALGO_ED25519 = 27
_RSA_ALGOS = frozenset({ALGO_RSA, ALGO_RSA_SIGN})

# Signature types
SIG_BINARY = 0x00
SIG_TEXT = 0x01
SIG_SUBKEY_BINDING = 0x18

# Signature subpackets
SUBPKT_ISSUER = 16
SUBPKT_ISSUER_FINGERPRINT = 33

_HASHES = {
    2: hashes.SHA1,
    8: hashes.SHA256,
    9: hashes.SHA384,
    10: hashes.SHA512,
    11: hashes.SHA224,
}

_OID_ED25519 = bytes.fromhex("2b06010401da470f01")
_EC_CURVES = {
    bytes.fromhex("2a8648ce3d030107"): ec.SECP256R1,
    bytes.fromhex("2b81040022"): ec.SECP384R1,
    bytes.fromhex("2b81040023"): ec.SECP521R1,
}

ARMOR_PUBLIC_KEY = "PUBLIC KEY BLOCK"
ARMOR_PRIVATE_KEY = "PRIVATE KEY BLOCK"
ARMOR_MESSAGE = "MESSAGE"
ARMOR_SIGNATURE = "SIGNATURE"
CLEARTEXT_BEGIN = "-----BEGIN PGP SIGNED MESSAGE-----"

_ARMOR_BEGIN_RE = re.compile(r"^-----BEGIN PGP ([A-Z ,/0-9]+)-----$")

MAX_DECOMPRESSED = 1024 * 1024
MAX_NESTING = 4


# ---------------------------------------------------------------------------
# ASCII armor
# ---------------------------------------------------------------------------

def crc24(data: bytes) -> int:
    """OpenPGP armor checksum (RFC 4880 section 6.1)."""
    crc = 0xB704CE
    for byte in data:
        crc ^= byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= 0x1864CFB
    return crc & 0xFFFFFF


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def dearmor(text: str, kind: str) -> bytes:
    """Decode the first ``-----BEGIN PGP <kind>-----`` block in ``text``."""
    lines = _normalize_newlines(text).split("\n")
    begin = f"-----BEGIN PGP {kind}-----"
    end = f"-----END PGP {kind}-----"

    try:
        start = next(i for i, line in enumerate(lines) if line.strip() == begin)
        stop = next(i for i in range(start + 1, len(lines)) if lines[i].strip() == end)
    except StopIteration:
        raise OpenPGPError(f"no armored {kind.lower()} found")

    body = lines[start + 1:stop]
    # Armor headers ("Version: ...", "Comment: ...") end at the first blank line
    idx = 0
    while idx < len(body) and body[idx].strip() and ": " in body[idx]:
        idx += 1
    if idx < len(body) and not body[idx].strip():
        idx += 1

    payload: list[str] = []
    checksum = None
    for line in body[idx:]:
        line = line.strip()
        if not line:
            continue
        if line.startswith("=") and len(line) == 5:
            checksum = line[1:]
            continue
        payload.append(line)

    try:
        data = base64.b64decode("".join(payload), validate=True)
    except (binascii.Error, ValueError):
        raise OpenPGPError(f"armored {kind.lower()} is not valid base64")
    if not data:
        raise OpenPGPError(f"armored {kind.lower()} is empty")

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
        except (binascii.Error, ValueError):
            raise OpenPGPError("armor checksum is not valid base64")
        if expected != crc24(data):
            raise OpenPGPError("armor checksum mismatch")
    return data


def armor_kind(text: str) -> str | None:
    """Return the kind of the first armor block (``"MESSAGE"``, ...) if any."""
    for line in _normalize_newlines(text).split("\n"):
        line = line.strip()
        if line == CLEARTEXT_BEGIN:
            return "SIGNED MESSAGE"
        m = _ARMOR_BEGIN_RE.match(line)
        if m:
            return m.group(1)
    return None


# ---------------------------------------------------------------------------
# Packets
# ---------------------------------------------------------------------------

@dataclass
class Packet:
    tag: int
    body: bytes


def _need(data: bytes, pos: int, count: int) -> None:
    if pos + count > len(data):
        raise OpenPGPError("truncated packet")


def _new_format_length(data: bytes, pos: int) -> tuple[int, int, bool]:
    """Returns (length, new_pos, is_partial)."""
    _need(data, pos, 1)
    first = data[pos]
    if first < 192:
        return first, pos + 1, False
    if first < 224:
        _need(data, pos, 2)
        return ((first - 192) << 8) + data[pos + 1] + 192, pos + 2, False
    if first == 255:
        _need(data, pos, 5)
        return int.from_bytes(data[pos + 1:pos + 5], "big"), pos + 5, False
    return 1 << (first & 0x1F), pos + 1, True


def iter_packets(data: bytes) -> Iterator[Packet]:
    pos = 0
    while pos < len(data):
        ctb = data[pos]
        pos += 1
        if not ctb & 0x80:
            raise OpenPGPError(f"invalid packet header byte 0x{ctb:02x}")

        if ctb & 0x40:
            tag = ctb & 0x3F
            chunks = []
            while True:
                length, pos, partial = _new_format_length(data, pos)
                _need(data, pos, length)
                chunks.append(data[pos:pos + length])
                pos += length
                if not partial:
                    break
            body = b"".join(chunks)
        else:
            tag = (ctb >> 2) & 0x0F
            length_type = ctb & 0x03
            if length_type == 3:
                length = len(data) - pos
            else:
                size = (1, 2, 4)[length_type]
                _need(data, pos, size)
                length = int.from_bytes(data[pos:pos + size], "big")
                pos += size
            _need(data, pos, length)
            body = data[pos:pos + length]
            pos += length

        yield Packet(tag, body)


def _read_mpi(data: bytes, pos: int) -> tuple[bytes, int]:
    _need(data, pos, 2)
    bits = int.from_bytes(data[pos:pos + 2], "big")
    size = (bits + 7) // 8
    pos += 2
    _need(data, pos, size)
    return data[pos:pos + size], pos + size


def _iter_subpackets(area: bytes) -> Iterator[tuple[int, bytes]]:
    pos = 0
    while pos < len(area):
        first = area[pos]
        if first < 192:
            length, pos = first, pos + 1
        elif first < 255:
            _need(area, pos, 2)
            length, pos = ((first - 192) << 8) + area[pos + 1] + 192, pos + 2
        else:
            _need(area, pos, 5)
            length, pos = int.from_bytes(area[pos + 1:pos + 5], "big"), pos + 5
        if length == 0:
            raise OpenPGPError("empty signature subpacket")
        _need(area, pos, length)
        yield area[pos] & 0x7F, area[pos + 1:pos + length]
        pos += length


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def _ed25519_key(raw: bytes) -> ed25519.Ed25519PublicKey:
    try:
        return ed25519.Ed25519PublicKey.from_public_bytes(raw)
    except ValueError as e:
        raise OpenPGPError(f"invalid Ed25519 key: {e}") from e


@dataclass
class PublicKey:
    """A v4 public key or subkey packet."""

    body: bytes
    algorithm: int
    material: bytes
    is_subkey: bool = False
    bindings: list[Signature] = field(default_factory=list)

    @classmethod
    def parse(cls, body: bytes, is_subkey: bool = False) -> PublicKey:
        if len(body) < 6:
            raise OpenPGPError("truncated public key packet")
        if body[0] != 4:
            raise OpenPGPError(f"unsupported key version {body[0]}")
        return cls(body=body, algorithm=body[5], material=body[6:], is_subkey=is_subkey)

    @property
    def hash_prefix(self) -> bytes:
        """The ``0x99 || len || body`` form used for fingerprints and bindings."""
        return b"\x99" + len(self.body).to_bytes(2, "big") + self.body

    @property
    def fingerprint(self) -> str:
        return hashlib.sha1(self.hash_prefix).hexdigest().upper()

    @property
    def key_id(self) -> str:
        return self.fingerprint[-16:]

    def load(self):
        """Build the ``cryptography`` public key object."""
        m = self.material
        if self.algorithm in _RSA_ALGOS:
            n, pos = _read_mpi(m, 0)
            e, _ = _read_mpi(m, pos)
            try:
                return rsa.RSAPublicNumbers(
                    int.from_bytes(e, "big"), int.from_bytes(n, "big"),
                ).public_key()
            except ValueError as exc:
                raise OpenPGPError(f"invalid RSA key: {exc}") from exc

        if self.algorithm in (ALGO_ECDSA, ALGO_EDDSA_LEGACY):
            _need(m, 0, 1)
            oid_len = m[0]
            _need(m, 1, oid_len)
            oid = m[1:1 + oid_len]
            point, _ = _read_mpi(m, 1 + oid_len)
            if self.algorithm == ALGO_EDDSA_LEGACY:
                if oid != _OID_ED25519 or len(point) != 33 or point[0] != 0x40:
                    raise OpenPGPError("unsupported EdDSA curve or point encoding")
                return _ed25519_key(point[1:])
            curve = _EC_CURVES.get(oid)
            if curve is None:
                raise OpenPGPError(f"unsupported ECDSA curve OID {oid.hex()}")
            try:
                return ec.EllipticCurvePublicKey.from_encoded_point(curve(), point)
            except ValueError as e:
                raise OpenPGPError(f"invalid ECDSA point: {e}") from e

        if self.algorithm == ALGO_ED25519:
            _need(m, 0, 32)
            return _ed25519_key(m[:32])

        raise OpenPGPError(f"public key algorithm {self.algorithm} cannot verify signatures")

    @property
    def can_sign(self) -> bool:
        return self.algorithm in _RSA_ALGOS or self.algorithm in (
            ALGO_ECDSA, ALGO_EDDSA_LEGACY, ALGO_ED25519,
        )


def load_public_keys(armored: str) -> list[PublicKey]:
    """Parse an armored public key block into ``[primary, *subkeys]``.

    Subkey binding signatures (type 0x18) are attached to their subkey.
    """
    if ARMOR_PRIVATE_KEY in armored:
        raise OpenPGPError("secret key material supplied; send the public key only")
    data = dearmor(armored, ARMOR_PUBLIC_KEY)

    keys: list[PublicKey] = []
    for packet in iter_packets(data):
        if packet.tag in (TAG_SECRET_KEY, TAG_SECRET_SUBKEY):
            raise OpenPGPError("secret key material supplied; send the public key only")
        if packet.tag == TAG_PUBLIC_KEY:
            if keys:
                break  # only the first certificate in a keyring
            keys.append(PublicKey.parse(packet.body))
        elif packet.tag == TAG_PUBLIC_SUBKEY:
            if not keys:
                raise OpenPGPError("subkey before primary key")
            keys.append(PublicKey.parse(packet.body, is_subkey=True))
        elif packet.tag == TAG_SIGNATURE and keys and keys[-1].is_subkey:
            sig = Signature.parse(packet.body)
            if sig is not None and sig.sig_type == SIG_SUBKEY_BINDING:
                keys[-1].bindings.append(sig)

    if not keys:
        raise OpenPGPError("no public key packet found")
    return keys


def fingerprint(public_key: str) -> str:
    """v4 fingerprint of the primary key, 40 uppercase hex digits."""
    return load_public_keys(public_key)[0].fingerprint


def normalize_fingerprint(value: str) -> str:
    return "".join(value.split()).upper()


def match_fingerprint(public_key: str, expected: str) -> bool:
    """Does the primary key of ``public_key`` have fingerprint ``expected``?

    Case-insensitive, whitespace ignored. Raises OpenPGPError if the key
    cannot be parsed.
    """
    want = normalize_fingerprint(expected)
    return bool(want) and fingerprint(public_key) == want


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

@dataclass
class Signature:
    sig_type: int
    pubkey_algo: int
    hash_algo: int
    hashed_area: bytes
    left16: bytes
    values: list[bytes]
    issuer_fingerprints: list[str] = field(default_factory=list)
    issuer_key_ids: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, body: bytes) -> Signature | None:
        """Parse a v4 signature packet. Other versions return None."""
        if not body or body[0] != 4:
            return None
        _need(body, 0, 6)
        sig_type, pubkey_algo, hash_algo = body[1], body[2], body[3]
        hashed_len = int.from_bytes(body[4:6], "big")
        _need(body, 6, hashed_len + 2)
        hashed = body[6:6 + hashed_len]
        pos = 6 + hashed_len
        unhashed_len = int.from_bytes(body[pos:pos + 2], "big")
        pos += 2
        _need(body, pos, unhashed_len + 2)
        unhashed = body[pos:pos + unhashed_len]
        pos += unhashed_len
        left16 = body[pos:pos + 2]
        pos += 2

        if pubkey_algo == ALGO_ED25519:
            _need(body, pos, 64)
            values = [body[pos:pos + 64]]
        else:
            values = []
            while pos < len(body):
                value, pos = _read_mpi(body, pos)
                values.append(value)

        sig = cls(
            sig_type=sig_type,
            pubkey_algo=pubkey_algo,
            hash_algo=hash_algo,
            hashed_area=hashed,
            left16=left16,
            values=values,
        )
        for area in (hashed, unhashed):
            for sp_type, sp_data in _iter_subpackets(area):
                if sp_type == SUBPKT_ISSUER_FINGERPRINT and len(sp_data) > 1:
                    sig.issuer_fingerprints.append(sp_data[1:].hex().upper())
                elif sp_type == SUBPKT_ISSUER and len(sp_data) == 8:
                    sig.issuer_key_ids.append(sp_data.hex().upper())
        return sig

    def trailer(self) -> bytes:
        """Signature fields hashed after the data (RFC 4880 section 5.2.4)."""
        header = bytes([4, self.sig_type, self.pubkey_algo, self.hash_algo])
        header += len(self.hashed_area).to_bytes(2, "big") + self.hashed_area
        return header + b"\x04\xff" + len(header).to_bytes(4, "big")

    def issued_by(self, key: PublicKey) -> bool:
        if not self.issuer_fingerprints and not self.issuer_key_ids:
            return True
        return key.fingerprint in self.issuer_fingerprints or key.key_id in self.issuer_key_ids


def _pad(value: bytes, size: int) -> bytes:
    if len(value) > size:
        raise OpenPGPError("signature value too long")
    return value.rjust(size, b"\x00")


def _check(key: PublicKey, sig: Signature, data: bytes) -> bool:
    """True if ``sig`` by ``key`` validates over ``data``.

    A signature using a hash we cannot compute never validates.
    """
    hash_cls = _HASHES.get(sig.hash_algo)
    if hash_cls is None:
        return False
    same_algo = sig.pubkey_algo == key.algorithm or (
        sig.pubkey_algo in _RSA_ALGOS and key.algorithm in _RSA_ALGOS
    )
    if not same_algo:
        return False

    h = hashes.Hash(hash_cls())
    h.update(data)
    h.update(sig.trailer())
    digest = h.finalize()
    if digest[:2] != sig.left16:
        return False

    public = key.load()
    try:
        if key.algorithm in _RSA_ALGOS:
            if len(sig.values) != 1:
                raise OpenPGPError("RSA signature must have one value")
            size = (public.key_size + 7) // 8
            public.verify(_pad(sig.values[0], size), digest, padding.PKCS1v15(), Prehashed(hash_cls()))
        elif key.algorithm == ALGO_ECDSA:
            if len(sig.values) != 2:
                raise OpenPGPError("ECDSA signature must have two values")
            r, s = (int.from_bytes(v, "big") for v in sig.values)
            public.verify(encode_dss_signature(r, s), digest, ec.ECDSA(Prehashed(hash_cls())))
        elif key.algorithm == ALGO_EDDSA_LEGACY:
            if len(sig.values) != 2:
                raise OpenPGPError("EdDSA signature must have two values")
            public.verify(_pad(sig.values[0], 32) + _pad(sig.values[1], 32), digest)
        else:
            public.verify(sig.values[0], digest)
    except InvalidSignature:
        return False
    return True


def _subkey_is_bound(primary: PublicKey, subkey: PublicKey) -> bool:
    data = primary.hash_prefix + subkey.hash_prefix
    return any(
        binding.issued_by(primary) and _check(primary, binding, data)
        for binding in subkey.bindings
    )


def canonical_text(data: bytes) -> bytes:
    """Line endings to CRLF, as text-mode signatures (type 0x01) require."""
    return data.replace(b"\r\n", b"\n").replace(b"\r", b"\n").replace(b"\n", b"\r\n")


def _verify_any(keys: list[PublicKey], sigs: list[Signature], candidates: list[bytes]) -> None:
    """Raise SignatureError unless some signature validates over some candidate.

    Signatures with a hash we do not support are skipped; OpenPGPError is
    raised only if that leaves nothing to check.
    """
    primary = keys[0]
    sigs = [sig for sig in sigs if sig.sig_type in (SIG_BINARY, SIG_TEXT)]
    usable = [sig for sig in sigs if sig.hash_algo in _HASHES]
    if sigs and not usable:
        algos = ", ".join(sorted({str(sig.hash_algo) for sig in sigs}))
        raise OpenPGPError(f"unsupported hash algorithm {algos}")

    issued = False
    for sig in usable:
        for key in keys:
            if not key.can_sign or not sig.issued_by(key):
                continue
            if key.is_subkey and not _subkey_is_bound(primary, key):
                continue
            issued = True
            for data in candidates:
                if sig.sig_type == SIG_TEXT:
                    data = canonical_text(data)
                if _check(key, sig, data):
                    return
    if not issued:
        raise SignatureError("signature was not made by the supplied key")
    raise SignatureError("signature verification failed")


# ---------------------------------------------------------------------------
# Message shapes
# ---------------------------------------------------------------------------

def _signatures_from(data: bytes) -> list[Signature]:
    sigs = []
    for packet in iter_packets(data):
        if packet.tag == TAG_SIGNATURE:
            sig = Signature.parse(packet.body)
            if sig is not None:
                sigs.append(sig)
    if not sigs:
        raise OpenPGPError("no v4 signature packet found")
    return sigs


def split_cleartext(text: str) -> tuple[str, bytes, str]:
    """Split a cleartext-signed message (RFC 4880 section 7).

    Returns ``(message_text, signed_bytes, signature_armor)``. The signed
    bytes are the dash-unescaped lines with trailing whitespace removed,
    joined by CRLF, without the line break before the signature armor.
    """
    lines = _normalize_newlines(text).split("\n")
    try:
        start = next(i for i, line in enumerate(lines) if line.rstrip() == CLEARTEXT_BEGIN)
    except StopIteration:
        raise OpenPGPError("no cleartext signed message found")

    pos = start + 1
    # "Hash: SHA512" headers, terminated by a blank line
    while pos < len(lines) and lines[pos].strip():
        pos += 1
    pos += 1

    sig_begin = f"-----BEGIN PGP {ARMOR_SIGNATURE}-----"
    try:
        stop = next(i for i in range(pos, len(lines)) if lines[i].rstrip() == sig_begin)
    except StopIteration:
        raise OpenPGPError("cleartext message has no signature block")

    body = []
    for line in lines[pos:stop]:
        if line.startswith("- "):
            line = line[2:]
        body.append(line.rstrip(" \t"))

    signed = "\r\n".join(body).encode("utf-8")
    return "\n".join(body), signed, "\n".join(lines[stop:])


@dataclass
class LiteralData:
    format: str
    filename: str
    content: bytes


def _decompress(body: bytes) -> bytes:
    if not body:
        raise OpenPGPError("empty compressed packet")
    algo, payload = body[0], body[1:]
    if algo == 0:
        return payload
    try:
        if algo in (1, 2):
            d = zlib.decompressobj(-15 if algo == 1 else 15)
            out = d.decompress(payload, MAX_DECOMPRESSED)
            if d.unconsumed_tail:
                raise OpenPGPError("compressed message too large")
            return out
        if algo == 3:
            d = bz2.BZ2Decompressor()
            out = d.decompress(payload, MAX_DECOMPRESSED)
            if not d.eof and not d.needs_input:
                raise OpenPGPError("compressed message too large")
            return out
    except (zlib.error, OSError, EOFError) as e:
        raise OpenPGPError(f"cannot decompress message: {e}") from e
    raise OpenPGPError(f"unsupported compression algorithm {algo}")


def parse_message(data: bytes, depth: int = 0) -> tuple[LiteralData, list[Signature]]:
    """Unpack an inline-signed message into its literal data and signatures."""
    if depth > MAX_NESTING:
        raise OpenPGPError("message nested too deeply")

    literal: LiteralData | None = None
    sigs: list[Signature] = []
    for packet in iter_packets(data):
        if packet.tag == TAG_COMPRESSED:
            inner_literal, inner_sigs = parse_message(_decompress(packet.body), depth + 1)
            literal = literal or inner_literal
            sigs.extend(inner_sigs)
        elif packet.tag == TAG_LITERAL:
            body = packet.body
            _need(body, 0, 2)
            name_len = body[1]
            _need(body, 2, name_len + 4)
            literal = LiteralData(
                format=chr(body[0]),
                filename=body[2:2 + name_len].decode("utf-8", "replace"),
                content=body[6 + name_len:],
            )
        elif packet.tag == TAG_SIGNATURE:
            sig = Signature.parse(packet.body)
            if sig is not None:
                sigs.append(sig)
        elif packet.tag in (TAG_ONE_PASS, TAG_MARKER):
            continue
        else:
            raise OpenPGPError(f"unexpected packet type {packet.tag} in signed message")

    if literal is None:
        raise OpenPGPError("signed message has no literal data")
    return literal, sigs


def verify_signature(challenge: str, signed_message: str, public_key: str) -> bool:
    """Verify that ``signed_message`` is ``challenge`` signed by ``public_key``.

    Returns True; every failure raises. OpenPGPError for input that cannot
    be parsed, SignatureError when the signature does not validate or the
    signed content is not the challenge (compared after trimming).
    """
    keys = load_public_keys(public_key)
    expected = challenge.strip()
    kind = armor_kind(signed_message)

    if kind == "SIGNED MESSAGE":
        message, signed, sig_armor = split_cleartext(signed_message)
        sigs = _signatures_from(dearmor(sig_armor, ARMOR_SIGNATURE))
        candidates = [signed]
    elif kind == ARMOR_MESSAGE:
        literal, sigs = parse_message(dearmor(signed_message, ARMOR_MESSAGE))
        if not sigs:
            raise OpenPGPError("signed message has no signature")
        try:
            message = literal.content.decode("utf-8")
        except UnicodeDecodeError:
            raise SignatureError("signed content is not the challenge")
        candidates = [literal.content]
    elif kind == ARMOR_SIGNATURE:
        # Detached: the challenge itself is the signed data
        sigs = _signatures_from(dearmor(signed_message, ARMOR_SIGNATURE))
        message = expected
        candidates = [expected.encode("utf-8"), (expected + "\n").encode("utf-8")]
    else:
        raise OpenPGPError("expected a PGP signed message, message or signature")

    _verify_any(keys, sigs, candidates)

    if message.strip() != expected:
        raise SignatureError("signed content does not match the challenge")
    return True
