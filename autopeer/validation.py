"""
Input validation for values supplied by remote peers.

Each validator returns the normalized value or raises BadRequest.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from typing import Any

from autopeer import ASN_MAX, ASN_MIN
from autopeer.errors import BadRequest

_IPV4_ENDPOINT_RE = re.compile(r"((?:[0-9]{1,3}\.){3}[0-9]{1,3}):([0-9]{1,5})")
_IPV6_ENDPOINT_RE = re.compile(r"\[([0-9a-fA-F:.]+)\]:([0-9]{1,5})")

WG_KEY_LENGTH = 44  # base64 of 32 bytes
MAX_PGP_INPUT = 32 * 1024


def validate_asn(asn: Any) -> int:
    """Check that ``asn`` is an int inside the DN42 private range."""
    # bool is an int subclass; "true" is not an ASN
    if isinstance(asn, bool) or not isinstance(asn, int):
        raise BadRequest(f"ASN must be an integer, got {type(asn).__name__}")
    if not ASN_MIN <= asn <= ASN_MAX:
        raise BadRequest(f"ASN {asn} is outside the DN42 range {ASN_MIN}-{ASN_MAX}")
    return asn


def validate_endpoint(endpoint: Any) -> str:
    """Validate ``ipv4:port`` or ``[ipv6]:port``.

    Hostnames are not accepted; the tunnel endpoint must be a literal
    address so the rendered config cannot depend on DNS.
    """
    if not isinstance(endpoint, str) or not endpoint:
        raise BadRequest("Endpoint must be a non-empty string")

    m = _IPV4_ENDPOINT_RE.fullmatch(endpoint) or _IPV6_ENDPOINT_RE.fullmatch(endpoint)
    if not m:
        raise BadRequest(f"Invalid endpoint format: {endpoint!r}")

    host, port = m.group(1), int(m.group(2))
    try:
        ipaddress.ip_address(host)
    except ValueError:
        raise BadRequest(f"Invalid endpoint address: {host!r}")
    if not 1 <= port <= 65535:
        raise BadRequest(f"Invalid endpoint port: {port}")
    return endpoint


def validate_wg_pubkey(key: Any) -> str:
    """A WireGuard public key is 32 bytes, base64 encoded (44 chars)."""
    if not isinstance(key, str) or len(key) != WG_KEY_LENGTH:
        raise BadRequest("WireGuard public key must be 44 base64 characters")
    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequest("WireGuard public key is not valid base64")
    if len(raw) != 32:
        raise BadRequest("WireGuard public key must decode to 32 bytes")
    return key


def validate_pgp_key(key: Any) -> str:
    if not isinstance(key, str) or not key.strip():
        raise BadRequest("PGP public key must not be empty")
    if len(key) > MAX_PGP_INPUT:
        raise BadRequest("PGP public key is too large")
    return key


def validate_signed_challenge(signed: Any) -> str:
    if not isinstance(signed, str) or not signed.strip():
        raise BadRequest("Signed challenge must not be empty")
    if len(signed) > MAX_PGP_INPUT:
        raise BadRequest("Signed challenge is too large")
    return signed
