"""
Bearer credentials issued after a successful verification.

Token format:
    base64url(json{"asn", "iat", "exp"}) "." base64url(HMAC-SHA256(payload))

Stateless: there is no revocation list. A token is valid until ``exp`` or
until the signing secret changes. Verification is fail-closed; every
problem raises CredentialError (HTTP 401).
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import asdict, dataclass

from autopeer import CREDENTIAL_VALIDITY_SECS, MIN_SECRET_LENGTH
from autopeer.errors import Unauthorized


class CredentialError(Unauthorized):
    """Credential is malformed, tampered, expired, or for another ASN."""


@dataclass(frozen=True)
class Credential:
    """Decoded credential claims.

    Attributes:
        asn: The ASN the credential was issued to.
        iat: Issued-at, Unix seconds.
        exp: Expiry, Unix seconds.
    """

    asn: int
    iat: int
    exp: int

    def to_dict(self) -> dict:
        return asdict(self)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _mac(payload: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()


def _check_secret(secret: str) -> None:
    if len(secret) < MIN_SECRET_LENGTH:
        raise ValueError(f"Signing secret must be at least {MIN_SECRET_LENGTH} characters")


def issue_credential(
    asn: int,
    secret: str,
    now: int | None = None,
    validity: int = CREDENTIAL_VALIDITY_SECS,
) -> str:
    """Issue a signed token for ``asn`` valid for ``validity`` seconds."""
    _check_secret(secret)
    issued = int(time.time()) if now is None else int(now)
    claims = Credential(asn=asn, iat=issued, exp=issued + validity)
    payload = json.dumps(claims.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")
    return f"{_b64encode(payload)}.{_b64encode(_mac(payload, secret))}"


def decode_credential(token: str, secret: str, now: int | None = None) -> Credential:
    """Check signature and expiry, return the claims."""
    _check_secret(secret)
    if not token or not isinstance(token, str):
        raise CredentialError("Missing credential")

    parts = token.split(".")
    if len(parts) != 2:
        raise CredentialError("Malformed credential")
    try:
        payload = _b64decode(parts[0])
        signature = _b64decode(parts[1])
    except (binascii.Error, ValueError, UnicodeEncodeError):
        raise CredentialError("Malformed credential")

    if not hmac.compare_digest(signature, _mac(payload, secret)):
        raise CredentialError("Invalid credential signature")

    try:
        data = json.loads(payload)
        claims = Credential(asn=data["asn"], iat=data["iat"], exp=data["exp"])
    except (ValueError, KeyError, TypeError):
        raise CredentialError("Malformed credential claims")
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (claims.asn, claims.iat, claims.exp)):
        raise CredentialError("Malformed credential claims")

    current = int(time.time()) if now is None else int(now)
    if current >= claims.exp:
        raise CredentialError("Credential expired")
    return claims


def verify_credential(token: str, expected_asn: int, secret: str, now: int | None = None) -> Credential:
    """Like decode_credential, plus an exact ASN match."""
    claims = decode_credential(token, secret, now=now)
    if claims.asn != expected_asn:
        raise CredentialError("Credential was issued for a different ASN")
    return claims
