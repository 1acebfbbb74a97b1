"""
Challenge issuance.

A challenge is ``AUTOPEER-<asn>-<32 hex chars>``. Uniqueness is statistical
(128 random bits); nothing records issued codes beyond the pending record.
Signed copies are checked with openpgp.verify_signature.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from autopeer import CHALLENGE_PREFIX, CHALLENGE_RANDOM_BYTES


@dataclass(frozen=True)
class Challenge:
    code: str
    asn: int


def issue_challenge(asn: int) -> Challenge:
    code = f"{CHALLENGE_PREFIX}-{asn}-{secrets.token_hex(CHALLENGE_RANDOM_BYTES)}"
    return Challenge(code=code, asn=asn)
