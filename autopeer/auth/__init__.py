"""
Authentication for peering requests.

Provides:
    - Challenge / issue_challenge    random challenge per ASN
    - verify_signature               OpenPGP check of the signed challenge
    - fingerprint / match_fingerprint  bind the signing key to the registry
    - issue_credential / verify_credential  HMAC bearer tokens (7 days)
"""

from autopeer.auth.challenge import Challenge, issue_challenge
from autopeer.auth.credentials import (
    Credential,
    CredentialError,
    decode_credential,
    issue_credential,
    verify_credential,
)
from autopeer.auth.openpgp import (
    OpenPGPError,
    SignatureError,
    fingerprint,
    match_fingerprint,
    verify_signature,
)

__all__ = [
    "Challenge",
    "issue_challenge",
    "Credential",
    "CredentialError",
    "decode_credential",
    "issue_credential",
    "verify_credential",
    "OpenPGPError",
    "SignatureError",
    "fingerprint",
    "match_fingerprint",
    "verify_signature",
]
