"""
Error taxonomy shared by the orchestrator and the HTTP layer.

Every error carries the HTTP status it maps to:
    BadRequest     400  malformed or out-of-range input
    Unauthorized   401  bad signature, fingerprint mismatch, bad credential
    NotFound       404  no pending / verified record, no registry entry
    InternalError  500  key generation, rendering, filesystem, deploy tools
"""

from __future__ import annotations


class PeeringError(Exception):
    """Base class for errors surfaced to API clients."""

    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(PeeringError):
    status = 400


class Unauthorized(PeeringError):
    status = 401


class NotFound(PeeringError):
    status = 404


class InternalError(PeeringError):
    status = 500
