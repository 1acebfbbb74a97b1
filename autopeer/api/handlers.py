"""
Request handlers for the peering API.

Each handler is a pure function: (request_data, service) -> (status_code, response_dict).
No HTTP plumbing; that lives in server.py. PeeringError subclasses map to
their status, anything else is logged and reported as a 500.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from autopeer import __version__
from autopeer.errors import BadRequest, PeeringError

logger = logging.getLogger(__name__)


def _call(fn: Callable[..., dict], *args: Any, **kwargs: Any) -> tuple[int, dict]:
    try:
        return 200, fn(*args, **kwargs)
    except PeeringError as e:
        return e.status, {"error": e.message}
    except Exception:
        logger.exception("Unhandled error in %s", getattr(fn, "__name__", fn))
        return 500, {"error": "Internal server error"}


def _parse_json(body: bytes, required: bool = True) -> dict:
    if not body:
        if required:
            raise BadRequest("Request body must be a JSON object")
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest(f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise BadRequest(f"{key} must be a string")
    return value


def handle_index(service: Any) -> tuple[int, dict]:
    """GET / - service banner."""
    return 200, {
        "service": "autopeer",
        "version": __version__,
        "asn": service.local_asn,
    }


def handle_init(body: bytes, service: Any) -> tuple[int, dict]:
    """POST /peering/init - {"asn"} -> {"challenge", "pgp_fingerprint", "interface"}."""
    def run() -> dict:
        data = _parse_json(body)
        return service.init(data.get("asn"))

    return _call(run)


def handle_verify(body: bytes, service: Any) -> tuple[int, dict]:
    """POST /peering/verify - {"asn", "signed_challenge", "public_key"} -> {"token", ...}.

    The caller turns the token into cookies.
    """
    def run() -> dict:
        data = _parse_json(body)
        return service.verify(
            data.get("asn"),
            data.get("signed_challenge"),
            data.get("public_key"),
        )

    return _call(run)


def handle_deploy(body: bytes, token: str, service: Any) -> tuple[int, dict]:
    """POST /peering/deploy - {"wg_public_key", "endpoint"[, "asn"]}."""
    def run() -> dict:
        data = _parse_json(body, required=False)
        asn = data.get("asn")
        return service.deploy(
            token,
            wg_public_key=_optional_str(data, "wg_public_key"),
            endpoint=_optional_str(data, "endpoint"),
            asn=asn,
        )

    return _call(run)


def handle_config(token: str, service: Any) -> tuple[int, dict]:
    """GET /peering/config."""
    return _call(service.get_config, token)


def handle_status(token: str, service: Any) -> tuple[int, dict]:
    """GET /peering/status."""
    return _call(service.get_status, token)


def handle_update(body: bytes, token: str, service: Any) -> tuple[int, dict]:
    """PATCH /peering/update - {"endpoint"}."""
    def run() -> dict:
        data = _parse_json(body, required=False)
        return service.update(token, endpoint=_optional_str(data, "endpoint"))

    return _call(run)


def handle_activate(token: str, service: Any) -> tuple[int, dict]:
    """POST /peering/activate."""
    return _call(service.activate, token)


def handle_deactivate(token: str, service: Any) -> tuple[int, dict]:
    """POST /peering/deactivate."""
    return _call(service.deactivate, token)


def handle_delete(token: str, service: Any) -> tuple[int, dict]:
    """DELETE /peering."""
    return _call(service.delete, token)
