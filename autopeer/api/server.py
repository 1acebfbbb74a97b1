"""
HTTP server for the peering API.

Uses stdlib http.server. Routes requests to handler functions in
handlers.py; this module only deals with bodies, headers and cookies.
"""

from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from autopeer import API_MAX_BODY_BYTES
from autopeer.api.auth import build_clearing_cookies, build_token_cookies, extract_token
from autopeer.api.handlers import (
    handle_activate,
    handle_config,
    handle_deactivate,
    handle_delete,
    handle_deploy,
    handle_index,
    handle_init,
    handle_status,
    handle_update,
    handle_verify,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/peering"


class _BodyTooLarge(Exception):
    pass


class PeeringAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the peering API.

    Server-level dependencies (service, cookie settings) are attached to
    the server instance and accessed via self.server.
    """

    # Route http.server access logs through the logging module
    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(format, *args)

    def _send_json(self, status: int, data: dict, cookies: list[str] | None = None) -> None:
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        for cookie in cookies or []:
            self.send_header("Set-Cookie", cookie)
        self.end_headers()
        self.wfile.write(body)

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            length = 0
        if length > API_MAX_BODY_BYTES:
            raise _BodyTooLarge()
        if length <= 0:
            return b""
        return self.rfile.read(length)

    def _token(self) -> str:
        return extract_token(
            self.headers.get("Authorization", ""),
            self.headers.get("Cookie", ""),
        )

    def _path(self) -> str:
        return self.path.split("?")[0].rstrip("/") or "/"

    def _dispatch(self, method: str) -> None:
        path = self._path()
        server = self.server  # type: ignore[attr-defined]
        service = server.service

        try:
            body = self._read_body()
        except _BodyTooLarge:
            self.close_connection = True
            self._send_json(413, {"error": f"Request body too large (max {API_MAX_BODY_BYTES} bytes)"})
            return

        route = (method, path)

        if route == ("GET", "/"):
            self._send_json(*handle_index(service))
            return

        if route == ("POST", f"{API_PREFIX}/init"):
            self._send_json(*handle_init(body, service))
            return

        if route == ("POST", f"{API_PREFIX}/verify"):
            code, data = handle_verify(body, service)
            cookies = None
            if code == 200:
                cookies = build_token_cookies(data["token"], server.cookie_domains, server.cookie_secure)
            self._send_json(code, data, cookies)
            return

        if route == ("DELETE", API_PREFIX):
            code, data = handle_delete(self._token(), service)
            cookies = None
            if code == 200:
                cookies = build_clearing_cookies(server.cookie_domains, server.cookie_secure)
            self._send_json(code, data, cookies)
            return

        token_routes = {
            ("POST", f"{API_PREFIX}/deploy"): lambda t: handle_deploy(body, t, service),
            ("GET", f"{API_PREFIX}/config"): lambda t: handle_config(t, service),
            ("GET", f"{API_PREFIX}/status"): lambda t: handle_status(t, service),
            ("PATCH", f"{API_PREFIX}/update"): lambda t: handle_update(body, t, service),
            ("POST", f"{API_PREFIX}/activate"): lambda t: handle_activate(t, service),
            ("POST", f"{API_PREFIX}/deactivate"): lambda t: handle_deactivate(t, service),
        }
        handler = token_routes.get(route)
        if handler is not None:
            self._send_json(*handler(self._token()))
            return

        self._send_json(404, {"error": "Not found"})

    def do_GET(self) -> None:
        self._dispatch("GET")

    def do_POST(self) -> None:
        self._dispatch("POST")

    def do_PATCH(self) -> None:
        self._dispatch("PATCH")

    def do_DELETE(self) -> None:
        self._dispatch("DELETE")


class PeeringAPIServer(ThreadingHTTPServer):
    """ThreadingHTTPServer subclass that carries API dependencies."""

    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        service: Any,
        cookie_domains: list[str] | None = None,
        cookie_secure: bool = True,
    ) -> None:
        super().__init__(address, PeeringAPIHandler)
        self.service = service
        self.cookie_domains = cookie_domains or ["localhost"]
        self.cookie_secure = cookie_secure


def run_api(config: Any, service: Any = None) -> None:
    """Start the peering API server (blocking).

    Args:
        config: AppConfig (bind address, cookie settings, store paths)
        service: PeeringService (built from config if not provided)
    """
    from autopeer.peering import PeeringService

    if service is None:
        service = PeeringService.from_config(config)

    server = PeeringAPIServer(
        (config.host, config.port), service, config.cookie_domains, config.cookie_secure,
    )

    print(f"AutoPeer API for AS{config.local_asn} listening on http://{config.host}:{config.port}")
    print(f"  POST   {API_PREFIX}/init        - request a challenge")
    print(f"  POST   {API_PREFIX}/verify      - submit signed challenge, get token")
    print(f"  POST   {API_PREFIX}/deploy      - exchange keys and bring the tunnel up (auth required)")
    print(f"  GET    {API_PREFIX}/config      - stored config (auth required)")
    print(f"  GET    {API_PREFIX}/status      - peering status (auth required)")
    print(f"  PATCH  {API_PREFIX}/update      - change endpoint (auth required)")
    print(f"  POST   {API_PREFIX}/activate    - redeploy (auth required)")
    print(f"  POST   {API_PREFIX}/deactivate  - tear down, keep config (auth required)")
    print(f"  DELETE {API_PREFIX}             - remove peering (auth required)")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()
