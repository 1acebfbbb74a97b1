"""
Tests for the peering API: credential transport, handlers, server integration.

Handler tests use a mock PeeringService; the server tests run the real
service against the mock registry and deployer from conftest.py.
"""

from __future__ import annotations

import http.client
import json
import threading
import urllib.error
import urllib.request
from unittest.mock import MagicMock, patch

import pytest

from autopeer import API_MAX_BODY_BYTES, __version__
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
from autopeer.api.server import PeeringAPIServer
from autopeer.auth import Challenge
from autopeer.deploy import generate_keypair
from autopeer.errors import BadRequest, NotFound, Unauthorized
from autopeer.peering import PeeringService

from conftest import LOCAL_ASN, PEER_ASN, RSA_CHALLENGE, RSA_CLEARSIGNED, RSA_PUBLIC_KEY


@pytest.fixture
def mock_service():
    service = MagicMock(spec=PeeringService)
    service.local_asn = LOCAL_ASN
    return service


def _json(data):
    return json.dumps(data).encode()


# ---------------------------------------------------------------------------
# TestExtractToken
# ---------------------------------------------------------------------------

class TestExtractToken:

    def test_bearer(self):
        assert extract_token("Bearer abc.def", "") == "abc.def"

    def test_bearer_with_extra_spaces(self):
        assert extract_token("Bearer   abc.def  ", "") == "abc.def"

    def test_cookie(self):
        assert extract_token("", "theme=dark; autopeer_token=abc.def") == "abc.def"

    def test_header_wins_over_cookie(self):
        assert extract_token("Bearer from-header", "autopeer_token=from-cookie") == "from-header"

    def test_basic_auth_ignored(self):
        assert extract_token("Basic dXNlcjpwYXNz", "") == ""

    def test_empty_bearer_falls_back_to_cookie(self):
        assert extract_token("Bearer ", "autopeer_token=abc") == "abc"

    def test_nothing(self):
        assert extract_token("", "") == ""
        assert extract_token("", "other=1") == ""


# ---------------------------------------------------------------------------
# TestCookies
# ---------------------------------------------------------------------------

class TestCookies:

    def test_token_cookie_attributes(self):
        (cookie,) = build_token_cookies("abc.def", ["localhost"])
        assert cookie.startswith("autopeer_token=abc.def")
        assert "HttpOnly" in cookie
        assert "Secure" in cookie
        assert "SameSite=Strict" in cookie
        assert "Path=/" in cookie
        assert "Max-Age=604800" in cookie
        assert "Domain" not in cookie

    def test_one_cookie_per_domain(self):
        cookies = build_token_cookies("abc", ["peer.example.net", "localhost"])
        assert len(cookies) == 2
        assert "Domain=peer.example.net" in cookies[0]
        assert "Domain" not in cookies[1]

    def test_insecure_for_plain_http(self):
        (cookie,) = build_token_cookies("abc", ["localhost"], secure=False)
        assert "Secure" not in cookie

    def test_no_domains(self):
        assert len(build_token_cookies("abc", [])) == 1

    def test_clearing_cookie(self):
        (cookie,) = build_clearing_cookies(["localhost"])
        assert cookie.startswith("autopeer_token=")
        assert "abc" not in cookie
        assert "Max-Age=0" in cookie


# ---------------------------------------------------------------------------
# TestHandlers
# ---------------------------------------------------------------------------

class TestHandleIndex:

    def test_banner(self, mock_service):
        code, data = handle_index(mock_service)
        assert code == 200
        assert data == {"service": "autopeer", "version": __version__, "asn": LOCAL_ASN}


class TestHandleInit:

    def test_success(self, mock_service):
        mock_service.init.return_value = {"challenge": "AUTOPEER-x"}
        code, data = handle_init(_json({"asn": PEER_ASN}), mock_service)
        assert code == 200
        assert data == {"challenge": "AUTOPEER-x"}
        mock_service.init.assert_called_once_with(PEER_ASN)

    def test_empty_body(self, mock_service):
        code, data = handle_init(b"", mock_service)
        assert code == 400
        mock_service.init.assert_not_called()

    def test_invalid_json(self, mock_service):
        code, data = handle_init(b"{asn:", mock_service)
        assert code == 400
        assert "Invalid JSON" in data["error"]

    def test_not_an_object(self, mock_service):
        code, _ = handle_init(b"[4242422225]", mock_service)
        assert code == 400

    def test_not_utf8(self, mock_service):
        code, _ = handle_init(b"\x80abc", mock_service)
        assert code == 400

    def test_error_status_passed_through(self, mock_service):
        mock_service.init.side_effect = NotFound("AS4242422225 is not in the registry")
        code, data = handle_init(_json({"asn": PEER_ASN}), mock_service)
        assert code == 404
        assert data == {"error": "AS4242422225 is not in the registry"}

    def test_unexpected_error_is_500(self, mock_service):
        mock_service.init.side_effect = RuntimeError("secret detail")
        code, data = handle_init(_json({"asn": PEER_ASN}), mock_service)
        assert code == 500
        assert data == {"error": "Internal server error"}


class TestHandleVerify:

    def test_fields_passed(self, mock_service):
        mock_service.verify.return_value = {"token": "t", "asn": PEER_ASN, "expires_at": 1}
        body = _json({"asn": PEER_ASN, "signed_challenge": "sig", "public_key": "key"})
        code, data = handle_verify(body, mock_service)
        assert code == 200
        assert data["token"] == "t"
        mock_service.verify.assert_called_once_with(PEER_ASN, "sig", "key")

    def test_unauthorized(self, mock_service):
        mock_service.verify.side_effect = Unauthorized("Signature was not made by the given key")
        code, _ = handle_verify(_json({"asn": PEER_ASN}), mock_service)
        assert code == 401


class TestHandleDeploy:

    def test_fields_passed(self, mock_service):
        mock_service.deploy.return_value = {"state": "deployed"}
        body = _json({"wg_public_key": "k", "endpoint": "192.0.2.1:51820", "asn": PEER_ASN})
        code, _ = handle_deploy(body, "tok", mock_service)
        assert code == 200
        mock_service.deploy.assert_called_once_with(
            "tok", wg_public_key="k", endpoint="192.0.2.1:51820", asn=PEER_ASN,
        )

    def test_empty_body_is_redeploy(self, mock_service):
        mock_service.deploy.return_value = {}
        code, _ = handle_deploy(b"", "tok", mock_service)
        assert code == 200
        mock_service.deploy.assert_called_once_with("tok", wg_public_key=None, endpoint=None, asn=None)

    def test_non_string_key(self, mock_service):
        code, data = handle_deploy(_json({"wg_public_key": 42}), "tok", mock_service)
        assert code == 400
        assert "wg_public_key" in data["error"]
        mock_service.deploy.assert_not_called()


class TestTokenHandlers:

    @pytest.mark.parametrize("handler,method", [
        (handle_config, "get_config"),
        (handle_status, "get_status"),
        (handle_activate, "activate"),
        (handle_deactivate, "deactivate"),
        (handle_delete, "delete"),
    ])
    def test_token_forwarded(self, mock_service, handler, method):
        getattr(mock_service, method).return_value = {"asn": PEER_ASN}
        code, data = handler("tok", mock_service)
        assert code == 200
        assert data == {"asn": PEER_ASN}
        getattr(mock_service, method).assert_called_once_with("tok")

    def test_update(self, mock_service):
        mock_service.update.return_value = {}
        code, _ = handle_update(_json({"endpoint": "192.0.2.1:1"}), "tok", mock_service)
        assert code == 200
        mock_service.update.assert_called_once_with("tok", endpoint="192.0.2.1:1")

    def test_update_bad_request(self, mock_service):
        mock_service.update.side_effect = BadRequest("Invalid endpoint format: 'x'")
        code, _ = handle_update(_json({"endpoint": "x"}), "tok", mock_service)
        assert code == 400


# ---------------------------------------------------------------------------
# TestServerIntegration
# ---------------------------------------------------------------------------

class TestServerIntegration:
    """Integration tests using a real HTTP server on localhost."""

    @pytest.fixture
    def api_server(self, service):
        """Start a real API server on a random port."""
        server = PeeringAPIServer(("127.0.0.1", 0), service, cookie_secure=False)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        with patch(
            "autopeer.peering.issue_challenge",
            return_value=Challenge(code=RSA_CHALLENGE, asn=PEER_ASN),
        ):
            yield server
        server.shutdown()
        server.server_close()

    def _url(self, server, path):
        host, port = server.server_address
        return f"http://{host}:{port}{path}"

    def _request(self, server, method, path, body=None, headers=None):
        """Returns (status, json body, Set-Cookie values)."""
        data = _json(body) if body is not None else None
        req = urllib.request.Request(self._url(server, path), data=data, method=method)
        if data is not None:
            req.add_header("Content-Type", "application/json")
        for k, v in (headers or {}).items():
            req.add_header(k, v)
        try:
            with urllib.request.urlopen(req, timeout=5) as resp:
                return resp.status, json.loads(resp.read().decode()), resp.headers.get_all("Set-Cookie") or []
        except urllib.error.HTTPError as e:
            return e.code, json.loads(e.read().decode()), e.headers.get_all("Set-Cookie") or []

    def _verify(self, server):
        self._request(server, "POST", "/peering/init", {"asn": PEER_ASN})
        return self._request(server, "POST", "/peering/verify", {
            "asn": PEER_ASN,
            "signed_challenge": RSA_CLEARSIGNED,
            "public_key": RSA_PUBLIC_KEY,
        })

    def test_index(self, api_server):
        code, data, _ = self._request(api_server, "GET", "/")
        assert code == 200
        assert data["service"] == "autopeer"
        assert data["asn"] == LOCAL_ASN

    def test_404_on_unknown_path(self, api_server):
        code, data, _ = self._request(api_server, "GET", "/nonexistent")
        assert code == 404
        assert data == {"error": "Not found"}

    def test_wrong_method_is_404(self, api_server):
        code, _, _ = self._request(api_server, "GET", "/peering/init")
        assert code == 404

    def test_status_without_token(self, api_server):
        code, data, _ = self._request(api_server, "GET", "/peering/status")
        assert code == 401
        assert "error" in data

    def test_init(self, api_server):
        code, data, _ = self._request(api_server, "POST", "/peering/init", {"asn": PEER_ASN})
        assert code == 200
        assert data["challenge"] == RSA_CHALLENGE
        assert data["interface"] == "wg-as4242422225"

    def test_init_asn_as_string(self, api_server):
        code, _, _ = self._request(api_server, "POST", "/peering/init", {"asn": "4242422225"})
        assert code == 400

    def test_verify_sets_cookie(self, api_server):
        code, data, cookies = self._verify(api_server)
        assert code == 200
        assert len(cookies) == 1
        assert cookies[0].startswith(f"autopeer_token={data['token']}")
        assert "HttpOnly" in cookies[0]

    def test_failed_verify_sets_no_cookie(self, api_server):
        self._request(api_server, "POST", "/peering/init", {"asn": PEER_ASN})
        code, _, cookies = self._request(api_server, "POST", "/peering/verify", {
            "asn": PEER_ASN,
            "signed_challenge": RSA_CLEARSIGNED,
            "public_key": "",
        })
        assert code == 400
        assert cookies == []

    def test_cookie_authenticates(self, api_server):
        _, data, _ = self._verify(api_server)
        code, status, _ = self._request(
            api_server, "GET", "/peering/status/?verbose=1",
            headers={"Cookie": f"autopeer_token={data['token']}"},
        )
        assert code == 200
        assert status["state"] == "verified"

    def test_lifecycle_with_bearer(self, api_server, mock_deployer):
        _, data, _ = self._verify(api_server)
        auth = {"Authorization": f"Bearer {data['token']}"}

        code, deployed, _ = self._request(api_server, "POST", "/peering/deploy", {
            "wg_public_key": generate_keypair()[1],
            "endpoint": "192.0.2.1:51820",
        }, auth)
        assert code == 200
        assert deployed["state"] == "deployed"
        mock_deployer.deploy_routing.assert_called_once()

        code, config, _ = self._request(api_server, "GET", "/peering/config", headers=auth)
        assert code == 200
        assert "PrivateKey = (redacted)" in config["config"]

        code, updated, _ = self._request(
            api_server, "PATCH", "/peering/update", {"endpoint": "192.0.2.2:51820"}, auth,
        )
        assert code == 200
        assert updated["peer"]["endpoint"] == "192.0.2.2:51820"

        code, data, _ = self._request(api_server, "POST", "/peering/deactivate", headers=auth)
        assert (code, data["state"]) == (200, "inactive")
        code, data, _ = self._request(api_server, "POST", "/peering/activate", headers=auth)
        assert (code, data["state"]) == (200, "deployed")

        code, data, cookies = self._request(api_server, "DELETE", "/peering", headers=auth)
        assert code == 200
        assert data == {"asn": PEER_ASN, "deleted": True}
        assert "Max-Age=0" in cookies[0]

        code, _, _ = self._request(api_server, "GET", "/peering/status", headers=auth)
        assert code == 404

    def test_body_too_large(self, api_server):
        host, port = api_server.server_address
        conn = http.client.HTTPConnection(host, port, timeout=5)
        try:
            conn.putrequest("POST", "/peering/init")
            conn.putheader("Content-Length", str(API_MAX_BODY_BYTES + 1))
            conn.endheaders()
            resp = conn.getresponse()
            assert resp.status == 413
            assert "too large" in json.loads(resp.read().decode())["error"]
        finally:
            conn.close()
