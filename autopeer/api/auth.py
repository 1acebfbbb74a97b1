"""
Credential transport for the peering API.

Token sources (priority order):
    1. Authorization: Bearer <token> header
    2. autopeer_token cookie

The cookie is set on verify, once per configured cookie domain, as
HttpOnly; Secure; SameSite=Strict with a 7-day Max-Age, and cleared on
delete.
"""

from __future__ import annotations

from http.cookies import CookieError, SimpleCookie

from autopeer import CREDENTIAL_COOKIE_NAME, CREDENTIAL_VALIDITY_SECS


def extract_token(auth_header: str, cookie_header: str) -> str:
    """Return the bearer token from the request, or empty string."""
    if auth_header:
        parts = auth_header.split(" ", 1)
        if len(parts) == 2 and parts[0] == "Bearer" and parts[1].strip():
            return parts[1].strip()
    if cookie_header:
        cookie = SimpleCookie()
        try:
            cookie.load(cookie_header)
        except CookieError:
            return ""
        morsel = cookie.get(CREDENTIAL_COOKIE_NAME)
        if morsel is not None:
            return morsel.value
    return ""


def _cookie_header(value: str, domain: str, max_age: int, secure: bool) -> str:
    cookie = SimpleCookie()
    cookie[CREDENTIAL_COOKIE_NAME] = value
    morsel = cookie[CREDENTIAL_COOKIE_NAME]
    morsel["path"] = "/"
    morsel["max-age"] = max_age
    morsel["httponly"] = True
    morsel["samesite"] = "Strict"
    if secure:
        morsel["secure"] = True
    if domain and domain != "localhost":
        morsel["domain"] = domain
    return morsel.OutputString()


def build_token_cookies(
    token: str,
    domains: list[str],
    secure: bool = True,
    max_age: int = CREDENTIAL_VALIDITY_SECS,
) -> list[str]:
    """Set-Cookie header values carrying ``token``, one per domain."""
    return [_cookie_header(token, d, max_age, secure) for d in (domains or [""])]


def build_clearing_cookies(domains: list[str], secure: bool = True) -> list[str]:
    """Set-Cookie header values that expire the credential cookie."""
    return [_cookie_header("", d, 0, secure) for d in (domains or [""])]
