"""Request header assembly for the Kintone REST API."""

from __future__ import annotations

import base64

from .errors import KintoneAuthError
from .models import Credentials


def _b64(user: str, password: str) -> str:
    return base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")


def get_auth_header(credentials: Credentials) -> dict[str, str]:
    """Return the Kintone auth header.

    Password authentication takes precedence: a token is only used when the
    login name or the password is missing.
    """
    if credentials.login_name and credentials.password:
        return {"X-Cybozu-Authorization": _b64(credentials.login_name, credentials.password)}
    if credentials.token:
        return {"X-Cybozu-API-Token": credentials.token}
    raise KintoneAuthError(code="kintone", message="API Token is required")


def get_basic_auth_header(user: str | None = None, password: str | None = None) -> dict[str, str]:
    if user and password:
        return {"Authorization": f"Basic {_b64(user, password)}"}
    return {}


def get_request_headers(credentials: Credentials) -> dict[str, str]:
    headers = get_auth_header(credentials)
    headers.update(
        get_basic_auth_header(credentials.basic_auth_user, credentials.basic_auth_password)
    )
    return headers
