from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from fastapi import Request, Response

from vista_api.core import config

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
REFRESH_COOKIE_PATH = "/api/v1/auth/refresh"


def build_auth_cookie_options(request: Request | None = None, path: str = "/") -> dict[str, Any]:
    secure = config.AUTH_COOKIE_SECURE
    samesite = config.AUTH_COOKIE_SAMESITE

    host = ""
    origin_host = ""
    if request is not None:
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").lower()
        host = host.split(",")[0].strip().split(":")[0]

        origin = (request.headers.get("origin") or "").strip()
        if origin:
            origin_host = (urlsplit(origin).hostname or "").lower()

    is_local_request = host in {"", "localhost", "127.0.0.1", "testserver"}
    is_cross_site_request = bool(origin_host and host and origin_host != host)

    # public hosts never get an insecure cookie
    if not is_local_request:
        secure = True

    # a frontend on another domain needs SameSite=None
    if is_cross_site_request and secure:
        samesite = "none"

    # browsers drop SameSite=None without Secure
    if samesite == "none" and not secure:
        samesite = "lax"

    return {
        "domain": config.AUTH_COOKIE_DOMAIN,
        "httponly": True,
        "samesite": samesite,
        "path": path,
        "secure": secure,
    }


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str | None = None,
    request: Request | None = None,
) -> None:
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **build_auth_cookie_options(request),
    )
    if refresh_token is not None:
        response.set_cookie(
            key=REFRESH_TOKEN_COOKIE,
            value=refresh_token,
            max_age=config.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
            **build_auth_cookie_options(request, path=REFRESH_COOKIE_PATH),
        )


def clear_auth_cookies(response: Response, request: Request | None = None) -> None:
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE, **build_auth_cookie_options(request))
    response.delete_cookie(
        key=REFRESH_TOKEN_COOKIE,
        **build_auth_cookie_options(request, path=REFRESH_COOKIE_PATH),
    )
