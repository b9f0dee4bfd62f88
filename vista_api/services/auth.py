from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from vista_api.core import config

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_DEV_ACCESS_SECRET = "dev-access-secret-change-me"
_DEV_REFRESH_SECRET = "dev-refresh-secret-change-me"


def _access_secret() -> str:
    # startup_checks.validate_environment refuses empty secrets in production
    return config.JWT_SECRET_KEY or _DEV_ACCESS_SECRET


def _refresh_secret() -> str:
    return config.JWT_REFRESH_SECRET_KEY or _DEV_REFRESH_SECRET


def _encode(payload: Dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        **payload,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=config.JWT_ALGORITHM)


def create_access_token(
    user_id: int,
    email: str,
    account_type: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Short-lived token carrying the identity needed to authorize a request.

    "sub" must be a string for python-jose; "user_id" mirrors it for clients
    that read the payload directly.
    """
    minutes = config.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    payload = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "email": email,
        "account_type": account_type,
        "type": ACCESS_TOKEN_TYPE,
    }
    return _encode(payload, _access_secret(), timedelta(minutes=minutes))


def create_refresh_token(user_id: int, expires_days: Optional[int] = None) -> str:
    days = config.REFRESH_TOKEN_EXPIRE_DAYS if expires_days is None else expires_days
    payload = {"sub": str(user_id), "user_id": str(user_id), "type": REFRESH_TOKEN_TYPE}
    return _encode(payload, _refresh_secret(), timedelta(days=days))


def _decode(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[config.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc
    if payload.get("type") != expected_type:
        raise ValueError("Unexpected token type")
    return payload


def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the payload or raise ValueError when invalid or expired."""
    return _decode(token, _access_secret(), ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> Dict[str, Any]:
    return _decode(token, _refresh_secret(), REFRESH_TOKEN_TYPE)


def extract_user_id(payload: Dict[str, Any]) -> Optional[int]:
    """Read the user id from "sub", falling back to "user_id"."""
    raw = payload.get("sub")
    if raw is None:
        raw = payload.get("user_id")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None
