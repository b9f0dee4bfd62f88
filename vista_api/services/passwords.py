from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

from vista_api.core import config

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128


@lru_cache(maxsize=4)
def _context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def _pwd_context() -> CryptContext:
    return _context(config.BCRYPT_ROUNDS)


def _normalize_password_for_bcrypt(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return (password or "").encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return _pwd_context().hash(_normalize_password_for_bcrypt(password))


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _pwd_context().verify(_normalize_password_for_bcrypt(plain_password), password_hash)
    except ValueError:
        # malformed hash stored in the row
        return False


def password_looks_hashed(value: str) -> bool:
    return bool(value) and _pwd_context().identify(value) is not None
