from __future__ import annotations

import logging
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from vista_api.core.errors import Forbidden, TooManyAttempts, Unauthorized, ValidationFailed
from vista_api.models.mixins import utcnow
from vista_api.models.rbac import Role
from vista_api.models.user import User
from vista_api.services.auth import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    extract_user_id,
)
from vista_api.services.login_attempts import (
    check_login_lock,
    clear_login_attempts,
    register_failed_login,
)
from vista_api.services.passwords import (
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

ANY_ACCOUNT_TYPE = "any"


def load_user_with_access(db: Session, user_id: int) -> Optional[User]:
    """Live user with roles and their permissions loaded in two extra queries."""
    return (
        db.query(User)
        .options(selectinload(User.roles).selectinload(Role.permissions))
        .filter(User.id == user_id, User.deleted_at.is_(None))
        .first()
    )


class AuthService:
    """Credential checks and token issuance for every login endpoint."""

    @staticmethod
    def authenticate(
        db: Session,
        *,
        email: Optional[str],
        password: Optional[str],
        account_type: Optional[str] = None,
    ) -> User:
        normalized_email = (email or "").strip().lower()
        if not normalized_email or not password:
            raise ValidationFailed("Please provide email and password")

        lock_scope = account_type or ANY_ACCOUNT_TYPE
        locked, _ = check_login_lock(db, lock_scope, normalized_email)
        if locked:
            logger.warning("login locked scope=%s email=%s", lock_scope, normalized_email)
            raise TooManyAttempts("Too many login attempts. Try again in a few minutes.")

        user = (
            db.query(User)
            .options(selectinload(User.roles).selectinload(Role.permissions))
            .filter(func.lower(User.email) == normalized_email, User.deleted_at.is_(None))
            .first()
        )
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            _, locked_after = register_failed_login(db, lock_scope, normalized_email)
            db.commit()
            logger.info("login failed scope=%s email=%s locked=%s", lock_scope, normalized_email, locked_after)
            if locked_after:
                raise TooManyAttempts("Too many login attempts. Try again in a few minutes.")
            raise Unauthorized("Incorrect email or password", code="INVALID_CREDENTIALS")

        if account_type is not None and user.account_type != account_type:
            logger.warning(
                "login account type mismatch user_id=%s expected=%s actual=%s",
                user.id,
                account_type,
                user.account_type,
            )
            raise Forbidden(f"Not authorized as {account_type}", code="ACCOUNT_TYPE_MISMATCH")

        clear_login_attempts(db, lock_scope, normalized_email)
        db.commit()
        logger.info("login succeeded user_id=%s account_type=%s", user.id, user.account_type)
        return user

    @staticmethod
    def issue_tokens(user: User) -> Dict[str, str]:
        return {
            "access_token": create_access_token(user.id, user.email, user.account_type),
            "refresh_token": create_refresh_token(user.id),
        }

    @staticmethod
    def refresh_access_token(db: Session, refresh_token: Optional[str]) -> Dict[str, str]:
        if not refresh_token:
            raise Unauthorized("Refresh token required", code="REFRESH_TOKEN_REQUIRED")

        try:
            payload = decode_refresh_token(refresh_token)
        except ValueError as exc:
            raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN") from exc

        user_id = extract_user_id(payload)
        user = load_user_with_access(db, user_id) if user_id is not None else None
        if user is None or not user.is_active:
            raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

        return {"access_token": create_access_token(user.id, user.email, user.account_type)}

    @staticmethod
    def change_password(db: Session, user: User, *, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise ValidationFailed(
                "Current password is incorrect",
                errors=[{"field": "current_password", "message": "Current password is incorrect"}],
            )
        if not MIN_PASSWORD_LENGTH <= len(new_password) <= MAX_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters",
            )
        user.password_hash = hash_password(new_password)
        user.last_password_change = utcnow()
        db.commit()
