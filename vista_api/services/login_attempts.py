from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from vista_api.core import config
from vista_api.models.login_attempt import LoginAttempt
from vista_api.models.mixins import utcnow


def _window() -> timedelta:
    return timedelta(minutes=config.LOGIN_ATTEMPT_WINDOW_MINUTES)


def _lock_duration() -> timedelta:
    return timedelta(minutes=config.LOGIN_LOCK_MINUTES)


def get_login_attempt(db: Session, account_type: str, email: str) -> Optional[LoginAttempt]:
    return (
        db.query(LoginAttempt)
        .filter(LoginAttempt.account_type == account_type, LoginAttempt.email == email)
        .first()
    )


def is_locked(attempt: LoginAttempt, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return attempt.locked_until is not None and attempt.locked_until > now


def check_login_lock(db: Session, account_type: str, email: str) -> Tuple[bool, Optional[datetime]]:
    attempt = get_login_attempt(db, account_type, email)
    if attempt is not None and is_locked(attempt):
        return True, attempt.locked_until
    return False, None


def register_failed_login(db: Session, account_type: str, email: str) -> Tuple[LoginAttempt, bool]:
    now = utcnow()
    attempt = get_login_attempt(db, account_type, email)
    if attempt is None:
        attempt = LoginAttempt(
            account_type=account_type,
            email=email,
            failed_count=1,
            first_failed_at=now,
            last_failed_at=now,
        )
        db.add(attempt)
    else:
        if attempt.first_failed_at is None or (now - attempt.first_failed_at) > _window():
            attempt.failed_count = 0
            attempt.first_failed_at = now
            attempt.locked_until = None
        attempt.failed_count += 1
        attempt.last_failed_at = now

    locked = attempt.failed_count >= config.LOGIN_MAX_FAILED_ATTEMPTS
    if locked:
        attempt.locked_until = now + _lock_duration()
    return attempt, locked


def clear_login_attempts(db: Session, account_type: str, email: str) -> None:
    attempt = get_login_attempt(db, account_type, email)
    if attempt is not None:
        db.delete(attempt)
