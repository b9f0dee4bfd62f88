from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from vista_api.core.errors import Conflict, ValidationFailed
from vista_api.models.mixins import utcnow
from vista_api.models.profiles import AdminProfile, CustomerProfile, MerchantProfile
from vista_api.models.user import User
from vista_api.services.passwords import hash_password
from vista_api.services.rbac import ensure_merchant_owner_role, resolve_roles

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def ensure_email_available(db: Session, email: str, exclude_user_id: Optional[int] = None) -> None:
    # the unique index spans soft-deleted users as well
    query = db.query(User.id).filter(func.lower(User.email) == normalize_email(email))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    if query.first() is not None:
        raise Conflict(
            "Email already registered",
            code="DUPLICATE_EMAIL",
            errors=[{"field": "email", "message": "Email already registered"}],
        )


def _new_user(email: str, password: str, account_type: str, **extra: Any) -> User:
    return User(
        email=normalize_email(email),
        password_hash=hash_password(password),
        account_type=account_type,
        is_active=True,
        last_password_change=utcnow(),
        **extra,
    )


def register_customer(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    mobile_number: Optional[str] = None,
) -> User:
    """User and CustomerProfile are committed together or not at all."""
    ensure_email_available(db, email)
    try:
        user = _new_user(email, password, "customer")
        db.add(user)
        db.flush()
        db.add(
            CustomerProfile(
                user_id=user.id,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                mobile_number=mobile_number,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("customer registered user_id=%s", user.id)
    return user


def validate_merchant_identity(profile: Dict[str, Any]) -> None:
    if profile.get("is_sri_lankan", True):
        if not profile.get("nic_number"):
            raise ValidationFailed(
                "NIC number is required for Sri Lankan merchants",
                errors=[{"field": "nic_number", "message": "Required"}],
            )
    elif not profile.get("passport_number"):
        raise ValidationFailed(
            "Passport number is required for foreign merchants",
            errors=[{"field": "passport_number", "message": "Required"}],
        )


def ensure_registration_number_available(db: Session, number: str, exclude_profile_id: Optional[int] = None) -> None:
    query = db.query(MerchantProfile.id).filter(MerchantProfile.business_registration_number == number)
    if exclude_profile_id is not None:
        query = query.filter(MerchantProfile.id != exclude_profile_id)
    if query.first() is not None:
        raise Conflict(
            "Business registration number already exists",
            code="DUPLICATE_ENTRY",
            errors=[{"field": "business_registration_number", "message": "Already registered"}],
        )


def register_merchant(db: Session, *, email: str, password: str, profile: Dict[str, Any]) -> User:
    validate_merchant_identity(profile)
    ensure_email_available(db, email)
    ensure_registration_number_available(db, profile["business_registration_number"])
    try:
        user = _new_user(email, password, "merchant")
        user.roles = [ensure_merchant_owner_role(db)]
        db.add(user)
        db.flush()
        db.add(MerchantProfile(user_id=user.id, status="pending", **profile))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("merchant registered user_id=%s", user.id)
    return user


def create_admin(
    db: Session,
    *,
    email: str,
    password: str,
    full_name: str,
    mobile_number: Optional[str] = None,
    role_ids: Sequence[int] = (),
    is_super_admin: bool = False,
) -> User:
    ensure_email_available(db, email)
    roles = resolve_roles(db, role_ids, "admin")
    try:
        user = _new_user(email, password, "admin", is_super_admin=is_super_admin)
        user.roles = roles
        db.add(user)
        db.flush()
        db.add(AdminProfile(user_id=user.id, full_name=full_name.strip(), mobile_number=mobile_number))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("admin created user_id=%s super_admin=%s", user.id, is_super_admin)
    return user
