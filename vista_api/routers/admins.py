from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import NotFound, ValidationFailed
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_super_admin
from vista_api.models.mixins import utcnow
from vista_api.models.profiles import AdminProfile
from vista_api.models.user import User
from vista_api.schemas.serializers import user_to_dict
from vista_api.services.passwords import hash_password
from vista_api.services.rbac import resolve_roles
from vista_api.services.registration import create_admin, ensure_email_available, normalize_email

router = APIRouter(prefix="/api/v1/admins", tags=["admins"])
logger = logging.getLogger(__name__)


class AdminCreatePayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=150)
    mobile_number: Optional[str] = Field(default=None, max_length=30)
    role_ids: List[int] = Field(default_factory=list)
    is_super_admin: bool = False


class AdminUpdatePayload(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    mobile_number: Optional[str] = Field(default=None, max_length=30)
    role_ids: Optional[List[int]] = None
    is_active: Optional[bool] = None
    is_super_admin: Optional[bool] = None


def _get_admin(db: Session, admin_id: int, *, include_deleted: bool = False) -> User:
    query = db.query(User).filter(User.id == admin_id, User.account_type == "admin")
    if not include_deleted:
        query = query.filter(User.deleted_at.is_(None))
    admin = query.first()
    if admin is None:
        raise NotFound("Admin not found")
    return admin


@router.post("", status_code=status.HTTP_201_CREATED)
def create_admin_account(
    payload: AdminCreatePayload,
    _user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    admin = create_admin(
        db,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        mobile_number=payload.mobile_number,
        role_ids=payload.role_ids,
        is_super_admin=payload.is_super_admin,
    )
    return success_response(
        data=user_to_dict(admin, include_access=True),
        message="Admin created successfully",
    )


@router.get("")
def list_admins(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    include_deleted: bool = False,
    page: int = 1,
    limit: int = 10,
    _user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    query = db.query(User).outerjoin(AdminProfile, AdminProfile.user_id == User.id).filter(User.account_type == "admin")
    if not include_deleted:
        query = query.filter(User.deleted_at.is_(None))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.email.ilike(pattern), AdminProfile.full_name.ilike(pattern)))
    total = query.count()
    rows = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        data=[user_to_dict(row, include_access=True) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@router.get("/{admin_id}")
def get_admin(admin_id: int, _user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return success_response(data=user_to_dict(_get_admin(db, admin_id), include_access=True))


@router.put("/{admin_id}")
def update_admin(
    admin_id: int,
    payload: AdminUpdatePayload,
    user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    admin = _get_admin(db, admin_id)
    changes = payload.model_dump(exclude_unset=True)

    if admin.id == user.id and (changes.get("is_active") is False or changes.get("is_super_admin") is False):
        raise ValidationFailed("You cannot deactivate or demote your own account")

    if changes.get("email"):
        ensure_email_available(db, changes["email"], exclude_user_id=admin.id)
        admin.email = normalize_email(changes["email"])
    if changes.get("password"):
        admin.password_hash = hash_password(changes["password"])
        admin.last_password_change = utcnow()
    if changes.get("role_ids") is not None:
        admin.roles = resolve_roles(db, changes["role_ids"], "admin")
    for field in ("is_active", "is_super_admin"):
        if changes.get(field) is not None:
            setattr(admin, field, changes[field])

    profile = admin.admin_profile
    if profile is None:
        profile = AdminProfile(user_id=admin.id, full_name=changes.get("full_name") or admin.email)
        db.add(profile)
    if changes.get("full_name"):
        profile.full_name = changes["full_name"].strip()
    if "mobile_number" in changes:
        profile.mobile_number = changes["mobile_number"]

    db.commit()
    db.refresh(admin)
    logger.info("admin updated admin_id=%s fields=%s", admin.id, sorted(changes))
    return success_response(data=user_to_dict(admin, include_access=True), message="Admin updated successfully")


@router.delete("/{admin_id}")
def delete_admin(admin_id: int, user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    admin = _get_admin(db, admin_id)
    if admin.id == user.id:
        raise ValidationFailed("You cannot delete your own account")
    now = utcnow()
    admin.deleted_at = now
    if admin.admin_profile is not None:
        admin.admin_profile.deleted_at = now
    db.commit()
    logger.info("admin deleted admin_id=%s", admin.id)
    return success_response(message="Admin deleted successfully")


@router.patch("/{admin_id}/restore")
def restore_admin(admin_id: int, _user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    admin = _get_admin(db, admin_id, include_deleted=True)
    if admin.deleted_at is None:
        raise ValidationFailed("Admin is not deleted", code="NOT_DELETED")
    admin.deleted_at = None
    if admin.admin_profile is not None:
        admin.admin_profile.deleted_at = None
    db.commit()
    db.refresh(admin)
    logger.info("admin restored admin_id=%s", admin.id)
    return success_response(data=user_to_dict(admin, include_access=True), message="Admin restored successfully")
