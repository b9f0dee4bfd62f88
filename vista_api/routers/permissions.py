from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import Conflict, NotFound, ValidationFailed
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_permissions
from vista_api.models.mixins import utcnow
from vista_api.models.rbac import ROLE_USER_TYPES, Permission
from vista_api.models.user import User
from vista_api.schemas.serializers import permission_to_dict

router = APIRouter(prefix="/api/v1/admin/permissions", tags=["permissions"])
logger = logging.getLogger(__name__)


class PermissionCreatePayload(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=3, max_length=150)
    description: Optional[str] = None
    user_type: str = "admin"

    @field_validator("user_type")
    @classmethod
    def validate_user_type(cls, value: str) -> str:
        if value not in ROLE_USER_TYPES:
            raise ValueError(f"Invalid user type. Allowed: {', '.join(ROLE_USER_TYPES)}")
        return value

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return value.strip().lower()


class PermissionUpdatePayload(BaseModel):
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, min_length=3, max_length=150)
    description: Optional[str] = None
    user_type: Optional[str] = None

    @field_validator("user_type")
    @classmethod
    def validate_user_type(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ROLE_USER_TYPES:
            raise ValueError(f"Invalid user type. Allowed: {', '.join(ROLE_USER_TYPES)}")
        return value

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value is not None else value


def _get_permission(db: Session, permission_id: int, *, include_deleted: bool = False) -> Permission:
    query = db.query(Permission).filter(Permission.id == permission_id)
    if not include_deleted:
        query = query.filter(Permission.deleted_at.is_(None))
    permission = query.first()
    if permission is None:
        raise NotFound("Permission not found")
    return permission


def _ensure_name_available(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Permission.id).filter(func.lower(Permission.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Permission.id != exclude_id)
    if query.first() is not None:
        raise Conflict(
            "Permission name already exists",
            code="DUPLICATE_ENTRY",
            errors=[{"field": "name", "message": "Permission name already exists"}],
        )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_permission(
    payload: PermissionCreatePayload,
    _user: User = Depends(require_permissions(["permissions.create"])),
    db: Session = Depends(get_db),
):
    _ensure_name_available(db, payload.name)
    permission = Permission(**payload.model_dump())
    db.add(permission)
    db.commit()
    db.refresh(permission)
    logger.info("permission created name=%s", permission.name)
    return success_response(data=permission_to_dict(permission), message="Permission created successfully")


@router.get("")
def list_permissions(
    category: Optional[str] = None,
    user_type: Optional[str] = None,
    search: Optional[str] = None,
    include_deleted: bool = False,
    page: int = 1,
    limit: int = 50,
    _user: User = Depends(require_permissions(["permissions.read"])),
    db: Session = Depends(get_db),
):
    page = max(page, 1)
    limit = min(max(limit, 1), 200)
    query = db.query(Permission)
    if not include_deleted:
        query = query.filter(Permission.deleted_at.is_(None))
    if category:
        query = query.filter(Permission.category == category)
    if user_type:
        query = query.filter(Permission.user_type == user_type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Permission.name.ilike(pattern), Permission.description.ilike(pattern)))
    total = query.count()
    rows = (
        query.order_by(Permission.category.asc(), Permission.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return success_response(
        data=[permission_to_dict(row) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@router.get("/{permission_id}")
def get_permission(
    permission_id: int,
    include_deleted: bool = False,
    _user: User = Depends(require_permissions(["permissions.read"])),
    db: Session = Depends(get_db),
):
    permission = _get_permission(db, permission_id, include_deleted=include_deleted)
    return success_response(data=permission_to_dict(permission))


@router.put("/{permission_id}")
def update_permission(
    permission_id: int,
    payload: PermissionUpdatePayload,
    _user: User = Depends(require_permissions(["permissions.update"])),
    db: Session = Depends(get_db),
):
    permission = _get_permission(db, permission_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        _ensure_name_available(db, changes["name"], exclude_id=permission.id)
    if changes.get("user_type") and changes["user_type"] != permission.user_type:
        linked = [role.name for role in permission.roles if role.deleted_at is None]
        if linked:
            raise ValidationFailed(
                "Permission is linked to roles of another user type",
                errors=[{"field": "user_type", "message": name} for name in linked],
            )
    for field, value in changes.items():
        if value is not None or field == "description":
            setattr(permission, field, value)
    db.commit()
    db.refresh(permission)
    logger.info("permission updated permission_id=%s fields=%s", permission.id, sorted(changes))
    return success_response(data=permission_to_dict(permission), message="Permission updated successfully")


@router.delete("/{permission_id}")
def delete_permission(
    permission_id: int,
    _user: User = Depends(require_permissions(["permissions.delete"])),
    db: Session = Depends(get_db),
):
    permission = _get_permission(db, permission_id)
    permission.deleted_at = utcnow()
    db.commit()
    logger.info("permission deleted permission_id=%s", permission.id)
    return success_response(message="Permission deleted successfully")


@router.patch("/restore/{permission_id}")
def restore_permission(
    permission_id: int,
    _user: User = Depends(require_permissions(["permissions.delete"])),
    db: Session = Depends(get_db),
):
    permission = _get_permission(db, permission_id, include_deleted=True)
    if permission.deleted_at is None:
        raise ValidationFailed("Permission is not deleted", code="NOT_DELETED")
    permission.deleted_at = None
    db.commit()
    db.refresh(permission)
    logger.info("permission restored permission_id=%s", permission.id)
    return success_response(data=permission_to_dict(permission), message="Permission restored successfully")
