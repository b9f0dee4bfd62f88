from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from vista_api.core.database import get_db
from vista_api.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_account_type
from vista_api.models.mixins import utcnow
from vista_api.models.rbac import ROLE_USER_TYPES, Role
from vista_api.models.user import User
from vista_api.schemas.serializers import role_to_dict
from vista_api.services.authorization_service import AuthorizationService
from vista_api.services.rbac import (
    MERCHANT_ROLES_PERMISSION,
    ensure_can_manage_role_type,
    resolve_permissions,
    role_is_assigned,
    role_name_taken,
)

router = APIRouter(prefix="/api/v1/admin/roles", tags=["roles"])
logger = logging.getLogger(__name__)


def _validate_user_type(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in ROLE_USER_TYPES:
        raise ValueError(f"Invalid user type. Allowed: {', '.join(ROLE_USER_TYPES)}")
    return value


class RoleCreatePayload(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = None
    user_type: str = "admin"
    is_active: bool = True
    permission_ids: List[int] = Field(default_factory=list)

    @field_validator("user_type")
    @classmethod
    def validate_user_type(cls, value):
        return _validate_user_type(value)


class RoleUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = None
    user_type: Optional[str] = None
    is_active: Optional[bool] = None
    permission_ids: Optional[List[int]] = None

    @field_validator("user_type")
    @classmethod
    def validate_user_type(cls, value):
        return _validate_user_type(value)


def role_manager(action: str):
    """Admins need ``roles.{action}``; merchants need ``merchant_roles.manage``."""

    def _dependency(request: Request, user: User = Depends(require_account_type(["admin", "merchant"]))) -> User:
        required = f"roles.{action}" if user.account_type == "admin" else MERCHANT_ROLES_PERMISSION
        AuthorizationService.ensure_permissions(request=request, user=user, permissions=[required])
        return user

    return _dependency


def _role_scope(user: User) -> tuple:
    """Merchants only see the merchant roles they created themselves."""
    if user.account_type == "admin":
        return ()
    return (Role.user_type == "merchant", Role.created_by == user.id)


def _get_role(db: Session, role_id: int, user: User, *, include_deleted: bool = False) -> Role:
    query = db.query(Role).options(selectinload(Role.permissions)).filter(Role.id == role_id)
    if not include_deleted:
        query = query.filter(Role.deleted_at.is_(None))
    query = query.filter(*_role_scope(user))
    role = query.first()
    if role is None:
        raise NotFound("Role not found")
    return role


def _ensure_name_available(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    if role_name_taken(db, name, exclude_id):
        raise Conflict(
            "Role name already exists",
            code="DUPLICATE_ENTRY",
            errors=[{"field": "name", "message": "Role name already exists"}],
        )


def _list_roles(
    db: Session,
    *,
    user_types: Optional[set],
    scope: tuple,
    search: Optional[str],
    is_active: Optional[bool],
    include_deleted: bool,
    page: int,
    limit: int,
):
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    query = db.query(Role).options(selectinload(Role.permissions))
    if not include_deleted:
        query = query.filter(Role.deleted_at.is_(None))
    if user_types is not None:
        query = query.filter(Role.user_type.in_(user_types))
    query = query.filter(*scope)
    if is_active is not None:
        query = query.filter(Role.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Role.name.ilike(pattern), Role.description.ilike(pattern)))
    total = query.count()
    rows = query.order_by(Role.name.asc(), Role.id.asc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        data=[role_to_dict(row) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreatePayload,
    user: User = Depends(role_manager("create")),
    db: Session = Depends(get_db),
):
    ensure_can_manage_role_type(user, payload.user_type)
    name = payload.name.strip()
    _ensure_name_available(db, name)
    permissions = resolve_permissions(db, payload.permission_ids, payload.user_type)

    role = Role(
        name=name,
        description=payload.description,
        user_type=payload.user_type,
        is_active=payload.is_active,
        created_by=user.id,
        updated_by=user.id,
    )
    role.permissions = permissions
    db.add(role)
    db.commit()
    db.refresh(role)
    logger.info("role created role_id=%s user_type=%s", role.id, role.user_type)
    return success_response(data=role_to_dict(role), message="Role created successfully")


@router.get("")
def list_roles(
    search: Optional[str] = None,
    user_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    include_deleted: bool = False,
    page: int = 1,
    limit: int = 10,
    user: User = Depends(role_manager("read")),
    db: Session = Depends(get_db),
):
    return _list_roles(
        db,
        user_types={user_type} if user_type else None,
        scope=_role_scope(user),
        search=search,
        is_active=is_active,
        include_deleted=include_deleted,
        page=page,
        limit=limit,
    )


@router.get("/list/admins")
def list_admin_roles(
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    user: User = Depends(role_manager("read")),
    db: Session = Depends(get_db),
):
    if user.account_type != "admin":
        raise Forbidden("Access denied for this account type", code="ACCOUNT_TYPE_FORBIDDEN")
    return _list_roles(
        db,
        user_types={"admin", "system"},
        scope=(),
        search=search,
        is_active=True,
        include_deleted=False,
        page=page,
        limit=limit,
    )


@router.get("/list/merchants")
def list_merchant_roles(
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    user: User = Depends(role_manager("read")),
    db: Session = Depends(get_db),
):
    return _list_roles(
        db,
        user_types={"merchant"},
        scope=_role_scope(user),
        search=search,
        is_active=True,
        include_deleted=False,
        page=page,
        limit=limit,
    )


@router.get("/{role_id}")
def get_role(
    role_id: int,
    include_deleted: bool = False,
    user: User = Depends(role_manager("read")),
    db: Session = Depends(get_db),
):
    return success_response(data=role_to_dict(_get_role(db, role_id, user, include_deleted=include_deleted)))


@router.put("/{role_id}")
def update_role(
    role_id: int,
    payload: RoleUpdatePayload,
    user: User = Depends(role_manager("update")),
    db: Session = Depends(get_db),
):
    role = _get_role(db, role_id, user)
    if role.is_system:
        raise Forbidden("System roles cannot be modified", code="SYSTEM_ROLE")

    changes = payload.model_dump(exclude_unset=True)
    user_type = changes.get("user_type") or role.user_type
    ensure_can_manage_role_type(user, user_type)

    if changes.get("name"):
        name = changes["name"].strip()
        _ensure_name_available(db, name, exclude_id=role.id)
        role.name = name
    if "description" in changes:
        role.description = changes["description"]
    if changes.get("is_active") is not None:
        role.is_active = changes["is_active"]

    if changes.get("permission_ids") is not None:
        role.permissions = resolve_permissions(db, changes["permission_ids"], user_type)
    elif user_type != role.user_type:
        # existing links must still match the new user type
        resolve_permissions(db, [permission.id for permission in role.permissions], user_type)
    role.user_type = user_type
    role.updated_by = user.id

    db.commit()
    db.refresh(role)
    logger.info("role updated role_id=%s fields=%s", role.id, sorted(changes))
    return success_response(data=role_to_dict(role), message="Role updated successfully")


@router.delete("/{role_id}")
def delete_role(
    role_id: int,
    user: User = Depends(role_manager("delete")),
    db: Session = Depends(get_db),
):
    role = _get_role(db, role_id, user)
    if role.is_system:
        raise Forbidden("System roles cannot be deleted", code="SYSTEM_ROLE")
    if role_is_assigned(db, role.id):
        raise ValidationFailed("Role is assigned to users and cannot be deleted", code="ROLE_IN_USE")

    role.deleted_at = utcnow()
    role.updated_by = user.id
    db.commit()
    logger.info("role deleted role_id=%s", role.id)
    return success_response(message="Role deleted successfully")


@router.patch("/restore/{role_id}")
def restore_role(
    role_id: int,
    user: User = Depends(role_manager("delete")),
    db: Session = Depends(get_db),
):
    role = _get_role(db, role_id, user, include_deleted=True)
    if role.deleted_at is None:
        raise ValidationFailed("Role is not deleted", code="NOT_DELETED")

    clash = (
        db.query(Role.id)
        .filter(func.lower(Role.name) == role.name.lower(), Role.id != role.id, Role.deleted_at.is_(None))
        .first()
    )
    if clash is not None:
        raise Conflict("A live role already uses this name", code="DUPLICATE_ENTRY")

    role.deleted_at = None
    role.updated_by = user.id
    db.commit()
    db.refresh(role)
    logger.info("role restored role_id=%s", role.id)
    return success_response(data=role_to_dict(role), message="Role restored successfully")
