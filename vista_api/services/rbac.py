from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from vista_api.core.errors import Forbidden, ValidationFailed
from vista_api.models.rbac import Permission, Role, user_roles

logger = logging.getLogger(__name__)

CONTENT_RESOURCES = (
    "activities",
    "events",
    "guides",
    "shopping",
    "food_and_beverages",
    "local_artists",
    "transport_types",
    "transports",
    "transport_agencies",
)
CRUD_ACTIONS = ("create", "read", "update", "delete")

# role user types each account type may hold
ROLE_TYPES_BY_ACCOUNT = {
    "admin": {"admin", "system"},
    "merchant": {"merchant"},
    "customer": set(),
}

ADMINISTRATOR_ROLE = "Administrator"
MERCHANT_OWNER_ROLE = "Merchant Owner"
MERCHANT_ROLES_PERMISSION = "merchant_roles.manage"

# merchant-typed permissions; every registered merchant holds them through MERCHANT_OWNER_ROLE
MERCHANT_PERMISSIONS = ("homestays.manage", "property_settings.manage", MERCHANT_ROLES_PERMISSION)


def permission(resource: str, action: str) -> str:
    return f"{resource}.{action}"


def default_permission_catalogue() -> List[tuple[str, str, str]]:
    """(category, name, user_type) rows seeded at startup."""
    catalogue: List[tuple[str, str, str]] = []
    for resource in CONTENT_RESOURCES:
        for action in (*CRUD_ACTIONS, "verify"):
            catalogue.append((resource, permission(resource, action), "admin"))
    for resource in ("roles", "permissions", "admins"):
        for action in CRUD_ACTIONS:
            catalogue.append((resource, permission(resource, action), "admin"))
    catalogue.extend(
        [
            ("homestays", "homestays.read", "admin"),
            ("homestays", "homestays.approve", "admin"),
            ("merchants", "merchants.read", "admin"),
            ("merchants", "merchants.update", "admin"),
            ("customers", "customers.read", "admin"),
            ("users", "users.assign_roles", "admin"),
            ("metrics", "metrics.read", "admin"),
        ]
    )
    catalogue.extend((name.split(".")[0], name, "merchant") for name in MERCHANT_PERMISSIONS)
    return catalogue


def seed_permission_catalogue(db: Session) -> int:
    """Insert missing catalogue permissions and refresh the Administrator and Merchant Owner roles."""
    existing = {name for (name,) in db.query(Permission.name).all()}
    created = 0
    for category, name, user_type in default_permission_catalogue():
        if name in existing:
            continue
        db.add(Permission(category=category, name=name, user_type=user_type))
        created += 1
    db.flush()

    _ensure_system_role(db, ADMINISTRATOR_ROLE, "Full access to the admin portal", "admin")
    _ensure_system_role(db, MERCHANT_OWNER_ROLE, "Default access for merchant accounts", "merchant")
    db.commit()
    logger.info("permission catalogue seeded created=%s", created)
    return created


def _ensure_system_role(db: Session, name: str, description: str, user_type: str) -> Role:
    """Create or refresh a system role holding every live permission of its user type."""
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name, description=description, user_type=user_type, is_system=True)
        db.add(role)
    role.permissions = (
        db.query(Permission)
        .filter(Permission.user_type == user_type, Permission.deleted_at.is_(None))
        .all()
    )
    return role


def ensure_merchant_owner_role(db: Session) -> Role:
    """The role given to merchants at registration, created on first use. Flushes, never commits."""
    role = db.query(Role).filter(Role.name == MERCHANT_OWNER_ROLE).first()
    if role is not None:
        return role
    existing = {
        name for (name,) in db.query(Permission.name).filter(Permission.name.in_(MERCHANT_PERMISSIONS)).all()
    }
    for name in MERCHANT_PERMISSIONS:
        if name not in existing:
            db.add(Permission(category=name.split(".")[0], name=name, user_type="merchant"))
    db.flush()
    role = _ensure_system_role(db, MERCHANT_OWNER_ROLE, "Default access for merchant accounts", "merchant")
    db.flush()
    return role


def ensure_can_manage_role_type(user: Any, user_type: str) -> None:
    """Only admins may create or edit admin and system roles."""
    if user_type in {"admin", "system"} and getattr(user, "account_type", None) != "admin":
        raise Forbidden(f"Not allowed to manage {user_type} roles", code="ROLE_TYPE_FORBIDDEN")


def role_name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    # names are unique across soft-deleted rows too (database constraint)
    query = db.query(Role.id).filter(func.lower(Role.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Role.id != exclude_id)
    return query.first() is not None


def resolve_permissions(db: Session, permission_ids: Sequence[int], user_type: str) -> List[Permission]:
    """Live permissions for the ids, all of which must match the role's user type."""
    ids = list(dict.fromkeys(permission_ids))
    if not ids:
        return []
    found = (
        db.query(Permission)
        .filter(Permission.id.in_(ids), Permission.deleted_at.is_(None))
        .all()
    )
    missing = sorted(set(ids) - {item.id for item in found})
    if missing:
        raise ValidationFailed(
            "Some permissions do not exist",
            errors=[{"field": "permission_ids", "message": f"Unknown permission id {item}"} for item in missing],
        )
    mismatched = [item.name for item in found if item.user_type != user_type]
    if mismatched:
        raise ValidationFailed(
            f"Permissions must belong to user type '{user_type}'",
            errors=[{"field": "permission_ids", "message": name} for name in mismatched],
        )
    return found


def resolve_roles(db: Session, role_ids: Iterable[int], account_type: str) -> List[Role]:
    ids = list(dict.fromkeys(role_ids))
    if not ids:
        return []
    found = (
        db.query(Role)
        .filter(Role.id.in_(ids), Role.deleted_at.is_(None), Role.is_active.is_(True))
        .all()
    )
    missing = sorted(set(ids) - {role.id for role in found})
    if missing:
        raise ValidationFailed(
            "Some roles do not exist",
            errors=[{"field": "role_ids", "message": f"Unknown role id {item}"} for item in missing],
        )
    allowed = ROLE_TYPES_BY_ACCOUNT.get(account_type, set())
    mismatched = [role.name for role in found if role.user_type not in allowed]
    if mismatched:
        raise ValidationFailed(
            f"Roles are not assignable to {account_type} accounts",
            errors=[{"field": "role_ids", "message": name} for name in mismatched],
        )
    return found


def role_is_assigned(db: Session, role_id: int) -> bool:
    return db.query(user_roles.c.user_id).filter(user_roles.c.role_id == role_id).first() is not None
