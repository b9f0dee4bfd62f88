from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from vista_api.services.authorization_service import AuthorizationService

_HIDDEN_COLUMNS = {"password_hash"}


def model_to_dict(instance: Any, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Column values of a mapped instance, minus secrets."""
    skipped = _HIDDEN_COLUMNS | set(exclude)
    return {
        column.key: getattr(instance, column.key)
        for column in instance.__table__.columns
        if column.key not in skipped
    }


def profile_to_dict(profile: Any) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return model_to_dict(profile)


def user_to_dict(user: Any, *, include_profile: bool = True, include_access: bool = False) -> Dict[str, Any]:
    data = {
        "id": user.id,
        "email": user.email,
        "account_type": user.account_type,
        "is_active": user.is_active,
        "is_super_admin": bool(getattr(user, "is_super_admin", False)),
        "last_password_change": user.last_password_change,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
        "deleted_at": user.deleted_at,
    }
    if include_profile:
        data["profile"] = profile_to_dict(user.profile)
    if include_access:
        data["roles"] = AuthorizationService.collect_roles(user)
        data["permissions"] = sorted(AuthorizationService.collect_permissions(user))
    return data


def permission_to_dict(permission: Any) -> Dict[str, Any]:
    return model_to_dict(permission)


def role_to_dict(role: Any, *, include_permissions: bool = True) -> Dict[str, Any]:
    data = model_to_dict(role)
    if include_permissions:
        data["permissions"] = [
            permission_to_dict(permission)
            for permission in role.permissions
            if permission.deleted_at is None
        ]
    return data


def image_to_dict(image: Any) -> Dict[str, Any]:
    return model_to_dict(image)


def guide_to_dict(guide: Any) -> Dict[str, Any]:
    data = model_to_dict(guide)
    raw = data.get("languages") or ""
    data["languages"] = [item.strip() for item in raw.split(",") if item.strip()]
    return data


def languages_to_column(values: Dict[str, Any]) -> Dict[str, Any]:
    if values.get("languages") is not None:
        values = {**values, "languages": ",".join(values["languages"])}
    return values
