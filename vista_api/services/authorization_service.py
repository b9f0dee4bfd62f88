from __future__ import annotations

import logging
from typing import Any, Iterable, Set

from fastapi import Request

from vista_api.core.errors import Forbidden

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Centralize account-type and permission checks.

    Both checks are read-only: they inspect the user resolved by
    ``deps.get_current_user`` and either return or raise ``Forbidden``.
    """

    @staticmethod
    def normalize(value: str | None) -> str:
        return (value or "").strip().lower()

    @staticmethod
    def log_access_denied(*, reason: str, user: Any, request: Request, detail: str | None = None) -> None:
        endpoint = f"{request.method} {request.url.path}"
        logger.warning(
            "Access denied (%s): user_id=%s account_type=%s endpoint=%s detail=%s",
            reason,
            getattr(user, "id", None),
            getattr(user, "account_type", None),
            endpoint,
            detail,
        )

    @classmethod
    def is_super_admin(cls, user: Any) -> bool:
        return cls.normalize(getattr(user, "account_type", None)) == "admin" and bool(
            getattr(user, "is_super_admin", False)
        )

    @staticmethod
    def collect_permissions(user: Any) -> Set[str]:
        """Union of permission names over the user's live, active roles."""
        granted: Set[str] = set()
        for role in getattr(user, "roles", None) or []:
            if getattr(role, "deleted_at", None) is not None or not getattr(role, "is_active", True):
                continue
            for permission in getattr(role, "permissions", None) or []:
                if getattr(permission, "deleted_at", None) is None:
                    granted.add(permission.name)
        return granted

    @staticmethod
    def collect_roles(user: Any) -> list[str]:
        return sorted(
            role.name
            for role in getattr(user, "roles", None) or []
            if getattr(role, "deleted_at", None) is None and getattr(role, "is_active", True)
        )

    @classmethod
    def ensure_account_type(cls, *, request: Request, user: Any, account_types: Iterable[str]) -> None:
        allowed = {cls.normalize(account_type) for account_type in account_types}
        if cls.normalize(getattr(user, "account_type", None)) not in allowed:
            cls.log_access_denied(
                reason="account_type_denied",
                user=user,
                request=request,
                detail=",".join(sorted(allowed)),
            )
            raise Forbidden(
                "Access denied for this account type",
                code="ACCOUNT_TYPE_FORBIDDEN",
            )

    @classmethod
    def ensure_permissions(cls, *, request: Request, user: Any, permissions: Iterable[str]) -> None:
        if cls.is_super_admin(user):
            return

        required = set(permissions)
        missing = sorted(required - cls.collect_permissions(user))
        if missing:
            cls.log_access_denied(
                reason="permission_denied",
                user=user,
                request=request,
                detail=",".join(missing),
            )
            raise Forbidden(
                "Insufficient permissions",
                code="INSUFFICIENT_PERMISSIONS",
                errors=[{"field": "permissions", "message": name} for name in missing],
            )
