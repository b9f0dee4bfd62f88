# vista_api/deps.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import Forbidden, Unauthorized
from vista_api.core.request_context import set_request_context
from vista_api.models.profiles import MerchantProfile
from vista_api.models.user import User
from vista_api.services.auth import decode_access_token, extract_user_id
from vista_api.services.auth_cookies import ACCESS_TOKEN_COOKIE
from vista_api.services.auth_service import load_user_with_access
from vista_api.services.authorization_service import AuthorizationService

# Swagger "Authorize" posts the password form to this endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)

logger = logging.getLogger(__name__)

_BEARER_HEADERS = {"WWW-Authenticate": "Bearer"}


def get_current_user(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the access cookie, falling back to the bearer header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE) or bearer_token
    if not token:
        raise Unauthorized("Authentication required", code="AUTH_REQUIRED", headers=_BEARER_HEADERS)

    try:
        payload = decode_access_token(token)
    except ValueError:
        raise Unauthorized("Invalid or expired token", code="INVALID_TOKEN", headers=_BEARER_HEADERS)

    user_id = extract_user_id(payload)
    if user_id is None:
        raise Unauthorized("Invalid token (missing user id)", code="INVALID_TOKEN", headers=_BEARER_HEADERS)

    user = load_user_with_access(db, user_id)
    if user is None or not user.is_active:
        raise Unauthorized("User not found or inactive", code="USER_NOT_FOUND", headers=_BEARER_HEADERS)

    request.state.user_id = str(user.id)
    request.state.account_type = user.account_type
    set_request_context(user_id=str(user.id), account_type=user.account_type)
    return user


def require_account_type(account_types: Iterable[str]):
    allowed = tuple(account_types)

    def _dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        AuthorizationService.ensure_account_type(request=request, user=user, account_types=allowed)
        return user

    return _dependency


def require_permissions(permissions: Iterable[str]):
    required = tuple(permissions)

    def _dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        AuthorizationService.ensure_permissions(request=request, user=user, permissions=required)
        return user

    return _dependency


def require_super_admin(request: Request, user: User = Depends(get_current_user)) -> User:
    if not AuthorizationService.is_super_admin(user):
        AuthorizationService.log_access_denied(reason="super_admin_required", user=user, request=request)
        raise Forbidden("Super admin access required", code="SUPER_ADMIN_REQUIRED")
    return user


def get_current_merchant(
    request: Request,
    user: User = Depends(require_account_type(["merchant"])),
    db: Session = Depends(get_db),
) -> MerchantProfile:
    profile = (
        db.query(MerchantProfile)
        .filter(MerchantProfile.user_id == user.id, MerchantProfile.deleted_at.is_(None))
        .first()
    )
    if profile is None:
        AuthorizationService.log_access_denied(reason="merchant_profile_missing", user=user, request=request)
        raise Forbidden("Merchant profile not found", code="MERCHANT_PROFILE_NOT_FOUND")
    return profile


def require_merchant_permissions(permissions: Iterable[str]):
    """Active merchant profile of the caller, who must also hold every merchant permission."""
    required = tuple(permissions)

    def _dependency(
        request: Request,
        merchant: MerchantProfile = Depends(get_current_merchant),
        user: User = Depends(get_current_user),
    ) -> MerchantProfile:
        AuthorizationService.ensure_permissions(request=request, user=user, permissions=required)
        return merchant

    return _dependency
