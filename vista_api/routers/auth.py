from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import ApiError
from vista_api.core.responses import error_body, success_response
from vista_api.deps import get_current_user
from vista_api.models.user import User
from vista_api.schemas.serializers import user_to_dict
from vista_api.services.auth_cookies import REFRESH_TOKEN_COOKIE, clear_auth_cookies, set_auth_cookies
from vista_api.services.auth_service import AuthService

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


class LoginPayload(BaseModel):
    # optional so an empty form gets the login error message instead of a schema error
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshPayload(BaseModel):
    refresh_token: Optional[str] = None


class ChangePasswordPayload(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


def _login(
    payload: LoginPayload,
    request: Request,
    response: Response,
    db: Session,
    account_type: Optional[str],
) -> dict:
    user = AuthService.authenticate(
        db,
        email=payload.email,
        password=payload.password,
        account_type=account_type,
    )
    tokens = AuthService.issue_tokens(user)
    set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"], request=request)
    return success_response(
        data={**tokens, "user": user_to_dict(user, include_access=True)},
        message="Login successful",
    )


@router.post("/api/v1/admin/login")
def admin_login(payload: LoginPayload, request: Request, response: Response, db: Session = Depends(get_db)):
    return _login(payload, request, response, db, "admin")


@router.post("/api/v1/merchant/login")
def merchant_login(payload: LoginPayload, request: Request, response: Response, db: Session = Depends(get_db)):
    return _login(payload, request, response, db, "merchant")


@router.post("/api/v1/customer/login")
def customer_login(payload: LoginPayload, request: Request, response: Response, db: Session = Depends(get_db)):
    return _login(payload, request, response, db, "customer")


@router.post("/api/v1/auth/login")
def unified_login(payload: LoginPayload, request: Request, response: Response, db: Session = Depends(get_db)):
    return _login(payload, request, response, db, None)


@router.post("/api/v1/auth/token")
def issue_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """OAuth2 password flow for the interactive docs; answers in the plain OAuth2 shape."""
    user = AuthService.authenticate(db, email=form_data.username, password=form_data.password)
    tokens = AuthService.issue_tokens(user)
    return {"access_token": tokens["access_token"], "token_type": "bearer"}


@router.post("/api/v1/auth/refresh")
def refresh_token(
    request: Request,
    response: Response,
    payload: Optional[RefreshPayload] = Body(default=None),
    db: Session = Depends(get_db),
):
    token = request.cookies.get(REFRESH_TOKEN_COOKIE) or (payload.refresh_token if payload else None)
    try:
        tokens = AuthService.refresh_access_token(db, token)
    except ApiError as exc:
        logger.info("refresh rejected code=%s", exc.code)
        failed = JSONResponse(status_code=exc.status_code, content=error_body(exc.detail, error=exc.code))
        if token:
            clear_auth_cookies(failed, request)
        return failed

    set_auth_cookies(response, tokens["access_token"], request=request)
    return success_response(data=tokens, message="Token refreshed")


@router.post("/api/v1/auth/logout")
def logout(request: Request, response: Response):
    clear_auth_cookies(response, request)
    return success_response(message="Logged out successfully")


@router.get("/api/v1/auth/me")
def read_me(user: User = Depends(get_current_user)):
    return success_response(data=user_to_dict(user, include_access=True))


@router.post("/api/v1/auth/change-password", status_code=status.HTTP_200_OK)
def change_password(
    payload: ChangePasswordPayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    AuthService.change_password(
        db,
        user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    logger.info("password changed user_id=%s", user.id)
    return success_response(message="Password changed successfully")
