from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from vista_api.core.database import get_db
from vista_api.core.errors import NotFound
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_permissions
from vista_api.models.mixins import utcnow
from vista_api.models.profiles import CustomerProfile, MerchantProfile, MERCHANT_STATUSES
from vista_api.models.user import User
from vista_api.schemas.serializers import model_to_dict, user_to_dict
from vista_api.services.rbac import resolve_roles

router = APIRouter(prefix="/api/v1/admin", tags=["admin-accounts"])
logger = logging.getLogger(__name__)

_MERCHANT_SORT_FIELDS = {
    "created_at": MerchantProfile.created_at,
    "merchant_name": MerchantProfile.merchant_name,
    "business_name": MerchantProfile.business_name,
    "status": MerchantProfile.status,
}


class MerchantStatusPayload(BaseModel):
    status: str
    max_properties_allowed: Optional[int] = Field(default=None, ge=0)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in MERCHANT_STATUSES:
            raise ValueError(f"Invalid status. Allowed: {', '.join(MERCHANT_STATUSES)}")
        return value


class UserRolesPayload(BaseModel):
    role_ids: List[int] = Field(default_factory=list)


def _clamp(page: int, limit: int) -> tuple[int, int]:
    return max(page, 1), min(max(limit, 1), 100)


def merchant_to_dict(profile: MerchantProfile) -> dict:
    data = model_to_dict(profile)
    data["email"] = profile.user.email if profile.user else None
    return data


@router.get("/merchants")
def list_merchants(
    status: Optional[str] = None,
    business_type: Optional[str] = None,
    is_sri_lankan: Optional[bool] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
    _user: User = Depends(require_permissions(["merchants.read"])),
    db: Session = Depends(get_db),
):
    page, limit = _clamp(page, limit)
    query = (
        db.query(MerchantProfile)
        .options(joinedload(MerchantProfile.user))
        .filter(MerchantProfile.deleted_at.is_(None))
    )
    if status:
        query = query.filter(MerchantProfile.status == status)
    if business_type:
        query = query.filter(MerchantProfile.business_type == business_type)
    if is_sri_lankan is not None:
        query = query.filter(MerchantProfile.is_sri_lankan.is_(is_sri_lankan))
    if country:
        query = query.filter(MerchantProfile.country.ilike(f"%{country.strip()}%"))
    if city:
        query = query.filter(MerchantProfile.city.ilike(f"%{city.strip()}%"))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                MerchantProfile.merchant_name.ilike(pattern),
                MerchantProfile.business_name.ilike(pattern),
                MerchantProfile.business_registration_number.ilike(pattern),
            )
        )

    column = _MERCHANT_SORT_FIELDS.get(sort_by, MerchantProfile.created_at)
    ordering = column.asc() if sort_order.lower() == "asc" else column.desc()
    total = query.count()
    rows = query.order_by(ordering, MerchantProfile.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        data=[merchant_to_dict(row) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@router.patch("/merchants/{merchant_id}/status")
def update_merchant_status(
    merchant_id: int,
    payload: MerchantStatusPayload,
    _user: User = Depends(require_permissions(["merchants.update"])),
    db: Session = Depends(get_db),
):
    profile = (
        db.query(MerchantProfile)
        .filter(MerchantProfile.id == merchant_id, MerchantProfile.deleted_at.is_(None))
        .first()
    )
    if profile is None:
        raise NotFound("Merchant not found")

    profile.status = payload.status
    if payload.max_properties_allowed is not None:
        profile.max_properties_allowed = payload.max_properties_allowed
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    logger.info("merchant status changed merchant_id=%s status=%s", profile.id, profile.status)
    return success_response(data=merchant_to_dict(profile), message="Merchant status updated successfully")


@router.get("/customers")
def list_customers(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
    _user: User = Depends(require_permissions(["customers.read"])),
    db: Session = Depends(get_db),
):
    page, limit = _clamp(page, limit)
    query = (
        db.query(User)
        .join(CustomerProfile, CustomerProfile.user_id == User.id)
        .filter(User.account_type == "customer", User.deleted_at.is_(None))
    )
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                User.email.ilike(pattern),
                CustomerProfile.first_name.ilike(pattern),
                CustomerProfile.last_name.ilike(pattern),
                CustomerProfile.mobile_number.ilike(pattern),
            )
        )
    total = query.count()
    rows = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        data=[user_to_dict(row) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@router.put("/users/{user_id}/roles")
def assign_user_roles(
    user_id: int,
    payload: UserRolesPayload,
    _user: User = Depends(require_permissions(["users.assign_roles"])),
    db: Session = Depends(get_db),
):
    target = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    if target is None:
        raise NotFound("User not found")

    target.roles = resolve_roles(db, payload.role_ids, target.account_type)
    db.commit()
    db.refresh(target)
    logger.info("roles assigned user_id=%s role_ids=%s", target.id, payload.role_ids)
    return success_response(
        data=user_to_dict(target, include_profile=False, include_access=True),
        message="Roles updated successfully",
    )
