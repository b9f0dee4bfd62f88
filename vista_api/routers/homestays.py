from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import Forbidden, NotFound, ValidationFailed
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_merchant_permissions, require_permissions
from vista_api.models.homestay import Homestay, PropertySetting
from vista_api.models.mixins import utcnow
from vista_api.models.profiles import MerchantProfile
from vista_api.models.user import User
from vista_api.routers.content import ContentResource, build_content_router, read_filters, serialize_with_images
from vista_api.schemas.content import VerifyPayload
from vista_api.schemas.homestay import (
    HomestayApprovalPayload,
    HomestayCreate,
    HomestayUpdate,
    PropertySettingCreate,
    PropertySettingUpdate,
)
from vista_api.schemas.serializers import model_to_dict
from vista_api.services import catalog

logger = logging.getLogger(__name__)


manage_homestays = require_merchant_permissions(["homestays.manage"])
manage_property_settings = require_merchant_permissions(["property_settings.manage"])


def _merchant_guard(action: str):
    return manage_homestays


def _owned_by(merchant: MerchantProfile) -> tuple:
    return (Homestay.merchant_id == merchant.id,)


def ensure_within_property_limit(db: Session, merchant: MerchantProfile) -> None:
    """Active merchants only, with fewer live homestays than their allowance."""
    if merchant.status != "active":
        raise Forbidden("Merchant account is not active", code="MERCHANT_NOT_ACTIVE")

    owned = (
        db.query(Homestay.id)
        .filter(Homestay.merchant_id == merchant.id, Homestay.deleted_at.is_(None))
        .count()
    )
    if owned >= merchant.max_properties_allowed:
        raise ValidationFailed(
            f"Property limit reached ({merchant.max_properties_allowed})",
            code="PROPERTY_LIMIT_REACHED",
        )


def prepare_homestay(db: Session, merchant: MerchantProfile, values: Dict[str, Any]) -> None:
    """New listings count against the allowance and wait for approval."""
    ensure_within_property_limit(db, merchant)
    values["merchant_id"] = merchant.id
    values["approval_status"] = "pending"
    values["last_status_change"] = utcnow()


def check_restore_allowance(db: Session, merchant: MerchantProfile, homestay: Homestay) -> None:
    ensure_within_property_limit(db, merchant)


merchant_homestays = ContentResource(
    lifecycle=catalog.homestays,
    create_schema=HomestayCreate,
    update_schema=HomestayUpdate,
    prefix="/api/v1/merchants/homestays",
    tag="merchant-homestays",
    guard=_merchant_guard,
    owner_criteria=_owned_by,
    before_create=prepare_homestay,
    before_restore=check_restore_allowance,
    verifiable=False,
)

merchant_router = build_content_router(merchant_homestays)

admin_router = APIRouter(prefix="/api/v1/admin/homestays", tags=["admin-homestays"])


@admin_router.get("")
def list_all_homestays(
    request: Request,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    include_deleted: bool = False,
    _user: User = Depends(require_permissions(["homestays.read"])),
    db: Session = Depends(get_db),
):
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    rows, total = catalog.homestays.list(
        db,
        page=page,
        limit=limit,
        include_deleted=include_deleted,
        search=search,
        filters=read_filters(request, catalog.homestays),
    )
    return success_response(
        data=[model_to_dict(row) for row in rows],
        pagination=build_pagination(total, page, limit),
    )


@admin_router.get("/{homestay_id}")
def get_any_homestay(
    homestay_id: int,
    _user: User = Depends(require_permissions(["homestays.read"])),
    db: Session = Depends(get_db),
):
    homestay = catalog.homestays.get(db, homestay_id)
    return success_response(data=serialize_with_images(merchant_homestays, db, homestay, include_images=True))


@admin_router.patch("/{homestay_id}/approval")
def review_homestay(
    homestay_id: int,
    payload: HomestayApprovalPayload,
    user: User = Depends(require_permissions(["homestays.approve"])),
    db: Session = Depends(get_db),
):
    homestay = catalog.homestays.get(db, homestay_id)
    now = utcnow()
    homestay.approval_status = payload.approval_status
    homestay.rejection_reason = payload.rejection_reason if payload.approval_status != "approved" else None
    homestay.approved_at = now if payload.approval_status == "approved" else None
    homestay.last_status_change = now
    db.commit()
    db.refresh(homestay)
    logger.info(
        "homestay reviewed homestay_id=%s status=%s reviewer_id=%s",
        homestay.id,
        homestay.approval_status,
        user.id,
        extra={"entity": "Homestay", "entity_id": homestay.id},
    )
    return success_response(data=model_to_dict(homestay), message=f"Homestay {payload.approval_status}")


@admin_router.patch("/{homestay_id}/verify")
def verify_homestay(
    homestay_id: int,
    payload: Optional[VerifyPayload] = Body(default=None),
    _user: User = Depends(require_permissions(["homestays.approve"])),
    db: Session = Depends(get_db),
):
    homestay = catalog.homestays.get(db, homestay_id)
    homestay = catalog.homestays.verify(db, homestay, payload.verified if payload else None)
    state = "verified" if homestay.vista_verified else "unverified"
    return success_response(data=model_to_dict(homestay), message=f"Homestay {state} successfully")


settings_router = APIRouter(prefix="/api/v1/merchants/property-settings", tags=["property-settings"])


def _owned_homestay(db: Session, merchant: MerchantProfile, homestay_id: int) -> Homestay:
    return catalog.homestays.get(db, homestay_id, criteria=_owned_by(merchant))


def _owned_settings_query(db: Session, merchant: MerchantProfile):
    return (
        db.query(PropertySetting)
        .join(Homestay, Homestay.id == PropertySetting.homestay_id)
        .filter(
            Homestay.merchant_id == merchant.id,
            Homestay.deleted_at.is_(None),
            PropertySetting.deleted_at.is_(None),
        )
    )


def _get_owned_settings(db: Session, merchant: MerchantProfile, settings_id: int) -> PropertySetting:
    settings = _owned_settings_query(db, merchant).filter(PropertySetting.id == settings_id).first()
    if settings is None:
        raise NotFound("Property settings not found")
    return settings


@settings_router.post("", status_code=status.HTTP_201_CREATED)
def create_property_settings(
    payload: PropertySettingCreate,
    merchant: MerchantProfile = Depends(manage_property_settings),
    db: Session = Depends(get_db),
):
    homestay = _owned_homestay(db, merchant, payload.homestay_id)
    values = payload.model_dump(exclude={"homestay_id"}, exclude_none=True)

    existing = db.query(PropertySetting).filter(PropertySetting.homestay_id == homestay.id).first()
    if existing is not None and existing.deleted_at is None:
        raise ValidationFailed("Property settings already exist", code="SETTINGS_EXIST")

    if existing is not None:
        # one row per homestay: a soft-deleted row is revived with the new values
        settings = existing
        settings.deleted_at = None
    else:
        settings = PropertySetting(homestay_id=homestay.id)
        db.add(settings)
    for field, value in values.items():
        setattr(settings, field, value)
    db.commit()
    db.refresh(settings)
    logger.info("property settings created homestay_id=%s", homestay.id)
    return success_response(data=model_to_dict(settings), message="Property settings created successfully")


@settings_router.get("")
def list_property_settings(
    merchant: MerchantProfile = Depends(manage_property_settings),
    db: Session = Depends(get_db),
):
    rows = _owned_settings_query(db, merchant).order_by(PropertySetting.id.asc()).all()
    return success_response(data=[model_to_dict(row) for row in rows])


@settings_router.get("/homestay/{homestay_id}")
def get_property_settings_for_homestay(
    homestay_id: int,
    merchant: MerchantProfile = Depends(manage_property_settings),
    db: Session = Depends(get_db),
):
    _owned_homestay(db, merchant, homestay_id)
    settings = _owned_settings_query(db, merchant).filter(PropertySetting.homestay_id == homestay_id).first()
    if settings is None:
        raise NotFound("Property settings not found")
    return success_response(data=model_to_dict(settings))


@settings_router.get("/{settings_id}")
def get_property_settings(
    settings_id: int,
    merchant: MerchantProfile = Depends(manage_property_settings),
    db: Session = Depends(get_db),
):
    return success_response(data=model_to_dict(_get_owned_settings(db, merchant, settings_id)))


@settings_router.put("/{settings_id}")
def update_property_settings(
    settings_id: int,
    payload: PropertySettingUpdate,
    merchant: MerchantProfile = Depends(manage_property_settings),
    db: Session = Depends(get_db),
):
    settings = _get_owned_settings(db, merchant, settings_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    max_units = changes.get("max_units", settings.max_units)
    current_units = changes.get("current_units", settings.current_units)
    if current_units > max_units:
        raise ValidationFailed("current_units cannot exceed max_units")
    min_stay = changes.get("min_stay_duration", settings.min_stay_duration)
    max_stay = changes.get("max_stay_duration", settings.max_stay_duration)
    if max_stay is not None and max_stay < min_stay:
        raise ValidationFailed("max_stay_duration must be at least min_stay_duration")

    for field, value in changes.items():
        setattr(settings, field, value)
    db.commit()
    db.refresh(settings)
    logger.info("property settings updated settings_id=%s fields=%s", settings.id, sorted(changes))
    return success_response(data=model_to_dict(settings), message="Property settings updated successfully")
