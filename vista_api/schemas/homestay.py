from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from vista_api.models.homestay import APPROVAL_STATUSES, AVAILABILITY_STATUSES, UNIT_TYPES
from vista_api.schemas.content import not_null


def _one_of(value: Optional[str], allowed: tuple[str, ...], label: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"Invalid {label}. Allowed: {', '.join(allowed)}")
    return value


class HomestayCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    unit_type: str = "entire_home"
    max_guests: int = Field(default=1, ge=1, le=100)
    bedroom_count: int = Field(default=1, ge=0, le=50)
    bathroom_count: int = Field(default=1, ge=0, le=50)
    city: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=255)
    base_price: Optional[Decimal] = Field(default=None, ge=0)
    cleaning_fee: Optional[Decimal] = Field(default=None, ge=0)
    minimum_stay: int = Field(default=1, ge=1, le=365)
    smoking_allowed: bool = False
    pets_allowed: bool = False
    availability_status: str = "available"
    is_active: bool = True

    @field_validator("unit_type")
    @classmethod
    def validate_unit_type(cls, value: str) -> str:
        return _one_of(value, UNIT_TYPES, "unit type")

    @field_validator("availability_status")
    @classmethod
    def validate_availability(cls, value: str) -> str:
        return _one_of(value, AVAILABILITY_STATUSES, "availability status")


class HomestayUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    unit_type: Optional[str] = None
    max_guests: Optional[int] = Field(default=None, ge=1, le=100)
    bedroom_count: Optional[int] = Field(default=None, ge=0, le=50)
    bathroom_count: Optional[int] = Field(default=None, ge=0, le=50)
    city: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=255)
    base_price: Optional[Decimal] = Field(default=None, ge=0)
    cleaning_fee: Optional[Decimal] = Field(default=None, ge=0)
    minimum_stay: Optional[int] = Field(default=None, ge=1, le=365)
    smoking_allowed: Optional[bool] = None
    pets_allowed: Optional[bool] = None
    availability_status: Optional[str] = None

    @field_validator(
        "name",
        "unit_type",
        "max_guests",
        "bedroom_count",
        "bathroom_count",
        "minimum_stay",
        "smoking_allowed",
        "pets_allowed",
        "availability_status",
        mode="before",
    )
    @classmethod
    def required_not_null(cls, value):
        return not_null(value)

    @field_validator("unit_type")
    @classmethod
    def validate_unit_type(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, UNIT_TYPES, "unit type")

    @field_validator("availability_status")
    @classmethod
    def validate_availability(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, AVAILABILITY_STATUSES, "availability status")


class HomestayApprovalPayload(BaseModel):
    approval_status: str
    rejection_reason: Optional[str] = None

    @field_validator("approval_status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _one_of(value, APPROVAL_STATUSES, "approval status")

    @model_validator(mode="after")
    def reason_required_on_reject(self):
        if self.approval_status in {"rejected", "changes_requested"} and not (self.rejection_reason or "").strip():
            raise ValueError("A reason is required when rejecting or requesting changes")
        return self


class PropertySettingBase(BaseModel):
    max_units: Optional[int] = Field(default=None, ge=1)
    current_units: Optional[int] = Field(default=None, ge=0)
    min_stay_duration: Optional[int] = Field(default=None, ge=1)
    max_stay_duration: Optional[int] = Field(default=None, ge=1)
    advance_booking_period: Optional[int] = Field(default=None, ge=0)
    cancellation_window: Optional[int] = Field(default=None, ge=0)
    dynamic_pricing_enabled: Optional[bool] = None
    seasonal_pricing_enabled: Optional[bool] = None
    new_booking_alert: Optional[bool] = None
    maintenance_alerts: Optional[bool] = None
    check_in_buffer: Optional[int] = Field(default=None, ge=0)
    auto_approve_bookings: Optional[bool] = None

    @model_validator(mode="after")
    def check_ranges(self):
        if (
            self.min_stay_duration is not None
            and self.max_stay_duration is not None
            and self.max_stay_duration < self.min_stay_duration
        ):
            raise ValueError("max_stay_duration must be at least min_stay_duration")
        if self.max_units is not None and self.current_units is not None and self.current_units > self.max_units:
            raise ValueError("current_units cannot exceed max_units")
        return self


class PropertySettingCreate(PropertySettingBase):
    homestay_id: int = Field(..., ge=1)


class PropertySettingUpdate(PropertySettingBase):
    pass
