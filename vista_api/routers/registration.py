from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.responses import success_response
from vista_api.models.homestay import UNIT_TYPES
from vista_api.models.profiles import BUSINESS_TYPES
from vista_api.schemas.serializers import user_to_dict
from vista_api.services.auth_cookies import set_auth_cookies
from vista_api.services.auth_service import AuthService
from vista_api.services.registration import register_customer, register_merchant

router = APIRouter(tags=["registration"])


class CustomerRegisterPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    mobile_number: Optional[str] = Field(default=None, max_length=30)


class MerchantRegisterPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    merchant_name: str = Field(..., min_length=2, max_length=150)
    business_name: str = Field(..., min_length=2, max_length=200)
    business_registration_number: str = Field(..., min_length=1, max_length=100)
    business_type: str
    allowed_property_types: Optional[List[str]] = None
    business_description: Optional[str] = None
    is_sri_lankan: bool = True
    nic_number: Optional[str] = Field(default=None, max_length=20)
    passport_number: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=30)

    @field_validator("business_type")
    @classmethod
    def validate_business_type(cls, value: str) -> str:
        if value not in BUSINESS_TYPES:
            raise ValueError(f"Invalid business type. Allowed: {', '.join(BUSINESS_TYPES)}")
        return value

    @field_validator("allowed_property_types")
    @classmethod
    def validate_property_types(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        unknown = [item for item in value or [] if item not in UNIT_TYPES]
        if unknown:
            raise ValueError(f"Unknown property types: {', '.join(unknown)}")
        return value


@router.post("/api/v1/customer/register", status_code=status.HTTP_201_CREATED)
def customer_register(
    payload: CustomerRegisterPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user = register_customer(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        mobile_number=payload.mobile_number,
    )
    tokens = AuthService.issue_tokens(user)
    set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"], request=request)
    return success_response(
        data={**tokens, "user": user_to_dict(user)},
        message="Customer registered successfully",
    )


@router.post("/api/v1/merchants/register", status_code=status.HTTP_201_CREATED)
def merchant_register(payload: MerchantRegisterPayload, db: Session = Depends(get_db)):
    profile = payload.model_dump(exclude={"email", "password"})
    user = register_merchant(db, email=payload.email, password=payload.password, profile=profile)
    return success_response(
        data=user_to_dict(user),
        message="Merchant registered successfully. Your account is pending approval.",
    )
