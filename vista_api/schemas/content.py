from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

ACTIVITY_TYPES = (
    "Adventure",
    "Cultural",
    "Historical",
    "Nature & Wildlife",
    "Wellness & Spa",
    "Culinary / Food Tour",
    "Arts & Crafts",
    "Water Activities",
    "Sports & Games",
    "Religious / Spiritual",
)
SHOPPING_CATEGORIES = ("Handicrafts", "Textiles", "Jewelry", "Art", "Pottery")
CUISINE_TYPES = ("Chinese", "Japanese", "Thai", "Indian", "Korean", "Vietnamese", "Indonesian", "Sri Lankan", "Western")
PROVINCES = (
    "Western",
    "Central",
    "Southern",
    "Northern",
    "Eastern",
    "North Western",
    "North Central",
    "Uva",
    "Sabaragamuwa",
)


def _one_of(value: Optional[str], allowed: tuple[str, ...], label: str) -> Optional[str]:
    if value is None:
        return value
    if value not in allowed:
        raise ValueError(f"Invalid {label}. Allowed: {', '.join(allowed)}")
    return value


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if isinstance(value, str) else value


def not_null(value):
    # omitted fields keep their value; an explicit null on a required column is refused
    if value is None:
        raise ValueError("Field cannot be null")
    return value


class ActivityCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    pricerange: Optional[str] = Field(default=None, max_length=100)
    type: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    district: Optional[str] = None
    city: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    vista_verified: bool = False

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        return _strip(value)

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, ACTIVITY_TYPES, "activity type")


class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    pricerange: Optional[str] = Field(default=None, max_length=100)
    type: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    district: Optional[str] = None
    city: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value):
        return not_null(value)

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, ACTIVITY_TYPES, "activity type")


class EventCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    event_date: Optional[date] = None
    event_time: Optional[str] = Field(default=None, max_length=20)
    duration: Optional[str] = Field(default=None, max_length=50)
    organizer_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    website: Optional[str] = None
    is_active: bool = True


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    event_date: Optional[date] = None
    event_time: Optional[str] = Field(default=None, max_length=20)
    duration: Optional[str] = Field(default=None, max_length=50)
    organizer_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    website: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, value):
        return not_null(value)


def _future_date(value: Optional[date]) -> Optional[date]:
    if value is not None and value <= date.today():
        raise ValueError("Licence expiry date must be in the future")
    return value


def _clean_languages(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    cleaned = [item.strip() for item in value if item and item.strip()]
    if any("," in item for item in cleaned):
        raise ValueError("Language names cannot contain commas")
    return cleaned


class GuideCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    licence_id: str = Field(..., min_length=1, max_length=100)
    expiry_date: date
    experience: Optional[int] = Field(default=None, ge=0, le=80)
    region: Optional[str] = None
    specialties: Optional[str] = None
    rate_per_day_amount: Optional[Decimal] = Field(default=None, ge=0)
    rate_per_day_currency: Optional[str] = Field(default="LKR", min_length=3, max_length=3)
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    is_active: bool = True
    vista_verified: bool = False

    @field_validator("expiry_date")
    @classmethod
    def validate_expiry(cls, value: date) -> date:
        return _future_date(value)

    @field_validator("languages")
    @classmethod
    def validate_languages(cls, value: List[str]) -> List[str]:
        return _clean_languages(value)


class GuideUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = None
    languages: Optional[List[str]] = None
    licence_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    expiry_date: Optional[date] = None
    experience: Optional[int] = Field(default=None, ge=0, le=80)
    region: Optional[str] = None
    specialties: Optional[str] = None
    rate_per_day_amount: Optional[Decimal] = Field(default=None, ge=0)
    rate_per_day_currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None

    @field_validator("name", "licence_id", "expiry_date", mode="before")
    @classmethod
    def required_not_null(cls, value):
        return not_null(value)

    @field_validator("expiry_date")
    @classmethod
    def validate_expiry(cls, value: Optional[date]) -> Optional[date]:
        return _future_date(value)

    @field_validator("languages")
    @classmethod
    def validate_languages(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_languages(value)


class ShoppingCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, SHOPPING_CATEGORIES, "shopping category")


class ShoppingUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        return not_null(value)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, SHOPPING_CATEGORIES, "shopping category")


class FoodAndBeverageCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    cuisine_type: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    vista_verified: bool = False

    @field_validator("cuisine_type")
    @classmethod
    def validate_cuisine(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, CUISINE_TYPES, "cuisine type")

    @field_validator("province")
    @classmethod
    def validate_province(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, PROVINCES, "province")


class FoodAndBeverageUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    cuisine_type: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        return not_null(value)

    @field_validator("cuisine_type")
    @classmethod
    def validate_cuisine(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, CUISINE_TYPES, "cuisine type")

    @field_validator("province")
    @classmethod
    def validate_province(cls, value: Optional[str]) -> Optional[str]:
        return _one_of(value, PROVINCES, "province")


class LocalArtistCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    specialization: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    city: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    vista_verified: bool = False


class LocalArtistUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    specialization: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    email: Optional[EmailStr] = None
    city: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        return not_null(value)


class RoomTypeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class RoomTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        return not_null(value)


class TransportTypeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class TransportTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value):
        return not_null(value)


class TransportCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    transport_type_id: int
    operator_name: str = Field(..., min_length=1, max_length=100)
    price_per_km_usd: Decimal = Field(..., ge=0)
    seat_count: int = Field(..., ge=1)
    phone: str = Field(..., min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    departure_city: str = Field(..., min_length=1, max_length=100)
    arrival_city: str = Field(..., min_length=1, max_length=100)
    latitude: Decimal = Field(..., ge=-90, le=90)
    longitude: Decimal = Field(..., ge=-180, le=180)
    is_active: bool = True
    vista_verified: bool = False

    @field_validator("title", "operator_name", "departure_city", "arrival_city")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _strip(value)


class TransportUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    transport_type_id: Optional[int] = None
    operator_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price_per_km_usd: Optional[Decimal] = Field(default=None, ge=0)
    seat_count: Optional[int] = Field(default=None, ge=1)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    departure_city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    arrival_city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    latitude: Optional[Decimal] = Field(default=None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(default=None, ge=-180, le=180)

    @field_validator(
        "title",
        "transport_type_id",
        "operator_name",
        "price_per_km_usd",
        "seat_count",
        "phone",
        "departure_city",
        "arrival_city",
        "latitude",
        "longitude",
        mode="before",
    )
    @classmethod
    def required_not_null(cls, value):
        return not_null(value)


class TransportAgencyCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    address: str = Field(..., min_length=10, max_length=255)
    service_area: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=50)
    district: Optional[str] = Field(default=None, max_length=50)
    province: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    is_active: bool = True
    vista_verified: bool = False

    @field_validator("title", "address", "service_area")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _strip(value)


class TransportAgencyUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, min_length=10, max_length=255)
    service_area: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=50)
    district: Optional[str] = Field(default=None, max_length=50)
    province: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None

    @field_validator("title", "address", "service_area", "phone", mode="before")
    @classmethod
    def required_not_null(cls, value):
        return not_null(value)


class ToggleFlagPayload(BaseModel):
    """Explicit value, or omitted to invert the current flag."""

    value: Optional[bool] = None


class VerifyPayload(BaseModel):
    verified: Optional[bool] = None


class ImageItem(BaseModel):
    id: Optional[int] = None
    image_url: Optional[str] = Field(default=None, max_length=1024)
    caption: Optional[str] = None
    sort_order: Optional[int] = Field(default=None, ge=0)
    is_featured: Optional[bool] = None


class ImageBatchPayload(BaseModel):
    images: List[ImageItem] = Field(..., min_length=1)
