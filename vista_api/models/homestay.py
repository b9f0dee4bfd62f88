from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from vista_api.core.database import Base
from vista_api.models.mixins import ContentMixin, ImageColumnsMixin, SoftDeleteMixin, TimestampMixin

UNIT_TYPES = ("entire_home", "private_room", "shared_room", "guest_suite", "villa", "cottage", "other")
AVAILABILITY_STATUSES = ("available", "unavailable", "maintenance", "archived")
APPROVAL_STATUSES = ("pending", "approved", "rejected", "changes_requested")


class Homestay(ContentMixin, Base):
    __tablename__ = "homestays"

    merchant_id = Column(Integer, ForeignKey("merchant_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit_type = Column(String(30), nullable=False, default="entire_home")
    max_guests = Column(Integer, nullable=False, default=1)
    bedroom_count = Column(Integer, nullable=False, default=1)
    bathroom_count = Column(Integer, nullable=False, default=1)
    city = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    base_price = Column(Numeric(10, 2), nullable=True)
    cleaning_fee = Column(Numeric(10, 2), nullable=True)
    minimum_stay = Column(Integer, nullable=False, default=1)
    smoking_allowed = Column(Boolean, nullable=False, default=False)
    pets_allowed = Column(Boolean, nullable=False, default=False)
    vista_verified = Column(Boolean, nullable=False, default=False)
    availability_status = Column(String(20), nullable=False, default="available")
    approval_status = Column(String(20), nullable=False, default="pending", index=True)
    rejection_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    last_status_change = Column(DateTime, nullable=True)

    merchant = relationship("MerchantProfile", back_populates="homestays")
    images = relationship(
        "HomestayImage",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HomestayImage.sort_order",
    )
    settings = relationship("PropertySetting", uselist=False, back_populates="homestay", passive_deletes=True)


class HomestayImage(ImageColumnsMixin, Base):
    __tablename__ = "homestay_images"

    homestay_id = Column(Integer, ForeignKey("homestays.id", ondelete="CASCADE"), nullable=False, index=True)


class PropertySetting(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "property_settings"

    id = Column(Integer, primary_key=True, index=True)
    homestay_id = Column(Integer, ForeignKey("homestays.id", ondelete="CASCADE"), nullable=False, unique=True)
    max_units = Column(Integer, nullable=False, default=1)
    current_units = Column(Integer, nullable=False, default=0)
    min_stay_duration = Column(Integer, nullable=False, default=1)
    max_stay_duration = Column(Integer, nullable=True)
    advance_booking_period = Column(Integer, nullable=False, default=365)
    cancellation_window = Column(Integer, nullable=False, default=24)
    dynamic_pricing_enabled = Column(Boolean, nullable=False, default=False)
    seasonal_pricing_enabled = Column(Boolean, nullable=False, default=False)
    new_booking_alert = Column(Boolean, nullable=False, default=True)
    maintenance_alerts = Column(Boolean, nullable=False, default=True)
    check_in_buffer = Column(Integer, nullable=False, default=0)
    auto_approve_bookings = Column(Boolean, nullable=False, default=False)

    homestay = relationship("Homestay", back_populates="settings")
