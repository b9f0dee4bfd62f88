from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vista_api.core.database import Base
from vista_api.models.mixins import SoftDeleteMixin, TimestampMixin

BUSINESS_TYPES = ("hotel_and_appartment", "homestay", "both", "other")
MERCHANT_STATUSES = ("pending", "active", "inactive", "suspended", "rejected")


class AdminProfile(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "admin_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    full_name = Column(String(150), nullable=False)
    mobile_number = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="admin_profile")


class MerchantProfile(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "merchant_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    merchant_name = Column(String(150), nullable=False)
    business_name = Column(String(200), nullable=False)
    business_registration_number = Column(String(100), nullable=False, unique=True)
    business_type = Column(String(30), nullable=False)
    allowed_property_types = Column(JSON, nullable=True)
    business_description = Column(Text, nullable=True)
    is_sri_lankan = Column(Boolean, nullable=False, default=True)
    nic_number = Column(String(20), nullable=True)
    passport_number = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    phone_number = Column(String(30), nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    max_properties_allowed = Column(Integer, nullable=False, default=1)

    user = relationship("User", back_populates="merchant_profile")
    homestays = relationship("Homestay", back_populates="merchant")


class CustomerProfile(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "customer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    mobile_number = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="customer_profile")
