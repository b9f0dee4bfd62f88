from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from vista_api.core.database import Base
from vista_api.models.mixins import SoftDeleteMixin, TimestampMixin
from vista_api.models.rbac import user_roles

ACCOUNT_TYPES = ("admin", "merchant", "customer")


class User(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Never serialized; see schemas.serializers.user_to_dict
    password_hash = Column(String(255), nullable=False)
    account_type = Column(String(20), nullable=False, default="customer", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_super_admin = Column(Boolean, nullable=False, default=False)
    last_password_change = Column(DateTime, nullable=True)

    roles = relationship("Role", secondary=user_roles, back_populates="users")
    admin_profile = relationship(
        "AdminProfile", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    merchant_profile = relationship(
        "MerchantProfile", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    customer_profile = relationship(
        "CustomerProfile", uselist=False, back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def profile(self):
        return {
            "admin": self.admin_profile,
            "merchant": self.merchant_profile,
            "customer": self.customer_profile,
        }.get(self.account_type)
