from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from vista_api.core.database import Base
from vista_api.models.mixins import utcnow


class LoginAttempt(Base):
    __tablename__ = "login_attempts"
    __table_args__ = (
        UniqueConstraint("account_type", "email", name="uq_login_attempts_account_type_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # "any" for the unified login endpoint
    account_type = Column(String(20), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    failed_count = Column(Integer, nullable=False, default=0)
    first_failed_at = Column(DateTime, nullable=True)
    last_failed_at = Column(DateTime, nullable=True)
    locked_until = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
