"""Reusable data and builders for backend test scenarios."""

from typing import Iterable, List, Optional

from passlib.hash import bcrypt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vista_api.core.database import Base, enable_sqlite_foreign_keys
from vista_api.core.errors import StorageError
from vista_api.models.profiles import AdminProfile, CustomerProfile, MerchantProfile
from vista_api.models.rbac import Permission, Role
from vista_api.models.user import User
from vista_api.services.auth import create_access_token
from vista_api.services.rbac import MERCHANT_PERMISSIONS
from vista_api.services.storage import StorageBackend, UploadPayload

import vista_api.models  # noqa: F401

DEFAULT_PASSWORD = "Secret123!"

HAPPY_PATH_ACTIVITY = {
    "title": "Sunset Kayak Tour",
    "type": "Water Activities",
    "city": "Bentota",
    "district": "Galle",
    "description": "Paddle through the mangroves at golden hour.",
}

HAPPY_PATH_GUIDE = {
    "name": "Nimal Perera",
    "languages": ["English", "Sinhala"],
    "licence_id": "LIC-001",
    "expiry_date": "2099-12-31",
    "region": "Kandy",
}

HAPPY_PATH_MERCHANT = {
    "email": "stay@example.com",
    "password": DEFAULT_PASSWORD,
    "merchant_name": "Hill Stays",
    "business_name": "Hill Stays (Pvt) Ltd",
    "business_registration_number": "PV-1001",
    "business_type": "homestay",
    "is_sri_lankan": True,
    "nic_number": "199012345678",
    "city": "Ella",
    "country": "Sri Lanka",
}


def build_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def _fast_hash(password: str) -> str:
    return bcrypt.using(rounds=4).hash(password)


def grant_permissions(db: Session, names: Iterable[str], user_type: str = "admin") -> Role:
    permissions: List[Permission] = []
    for name in names:
        permission = db.query(Permission).filter(Permission.name == name).first()
        if permission is None:
            permission = Permission(category=name.split(".")[0], name=name, user_type=user_type)
            db.add(permission)
        permissions.append(permission)
    role = Role(name=f"role-{db.query(Role).count() + 1}", user_type=user_type)
    role.permissions = permissions
    db.add(role)
    db.flush()
    return role


def make_user(
    db: Session,
    *,
    email: str,
    account_type: str = "admin",
    password: str = DEFAULT_PASSWORD,
    permissions: Optional[Iterable[str]] = None,
    is_super_admin: bool = False,
    is_active: bool = True,
    merchant_status: str = "active",
    business_type: str = "homestay",
    max_properties_allowed: int = 1,
) -> User:
    user = User(
        email=email,
        password_hash=_fast_hash(password),
        account_type=account_type,
        is_active=is_active,
        is_super_admin=is_super_admin,
    )
    if permissions is None:
        # merchants get what registration hands out
        permissions = MERCHANT_PERMISSIONS if account_type == "merchant" else ()
    permissions = list(permissions)
    if permissions:
        role_type = "merchant" if account_type == "merchant" else "admin"
        user.roles = [grant_permissions(db, permissions, role_type)]
    db.add(user)
    db.flush()

    if account_type == "admin":
        db.add(AdminProfile(user_id=user.id, full_name="Test Admin"))
    elif account_type == "merchant":
        db.add(
            MerchantProfile(
                user_id=user.id,
                merchant_name=f"Merchant {user.id}",
                business_name=f"Business {user.id}",
                business_registration_number=f"BR-{user.id}",
                business_type=business_type,
                nic_number="199012345678",
                status=merchant_status,
                max_properties_allowed=max_properties_allowed,
            )
        )
    else:
        db.add(CustomerProfile(user_id=user.id, first_name="Test", last_name="Customer"))
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User, expires_minutes: Optional[int] = None) -> dict:
    token = create_access_token(user.id, user.email, user.account_type, expires_minutes=expires_minutes)
    return {"Authorization": f"Bearer {token}"}


class FakeStorage(StorageBackend):
    """Keeps objects in a dict; ``fail_deletes`` simulates an unreachable bucket."""

    def __init__(self, fail_deletes: bool = False) -> None:
        self.objects: dict = {}
        self.deleted: list = []
        self.fail_deletes = fail_deletes

    def put(self, key: str, payload: UploadPayload) -> str:
        self.objects[key] = payload.data
        return f"https://cdn.example.com/{key}"

    def delete(self, key: str) -> None:
        if self.fail_deletes:
            raise StorageError(f"Failed to delete {key}")
        self.objects.pop(key, None)
        self.deleted.append(key)

    def delete_many(self, keys: List[str]) -> None:
        if self.fail_deletes:
            raise StorageError(f"Failed to delete {len(keys)} objects")
        for key in keys:
            self.objects.pop(key, None)
            self.deleted.append(key)
