from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import declared_attr


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class ContentMixin(TimestampMixin, SoftDeleteMixin):
    """Columns shared by every sluggable, soft-deletable listing."""

    id = Column(Integer, primary_key=True, index=True)
    # Unique among live rows only; services.lifecycle reports the friendly error first
    slug = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    @declared_attr
    def __table_args__(cls):
        live = text("deleted_at IS NULL")
        return (
            Index(
                f"uq_{cls.__tablename__}_live_slug",
                "slug",
                unique=True,
                sqlite_where=live,
                postgresql_where=live,
            ),
        )


class ImageColumnsMixin:
    id = Column(Integer, primary_key=True, index=True)
    image_url = Column(String(1024), nullable=False)
    storage_key = Column(String(512), nullable=True)
    file_name = Column(String(255), nullable=True)
    size = Column(Integer, nullable=True)
    mimetype = Column(String(100), nullable=True)
    caption = Column(Text, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
