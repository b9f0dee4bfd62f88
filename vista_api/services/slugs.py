from __future__ import annotations

import re
import unicodedata
from typing import Optional

from sqlalchemy.orm import Session

from vista_api.core.errors import Conflict, ValidationFailed

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_REMOVED_CHARACTERS = re.compile(r"[*+~.()'\"!:@]")
_SEPARATORS = re.compile(r"[^a-z0-9]+")


def normalize_slug(value: str) -> str:
    """Example: "Sunset Kayak Tour!!" becomes "sunset-kayak-tour"."""
    if not value:
        return ""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").strip().lower()
    ascii_text = _REMOVED_CHARACTERS.sub("", ascii_text)
    return _SEPARATORS.sub("-", ascii_text).strip("-")


def build_slug(source: str, explicit: Optional[str] = None) -> str:
    """Slug from an explicit value when given, else from the display field."""
    if explicit is not None and explicit.strip():
        slug = explicit.strip()
        if not SLUG_PATTERN.match(slug):
            raise ValidationFailed(
                "Slug may only contain lowercase letters, numbers and hyphens",
                errors=[{"field": "slug", "message": "Invalid slug format"}],
            )
        return slug

    slug = normalize_slug(source)
    if not slug:
        raise ValidationFailed(
            "Unable to derive a slug from the given name",
            errors=[{"field": "slug", "message": "Slug would be empty"}],
        )
    return slug


def slug_taken(db: Session, model, slug: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(model.id).filter(model.slug == slug, model.deleted_at.is_(None))
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return query.first() is not None


def ensure_slug_available(db: Session, model, slug: str, exclude_id: Optional[int] = None) -> None:
    if slug_taken(db, model, slug, exclude_id=exclude_id):
        raise Conflict(
            f"Slug '{slug}' is already in use",
            code="SLUG_CONFLICT",
            errors=[{"field": "slug", "message": "Slug already exists"}],
        )
