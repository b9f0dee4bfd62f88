from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from vista_api.core.errors import Conflict, NotFound, ValidationFailed
from vista_api.models.mixins import utcnow
from vista_api.services import storage
from vista_api.services.images import ImageSetManager
from vista_api.services.slugs import build_slug, ensure_slug_available

logger = logging.getLogger(__name__)

EXACT = "exact"
CONTAINS = "contains"


class EntityLifecycle:
    """Create / slug / soft-delete / restore contract for one content table.

    Every read takes ``include_deleted`` explicitly; nothing here relies on
    an implicit "live rows only" scope.
    """

    def __init__(
        self,
        model,
        *,
        display_field: str,
        label: str,
        images: Optional[ImageSetManager] = None,
        search_fields: Sequence[str] = (),
        filter_fields: Optional[Mapping[str, str]] = None,
        unique_fields: Optional[Mapping[str, str]] = None,
        references: Optional[Mapping[str, Tuple[Any, str]]] = None,
    ) -> None:
        self.model = model
        self.display_field = display_field
        self.label = label
        self.images = images
        self.search_fields = tuple(search_fields)
        self.filter_fields = dict(filter_fields or {})
        # column -> human label, unique among live rows like the slug
        self.unique_fields = dict(unique_fields or {})
        # column -> (target model, human label); the target must be a live row
        self.references = dict(references or {})

    @property
    def supports_verification(self) -> bool:
        return hasattr(self.model, "vista_verified")

    def query(self, db: Session, *, include_deleted: bool):
        query = db.query(self.model)
        if not include_deleted:
            query = query.filter(self.model.deleted_at.is_(None))
        return query

    def get(self, db: Session, entity_id: int, *, include_deleted: bool = False, criteria: Iterable[Any] = ()):
        entity = self.query(db, include_deleted=include_deleted).filter(self.model.id == entity_id, *criteria).first()
        if entity is None:
            suffix = " (including soft-deleted)" if include_deleted else ""
            raise NotFound(f"{self.label} not found{suffix}")
        return entity

    def list(
        self,
        db: Session,
        *,
        page: int = 1,
        limit: int = 10,
        include_deleted: bool = False,
        search: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        criteria: Iterable[Any] = (),
    ) -> Tuple[List[Any], int]:
        query = self.query(db, include_deleted=include_deleted).filter(*criteria)

        for field, value in (filters or {}).items():
            if value is None or field not in self.filter_fields:
                continue
            column = getattr(self.model, field)
            if self.filter_fields[field] == CONTAINS:
                query = query.filter(column.ilike(f"%{value}%"))
            else:
                query = query.filter(column == value)

        if search and self.search_fields:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(*(getattr(self.model, field).ilike(pattern) for field in self.search_fields)))

        total = query.count()
        rows = (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def _ensure_unique_fields(self, db: Session, values: Mapping[str, Any], exclude_id: Optional[int]) -> None:
        for field, field_label in self.unique_fields.items():
            value = values.get(field)
            if value is None:
                continue
            column = getattr(self.model, field)
            query = db.query(self.model.id).filter(column == value, self.model.deleted_at.is_(None))
            if exclude_id is not None:
                query = query.filter(self.model.id != exclude_id)
            if query.first() is not None:
                raise Conflict(
                    f"{field_label} already exists",
                    code="DUPLICATE_ENTRY",
                    errors=[{"field": field, "message": f"{field_label} already exists"}],
                )

    def _ensure_references(self, db: Session, values: Mapping[str, Any]) -> None:
        for field, (target, target_label) in self.references.items():
            value = values.get(field)
            if value is None:
                continue
            found = db.query(target.id).filter(target.id == value, target.deleted_at.is_(None)).first()
            if found is None:
                raise ValidationFailed(
                    f"{target_label} not found",
                    code="INVALID_REFERENCE",
                    errors=[{"field": field, "message": f"{target_label} not found"}],
                )

    def create(self, db: Session, data: Dict[str, Any]):
        values = dict(data)
        explicit_slug = values.pop("slug", None)
        slug = build_slug(values.get(self.display_field) or "", explicit_slug)
        ensure_slug_available(db, self.model, slug)
        self._ensure_unique_fields(db, values, exclude_id=None)
        self._ensure_references(db, values)

        entity = self.model(**values, slug=slug)
        db.add(entity)
        db.commit()
        db.refresh(entity)
        logger.info(
            "%s created id=%s slug=%s",
            self.label,
            entity.id,
            slug,
            extra={"entity": self.label, "entity_id": entity.id},
        )
        return entity

    def update(self, db: Session, entity, data: Dict[str, Any]):
        values = dict(data)
        explicit_slug = values.pop("slug", None)

        new_slug = entity.slug
        if explicit_slug:
            new_slug = build_slug("", explicit_slug)
        elif self.display_field in values and values[self.display_field] != getattr(entity, self.display_field):
            new_slug = build_slug(values[self.display_field] or "")

        if new_slug != entity.slug:
            ensure_slug_available(db, self.model, new_slug, exclude_id=entity.id)
        self._ensure_unique_fields(db, values, exclude_id=entity.id)
        self._ensure_references(db, values)

        for field, value in values.items():
            setattr(entity, field, value)
        entity.slug = new_slug
        db.commit()
        db.refresh(entity)
        logger.info("%s updated id=%s", self.label, entity.id, extra={"entity": self.label, "entity_id": entity.id})
        return entity

    def soft_delete(self, db: Session, entity) -> None:
        """Best-effort removal of stored images, then mark the row deleted.

        A storage failure is logged and the database delete proceeds.
        """
        if self.images is not None:
            keys = self.images.storage_keys(db, entity.id)
            try:
                if len(keys) == 1:
                    storage.delete_file(keys[0])
                elif keys:
                    storage.delete_files(keys)
            except RuntimeError:
                # StorageError or a misconfigured backend
                logger.warning(
                    "%s storage cleanup failed id=%s keys=%s",
                    self.label,
                    entity.id,
                    keys,
                    exc_info=True,
                    extra={"entity": self.label, "entity_id": entity.id},
                )
            for image in self.images.list(db, entity.id):
                db.delete(image)

        entity.deleted_at = utcnow()
        db.commit()
        logger.info("%s soft-deleted id=%s", self.label, entity.id, extra={"entity": self.label, "entity_id": entity.id})

    def restore(self, db: Session, entity_id: int):
        entity = self.get(db, entity_id, include_deleted=True)
        if entity.deleted_at is None:
            raise ValidationFailed(f"{self.label} is not deleted", code="NOT_DELETED")

        # a live row may have claimed the slug while this one was deleted
        ensure_slug_available(db, self.model, entity.slug, exclude_id=entity.id)
        self._ensure_unique_fields(
            db,
            {field: getattr(entity, field) for field in self.unique_fields},
            exclude_id=entity.id,
        )

        entity.deleted_at = None
        db.commit()
        db.refresh(entity)
        logger.info("%s restored id=%s", self.label, entity.id, extra={"entity": self.label, "entity_id": entity.id})
        return entity

    def toggle_active(self, db: Session, entity, value: Optional[bool] = None):
        entity.is_active = (not entity.is_active) if value is None else value
        db.commit()
        db.refresh(entity)
        return entity

    def verify(self, db: Session, entity, value: Optional[bool] = None):
        if not self.supports_verification:
            raise ValidationFailed(f"{self.label} does not support verification")
        entity.vista_verified = (not entity.vista_verified) if value is None else value
        db.commit()
        db.refresh(entity)
        return entity
