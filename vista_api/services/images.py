from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from vista_api.core.errors import NotFound, StorageError, ValidationFailed
from vista_api.services import storage
from vista_api.services.storage import UploadPayload

logger = logging.getLogger(__name__)

# storage_key and file metadata only ever come from server-side uploads
_UPDATABLE_FIELDS = ("image_url", "caption", "sort_order")
_STORED_FILE_FIELDS = ("storage_key", "file_name", "size", "mimetype")


class ImageSetManager:
    """Ordered image list owned by one row of a content table.

    One instance per image table; ``owner_field`` names the foreign key
    column pointing at the owning entity (``guide_id``, ``activity_id``...).
    """

    def __init__(self, image_model, owner_field: str, *, folder: str, owner_label: str) -> None:
        self.image_model = image_model
        self.owner_field = owner_field
        self.owner_column = getattr(image_model, owner_field)
        self.folder = folder
        self.owner_label = owner_label

    def _query(self, db: Session, owner_id: int):
        return db.query(self.image_model).filter(self.owner_column == owner_id)

    def list(self, db: Session, owner_id: int) -> List[Any]:
        return (
            self._query(db, owner_id)
            .order_by(
                self.image_model.is_featured.desc(),
                self.image_model.sort_order.asc(),
                self.image_model.id.asc(),
            )
            .all()
        )

    def get(self, db: Session, owner_id: int, image_id: int):
        image = self._query(db, owner_id).filter(self.image_model.id == image_id).first()
        if image is None:
            raise NotFound(f"Image not found for this {self.owner_label}", code="IMAGE_NOT_FOUND")
        return image

    def storage_keys(self, db: Session, owner_id: int) -> List[str]:
        rows = (
            db.query(self.image_model.storage_key)
            .filter(self.owner_column == owner_id, self.image_model.storage_key.isnot(None))
            .all()
        )
        return [row[0] for row in rows if row[0]]

    def _next_sort_order(self, db: Session, owner_id: int) -> int:
        current = db.query(func.max(self.image_model.sort_order)).filter(self.owner_column == owner_id).scalar()
        return 0 if current is None else int(current) + 1

    def add(
        self,
        db: Session,
        owner_id: int,
        uploads: Sequence[UploadPayload],
        captions: Optional[Sequence[Optional[str]]] = None,
    ) -> List[Any]:
        """Upload every file, then insert all rows in one commit."""
        if not uploads:
            return []

        stored = []
        try:
            for upload in uploads:
                stored.append(storage.upload_file(upload, self.folder, owner_id))
        except StorageError:
            # objects that made it to storage would be orphaned without a row
            self._discard_uploaded([item.key for item in stored])
            raise

        sort_order = self._next_sort_order(db, owner_id)
        rows = []
        for index, item in enumerate(stored):
            caption = captions[index] if captions and index < len(captions) else None
            rows.append(
                self.image_model(
                    **{self.owner_field: owner_id},
                    image_url=item.url,
                    storage_key=item.key,
                    file_name=item.file_name,
                    size=item.size,
                    mimetype=item.mimetype,
                    caption=caption,
                    is_featured=False,
                    sort_order=sort_order + index,
                )
            )
        try:
            db.add_all(rows)
            db.commit()
        except Exception:
            db.rollback()
            self._discard_uploaded([item.key for item in stored])
            raise

        logger.info(
            "images added owner=%s owner_id=%s count=%s",
            self.owner_label,
            owner_id,
            len(rows),
            extra={"entity": self.owner_label, "entity_id": owner_id},
        )
        return self.list(db, owner_id)

    def update(self, db: Session, owner_id: int, items: Iterable[Dict[str, Any]]) -> List[Any]:
        """Update rows that carry an ``id``, append the others; all or nothing."""
        featured_id: Optional[int] = None
        pending_featured: List[Any] = []
        replaced_keys: List[str] = []
        try:
            next_sort_order = self._next_sort_order(db, owner_id)
            for item in items:
                image_id = item.get("id")
                if image_id is not None:
                    image = self.get(db, owner_id, image_id)
                    new_url = item.get("image_url")
                    if new_url and new_url != image.image_url and image.storage_key:
                        # the row now points elsewhere; its stored object goes
                        replaced_keys.append(image.storage_key)
                        for field in _STORED_FILE_FIELDS:
                            setattr(image, field, None)
                    for field in _UPDATABLE_FIELDS:
                        if field in item and item[field] is not None:
                            setattr(image, field, item[field])
                else:
                    if not item.get("image_url"):
                        raise ValidationFailed(
                            "image_url is required for new images",
                            errors=[{"field": "image_url", "message": "Required when id is absent"}],
                        )
                    values = {field: item.get(field) for field in _UPDATABLE_FIELDS}
                    if values["sort_order"] is None:
                        values["sort_order"] = next_sort_order
                        next_sort_order += 1
                    image = self.image_model(**{self.owner_field: owner_id}, is_featured=False, **values)
                    db.add(image)
                if item.get("is_featured"):
                    pending_featured.append(image)

            if pending_featured:
                db.flush()
                # the last flagged image wins
                featured_id = pending_featured[-1].id
                self._apply_featured(db, owner_id, featured_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        self._discard_uploaded(replaced_keys)
        logger.info(
            "images updated owner=%s owner_id=%s featured_id=%s",
            self.owner_label,
            owner_id,
            featured_id,
            extra={"entity": self.owner_label, "entity_id": owner_id},
        )
        return self.list(db, owner_id)

    def delete(self, db: Session, owner_id: int, image_id: int) -> None:
        image = self.get(db, owner_id, image_id)
        if image.storage_key:
            storage.delete_file(image.storage_key)
        db.delete(image)
        db.commit()
        logger.info(
            "image deleted owner=%s owner_id=%s image_id=%s",
            self.owner_label,
            owner_id,
            image_id,
            extra={"entity": self.owner_label, "entity_id": owner_id},
        )

    def _apply_featured(self, db: Session, owner_id: int, image_id: int) -> None:
        # single statement: the target becomes featured and every sibling is cleared
        self._query(db, owner_id).update(
            {self.image_model.is_featured: case((self.image_model.id == image_id, True), else_=False)},
            synchronize_session=False,
        )

    def set_featured(self, db: Session, owner_id: int, image_id: int) -> List[Any]:
        try:
            self.get(db, owner_id, image_id)
            self._apply_featured(db, owner_id, image_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.expire_all()
        return self.list(db, owner_id)

    def _discard_uploaded(self, keys: List[str]) -> None:
        if not keys:
            return
        try:
            storage.delete_files(keys)
        except StorageError:
            logger.exception("failed to discard uploaded objects keys=%s", keys)
