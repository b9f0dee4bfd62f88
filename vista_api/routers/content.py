from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from vista_api.core import config
from vista_api.core.database import get_db
from vista_api.core.errors import ValidationFailed
from vista_api.core.responses import build_pagination, success_response
from vista_api.deps import require_permissions
from vista_api.schemas.content import ImageBatchPayload, ToggleFlagPayload, VerifyPayload
from vista_api.schemas.serializers import image_to_dict, model_to_dict
from vista_api.services.lifecycle import EntityLifecycle
from vista_api.services.storage import read_image_upload

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _identity(values: Dict[str, Any]) -> Dict[str, Any]:
    return values


@dataclass
class ContentResource:
    """Everything the generic router needs to expose one content table."""

    lifecycle: EntityLifecycle
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    prefix: str
    tag: str
    permission_scope: Optional[str] = None
    guard: Optional[Callable[[str], Any]] = None
    to_columns: Callable[[Dict[str, Any]], Dict[str, Any]] = _identity
    serialize: Callable[[Any], Dict[str, Any]] = model_to_dict
    # (caller) -> extra filters restricting rows to what the caller owns
    owner_criteria: Optional[Callable[[Any], tuple]] = None
    # (db, caller, column values) -> None, may mutate values or raise
    before_create: Optional[Callable[[Session, Any, Dict[str, Any]], None]] = None
    # (db, caller, soft-deleted row) -> None, raises to refuse the restore
    before_restore: Optional[Callable[[Session, Any, Any], None]] = None
    verifiable: bool = True
    extra_dependencies: List[Any] = field(default_factory=list)

    def dependency(self, action: str):
        """Gate for one action: the custom guard, else the `{scope}.{action}` permission."""
        if self.guard is not None:
            return self.guard(action)
        return require_permissions([f"{self.permission_scope}.{action}"])

    def criteria(self, caller) -> tuple:
        if self.owner_criteria is None:
            return ()
        return self.owner_criteria(caller)


def coerce_filter_value(column, raw: str) -> Any:
    """Turn a query string value into the column's Python type."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw

    try:
        if python_type is bool:
            lowered = raw.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(raw)
        if python_type is date:
            return date.fromisoformat(raw)
        if python_type is int:
            return int(raw)
    except ValueError as exc:
        raise ValidationFailed(
            f"Invalid value for {column.key}",
            errors=[{"field": column.key, "message": f"Invalid value '{raw}'"}],
        ) from exc
    return raw


def read_filters(request: Request, lifecycle: EntityLifecycle) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    for name in lifecycle.filter_fields:
        raw = request.query_params.get(name)
        if raw is None or raw == "":
            continue
        filters[name] = coerce_filter_value(getattr(lifecycle.model, name).property.columns[0], raw)
    return filters


def serialize_with_images(resource: ContentResource, db: Session, entity, include_images: bool) -> Dict[str, Any]:
    data = resource.serialize(entity)
    images = resource.lifecycle.images
    if include_images and images is not None:
        data["images"] = [image_to_dict(image) for image in images.list(db, entity.id)]
    return data


def build_content_router(resource: ContentResource) -> APIRouter:
    lifecycle = resource.lifecycle
    label = lifecycle.label
    router = APIRouter(prefix=resource.prefix, tags=[resource.tag], dependencies=resource.extra_dependencies)

    create_schema = resource.create_schema
    update_schema = resource.update_schema

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_entity(
        payload: create_schema,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("create")),
    ):
        values = resource.to_columns(payload.model_dump())
        if hasattr(lifecycle.model, "created_by"):
            values["created_by"] = user.id
        if resource.before_create is not None:
            resource.before_create(db, user, values)
        entity = lifecycle.create(db, values)
        return success_response(
            data=serialize_with_images(resource, db, entity, include_images=True),
            message=f"{label} created successfully",
        )

    @router.get("")
    def list_entities(
        request: Request,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        include_deleted: bool = False,
        include_images: bool = False,
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("read")),
    ):
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        rows, total = lifecycle.list(
            db,
            page=page,
            limit=limit,
            include_deleted=include_deleted,
            search=search,
            filters=read_filters(request, lifecycle),
            criteria=resource.criteria(user),
        )
        return success_response(
            data=[serialize_with_images(resource, db, row, include_images) for row in rows],
            pagination=build_pagination(total, page, limit),
        )

    @router.get("/{entity_id}")
    def get_entity(
        entity_id: int,
        include_deleted: bool = False,
        include_images: bool = True,
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("read")),
    ):
        entity = lifecycle.get(db, entity_id, include_deleted=include_deleted, criteria=resource.criteria(user))
        return success_response(data=serialize_with_images(resource, db, entity, include_images))

    @router.put("/{entity_id}")
    def update_entity(
        entity_id: int,
        payload: update_schema,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("update")),
    ):
        entity = lifecycle.get(db, entity_id, criteria=resource.criteria(user))
        values = resource.to_columns(payload.model_dump(exclude_unset=True))
        entity = lifecycle.update(db, entity, values)
        return success_response(
            data=serialize_with_images(resource, db, entity, include_images=True),
            message=f"{label} updated successfully",
        )

    @router.delete("/{entity_id}")
    def delete_entity(
        entity_id: int,
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("delete")),
    ):
        entity = lifecycle.get(db, entity_id, criteria=resource.criteria(user))
        lifecycle.soft_delete(db, entity)
        return success_response(message=f"{label} deleted successfully")

    @router.patch("/restore/{entity_id}")
    def restore_entity(
        entity_id: int,
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("delete")),
    ):
        entity = lifecycle.get(db, entity_id, include_deleted=True, criteria=resource.criteria(user))
        if resource.before_restore is not None and entity.deleted_at is not None:
            resource.before_restore(db, user, entity)
        entity = lifecycle.restore(db, entity_id)
        return success_response(
            data=serialize_with_images(resource, db, entity, include_images=True),
            message=f"{label} restored successfully",
        )

    @router.patch("/status/{entity_id}")
    def toggle_entity_status(
        entity_id: int,
        payload: Optional[ToggleFlagPayload] = Body(default=None),
        db: Session = Depends(get_db),
        user=Depends(resource.dependency("update")),
    ):
        entity = lifecycle.get(db, entity_id, criteria=resource.criteria(user))
        entity = lifecycle.toggle_active(db, entity, payload.value if payload else None)
        state = "activated" if entity.is_active else "deactivated"
        return success_response(data=resource.serialize(entity), message=f"{label} {state} successfully")

    if lifecycle.supports_verification and resource.verifiable:

        @router.patch("/{entity_id}/verify")
        def verify_entity(
            entity_id: int,
            payload: Optional[VerifyPayload] = Body(default=None),
            db: Session = Depends(get_db),
            user=Depends(resource.dependency("verify")),
        ):
            entity = lifecycle.get(db, entity_id, criteria=resource.criteria(user))
            entity = lifecycle.verify(db, entity, payload.verified if payload else None)
            state = "verified" if entity.vista_verified else "unverified"
            return success_response(data=resource.serialize(entity), message=f"{label} {state} successfully")

    if lifecycle.images is not None:
        images = lifecycle.images

        @router.post("/{entity_id}/images", status_code=status.HTTP_201_CREATED)
        def upload_entity_images(
            entity_id: int,
            files: List[UploadFile] = File(..., alias="images"),
            captions: Optional[List[str]] = Form(default=None),
            db: Session = Depends(get_db),
            user=Depends(resource.dependency("update")),
        ):
            lifecycle.get(db, entity_id, criteria=resource.criteria(user))
            if len(files) > config.MAX_UPLOAD_FILES:
                raise ValidationFailed(f"At most {config.MAX_UPLOAD_FILES} images per request")
            uploads = [read_image_upload(upload) for upload in files]
            rows = images.add(db, entity_id, uploads, captions)
            return success_response(
                data=[image_to_dict(row) for row in rows],
                message="Images uploaded successfully",
            )

        @router.api_route("/{entity_id}/images", methods=["PUT", "PATCH"])
        def update_entity_images(
            entity_id: int,
            payload: ImageBatchPayload,
            db: Session = Depends(get_db),
            user=Depends(resource.dependency("update")),
        ):
            lifecycle.get(db, entity_id, criteria=resource.criteria(user))
            items = [item.model_dump(exclude_unset=True) for item in payload.images]
            rows = images.update(db, entity_id, items)
            return success_response(
                data=[image_to_dict(row) for row in rows],
                message="Images updated successfully",
            )

        @router.delete("/{entity_id}/images/{image_id}")
        def delete_entity_image(
            entity_id: int,
            image_id: int,
            db: Session = Depends(get_db),
            user=Depends(resource.dependency("update")),
        ):
            lifecycle.get(db, entity_id, criteria=resource.criteria(user))
            images.delete(db, entity_id, image_id)
            return success_response(message="Image deleted successfully")

        @router.patch("/{entity_id}/images/{image_id}/featured")
        def set_entity_featured_image(
            entity_id: int,
            image_id: int,
            db: Session = Depends(get_db),
            user=Depends(resource.dependency("update")),
        ):
            lifecycle.get(db, entity_id, criteria=resource.criteria(user))
            rows = images.set_featured(db, entity_id, image_id)
            return success_response(
                data=[image_to_dict(row) for row in rows],
                message="Featured image updated successfully",
            )

    return router
