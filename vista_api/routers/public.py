from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import NotFound
from vista_api.core.responses import build_pagination, success_response
from vista_api.routers.admin_content import CONTENT_RESOURCES
from vista_api.routers.content import read_filters
from vista_api.schemas.serializers import image_to_dict

router = APIRouter(prefix="/api/v1/customer/list", tags=["public"])

# path segment -> resource, taken from the admin prefixes
_PUBLIC_RESOURCES = {
    resource.prefix.rsplit("/", 1)[-1]: resource
    for resource in CONTENT_RESOURCES
    if resource.lifecycle.images is not None
}


def _resource_or_404(name: str):
    resource = _PUBLIC_RESOURCES.get(name)
    if resource is None:
        raise NotFound(f"Unknown listing '{name}'")
    return resource


def _public_criteria(model):
    return (model.is_active.is_(True),)


@router.get("/{resource_name}")
def list_public(
    resource_name: str,
    request: Request,
    page: int = 1,
    limit: int = 12,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    resource = _resource_or_404(resource_name)
    lifecycle = resource.lifecycle
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    filters = read_filters(request, lifecycle)
    filters.pop("is_active", None)
    rows, total = lifecycle.list(
        db,
        page=page,
        limit=limit,
        include_deleted=False,
        search=search,
        filters=filters,
        criteria=_public_criteria(lifecycle.model),
    )
    data = []
    for row in rows:
        item = resource.serialize(row)
        images = lifecycle.images.list(db, row.id)
        item["featured_image"] = image_to_dict(images[0]) if images else None
        data.append(item)
    return success_response(data=data, pagination=build_pagination(total, page, limit))


@router.get("/{resource_name}/{slug}")
def get_public(resource_name: str, slug: str, db: Session = Depends(get_db)):
    resource = _resource_or_404(resource_name)
    lifecycle = resource.lifecycle
    model = lifecycle.model
    entity = (
        lifecycle.query(db, include_deleted=False)
        .filter(model.slug == slug, *_public_criteria(model))
        .first()
    )
    if entity is None:
        raise NotFound(f"{lifecycle.label} not found")
    data = resource.serialize(entity)
    data["images"] = [image_to_dict(image) for image in lifecycle.images.list(db, entity.id)]
    return success_response(data=data)
