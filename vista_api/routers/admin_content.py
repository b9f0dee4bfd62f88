from fastapi import Depends, Request
from sqlalchemy.orm import Session

from vista_api.core.database import get_db
from vista_api.core.errors import Forbidden
from vista_api.deps import require_account_type
from vista_api.models.profiles import MerchantProfile
from vista_api.models.user import User
from vista_api.routers.content import ContentResource, build_content_router
from vista_api.schemas import content as schemas
from vista_api.schemas.serializers import guide_to_dict, languages_to_column
from vista_api.services import catalog
from vista_api.services.authorization_service import AuthorizationService


def room_type_guard(action: str):
    """Admins and merchants manage room types, except merchants that only run homestays."""

    def _dependency(
        request: Request,
        user: User = Depends(require_account_type(["admin", "merchant"])),
        db: Session = Depends(get_db),
    ) -> User:
        if user.account_type != "merchant":
            return user
        profile = (
            db.query(MerchantProfile)
            .filter(MerchantProfile.user_id == user.id, MerchantProfile.deleted_at.is_(None))
            .first()
        )
        if profile is None or profile.business_type == "homestay":
            AuthorizationService.log_access_denied(
                reason="room_type_business_type",
                user=user,
                request=request,
                detail=action,
            )
            raise Forbidden("Homestay merchants cannot manage room types", code="BUSINESS_TYPE_FORBIDDEN")
        return user

    return _dependency


CONTENT_RESOURCES = [
    ContentResource(
        lifecycle=catalog.activities,
        create_schema=schemas.ActivityCreate,
        update_schema=schemas.ActivityUpdate,
        prefix="/api/v1/admin/activities",
        tag="activities",
        permission_scope="activities",
    ),
    ContentResource(
        lifecycle=catalog.events,
        create_schema=schemas.EventCreate,
        update_schema=schemas.EventUpdate,
        prefix="/api/v1/admin/events",
        tag="events",
        permission_scope="events",
    ),
    ContentResource(
        lifecycle=catalog.guides,
        create_schema=schemas.GuideCreate,
        update_schema=schemas.GuideUpdate,
        prefix="/api/v1/admin/guides",
        tag="guides",
        permission_scope="guides",
        to_columns=languages_to_column,
        serialize=guide_to_dict,
    ),
    ContentResource(
        lifecycle=catalog.shopping,
        create_schema=schemas.ShoppingCreate,
        update_schema=schemas.ShoppingUpdate,
        prefix="/api/v1/admin/shopping",
        tag="shopping",
        permission_scope="shopping",
    ),
    ContentResource(
        lifecycle=catalog.food_and_beverages,
        create_schema=schemas.FoodAndBeverageCreate,
        update_schema=schemas.FoodAndBeverageUpdate,
        prefix="/api/v1/admin/food-and-beverages",
        tag="food-and-beverages",
        permission_scope="food_and_beverages",
    ),
    ContentResource(
        lifecycle=catalog.local_artists,
        create_schema=schemas.LocalArtistCreate,
        update_schema=schemas.LocalArtistUpdate,
        prefix="/api/v1/admin/local-artists",
        tag="local-artists",
        permission_scope="local_artists",
    ),
    ContentResource(
        lifecycle=catalog.room_types,
        create_schema=schemas.RoomTypeCreate,
        update_schema=schemas.RoomTypeUpdate,
        prefix="/api/v1/room-types",
        tag="room-types",
        guard=room_type_guard,
    ),
    ContentResource(
        lifecycle=catalog.transport_types,
        create_schema=schemas.TransportTypeCreate,
        update_schema=schemas.TransportTypeUpdate,
        prefix="/api/v1/admin/transport-types",
        tag="transport-types",
        permission_scope="transport_types",
    ),
    ContentResource(
        lifecycle=catalog.transports,
        create_schema=schemas.TransportCreate,
        update_schema=schemas.TransportUpdate,
        prefix="/api/v1/admin/transports",
        tag="transports",
        permission_scope="transports",
    ),
    ContentResource(
        lifecycle=catalog.transport_agencies,
        create_schema=schemas.TransportAgencyCreate,
        update_schema=schemas.TransportAgencyUpdate,
        prefix="/api/v1/admin/transport-agencies",
        tag="transport-agencies",
        permission_scope="transport_agencies",
    ),
]

routers = [build_content_router(resource) for resource in CONTENT_RESOURCES]
