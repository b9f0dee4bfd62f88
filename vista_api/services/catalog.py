"""Lifecycle and image managers for every content table, built once at import."""

from vista_api.models.content import (
    Activity,
    ActivityImage,
    Event,
    EventImage,
    FoodAndBeverage,
    FoodAndBeverageImage,
    Guide,
    GuideImage,
    LocalArtist,
    LocalArtistImage,
    RoomType,
    Shopping,
    ShoppingImage,
    Transport,
    TransportAgency,
    TransportAgencyImage,
    TransportImage,
    TransportType,
)
from vista_api.models.homestay import Homestay, HomestayImage
from vista_api.services.images import ImageSetManager
from vista_api.services.lifecycle import CONTAINS, EXACT, EntityLifecycle

activity_images = ImageSetManager(ActivityImage, "activity_id", folder="activities", owner_label="activity")
event_images = ImageSetManager(EventImage, "event_id", folder="events", owner_label="event")
guide_images = ImageSetManager(GuideImage, "guide_id", folder="guides", owner_label="guide")
shopping_images = ImageSetManager(ShoppingImage, "shopping_id", folder="shopping", owner_label="shopping")
food_and_beverage_images = ImageSetManager(
    FoodAndBeverageImage, "food_and_beverage_id", folder="food-and-beverages", owner_label="food and beverage"
)
local_artist_images = ImageSetManager(
    LocalArtistImage, "local_artist_id", folder="local-artists", owner_label="local artist"
)
transport_images = ImageSetManager(TransportImage, "transport_id", folder="transports", owner_label="transport")
transport_agency_images = ImageSetManager(
    TransportAgencyImage, "transport_agency_id", folder="transport-agencies", owner_label="transport agency"
)
homestay_images = ImageSetManager(HomestayImage, "homestay_id", folder="homestays", owner_label="homestay")

activities = EntityLifecycle(
    Activity,
    display_field="title",
    label="Activity",
    images=activity_images,
    search_fields=("title", "description", "city", "district"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "type": EXACT,
        "city": CONTAINS,
        "district": CONTAINS,
    },
)

events = EntityLifecycle(
    Event,
    display_field="title",
    label="Event",
    images=event_images,
    search_fields=("title", "description", "venue", "city"),
    filter_fields={"is_active": EXACT, "city": CONTAINS, "province": CONTAINS, "event_date": EXACT},
)

guides = EntityLifecycle(
    Guide,
    display_field="name",
    label="Guide",
    images=guide_images,
    search_fields=("name", "bio", "region", "specialties", "languages"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "region": CONTAINS,
        "languages": CONTAINS,
    },
    unique_fields={"licence_id": "Licence ID"},
)

shopping = EntityLifecycle(
    Shopping,
    display_field="name",
    label="Shopping",
    images=shopping_images,
    search_fields=("name", "description", "city"),
    filter_fields={"is_active": EXACT, "category": EXACT, "city": CONTAINS, "province": CONTAINS},
)

food_and_beverages = EntityLifecycle(
    FoodAndBeverage,
    display_field="name",
    label="Food and beverage",
    images=food_and_beverage_images,
    search_fields=("name", "description", "city"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "cuisine_type": EXACT,
        "province": EXACT,
        "city": CONTAINS,
    },
)

local_artists = EntityLifecycle(
    LocalArtist,
    display_field="name",
    label="Local artist",
    images=local_artist_images,
    search_fields=("name", "specialization", "description", "city"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "city": CONTAINS,
        "province": CONTAINS,
        "district": CONTAINS,
    },
)

room_types = EntityLifecycle(
    RoomType,
    display_field="name",
    label="Room type",
    search_fields=("name", "description"),
    filter_fields={"is_active": EXACT},
)

transport_types = EntityLifecycle(
    TransportType,
    display_field="name",
    label="Transport type",
    search_fields=("name", "description"),
    filter_fields={"is_active": EXACT},
)

transports = EntityLifecycle(
    Transport,
    display_field="title",
    label="Transport",
    images=transport_images,
    search_fields=("title", "operator_name", "description", "departure_city", "arrival_city"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "transport_type_id": EXACT,
        "departure_city": CONTAINS,
        "arrival_city": CONTAINS,
    },
    references={"transport_type_id": (TransportType, "Transport type")},
)

transport_agencies = EntityLifecycle(
    TransportAgency,
    display_field="title",
    label="Transport agency",
    images=transport_agency_images,
    search_fields=("title", "service_area", "description", "city"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "city": CONTAINS,
        "district": CONTAINS,
        "province": CONTAINS,
    },
)

homestays = EntityLifecycle(
    Homestay,
    display_field="name",
    label="Homestay",
    images=homestay_images,
    search_fields=("name", "description", "city"),
    filter_fields={
        "is_active": EXACT,
        "vista_verified": EXACT,
        "approval_status": EXACT,
        "availability_status": EXACT,
        "unit_type": EXACT,
        "city": CONTAINS,
        "merchant_id": EXACT,
    },
)
