from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from vista_api.core.database import Base
from vista_api.models.mixins import ContentMixin, ImageColumnsMixin


def _images(target: str):
    return relationship(
        target,
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=f"{target}.sort_order",
    )


class Activity(ContentMixin, Base):
    __tablename__ = "activities"

    title = Column(String(255), nullable=False)
    pricerange = Column(String(100), nullable=True)
    type = Column(String(50), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    district = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("ActivityImage")


class ActivityImage(ImageColumnsMixin, Base):
    __tablename__ = "activity_images"

    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)


class Event(ContentMixin, Base):
    __tablename__ = "events"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    venue = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    event_date = Column(Date, nullable=True)
    event_time = Column(String(20), nullable=True)
    duration = Column(String(50), nullable=True)
    organizer_name = Column(String(150), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    website = Column(String(255), nullable=True)

    images = _images("EventImage")


class EventImage(ImageColumnsMixin, Base):
    __tablename__ = "event_images"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)


class Guide(ContentMixin, Base):
    __tablename__ = "guides"

    name = Column(String(150), nullable=False)
    bio = Column(Text, nullable=True)
    # comma separated, exposed as a list by the guide serializer
    languages = Column(String(255), nullable=True)
    licence_id = Column(String(100), nullable=False, index=True)
    expiry_date = Column(Date, nullable=False)
    experience = Column(Integer, nullable=True)
    region = Column(String(100), nullable=True)
    specialties = Column(Text, nullable=True)
    rate_per_day_amount = Column(Numeric(10, 2), nullable=True)
    rate_per_day_currency = Column(String(3), nullable=True, default="LKR")
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("GuideImage")


class GuideImage(ImageColumnsMixin, Base):
    __tablename__ = "guide_images"

    guide_id = Column(Integer, ForeignKey("guides.id", ondelete="CASCADE"), nullable=False, index=True)


class Shopping(ContentMixin, Base):
    __tablename__ = "shoppings"

    name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    images = _images("ShoppingImage")


class ShoppingImage(ImageColumnsMixin, Base):
    __tablename__ = "shopping_images"

    shopping_id = Column(Integer, ForeignKey("shoppings.id", ondelete="CASCADE"), nullable=False, index=True)


class FoodAndBeverage(ContentMixin, Base):
    __tablename__ = "food_and_beverages"

    name = Column(String(255), nullable=False)
    cuisine_type = Column(String(50), nullable=True)
    province = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("FoodAndBeverageImage")


class FoodAndBeverageImage(ImageColumnsMixin, Base):
    __tablename__ = "food_and_beverage_images"

    food_and_beverage_id = Column(
        Integer, ForeignKey("food_and_beverages.id", ondelete="CASCADE"), nullable=False, index=True
    )


class LocalArtist(ContentMixin, Base):
    __tablename__ = "local_artists"

    name = Column(String(255), nullable=False)
    specialization = Column(String(150), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    district = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("LocalArtistImage")


class LocalArtistImage(ImageColumnsMixin, Base):
    __tablename__ = "local_artist_images"

    local_artist_id = Column(Integer, ForeignKey("local_artists.id", ondelete="CASCADE"), nullable=False, index=True)


class RoomType(ContentMixin, Base):
    __tablename__ = "room_types"

    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class TransportType(ContentMixin, Base):
    __tablename__ = "transport_types"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)


class Transport(ContentMixin, Base):
    __tablename__ = "transports"

    title = Column(String(100), nullable=False)
    transport_type_id = Column(Integer, ForeignKey("transport_types.id"), nullable=False, index=True)
    operator_name = Column(String(100), nullable=False)
    price_per_km_usd = Column(Numeric(10, 2), nullable=False)
    seat_count = Column(Integer, nullable=False)
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    departure_city = Column(String(100), nullable=False)
    arrival_city = Column(String(100), nullable=False)
    latitude = Column(Numeric(9, 6), nullable=False)
    longitude = Column(Numeric(9, 6), nullable=False)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("TransportImage")


class TransportImage(ImageColumnsMixin, Base):
    __tablename__ = "transport_images"

    transport_id = Column(Integer, ForeignKey("transports.id", ondelete="CASCADE"), nullable=False, index=True)


class TransportAgency(ContentMixin, Base):
    __tablename__ = "transport_agencies"

    title = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    service_area = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    city = Column(String(50), nullable=True)
    district = Column(String(50), nullable=True)
    province = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    vista_verified = Column(Boolean, nullable=False, default=False)

    images = _images("TransportAgencyImage")


class TransportAgencyImage(ImageColumnsMixin, Base):
    __tablename__ = "transport_agency_images"

    transport_agency_id = Column(
        Integer, ForeignKey("transport_agencies.id", ondelete="CASCADE"), nullable=False, index=True
    )
