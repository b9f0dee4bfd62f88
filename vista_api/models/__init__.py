from vista_api.models.rbac import Permission, Role, role_permissions, user_roles
from vista_api.models.user import User
from vista_api.models.profiles import AdminProfile, CustomerProfile, MerchantProfile
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
from vista_api.models.homestay import Homestay, HomestayImage, PropertySetting
from vista_api.models.login_attempt import LoginAttempt
