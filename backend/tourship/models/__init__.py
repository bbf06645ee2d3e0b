from tourship.models.attraction import Attraction, Review
from tourship.models.common import APIResponse, MongoModel
from tourship.models.trip import HotelOption, Trip
from tourship.models.user import AdminProfile, GuideProfile, OrganiserProfile, TouristProfile, User

__all__ = [
    "APIResponse",
    "MongoModel",
    "User",
    "TouristProfile",
    "GuideProfile",
    "OrganiserProfile",
    "AdminProfile",
    "Attraction",
    "Review",
    "Trip",
    "HotelOption",
]
