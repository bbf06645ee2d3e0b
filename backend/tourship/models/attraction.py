"""
Attraction model with embedded reviews, ratings and analytics
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from tourship.models.common import MongoModel

AttractionStatus = Literal["open", "closed", "temporarily_closed", "under_renovation", "seasonal"]

CATEGORIES = (
    "fort",
    "palace",
    "temple",
    "lake",
    "museum",
    "wildlife",
    "desert",
    "market",
    "heritage",
    "garden",
    "monument",
    "other",
)


class Coordinates(MongoModel):
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class Location(MongoModel):
    address: str | None = None
    city: str = Field(..., min_length=1)
    district: str | None = None
    state: str = "Rajasthan"
    pincode: str | None = Field(None, pattern=r"^\d{6}$")
    coordinates: Coordinates | None = None


class EntryFee(MongoModel):
    indian_adult: float = 0
    indian_child: float = 0
    foreigner_adult: float = 0
    foreigner_child: float = 0
    student: float = 0
    camera_fee: float = 0


class DayHours(MongoModel):
    open: str | None = None
    close: str | None = None
    is_closed: bool = False


class Event(MongoModel):
    name: str
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_recurring: bool = False


class Review(MongoModel):
    user: str | None = None
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(None, max_length=100)
    comment: str | None = Field(None, max_length=1000)
    photos: list[str] = Field(default_factory=list)
    visit_date: datetime | None = None
    visit_type: Literal["solo", "couple", "family", "friends", "business"] | None = None
    is_verified: bool = False
    helpful_count: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)


class RatingDistribution(MongoModel):
    five: int = 0
    four: int = 0
    three: int = 0
    two: int = 0
    one: int = 0


class Ratings(MongoModel):
    overall: float = 0
    total_reviews: int = 0
    distribution: RatingDistribution = Field(default_factory=RatingDistribution)


class Analytics(MongoModel):
    view_count: int = 0
    wishlist_count: int = 0
    share_count: int = 0
    booking_count: int = 0
    popularity_score: float = 0


class Attraction(MongoModel):
    """
    Admin-curated point of interest. `ratings` and `analytics.popularityScore`
    are derived on every write; `slug` is derived from name and city.
    """

    name: str = Field(..., min_length=1, max_length=150)
    slug: str | None = None
    description: str = Field(..., min_length=1, max_length=5000)
    short_description: str | None = Field(None, max_length=300)
    location: Location
    category: str = "other"
    tags: list[str] = Field(default_factory=list)
    is_unesco_site: bool = Field(False, alias="isUNESCOSite")
    thumbnail: str | None = None
    images: list[str] = Field(default_factory=list)
    opening_hours: dict[str, DayHours] = Field(default_factory=dict)
    closed_on: list[str] = Field(default_factory=list)
    entry_fees: EntryFee = Field(default_factory=EntryFee)
    is_free_entry: bool = False
    best_time_to_visit: str | None = None
    average_visit_duration: str | None = None
    events: list[Event] = Field(default_factory=list)
    reviews: list[dict] = Field(default_factory=list)
    ratings: Ratings = Field(default_factory=Ratings)
    status: AttractionStatus = "open"
    closure_reason: str | None = None
    reopening_date: datetime | None = None
    is_active: bool = True
    is_featured: bool = False
    is_popular: bool = False
    is_must_visit: bool = False
    is_hidden_gem: bool = False
    is_verified: bool = False
    analytics: Analytics = Field(default_factory=Analytics)
    created_by: str | None = None
    last_updated_by: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Amber Fort",
                "description": "Hilltop fort overlooking Maota Lake",
                "location": {"city": "Jaipur", "district": "Jaipur"},
                "category": "fort",
                "isUNESCOSite": True,
            }
        }
