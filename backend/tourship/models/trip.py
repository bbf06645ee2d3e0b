"""
Trip model with embedded bookings and hotel options
"""

from datetime import datetime
from typing import Literal

from pydantic import Field

from tourship.models.common import MongoModel

TripStatus = Literal["draft", "published", "full", "cancelled", "completed"]
BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]
PaymentStatus = Literal["pending", "partial", "completed", "refunded"]
HotelStatus = Literal["not_required", "pending", "confirmed"]
AssignmentStatus = Literal["not_assigned", "pending", "accepted", "rejected"]
TripType = Literal["day_trip", "multi_day", "weekend", "custom"]
Difficulty = Literal["easy", "moderate", "challenging"]
Visibility = Literal["public", "private"]


class StartLocation(MongoModel):
    name: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class Duration(MongoModel):
    days: int = Field(1, ge=1)
    nights: int = Field(0, ge=0)


class ItineraryDay(MongoModel):
    day: int = Field(..., ge=1)
    title: str
    description: str | None = None
    activities: list[str] = Field(default_factory=list)
    meals: list[str] = Field(default_factory=list)
    accommodation: str | None = None


class GroupDiscount(MongoModel):
    min_people: int = Field(..., ge=2)
    discount_percent: float = Field(..., gt=0, le=100)


class EarlyBirdDiscount(MongoModel):
    deadline: datetime
    discount_percent: float = Field(..., gt=0, le=100)


class Pricing(MongoModel):
    price_per_person: float = Field(..., ge=0)
    currency: str = "INR"
    discount_percentage: float = Field(0, ge=0, le=100)
    group_discount: GroupDiscount | None = None
    early_bird_discount: EarlyBirdDiscount | None = None
    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)


class Capacity(MongoModel):
    min_people: int = Field(1, ge=1)
    max_people: int = Field(..., ge=1)
    current_bookings: int = 0


class GuideAssignment(MongoModel):
    status: AssignmentStatus = "not_assigned"
    assigned_at: datetime | None = None
    responded_at: datetime | None = None
    rejection_reason: str | None = None


class RefundRule(MongoModel):
    days_before_trip: int = Field(..., ge=0)
    refund_percent: float = Field(..., ge=0, le=100)


class CancellationPolicy(MongoModel):
    description: str | None = None
    refund_rules: list[RefundRule] = Field(default_factory=list)


class Traveler(MongoModel):
    name: str
    age: int | None = Field(None, ge=0)
    gender: str | None = None
    id_type: str | None = None
    id_number: str | None = None


class HotelOption(MongoModel):
    hotel_name: str = Field(..., min_length=1)
    hotel_rating: float | None = Field(None, ge=0, le=5)
    room_type: str | None = None
    price_per_night: float = Field(0, ge=0)
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    address: str | None = None
    is_recommended: bool = False
    available_rooms: int | None = Field(None, ge=0)


class TripAnalytics(MongoModel):
    views: int = 0
    bookings_count: int = 0
    revenue: float = 0


class Trip(MongoModel):
    """
    A bookable tour instance. `capacity.currentBookings` and the `full`
    status are derived from `bookings`; `version` guards concurrent writes.
    """

    title: str = Field(..., min_length=1, max_length=200)
    slug: str | None = None
    description: str | None = Field(None, max_length=5000)
    short_description: str | None = Field(None, max_length=300)
    organiser: str | None = None
    attraction: str | None = None
    attractions: list[str] = Field(default_factory=list)
    guide: str | None = None
    guide_assignment: GuideAssignment = Field(default_factory=GuideAssignment)
    trip_type: TripType = "day_trip"
    categories: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "easy"
    destinations: list[str] = Field(default_factory=list)
    start_location: StartLocation = Field(default_factory=StartLocation)
    duration: Duration = Field(default_factory=Duration)
    start_date: datetime
    end_date: datetime
    itinerary: list[ItineraryDay] = Field(default_factory=list)
    pricing: Pricing
    capacity: Capacity
    bookings: list[dict] = Field(default_factory=list)
    hotel_options: list[dict] = Field(default_factory=list)
    cancellation_policy: CancellationPolicy = Field(default_factory=CancellationPolicy)
    images: list[str] = Field(default_factory=list)
    status: TripStatus = "draft"
    is_active: bool = True
    visibility: Visibility = "public"
    analytics: TripAnalytics = Field(default_factory=TripAnalytics)
    cancellation_reason: str | None = None
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
