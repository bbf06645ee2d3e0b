"""
Organiser Trips Router
Trip CRUD, publishing, guide assignment, hotels and booking management
"""

from datetime import datetime

from bson import ObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr, Field

from tourship.core.deps import require_roles, require_verified_organiser
from tourship.core.errors import AppError
from tourship.db.database import get_attractions_collection, get_trips_collection, get_users_collection
from tourship.models.common import APIResponse, MongoModel, parse_object_id, serialize_doc
from tourship.models.trip import (
    BookingStatus,
    CancellationPolicy,
    Capacity,
    Difficulty,
    Duration,
    HotelOption,
    HotelStatus,
    ItineraryDay,
    PaymentStatus,
    Pricing,
    StartLocation,
    Traveler,
    Trip,
    TripStatus,
    TripType,
    Visibility,
)
from tourship.services import booking as booking_service
from tourship.services.guide_assignment import assign_guide, remove_guide
from tourship.services.query import (
    PageParams,
    date_range,
    exact_ci,
    find_page,
    page_params,
    resolve_sort,
    search_clause,
)
from tourship.services.ratings import trip_slug
from tourship.services.trip_store import load_trip, save_trip

router = APIRouter(prefix="/api/organiser", tags=["Organiser Trips"])

organiser_only = require_roles("organiser")

TRIP_SORTS = {
    "startDate": [("startDate", 1)],
    "-startDate": [("startDate", -1)],
    "price": [("pricing.pricePerPerson", 1)],
    "-price": [("pricing.pricePerPerson", -1)],
    "bookings": [("capacity.currentBookings", -1)],
    "newest": [("createdAt", -1)],
}


# Request Models
class TripCreate(MongoModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    short_description: str | None = Field(None, max_length=300)
    attraction: str
    attractions: list[str] = Field(default_factory=list)
    trip_type: TripType = "day_trip"
    categories: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "easy"
    destinations: list[str] | None = None
    start_location: StartLocation | None = None
    duration: Duration = Field(default_factory=Duration)
    start_date: datetime
    end_date: datetime
    itinerary: list[ItineraryDay] = Field(default_factory=list)
    pricing: Pricing
    capacity: Capacity
    hotel_options: list[HotelOption] = Field(default_factory=list)
    cancellation_policy: CancellationPolicy = Field(default_factory=CancellationPolicy)
    images: list[str] | None = None
    visibility: Visibility = "public"


class TripUpdate(MongoModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    short_description: str | None = Field(None, max_length=300)
    categories: list[str] | None = None
    difficulty: Difficulty | None = None
    destinations: list[str] | None = None
    start_location: StartLocation | None = None
    duration: Duration | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    itinerary: list[ItineraryDay] | None = None
    pricing: Pricing | None = None
    max_people: int | None = Field(None, ge=1)
    min_people: int | None = Field(None, ge=1)
    cancellation_policy: CancellationPolicy | None = None
    images: list[str] | None = None
    visibility: Visibility | None = None


class CancelTripRequest(MongoModel):
    reason: str | None = Field(None, max_length=500)


class AssignGuideRequest(MongoModel):
    guide_id: str


class HotelsRequest(MongoModel):
    hotels: list[HotelOption] = Field(..., min_length=1)


class ConfirmHotelRequest(MongoModel):
    hotel_index: int = Field(..., ge=0)


class OrganiserBookingRequest(MongoModel):
    user_id: str | None = None
    number_of_people: int = Field(..., ge=1)
    travelers: list[Traveler] = Field(default_factory=list)
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: EmailStr | None = None
    special_requests: str | None = Field(None, max_length=1000)


class BookingUpdateRequest(MongoModel):
    booking_status: BookingStatus | None = None
    payment_status: PaymentStatus | None = None
    paid_amount: float | None = Field(None, ge=0)
    hotel_status: HotelStatus | None = None
    special_requests: str | None = Field(None, max_length=1000)


async def _active_attraction(attraction_id: str) -> dict:
    doc = await get_attractions_collection().find_one(
        {"_id": parse_object_id(attraction_id, "attraction"), "isActive": True}
    )
    if not doc:
        raise AppError(f"Attraction {attraction_id} not found or inactive", 400)
    return doc


def _check_dates(start: datetime, end: datetime, now: datetime | None = None) -> None:
    now = now or datetime.utcnow()
    if end <= start:
        raise AppError("End date must be after start date", 400)
    if start < now:
        raise AppError("Start date cannot be in the past", 400)


def _with_hotels(hotels: list[HotelOption]) -> list[dict]:
    """Stored hotel options get ids and the first one is recommended."""
    return [
        {"_id": ObjectId(), **hotel.to_document(), "isRecommended": index == 0}
        for index, hotel in enumerate(hotels)
    ]


async def _own_trip(trip_id: str, organiser: dict) -> dict:
    return await load_trip(trip_id, organiser=organiser["_id"])


@router.get("/trips/stats", response_model=APIResponse)
async def trip_stats(organiser: dict = Depends(organiser_only)):
    trips = await get_trips_collection().find({"organiser": organiser["_id"]}).to_list(length=None)
    now = datetime.utcnow()

    by_status = {status: 0 for status in ("draft", "published", "full", "cancelled", "completed")}
    bookings = []
    for trip in trips:
        by_status[trip.get("status", "draft")] = by_status.get(trip.get("status", "draft"), 0) + 1
        bookings.extend(trip.get("bookings") or [])

    upcoming = [
        {
            "id": str(t["_id"]),
            "title": t.get("title"),
            "startDate": t.get("startDate"),
            "currentBookings": (t.get("capacity") or {}).get("currentBookings", 0),
            "maxPeople": (t.get("capacity") or {}).get("maxPeople", 0),
        }
        for t in sorted(trips, key=lambda t: t["startDate"])
        if t["startDate"] >= now and t.get("status") in ("published", "full")
    ][:5]

    return APIResponse(
        data={
            "totalTrips": len(trips),
            "byStatus": by_status,
            "bookings": booking_service.booking_stats(bookings),
            "totalViews": sum((t.get("analytics") or {}).get("views", 0) for t in trips),
            "upcomingTrips": upcoming,
        }
    )


@router.get("/search-tourists", response_model=APIResponse)
async def search_tourists(
    q: str = Query(..., min_length=2),
    limit: int = Query(10, ge=1, le=50),
    organiser: dict = Depends(organiser_only),
):
    query = {"role": "tourist", "isActive": True, **search_clause(q, "firstName", "lastName", "email", "phone")}
    projection = {"firstName": 1, "lastName": 1, "email": 1, "phone": 1, "profilePicture": 1}
    tourists = await get_users_collection().find(query, projection).limit(limit).to_list(length=limit)
    return APIResponse(data=serialize_doc(tourists))


@router.get("/attractions", response_model=APIResponse)
async def attractions_for_trips(
    city: str | None = None,
    district: str | None = None,
    category: str | None = None,
    search: str | None = None,
    params: PageParams = Depends(page_params),
    organiser: dict = Depends(organiser_only),
):
    query: dict = {"isActive": True}
    if city:
        query["location.city"] = exact_ci(city)
    if district:
        query["location.district"] = exact_ci(district)
    if category:
        query["category"] = category
    query.update(search_clause(search, "name", "location.city", "tags"))

    projection = {
        "name": 1,
        "slug": 1,
        "category": 1,
        "location": 1,
        "thumbnail": 1,
        "entryFees": 1,
        "openingHours": 1,
        "status": 1,
        "tags": 1,
    }
    docs, pagination = await find_page(
        get_attractions_collection(), query, [("name", 1)], params, projection
    )
    return APIResponse(data=serialize_doc(docs), pagination=pagination)


@router.post("/trips", response_model=APIResponse, status_code=201)
async def create_trip(body: TripCreate, organiser: dict = Depends(require_verified_organiser)):
    main = await _active_attraction(body.attraction)
    secondary = [(await _active_attraction(a))["_id"] for a in body.attractions]
    _check_dates(body.start_date, body.end_date)

    location = main.get("location") or {}
    title = body.title or f"Trip to {main['name']}"
    trip = Trip(
        title=title,
        description=body.description,
        short_description=body.short_description,
        trip_type=body.trip_type,
        categories=body.categories,
        difficulty=body.difficulty,
        destinations=body.destinations or [main["name"]],
        start_location=body.start_location
        or StartLocation(name=main["name"], address=location.get("address")),
        duration=body.duration,
        start_date=body.start_date,
        end_date=body.end_date,
        itinerary=body.itinerary,
        pricing=body.pricing,
        capacity=Capacity(min_people=body.capacity.min_people, max_people=body.capacity.max_people),
        cancellation_policy=body.cancellation_policy,
        images=body.images if body.images is not None else list(main.get("images") or [])[:3],
        visibility=body.visibility,
        slug=trip_slug(title),
    ).to_document()
    trip.update(
        {
            "organiser": organiser["_id"],
            "attraction": main["_id"],
            "attractions": secondary,
            "hotelOptions": _with_hotels(body.hotel_options),
            "status": "draft",
        }
    )

    result = await get_trips_collection().insert_one(trip)
    trip["_id"] = result.inserted_id
    await get_users_collection().update_one(
        {"_id": organiser["_id"]}, {"$inc": {"organiserProfile.totalPackages": 1}}
    )
    print(f"[create_trip] {organiser['email']} created draft '{title}' for {main['name']}")
    return APIResponse(message="Trip created successfully", data=serialize_doc(trip))


@router.get("/trips", response_model=APIResponse)
async def my_trips(
    status: TripStatus | None = None,
    attraction: str | None = None,
    start_from: datetime | None = Query(None, alias="startFrom"),
    start_to: datetime | None = Query(None, alias="startTo"),
    category: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    params: PageParams = Depends(page_params),
    organiser: dict = Depends(organiser_only),
):
    query: dict = {"organiser": organiser["_id"]}
    if status:
        query["status"] = status
    if attraction:
        query["attraction"] = parse_object_id(attraction, "attraction")
    starts = date_range(start_from, start_to)
    if starts:
        query["startDate"] = starts
    if category:
        query["categories"] = category
    query.update(search_clause(search, "title", "description", "destinations"))

    trips, pagination = await find_page(
        get_trips_collection(),
        query,
        resolve_sort(sort_by, TRIP_SORTS, "-startDate"),
        params,
        {"bookings": 0},
    )
    return APIResponse(data=serialize_doc(trips), pagination=pagination)


@router.get("/trips/{trip_id}", response_model=APIResponse)
async def get_trip(trip_id: str, organiser: dict = Depends(organiser_only)):
    return APIResponse(data=serialize_doc(await _own_trip(trip_id, organiser)))


@router.put("/trips/{trip_id}", response_model=APIResponse)
async def update_trip(
    trip_id: str, body: TripUpdate, organiser: dict = Depends(require_verified_organiser)
):
    trip = await _own_trip(trip_id, organiser)
    if trip.get("status") in ("completed", "cancelled"):
        raise AppError(f"Cannot update a {trip['status']} trip", 400)

    changes = body.model_dump(by_alias=True, exclude_none=True, exclude={"max_people", "min_people"})
    if not changes and body.max_people is None and body.min_people is None:
        raise AppError("No fields to update", 400)

    start = changes.get("startDate", trip["startDate"])
    end = changes.get("endDate", trip["endDate"])
    if "startDate" in changes or "endDate" in changes:
        _check_dates(start, end)

    trip.update(changes)
    capacity = trip.setdefault("capacity", {})
    if body.max_people is not None:
        if body.max_people < booking_service.active_headcount(trip):
            raise AppError(
                f"Maximum people cannot be below current bookings ({booking_service.active_headcount(trip)})",
                400,
            )
        capacity["maxPeople"] = body.max_people
    if body.min_people is not None:
        capacity["minPeople"] = body.min_people
    if "title" in changes:
        trip["slug"] = trip_slug(changes["title"])

    booking_service.sync_capacity(trip)
    await save_trip(trip)
    return APIResponse(message="Trip updated successfully", data=serialize_doc(trip))


@router.delete("/trips/{trip_id}", response_model=APIResponse)
async def delete_trip(trip_id: str, organiser: dict = Depends(require_verified_organiser)):
    trip = await _own_trip(trip_id, organiser)
    blocking = [
        b
        for b in trip.get("bookings") or []
        if b.get("bookingStatus") == "confirmed" and b.get("paymentStatus") != "refunded"
    ]
    if blocking:
        raise AppError("Cannot delete trip with confirmed bookings. Cancel the trip instead.", 400)

    await get_trips_collection().delete_one({"_id": trip["_id"]})
    await get_users_collection().update_one(
        {"_id": organiser["_id"]}, {"$inc": {"organiserProfile.totalPackages": -1}}
    )
    print(f"[delete_trip] {organiser['email']} deleted trip {trip['_id']}")
    return APIResponse(message="Trip deleted successfully")


@router.put("/trips/{trip_id}/publish", response_model=APIResponse)
async def publish(trip_id: str, organiser: dict = Depends(require_verified_organiser)):
    trip = await _own_trip(trip_id, organiser)
    booking_service.publish_trip(trip)
    await save_trip(trip)
    print(f"[publish_trip] Trip {trip['_id']} published")
    return APIResponse(message="Trip published successfully", data=serialize_doc(trip))


@router.put("/trips/{trip_id}/cancel", response_model=APIResponse)
async def cancel(
    trip_id: str, body: CancelTripRequest, organiser: dict = Depends(require_verified_organiser)
):
    trip = await _own_trip(trip_id, organiser)
    cancelled = booking_service.cancel_trip(trip, body.reason)
    await save_trip(trip)
    print(f"[cancel_trip] Trip {trip['_id']} cancelled, {cancelled} bookings cancelled")
    return APIResponse(
        message="Trip cancelled successfully",
        data={"status": trip["status"], "cancelledBookings": cancelled},
    )


@router.get("/trips/{trip_id}/available-guides", response_model=APIResponse)
async def available_guides(trip_id: str, organiser: dict = Depends(organiser_only)):
    trip = await _own_trip(trip_id, organiser)
    query = {
        "role": "guide",
        "isActive": True,
        "isBanned": False,
        "guideProfile.isVerified": True,
        "guideProfile.isAvailable": True,
    }
    projection = {"firstName": 1, "lastName": 1, "email": 1, "phone": 1, "guideProfile": 1}
    guides = await get_users_collection().find(query, projection).sort(
        [("guideProfile.averageRating", -1)]
    ).to_list(length=None)

    categories = set(trip.get("categories") or [])
    for guide in guides:
        specializations = set((guide.get("guideProfile") or {}).get("specializations") or [])
        guide["matchesCategories"] = bool(categories & specializations)
    guides.sort(key=lambda g: not g["matchesCategories"])
    return APIResponse(data=serialize_doc(guides))


@router.put("/trips/{trip_id}/assign-guide", response_model=APIResponse)
async def assign(
    trip_id: str, body: AssignGuideRequest, organiser: dict = Depends(require_verified_organiser)
):
    trip = await _own_trip(trip_id, organiser)
    guide = await get_users_collection().find_one({"_id": parse_object_id(body.guide_id, "guide")})
    assign_guide(trip, guide)
    await save_trip(trip)
    print(f"[assign_guide] Guide {guide['email']} assigned to trip {trip['_id']}")
    return APIResponse(
        message="Guide assigned. Waiting for the guide to respond.",
        data={"guide": str(trip["guide"]), "guideAssignment": trip["guideAssignment"]},
    )


@router.delete("/trips/{trip_id}/remove-guide", response_model=APIResponse)
async def unassign(trip_id: str, organiser: dict = Depends(require_verified_organiser)):
    trip = await _own_trip(trip_id, organiser)
    remove_guide(trip)
    await save_trip(trip)
    return APIResponse(message="Guide removed from trip", data={"guideAssignment": trip["guideAssignment"]})


@router.post("/trips/{trip_id}/hotels", response_model=APIResponse)
async def add_hotels(
    trip_id: str, body: HotelsRequest, organiser: dict = Depends(require_verified_organiser)
):
    trip = await _own_trip(trip_id, organiser)
    trip["hotelOptions"] = _with_hotels(body.hotels)
    await save_trip(trip)
    return APIResponse(message="Hotel options added successfully", data=serialize_doc(trip["hotelOptions"]))


@router.put("/trips/{trip_id}/bookings/{booking_id}/confirm-hotel", response_model=APIResponse)
async def confirm_hotel(
    trip_id: str,
    booking_id: str,
    body: ConfirmHotelRequest,
    organiser: dict = Depends(require_verified_organiser),
):
    trip = await _own_trip(trip_id, organiser)
    booking = booking_service.find_booking(trip, booking_id)
    hotels = trip.get("hotelOptions") or []
    if not hotels:
        raise AppError("No hotel options available for this trip", 400)
    if body.hotel_index >= len(hotels):
        raise AppError("Invalid hotel selection", 400)

    booking["hotelStatus"] = "confirmed"
    booking["confirmedHotel"] = hotels[body.hotel_index]
    await save_trip(trip)
    return APIResponse(
        message="Hotel confirmed for booking",
        data={"booking": serialize_doc(booking), "hotel": serialize_doc(hotels[body.hotel_index])},
    )


@router.post("/trips/{trip_id}/bookings", response_model=APIResponse, status_code=201)
async def add_booking(
    trip_id: str,
    body: OrganiserBookingRequest,
    organiser: dict = Depends(require_verified_organiser),
):
    trip = await _own_trip(trip_id, organiser)
    if trip.get("status") not in ("draft", "published"):
        raise AppError(f"Cannot add bookings to a {trip.get('status')} trip", 400)

    user_id = None
    if body.user_id:
        tourist = await get_users_collection().find_one(
            {"_id": parse_object_id(body.user_id, "user"), "role": "tourist", "isActive": True}
        )
        if not tourist:
            raise AppError("Tourist not found", 404)
        user_id = tourist["_id"]

    booking = booking_service.add_booking(
        trip,
        user_id,
        body.number_of_people,
        travelers=[t.to_document() for t in body.travelers],
        contact_name=body.contact_name,
        contact_phone=body.contact_phone,
        contact_email=body.contact_email,
        special_requests=body.special_requests,
    )
    await save_trip(trip)
    await get_users_collection().update_one(
        {"_id": organiser["_id"]}, {"$inc": {"organiserProfile.totalBookings": 1}}
    )
    print(f"[add_booking] {body.number_of_people} people booked on trip {trip['_id']} by organiser")
    return APIResponse(
        message="Booking added successfully",
        data={"booking": serialize_doc(booking), "capacity": trip["capacity"], "status": trip["status"]},
    )


@router.get("/trips/{trip_id}/bookings", response_model=APIResponse)
async def list_bookings(
    trip_id: str,
    status: BookingStatus | None = None,
    payment_status: PaymentStatus | None = Query(None, alias="paymentStatus"),
    organiser: dict = Depends(organiser_only),
):
    trip = await _own_trip(trip_id, organiser)
    bookings = trip.get("bookings") or []
    filtered = [
        b
        for b in bookings
        if (status is None or b.get("bookingStatus") == status)
        and (payment_status is None or b.get("paymentStatus") == payment_status)
    ]
    return APIResponse(
        data={
            "bookings": serialize_doc(filtered),
            "stats": booking_service.booking_stats(bookings),
            "capacity": trip.get("capacity"),
        }
    )


@router.put("/trips/{trip_id}/bookings/{booking_id}", response_model=APIResponse)
async def update_booking(
    trip_id: str,
    booking_id: str,
    body: BookingUpdateRequest,
    organiser: dict = Depends(require_verified_organiser),
):
    trip = await _own_trip(trip_id, organiser)
    booking = booking_service.update_booking(trip, booking_id, body.model_dump(by_alias=True))
    await save_trip(trip)
    return APIResponse(
        message="Booking updated successfully",
        data={"booking": serialize_doc(booking), "capacity": trip["capacity"], "status": trip["status"]},
    )


@router.delete("/trips/{trip_id}/bookings/{booking_id}", response_model=APIResponse)
async def remove_booking(
    trip_id: str,
    booking_id: str,
    refund: bool = False,
    organiser: dict = Depends(require_verified_organiser),
):
    trip = await _own_trip(trip_id, organiser)
    booking = booking_service.cancel_booking(trip, booking_id, refund=refund)
    await save_trip(trip)
    print(f"[remove_booking] Booking {booking_id} on trip {trip['_id']} cancelled (refund={refund})")
    return APIResponse(
        message="Booking cancelled successfully",
        data={"booking": serialize_doc(booking), "capacity": trip["capacity"], "status": trip["status"]},
    )
