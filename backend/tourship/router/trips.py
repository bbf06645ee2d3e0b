"""
Trips Router
Public trip discovery and tourist bookings
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr, Field

from tourship.core.deps import get_current_user, require_roles
from tourship.core.errors import AppError
from tourship.db.database import get_attractions_collection, get_trips_collection
from tourship.models.common import APIResponse, MongoModel, naive_utc, parse_object_id, serialize_doc
from tourship.models.trip import Difficulty, Traveler
from tourship.services import booking as booking_service
from tourship.services.query import (
    PageParams,
    exact_ci,
    find_page,
    page_params,
    paginate_list,
    resolve_sort,
    search_clause,
)
from tourship.services.trip_store import load_trip, save_trip

router = APIRouter(prefix="/api/trips", tags=["Trips"])

PUBLIC_SORTS = {
    "startDate": [("startDate", 1)],
    "price": [("pricing.pricePerPerson", 1)],
    "-price": [("pricing.pricePerPerson", -1)],
    "popular": [("analytics.bookingsCount", -1)],
    "newest": [("createdAt", -1)],
}

PUBLIC_PROJECTION = {"bookings": 0, "version": 0}


class BookTripRequest(MongoModel):
    number_of_people: int = Field(..., ge=1)
    travelers: list[Traveler] = Field(default_factory=list)
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: EmailStr | None = None
    selected_hotel_index: int | None = Field(None, ge=0)
    special_requests: str | None = Field(None, max_length=1000)


def bookable_filter(now: datetime | None = None, **extra) -> dict:
    return {
        "status": "published",
        "isActive": True,
        "visibility": "public",
        "startDate": {"$gte": now or datetime.utcnow()},
        **extra,
    }


def public_trip(trip: dict) -> dict:
    trip = {k: v for k, v in trip.items() if k not in PUBLIC_PROJECTION}
    capacity = trip.get("capacity") or {}
    trip["availableSlots"] = max(int(capacity.get("maxPeople") or 0) - int(capacity.get("currentBookings") or 0), 0)
    return serialize_doc(trip)


@router.get("", response_model=APIResponse)
async def list_trips(
    city: str | None = None,
    category: str | None = None,
    min_price: float | None = Query(None, alias="minPrice", ge=0),
    max_price: float | None = Query(None, alias="maxPrice", ge=0),
    start_date: datetime | None = Query(None, alias="startDate"),
    difficulty: Difficulty | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    params: PageParams = Depends(page_params),
):
    query = bookable_filter()
    if start_date:
        query["startDate"] = {"$gte": max(naive_utc(start_date), datetime.utcnow())}
    if city:
        attractions = await get_attractions_collection().find(
            {"location.city": exact_ci(city)}, {"_id": 1}
        ).to_list(length=None)
        query["attraction"] = {"$in": [a["_id"] for a in attractions]}
    if category:
        query["categories"] = category
    price = {}
    if min_price is not None:
        price["$gte"] = min_price
    if max_price is not None:
        price["$lte"] = max_price
    if price:
        query["pricing.pricePerPerson"] = price
    if difficulty:
        query["difficulty"] = difficulty
    query.update(search_clause(search, "title", "description", "destinations"))

    trips, pagination = await find_page(
        get_trips_collection(),
        query,
        resolve_sort(sort_by, PUBLIC_SORTS, "startDate"),
        params,
        PUBLIC_PROJECTION,
    )
    return APIResponse(data=[public_trip(t) for t in trips], pagination=pagination)


@router.get("/attraction/{attraction_id}", response_model=APIResponse)
async def trips_for_attraction(attraction_id: str, params: PageParams = Depends(page_params)):
    oid = parse_object_id(attraction_id, "attraction")
    query = bookable_filter(**{"$or": [{"attraction": oid}, {"attractions": oid}]})
    trips, pagination = await find_page(
        get_trips_collection(), query, PUBLIC_SORTS["startDate"], params, PUBLIC_PROJECTION
    )
    return APIResponse(data=[public_trip(t) for t in trips], pagination=pagination)


@router.get("/slug/{slug}", response_model=APIResponse)
async def trip_by_slug(slug: str):
    trip = await get_trips_collection().find_one(
        {"slug": slug, "isActive": True, "status": {"$in": ["published", "full"]}}
    )
    if not trip:
        raise AppError("Trip not found", 404)
    return APIResponse(data=public_trip(trip))


@router.get("/my/bookings", response_model=APIResponse)
async def my_bookings(
    status: str | None = None,
    params: PageParams = Depends(page_params),
    user: dict = Depends(get_current_user),
):
    trips = await get_trips_collection().find({"bookings.user": user["_id"]}).sort(
        [("startDate", -1)]
    ).to_list(length=None)

    results = []
    for trip in trips:
        for booking in trip.get("bookings") or []:
            if booking.get("user") != user["_id"]:
                continue
            if status and booking.get("bookingStatus") != status:
                continue
            results.append(
                {
                    "booking": booking,
                    "trip": {
                        "id": trip["_id"],
                        "title": trip.get("title"),
                        "slug": trip.get("slug"),
                        "startDate": trip.get("startDate"),
                        "endDate": trip.get("endDate"),
                        "status": trip.get("status"),
                        "startLocation": trip.get("startLocation"),
                        "images": (trip.get("images") or [])[:1],
                    },
                }
            )

    page, pagination = paginate_list(results, params)
    return APIResponse(data=serialize_doc(page), pagination=pagination)


@router.put("/{trip_id}/bookings/{booking_id}/cancel", response_model=APIResponse)
async def cancel_my_booking(trip_id: str, booking_id: str, user: dict = Depends(get_current_user)):
    trip = await load_trip(trip_id)
    booking = booking_service.find_booking(trip, booking_id)
    if booking.get("user") != user["_id"]:
        raise AppError("Not authorized to cancel this booking", 403)
    if trip["startDate"] <= datetime.utcnow():
        raise AppError("Cannot cancel a booking after the trip has started", 400)

    refund = booking_service.refund_amount(booking, trip)
    booking_service.cancel_booking(trip, booking_id, refund=refund > 0, refund_amount=refund)
    await save_trip(trip)

    print(f"[cancel_my_booking] {user['email']} cancelled booking {booking_id}, refund {refund}")
    return APIResponse(
        message="Booking cancelled successfully",
        data={
            "booking": serialize_doc(booking),
            "refundAmount": refund,
            "refundStatus": "processing" if refund > 0 else "not_applicable",
        },
    )


@router.post("/{trip_id}/book", response_model=APIResponse, status_code=201)
async def book_trip(
    trip_id: str,
    body: BookTripRequest,
    user: dict = Depends(require_roles("tourist")),
):
    trip = await load_trip(trip_id)
    if trip.get("status") == "full":
        raise AppError("Trip is fully booked", 400)
    if trip.get("status") != "published" or not trip.get("isActive", True):
        raise AppError("Trip is not available for booking", 400)
    if trip["startDate"] <= datetime.utcnow():
        raise AppError("Trip has already started", 400)

    already = any(
        b.get("user") == user["_id"] and b.get("bookingStatus") != "cancelled"
        for b in trip.get("bookings") or []
    )
    if already:
        raise AppError("You already have an active booking for this trip", 400)

    hotel = None
    hotels = trip.get("hotelOptions") or []
    if body.selected_hotel_index is not None:
        if body.selected_hotel_index >= len(hotels):
            raise AppError("Invalid hotel selection", 400)
        hotel = hotels[body.selected_hotel_index]

    booking = booking_service.add_booking(
        trip,
        user["_id"],
        body.number_of_people,
        travelers=[t.to_document() for t in body.travelers],
        contact_name=body.contact_name or f"{user.get('firstName', '')} {user.get('lastName') or ''}".strip(),
        contact_phone=body.contact_phone or user.get("phone"),
        contact_email=body.contact_email or user.get("email"),
        selected_hotel=hotel,
        hotel_status="pending" if hotel else "not_required",
        special_requests=body.special_requests,
    )
    await save_trip(trip)

    print(f"[book_trip] {user['email']} booked {body.number_of_people} on trip {trip['_id']}")
    return APIResponse(
        message="Trip booked successfully",
        data={
            "booking": serialize_doc(booking),
            "trip": {"id": str(trip["_id"]), "title": trip.get("title"), "status": trip["status"]},
            "availableSlots": booking_service.available_slots(trip),
        },
    )


@router.get("/{trip_id}", response_model=APIResponse)
async def trip_details(trip_id: str):
    trip = await load_trip(trip_id, isActive=True, status={"$in": ["published", "full"]})
    await get_trips_collection().update_one({"_id": trip["_id"]}, {"$inc": {"analytics.views": 1}})
    trip.setdefault("analytics", {})["views"] = int(trip["analytics"].get("views") or 0) + 1

    attraction = await get_attractions_collection().find_one(
        {"_id": trip.get("attraction")},
        {"name": 1, "slug": 1, "location": 1, "thumbnail": 1, "ratings": 1},
    )
    data = public_trip(trip)
    data["attractionDetails"] = serialize_doc(attraction)
    return APIResponse(data=data)
