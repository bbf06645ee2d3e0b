"""
Booking lifecycle on a trip document.

Bookings live inside `trip["bookings"]`. All functions mutate the trip dict in
place and raise AppError on invalid input; persisting the result is the
caller's job. `sync_capacity` is the only writer of
`capacity.currentBookings` and of the `full` status.
"""

import math
from datetime import datetime

from bson import ObjectId

from tourship.core.errors import AppError

BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"partial", "completed"},
    "partial": {"completed"},
    "completed": {"refunded"},
    "refunded": set(),
}

HOTEL_STATUSES = {"not_required", "pending", "confirmed"}

# (days strictly greater than, refund percent), checked in order
DEFAULT_REFUND_TIERS = ((7, 90), (3, 50))

PUBLISH_REQUIRED = (
    ("title", "Title is required"),
    ("description", "Description is required"),
    ("attraction", "Main attraction is required"),
    ("startDate", "Start date is required"),
    ("endDate", "End date is required"),
)


def assert_booking_transition(current: str, target: str) -> None:
    if target == current:
        return
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise AppError(f"Invalid booking status transition: {current} -> {target}", 400)


def assert_payment_transition(current: str, target: str) -> None:
    if target == current:
        return
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        raise AppError(f"Invalid payment status transition: {current} -> {target}", 400)


def active_headcount(trip: dict) -> int:
    return sum(
        int(b.get("numberOfPeople") or 0)
        for b in trip.get("bookings") or []
        if b.get("bookingStatus") != "cancelled"
    )


def available_slots(trip: dict) -> int:
    capacity = trip.get("capacity") or {}
    return int(capacity.get("maxPeople") or 0) - int(capacity.get("currentBookings") or 0)


def sync_capacity(trip: dict) -> dict:
    """Recompute currentBookings from the booking list and flip full/published."""
    capacity = trip.setdefault("capacity", {})
    capacity["currentBookings"] = active_headcount(trip)
    max_people = int(capacity.get("maxPeople") or 0)
    status = trip.get("status")

    if status not in ("published", "full"):
        return trip
    if max_people and capacity["currentBookings"] >= max_people:
        trip["status"] = "full"
    elif status == "full":
        trip["status"] = "published"
    return trip


def find_booking(trip: dict, booking_id) -> dict:
    target = str(booking_id)
    for booking in trip.get("bookings") or []:
        if str(booking.get("_id")) == target:
            return booking
    raise AppError("Booking not found", 404)


def calculate_total(trip: dict, number_of_people: int, now: datetime | None = None) -> float:
    """Base price times head-count, less group and early-bird discounts."""
    now = now or datetime.utcnow()
    pricing = trip.get("pricing") or {}
    total = float(pricing.get("pricePerPerson") or 0) * number_of_people

    group = pricing.get("groupDiscount") or {}
    if group.get("minPeople") and number_of_people >= group["minPeople"]:
        total -= total * float(group.get("discountPercent") or 0) / 100

    early = pricing.get("earlyBirdDiscount") or {}
    if early.get("deadline") and now < early["deadline"]:
        total -= total * float(early.get("discountPercent") or 0) / 100

    return round(total, 2)


def add_booking(
    trip: dict,
    user_id,
    number_of_people: int,
    now: datetime | None = None,
    **details,
) -> dict:
    """
    Append a pending booking for `number_of_people`.

    Rejected without touching the trip when the head-count is below one or
    exceeds the free slots.
    """
    now = now or datetime.utcnow()
    if number_of_people is None or number_of_people < 1:
        raise AppError("Number of people must be at least 1", 400)

    sync_capacity(trip)
    free = available_slots(trip)
    if number_of_people > free:
        raise AppError(f"Only {max(free, 0)} slots available", 400)

    total = calculate_total(trip, number_of_people, now)
    booking = {
        "_id": ObjectId(),
        "user": user_id,
        "numberOfPeople": number_of_people,
        "travelers": details.get("travelers") or [],
        "totalAmount": total,
        "paidAmount": 0,
        "bookingStatus": "pending",
        "paymentStatus": "pending",
        "hotelStatus": details.get("hotel_status")
        or ("pending" if trip.get("hotelOptions") else "not_required"),
        "selectedHotel": details.get("selected_hotel"),
        "contactName": details.get("contact_name"),
        "contactPhone": details.get("contact_phone"),
        "contactEmail": details.get("contact_email"),
        "specialRequests": details.get("special_requests"),
        "bookingDate": now,
        "cancelledAt": None,
        "refundAmount": 0,
    }
    trip.setdefault("bookings", []).append(booking)

    analytics = trip.setdefault("analytics", {})
    analytics["bookingsCount"] = int(analytics.get("bookingsCount") or 0) + 1
    analytics["revenue"] = float(analytics.get("revenue") or 0) + total

    sync_capacity(trip)
    return booking


def cancel_booking(
    trip: dict,
    booking_id,
    refund: bool = False,
    refund_amount: float | None = None,
    now: datetime | None = None,
) -> dict:
    booking = find_booking(trip, booking_id)
    status = booking.get("bookingStatus", "pending")
    if status == "cancelled":
        raise AppError("Booking is already cancelled", 400)
    assert_booking_transition(status, "cancelled")

    booking["bookingStatus"] = "cancelled"
    booking["cancelledAt"] = now or datetime.utcnow()
    if refund_amount is not None:
        booking["refundAmount"] = refund_amount
    if refund and booking.get("paymentStatus") == "completed":
        booking["paymentStatus"] = "refunded"

    sync_capacity(trip)
    return booking


def update_booking(trip: dict, booking_id, changes: dict) -> dict:
    """Apply organiser edits. Keys are camelCase booking fields; None means unchanged."""
    booking = find_booking(trip, booking_id)

    new_status = changes.get("bookingStatus")
    if new_status is not None:
        assert_booking_transition(booking.get("bookingStatus", "pending"), new_status)
        if new_status == "cancelled" and booking.get("bookingStatus") != "cancelled":
            booking["cancelledAt"] = datetime.utcnow()
        booking["bookingStatus"] = new_status

    new_payment = changes.get("paymentStatus")
    if new_payment is not None:
        assert_payment_transition(booking.get("paymentStatus", "pending"), new_payment)
        booking["paymentStatus"] = new_payment

    if changes.get("paidAmount") is not None:
        paid = float(changes["paidAmount"])
        if paid < 0:
            raise AppError("Paid amount cannot be negative", 400)
        booking["paidAmount"] = paid

    hotel_status = changes.get("hotelStatus")
    if hotel_status is not None:
        if hotel_status not in HOTEL_STATUSES:
            raise AppError(f"Invalid hotel status: {hotel_status}", 400)
        booking["hotelStatus"] = hotel_status

    if changes.get("specialRequests") is not None:
        booking["specialRequests"] = changes["specialRequests"]

    sync_capacity(trip)
    return booking


def days_until(start_date: datetime, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    return math.ceil((start_date - now).total_seconds() / 86400)


def refund_percentage(days_until_start: int, refund_rules: list[dict] | None = None) -> float:
    """
    Refund percent for a cancellation `days_until_start` days before departure.

    With rules, the rule with the largest `daysBeforeTrip` that the
    cancellation still meets wins. Without rules the default tiers apply.
    """
    if refund_rules:
        ordered = sorted(refund_rules, key=lambda r: r.get("daysBeforeTrip", 0), reverse=True)
        for rule in ordered:
            if days_until_start >= rule.get("daysBeforeTrip", 0):
                return float(rule.get("refundPercent", 0))
        return 0.0

    for threshold, percent in DEFAULT_REFUND_TIERS:
        if days_until_start > threshold:
            return float(percent)
    return 0.0


def refund_amount(booking: dict, trip: dict, now: datetime | None = None) -> float:
    days = days_until(trip["startDate"], now)
    rules = (trip.get("cancellationPolicy") or {}).get("refundRules")
    percent = refund_percentage(days, rules)
    return round(float(booking.get("paidAmount") or 0) * percent / 100, 2)


def cancel_trip(trip: dict, reason: str | None = None, now: datetime | None = None) -> int:
    """Cancel the trip and every live booking. Returns how many bookings were cancelled."""
    if trip.get("status") == "cancelled":
        raise AppError("Trip is already cancelled", 400)
    if trip.get("status") == "completed":
        raise AppError("Cannot cancel a completed trip", 400)

    now = now or datetime.utcnow()
    cancelled = 0
    for booking in trip.get("bookings") or []:
        if booking.get("bookingStatus") in ("pending", "confirmed"):
            booking["bookingStatus"] = "cancelled"
            booking["cancelledAt"] = now
            cancelled += 1
            if booking.get("paymentStatus") == "completed":
                booking["paymentStatus"] = "refunded"

    trip["status"] = "cancelled"
    trip["cancellationReason"] = reason or "Cancelled by organiser"
    sync_capacity(trip)
    return cancelled


def publish_trip(trip: dict, now: datetime | None = None) -> dict:
    """Validate a draft and move it to published, collecting every problem into one error."""
    now = now or datetime.utcnow()
    if trip.get("status") == "published":
        raise AppError("Trip is already published", 400)
    if trip.get("status") in ("cancelled", "completed"):
        raise AppError(f"Cannot publish a {trip['status']} trip", 400)

    errors = [message for field, message in PUBLISH_REQUIRED if not trip.get(field)]
    if not (trip.get("pricing") or {}).get("pricePerPerson"):
        errors.append("Price per person is required")
    if not (trip.get("capacity") or {}).get("maxPeople"):
        errors.append("Maximum people is required")
    if not (trip.get("startLocation") or {}).get("name"):
        errors.append("Start location is required")
    if trip.get("startDate") and trip["startDate"] <= now:
        errors.append("Start date must be in the future")
    if errors:
        raise AppError(f"Cannot publish trip: {', '.join(errors)}", 400)

    trip["status"] = "published"
    sync_capacity(trip)
    return trip


def booking_stats(bookings: list[dict]) -> dict:
    stats = {
        "total": len(bookings),
        "pending": 0,
        "confirmed": 0,
        "completed": 0,
        "cancelled": 0,
        "totalRevenue": 0.0,
        "totalPaid": 0.0,
    }
    for booking in bookings:
        status = booking.get("bookingStatus", "pending")
        stats[status] = stats.get(status, 0) + 1
        if status != "cancelled":
            stats["totalRevenue"] += float(booking.get("totalAmount") or 0)
        stats["totalPaid"] += float(booking.get("paidAmount") or 0)
    return stats
