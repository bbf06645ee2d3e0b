"""
Booking lifecycle on a trip document: capacity bookkeeping, transitions,
refund tiers and trip-level cancel/publish.
"""

import random
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from tourship.core.errors import AppError
from tourship.services import booking as svc

NOW = datetime(2026, 3, 1, 9, 0, 0)


def new_trip(max_people=10, status="published", **extra):
    trip = {
        "_id": ObjectId(),
        "title": "Jaisalmer Dunes Camp",
        "description": "Overnight desert camp",
        "attraction": ObjectId(),
        "startLocation": {"name": "Jaisalmer Fort"},
        "startDate": NOW + timedelta(days=20),
        "endDate": NOW + timedelta(days=21),
        "pricing": {"pricePerPerson": 2500.0},
        "capacity": {"maxPeople": max_people, "currentBookings": 0},
        "bookings": [],
        "status": status,
        "analytics": {"bookingsCount": 0, "revenue": 0},
    }
    trip.update(extra)
    return trip


def test_example_scenario_full_and_back():
    trip = new_trip(max_people=10)
    svc.add_booking(trip, ObjectId(), 5, now=NOW)
    svc.add_booking(trip, ObjectId(), 3, now=NOW)
    assert trip["capacity"]["currentBookings"] == 8

    with pytest.raises(AppError) as exc:
        svc.add_booking(trip, ObjectId(), 3, now=NOW)
    assert exc.value.status_code == 400
    assert exc.value.message == "Only 2 slots available"
    assert trip["capacity"]["currentBookings"] == 8
    assert len(trip["bookings"]) == 2
    assert svc.available_slots(trip) == 2

    last = svc.add_booking(trip, ObjectId(), 2, now=NOW)
    assert trip["capacity"]["currentBookings"] == 10
    assert trip["status"] == "full"

    svc.cancel_booking(trip, last["_id"], now=NOW)
    assert trip["capacity"]["currentBookings"] == 8
    assert trip["status"] == "published"


def test_rejected_booking_leaves_trip_untouched():
    trip = new_trip(max_people=4)
    svc.add_booking(trip, ObjectId(), 3, now=NOW)
    before = (trip["capacity"]["currentBookings"], trip["analytics"]["bookingsCount"], trip["analytics"]["revenue"])

    with pytest.raises(AppError):
        svc.add_booking(trip, ObjectId(), 2, now=NOW)
    with pytest.raises(AppError):
        svc.add_booking(trip, ObjectId(), 0, now=NOW)

    after = (trip["capacity"]["currentBookings"], trip["analytics"]["bookingsCount"], trip["analytics"]["revenue"])
    assert before == after
    assert len(trip["bookings"]) == 1


def test_capacity_matches_active_headcount_after_random_sequences():
    rng = random.Random(7)
    for _ in range(50):
        trip = new_trip(max_people=rng.randint(1, 15))
        for _ in range(30):
            live = [b for b in trip["bookings"] if b["bookingStatus"] != "cancelled"]
            if live and rng.random() < 0.4:
                svc.cancel_booking(trip, rng.choice(live)["_id"], now=NOW)
            else:
                try:
                    svc.add_booking(trip, ObjectId(), rng.randint(1, 5), now=NOW)
                except AppError:
                    pass

            expected = sum(b["numberOfPeople"] for b in trip["bookings"] if b["bookingStatus"] != "cancelled")
            assert trip["capacity"]["currentBookings"] == expected
            assert expected <= trip["capacity"]["maxPeople"]
            if expected >= trip["capacity"]["maxPeople"]:
                assert trip["status"] == "full"
            else:
                assert trip["status"] == "published"


def test_add_booking_updates_analytics_and_amount():
    trip = new_trip()
    booking = svc.add_booking(trip, ObjectId(), 2, now=NOW)
    assert booking["totalAmount"] == 5000.0
    assert booking["bookingStatus"] == "pending"
    assert booking["paymentStatus"] == "pending"
    assert booking["hotelStatus"] == "not_required"
    assert trip["analytics"] == {"bookingsCount": 1, "revenue": 5000.0}


def test_group_and_early_bird_discounts_stack():
    trip = new_trip(
        pricing={
            "pricePerPerson": 1000.0,
            "groupDiscount": {"minPeople": 4, "discountPercent": 10},
            "earlyBirdDiscount": {"deadline": NOW + timedelta(days=1), "discountPercent": 5},
        }
    )
    assert svc.calculate_total(trip, 3, NOW) == 2850.0
    assert svc.calculate_total(trip, 4, NOW) == 3420.0
    assert svc.calculate_total(trip, 4, NOW + timedelta(days=2)) == 3600.0


def test_booking_transitions():
    trip = new_trip()
    booking = svc.add_booking(trip, ObjectId(), 1, now=NOW)

    svc.update_booking(trip, booking["_id"], {"bookingStatus": "confirmed", "paymentStatus": "partial"})
    svc.update_booking(trip, booking["_id"], {"paymentStatus": "completed", "paidAmount": 2500})
    svc.update_booking(trip, booking["_id"], {"bookingStatus": "confirmed"})  # same state is a no-op
    assert booking["bookingStatus"] == "confirmed"
    assert booking["paidAmount"] == 2500

    with pytest.raises(AppError):
        svc.update_booking(trip, booking["_id"], {"bookingStatus": "pending"})
    with pytest.raises(AppError):
        svc.update_booking(trip, booking["_id"], {"paymentStatus": "partial"})

    svc.update_booking(trip, booking["_id"], {"bookingStatus": "completed"})
    with pytest.raises(AppError):
        svc.update_booking(trip, booking["_id"], {"bookingStatus": "cancelled"})


def test_cancelled_booking_is_terminal_and_frees_capacity():
    trip = new_trip(max_people=2)
    booking = svc.add_booking(trip, ObjectId(), 2, now=NOW)
    assert trip["status"] == "full"

    svc.update_booking(trip, booking["_id"], {"bookingStatus": "cancelled"})
    assert trip["capacity"]["currentBookings"] == 0
    assert trip["status"] == "published"
    with pytest.raises(AppError):
        svc.cancel_booking(trip, booking["_id"])
    with pytest.raises(AppError):
        svc.update_booking(trip, booking["_id"], {"bookingStatus": "confirmed"})


def test_cancel_with_refund_marks_completed_payment_refunded():
    trip = new_trip()
    booking = svc.add_booking(trip, ObjectId(), 1, now=NOW)
    svc.update_booking(trip, booking["_id"], {"paymentStatus": "completed"})

    svc.cancel_booking(trip, booking["_id"], refund=True, refund_amount=900, now=NOW)
    assert booking["paymentStatus"] == "refunded"
    assert booking["refundAmount"] == 900
    assert booking["cancelledAt"] == NOW


def test_unknown_booking_is_404():
    with pytest.raises(AppError) as exc:
        svc.cancel_booking(new_trip(), ObjectId())
    assert exc.value.status_code == 404


@pytest.mark.parametrize(
    "days, expected",
    [(30, 90), (8, 90), (7, 50), (4, 50), (3, 0), (0, 0), (-2, 0)],
)
def test_default_refund_tiers(days, expected):
    assert svc.refund_percentage(days) == expected


def test_refund_rules_pick_largest_threshold_met():
    rules = [
        {"daysBeforeTrip": 2, "refundPercent": 25},
        {"daysBeforeTrip": 14, "refundPercent": 100},
        {"daysBeforeTrip": 7, "refundPercent": 60},
    ]
    assert svc.refund_percentage(20, rules) == 100
    assert svc.refund_percentage(14, rules) == 100
    assert svc.refund_percentage(10, rules) == 60
    assert svc.refund_percentage(2, rules) == 25
    assert svc.refund_percentage(1, rules) == 0


def test_refund_amount_uses_paid_amount_and_ceiling_days():
    trip = new_trip(startDate=NOW + timedelta(days=7, hours=1))
    booking = {"paidAmount": 2000}
    assert svc.days_until(trip["startDate"], NOW) == 8
    assert svc.refund_amount(booking, trip, NOW) == 1800.0


def test_cancel_trip_cancels_live_bookings():
    trip = new_trip()
    paid = svc.add_booking(trip, ObjectId(), 2, now=NOW)
    svc.update_booking(trip, paid["_id"], {"bookingStatus": "confirmed", "paymentStatus": "completed"})
    pending = svc.add_booking(trip, ObjectId(), 1, now=NOW)

    assert svc.cancel_trip(trip, "Sandstorm warning", now=NOW) == 2
    assert trip["status"] == "cancelled"
    assert trip["cancellationReason"] == "Sandstorm warning"
    assert paid["paymentStatus"] == "refunded"
    assert pending["paymentStatus"] == "pending"
    assert trip["capacity"]["currentBookings"] == 0

    with pytest.raises(AppError):
        svc.cancel_trip(trip)


def test_publish_collects_missing_fields():
    trip = new_trip(status="draft", title="", startLocation={}, startDate=NOW - timedelta(days=1))
    with pytest.raises(AppError) as exc:
        svc.publish_trip(trip, now=NOW)
    message = exc.value.message
    assert "Title is required" in message
    assert "Start location is required" in message
    assert "Start date must be in the future" in message
    assert trip["status"] == "draft"


def test_publish_valid_draft():
    trip = new_trip(status="draft")
    svc.publish_trip(trip, now=NOW)
    assert trip["status"] == "published"


def test_booking_stats():
    bookings = [
        {"bookingStatus": "confirmed", "totalAmount": 100, "paidAmount": 100},
        {"bookingStatus": "pending", "totalAmount": 50, "paidAmount": 0},
        {"bookingStatus": "cancelled", "totalAmount": 70, "paidAmount": 70},
    ]
    stats = svc.booking_stats(bookings)
    assert stats["total"] == 3
    assert stats["confirmed"] == 1
    assert stats["cancelled"] == 1
    assert stats["totalRevenue"] == 150
    assert stats["totalPaid"] == 170


def test_draft_trip_never_flips_to_full():
    trip = new_trip(max_people=2, status="draft")
    svc.add_booking(trip, ObjectId(), 2, now=NOW)
    assert trip["capacity"]["currentBookings"] == 2
    assert trip["status"] == "draft"

    svc.publish_trip(trip, now=NOW)
    assert trip["status"] == "full"
