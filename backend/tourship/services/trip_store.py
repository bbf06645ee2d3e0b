"""
Loading and saving trip documents with a version check, so two requests
editing the same trip cannot silently overwrite each other's bookings.
"""

from datetime import datetime

from tourship.core.errors import AppError
from tourship.db.database import get_trips_collection
from tourship.models.common import parse_object_id

# Counters bumped with $inc outside the version check; a save never writes them
UNVERSIONED_ANALYTICS = ("views",)


async def load_trip(trip_id, **filters) -> dict:
    query = {"_id": parse_object_id(trip_id, "trip"), **filters}
    trip = await get_trips_collection().find_one(query)
    if not trip:
        raise AppError("Trip not found", 404)
    return trip


def _versioned_fields(trip: dict) -> dict:
    fields = {k: v for k, v in trip.items() if k not in ("_id", "analytics")}
    for key, value in (trip.get("analytics") or {}).items():
        if key not in UNVERSIONED_ANALYTICS:
            fields[f"analytics.{key}"] = value
    return fields


async def save_trip(trip: dict) -> dict:
    """Write the trip back if nobody changed it since it was loaded; 409 otherwise."""
    expected = trip.get("version")
    guard = {"version": expected} if expected is not None else {"version": {"$exists": False}}

    trip["version"] = (expected or 0) + 1
    trip["updatedAt"] = datetime.utcnow()
    result = await get_trips_collection().update_one(
        {"_id": trip["_id"], **guard}, {"$set": _versioned_fields(trip)}
    )
    if result.matched_count == 0:
        trip["version"] = expected
        print(f"[save_trip] Version conflict on trip {trip['_id']} (expected v{expected})")
        raise AppError("Trip was modified by another request, please retry", 409)
    return trip
