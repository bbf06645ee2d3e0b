"""
Guide assignment on a trip: not_assigned -> pending -> accepted | rejected
"""

from datetime import datetime

from tourship.core.errors import AppError

RESPONSE_ACTIONS = ("accept", "reject")


def _assignment(trip: dict) -> dict:
    return trip.setdefault("guideAssignment", {"status": "not_assigned"})


def is_assignable(guide: dict | None) -> bool:
    if not guide or guide.get("role") != "guide":
        return False
    profile = guide.get("guideProfile") or {}
    return bool(guide.get("isActive", True) and profile.get("isVerified") and profile.get("isAvailable", True))


def assign_guide(trip: dict, guide: dict | None, now: datetime | None = None) -> dict:
    if trip.get("status") in ("cancelled", "completed"):
        raise AppError(f"Cannot assign a guide to a {trip['status']} trip", 400)
    if not guide or guide.get("role") != "guide":
        raise AppError("Guide not found", 404)
    if not is_assignable(guide):
        raise AppError("Guide must be active, verified and available", 400)

    trip["guide"] = guide["_id"]
    trip["guideAssignment"] = {
        "status": "pending",
        "assignedAt": now or datetime.utcnow(),
        "respondedAt": None,
        "rejectionReason": None,
    }
    return trip


def respond_to_assignment(
    trip: dict,
    guide_id,
    action: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Record the assigned guide's answer. Accepting keeps the guide on the trip;
    rejecting clears it and keeps the reason.
    """
    if action not in RESPONSE_ACTIONS:
        raise AppError("Action must be 'accept' or 'reject'", 400)
    if not trip.get("guide") or str(trip["guide"]) != str(guide_id):
        raise AppError("You are not assigned to this trip", 403)

    assignment = _assignment(trip)
    if assignment.get("status") != "pending":
        raise AppError(f"Assignment already {assignment.get('status')}", 400)

    assignment["respondedAt"] = now or datetime.utcnow()
    if action == "accept":
        assignment["status"] = "accepted"
        assignment["rejectionReason"] = None
    else:
        assignment["status"] = "rejected"
        assignment["rejectionReason"] = reason or "No reason provided"
        trip["guide"] = None
    return trip


def remove_guide(trip: dict) -> dict:
    if not trip.get("guide"):
        raise AppError("No guide assigned to this trip", 400)
    trip["guide"] = None
    trip["guideAssignment"] = {
        "status": "not_assigned",
        "assignedAt": None,
        "respondedAt": None,
        "rejectionReason": None,
    }
    return trip
