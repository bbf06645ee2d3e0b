"""
Guide assignment workflow on a trip document
"""

from datetime import datetime

import pytest
from bson import ObjectId

from tourship.core.errors import AppError
from tourship.services.guide_assignment import assign_guide, is_assignable, remove_guide, respond_to_assignment

NOW = datetime(2026, 5, 10, 8, 0, 0)


def guide(**profile):
    base = {"isVerified": True, "isAvailable": True}
    base.update(profile)
    return {"_id": ObjectId(), "role": "guide", "isActive": True, "guideProfile": base}


def trip(status="published"):
    return {"_id": ObjectId(), "status": status, "guide": None, "guideAssignment": {"status": "not_assigned"}}


def test_assign_then_accept():
    g = guide()
    t = assign_guide(trip(), g, now=NOW)
    assert t["guide"] == g["_id"]
    assert t["guideAssignment"]["status"] == "pending"
    assert t["guideAssignment"]["assignedAt"] == NOW

    respond_to_assignment(t, g["_id"], "accept", now=NOW)
    assert t["guideAssignment"]["status"] == "accepted"
    assert t["guide"] == g["_id"]

    with pytest.raises(AppError):
        respond_to_assignment(t, g["_id"], "reject")


def test_reject_clears_guide_and_keeps_reason():
    g = guide()
    t = assign_guide(trip(), g)
    respond_to_assignment(t, str(g["_id"]), "reject")
    assert t["guide"] is None
    assert t["guideAssignment"]["status"] == "rejected"
    assert t["guideAssignment"]["rejectionReason"] == "No reason provided"


def test_only_assigned_guide_may_respond():
    t = assign_guide(trip(), guide())
    with pytest.raises(AppError) as exc:
        respond_to_assignment(t, ObjectId(), "accept")
    assert exc.value.status_code == 403


def test_bad_action():
    g = guide()
    t = assign_guide(trip(), g)
    with pytest.raises(AppError) as exc:
        respond_to_assignment(t, g["_id"], "maybe")
    assert exc.value.status_code == 400


@pytest.mark.parametrize(
    "candidate",
    [
        guide(isVerified=False),
        guide(isAvailable=False),
        {**guide(), "isActive": False},
    ],
)
def test_unassignable_guides(candidate):
    assert not is_assignable(candidate)
    with pytest.raises(AppError) as exc:
        assign_guide(trip(), candidate)
    assert exc.value.status_code == 400


def test_non_guide_is_404():
    with pytest.raises(AppError) as exc:
        assign_guide(trip(), {"_id": ObjectId(), "role": "tourist"})
    assert exc.value.status_code == 404


def test_closed_trip_refuses_assignment():
    with pytest.raises(AppError):
        assign_guide(trip(status="cancelled"), guide())


def test_remove_guide_resets_assignment():
    t = assign_guide(trip(), guide())
    remove_guide(t)
    assert t["guide"] is None
    assert t["guideAssignment"]["status"] == "not_assigned"
    with pytest.raises(AppError):
        remove_guide(t)
