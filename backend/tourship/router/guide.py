"""
Guide Router
Public guide directory, guide self-service profile and trip assignments
"""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query

from tourship.core.deps import require_roles
from tourship.core.errors import AppError
from tourship.db.database import get_trips_collection, get_users_collection
from tourship.models.common import APIResponse, MongoModel, parse_object_id, sanitize_user, serialize_doc
from tourship.models.user import DayAvailability, GuideProfileUpdate, full_name, profile_changes
from tourship.services.guide_assignment import respond_to_assignment
from tourship.services.query import PageParams, exact_ci, find_page, page_params
from tourship.services.trip_store import load_trip, save_trip
from tourship.services.verification import submit_for_verification

router = APIRouter(prefix="/api/guide", tags=["Guides"])

guide_only = require_roles("guide")

PUBLIC_GUIDE_PROJECTION = {
    "password": 0,
    "passwordResetToken": 0,
    "passwordResetExpire": 0,
    "email": 0,
    "phone": 0,
    "touristProfile": 0,
    "organiserProfile": 0,
    "adminProfile": 0,
}


class AvailabilityRequest(MongoModel):
    is_available: bool | None = None
    availability: dict[str, DayAvailability] | None = None


class RespondRequest(MongoModel):
    action: Literal["accept", "reject"]
    reason: str | None = None


def verified_guide_filter(**extra) -> dict:
    return {"role": "guide", "isActive": True, "isBanned": False, "guideProfile.isVerified": True, **extra}


@router.get("/all", response_model=APIResponse)
async def list_guides(
    district: str | None = None,
    specialization: str | None = None,
    language: str | None = None,
    max_rate: float | None = Query(None, alias="maxRate", ge=0),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    params: PageParams = Depends(page_params),
):
    query = verified_guide_filter()
    if district:
        query["guideProfile.operatingDistricts"] = exact_ci(district)
    if specialization:
        query["guideProfile.specializations"] = exact_ci(specialization)
    if language:
        query["guideProfile.languagesSpoken.language"] = exact_ci(language)
    if max_rate is not None:
        query["guideProfile.dailyRate"] = {"$lte": max_rate}
    if min_rating is not None:
        query["guideProfile.averageRating"] = {"$gte": min_rating}

    guides, pagination = await find_page(
        get_users_collection(),
        query,
        [("guideProfile.averageRating", -1), ("guideProfile.totalTours", -1)],
        params,
        PUBLIC_GUIDE_PROJECTION,
    )
    return APIResponse(data=serialize_doc(guides), pagination=pagination)


@router.get("/me/profile", response_model=APIResponse)
async def get_my_profile(user: dict = Depends(guide_only)):
    return APIResponse(data=sanitize_user(user))


@router.put("/me/profile", response_model=APIResponse)
async def update_my_profile(body: GuideProfileUpdate, user: dict = Depends(guide_only)):
    changes = profile_changes(body, prefix="guideProfile.")
    if not changes:
        raise AppError("No fields to update", 400)

    changes["updatedAt"] = datetime.utcnow()
    users = get_users_collection()
    await users.update_one({"_id": user["_id"]}, {"$set": changes})
    return APIResponse(
        message="Guide profile updated successfully",
        data=sanitize_user(await users.find_one({"_id": user["_id"]})),
    )


@router.post("/me/submit-verification", response_model=APIResponse)
async def submit_verification(user: dict = Depends(guide_only)):
    profile = dict(user.get("guideProfile") or {})
    submit_for_verification("guide", profile)
    await get_users_collection().update_one(
        {"_id": user["_id"]}, {"$set": {"guideProfile": profile, "updatedAt": datetime.utcnow()}}
    )
    print(f"[submit_verification] Guide {user['email']} submitted for verification")
    return APIResponse(
        message="Profile submitted for verification",
        data={"verificationStatus": profile["verificationStatus"], "submittedAt": profile["submittedAt"]},
    )


@router.put("/me/availability", response_model=APIResponse)
async def update_availability(body: AvailabilityRequest, user: dict = Depends(guide_only)):
    changes = {}
    if body.is_available is not None:
        changes["guideProfile.isAvailable"] = body.is_available
    if body.availability is not None:
        changes["guideProfile.availability"] = {
            day: slot.to_document() for day, slot in body.availability.items()
        }
    if not changes:
        raise AppError("No availability changes provided", 400)

    users = get_users_collection()
    await users.update_one({"_id": user["_id"]}, {"$set": changes})
    updated = await users.find_one({"_id": user["_id"]})
    profile = updated.get("guideProfile") or {}
    return APIResponse(
        message="Availability updated",
        data={"isAvailable": profile.get("isAvailable", True), "availability": profile.get("availability", {})},
    )


@router.get("/me/dashboard", response_model=APIResponse)
async def dashboard(user: dict = Depends(guide_only)):
    profile = user.get("guideProfile") or {}
    trips = get_trips_collection()
    pending = await trips.count_documents({"guide": user["_id"], "guideAssignment.status": "pending"})
    upcoming = await trips.count_documents(
        {
            "guide": user["_id"],
            "guideAssignment.status": "accepted",
            "startDate": {"$gte": datetime.utcnow()},
        }
    )
    return APIResponse(
        data={
            "profile": {
                "name": full_name(user),
                "isVerified": profile.get("isVerified", False),
                "verificationStatus": profile.get("verificationStatus", "pending"),
                "profilePicture": user.get("profilePicture"),
            },
            "stats": {
                "totalTours": profile.get("totalTours", 0),
                "completedTours": profile.get("completedTours", 0),
                "averageRating": profile.get("averageRating", 0),
                "totalReviews": profile.get("totalReviews", 0),
                "pendingAssignments": pending,
                "upcomingTrips": upcoming,
            },
            "pricing": {
                "hourlyRate": profile.get("hourlyRate"),
                "dailyRate": profile.get("dailyRate"),
                "currency": profile.get("currency", "INR"),
            },
            "operatingDistricts": profile.get("operatingDistricts", []),
            "specializations": profile.get("specializations", []),
        }
    )


@router.get("/me/trips", response_model=APIResponse)
async def my_trips(
    status: Literal["pending", "accepted", "rejected"] | None = None,
    params: PageParams = Depends(page_params),
    user: dict = Depends(guide_only),
):
    query: dict = {"guide": user["_id"]}
    if status:
        query["guideAssignment.status"] = status
    trips, pagination = await find_page(
        get_trips_collection(), query, [("startDate", 1)], params, {"bookings": 0}
    )
    return APIResponse(data=serialize_doc(trips), pagination=pagination)


@router.put("/trips/{trip_id}/respond", response_model=APIResponse)
async def respond(trip_id: str, body: RespondRequest, user: dict = Depends(guide_only)):
    trip = await load_trip(trip_id)
    respond_to_assignment(trip, user["_id"], body.action, body.reason)
    await save_trip(trip)

    if body.action == "accept":
        await get_users_collection().update_one(
            {"_id": user["_id"]}, {"$inc": {"guideProfile.totalTours": 1}}
        )
    print(f"[respond_to_assignment] Guide {user['email']} {body.action}ed trip {trip['_id']}")
    return APIResponse(
        message=f"Assignment {trip['guideAssignment']['status']}",
        data={"guide": serialize_doc(trip.get("guide")), "guideAssignment": trip["guideAssignment"]},
    )


@router.get("/{guide_id}", response_model=APIResponse)
async def get_guide(guide_id: str):
    guide = await get_users_collection().find_one(
        verified_guide_filter(_id=parse_object_id(guide_id, "guide")), PUBLIC_GUIDE_PROJECTION
    )
    if not guide:
        raise AppError("Guide not found", 404)
    return APIResponse(data=serialize_doc(guide))
