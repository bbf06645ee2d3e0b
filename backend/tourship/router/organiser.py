"""
Organiser Router
Public organiser directory and organiser self-service profile
"""

import asyncio
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from tourship.core.deps import require_roles
from tourship.core.errors import AppError
from tourship.db.database import get_trips_collection, get_users_collection
from tourship.models.common import APIResponse, parse_object_id, sanitize_user, serialize_doc
from tourship.models.user import OrganiserProfileUpdate, full_name, profile_changes
from tourship.services.query import PageParams, exact_ci, find_page, page_params, search_clause
from tourship.services.verification import submit_for_verification

router = APIRouter(prefix="/api/organiser", tags=["Organisers"])

organiser_only = require_roles("organiser")

PUBLIC_ORGANISER_PROJECTION = {
    "password": 0,
    "passwordResetToken": 0,
    "passwordResetExpire": 0,
    "phone": 0,
    "touristProfile": 0,
    "guideProfile": 0,
    "adminProfile": 0,
}


def verified_organiser_filter(**extra) -> dict:
    return {
        "role": "organiser",
        "isActive": True,
        "isBanned": False,
        "organiserProfile.isVerified": True,
        **extra,
    }


@router.get("/all", response_model=APIResponse)
async def list_organisers(
    region: str | None = None,
    company_type: str | None = Query(None, alias="companyType"),
    search: str | None = None,
    params: PageParams = Depends(page_params),
):
    query = verified_organiser_filter()
    if region:
        query["organiserProfile.operatingRegions"] = exact_ci(region)
    if company_type:
        query["organiserProfile.companyType"] = company_type
    query.update(search_clause(search, "organiserProfile.companyName", "organiserProfile.description"))

    organisers, pagination = await find_page(
        get_users_collection(),
        query,
        [("organiserProfile.averageRating", -1)],
        params,
        PUBLIC_ORGANISER_PROJECTION,
    )
    return APIResponse(data=serialize_doc(organisers), pagination=pagination)


@router.get("/me/profile", response_model=APIResponse)
async def get_my_profile(user: dict = Depends(organiser_only)):
    return APIResponse(data=sanitize_user(user))


@router.put("/me/profile", response_model=APIResponse)
async def update_my_profile(body: OrganiserProfileUpdate, user: dict = Depends(organiser_only)):
    changes = profile_changes(body, prefix="organiserProfile.")
    if not changes:
        raise AppError("No fields to update", 400)

    changes["updatedAt"] = datetime.utcnow()
    users = get_users_collection()
    await users.update_one({"_id": user["_id"]}, {"$set": changes})
    return APIResponse(
        message="Organiser profile updated successfully",
        data=sanitize_user(await users.find_one({"_id": user["_id"]})),
    )


@router.post("/me/submit-verification", response_model=APIResponse)
async def submit_verification(user: dict = Depends(organiser_only)):
    profile = dict(user.get("organiserProfile") or {})
    submit_for_verification("organiser", profile)
    await get_users_collection().update_one(
        {"_id": user["_id"]}, {"$set": {"organiserProfile": profile, "updatedAt": datetime.utcnow()}}
    )
    print(f"[submit_verification] Organiser {user['email']} submitted for verification")
    return APIResponse(
        message="Profile submitted for verification",
        data={"verificationStatus": profile["verificationStatus"], "submittedAt": profile["submittedAt"]},
    )


@router.get("/me/dashboard", response_model=APIResponse)
async def dashboard(user: dict = Depends(organiser_only)):
    profile = user.get("organiserProfile") or {}
    trips = get_trips_collection()
    mine = {"organiser": user["_id"]}
    total, published, drafts, upcoming = await asyncio.gather(
        trips.count_documents(mine),
        trips.count_documents({**mine, "status": {"$in": ["published", "full"]}}),
        trips.count_documents({**mine, "status": "draft"}),
        trips.count_documents({**mine, "status": {"$in": ["published", "full"]}, "startDate": {"$gte": datetime.utcnow()}}),
    )
    docs = await trips.find(mine, {"analytics": 1}).to_list(length=None)

    return APIResponse(
        data={
            "profile": {
                "name": full_name(user),
                "companyName": profile.get("companyName"),
                "isVerified": profile.get("isVerified", False),
                "verificationStatus": profile.get("verificationStatus", "pending"),
            },
            "stats": {
                "totalTrips": total,
                "publishedTrips": published,
                "draftTrips": drafts,
                "upcomingTrips": upcoming,
                "totalBookings": sum((d.get("analytics") or {}).get("bookingsCount", 0) for d in docs),
                "totalRevenue": sum((d.get("analytics") or {}).get("revenue", 0) for d in docs),
                "averageRating": profile.get("averageRating", 0),
                "totalReviews": profile.get("totalReviews", 0),
            },
        }
    )


@router.get("/{organiser_id}", response_model=APIResponse)
async def get_organiser(organiser_id: str):
    organiser = await get_users_collection().find_one(
        verified_organiser_filter(_id=parse_object_id(organiser_id, "organiser")),
        PUBLIC_ORGANISER_PROJECTION,
    )
    if not organiser:
        raise AppError("Organiser not found", 404)
    return APIResponse(data=serialize_doc(organiser))
