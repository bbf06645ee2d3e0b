"""
Admin Router
User management, profile verification and dashboard statistics
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr, Field

from tourship.core.deps import require_permission, require_roles
from tourship.core.errors import AppError
from tourship.core.security import hash_password
from tourship.db.database import get_users_collection
from tourship.models.common import APIResponse, MongoModel, parse_object_id, sanitize_user, serialize_doc
from tourship.models.user import ADMIN_PERMISSIONS, PHONE_PATTERN, AdminProfile, User, full_name
from tourship.router.auth import soft_delete_changes
from tourship.services.query import PageParams, find_page, page_params, search_clause
from tourship.services.verification import review_verification

router = APIRouter(prefix="/api/admin", tags=["Admin"])


class UserUpdateRequest(MongoModel):
    role: Literal["tourist", "guide", "organiser", "admin"] | None = None
    is_active: bool | None = None
    is_banned: bool | None = None
    ban_reason: str | None = None


class BanRequest(MongoModel):
    is_banned: bool
    reason: str | None = None


class VerifyRequest(MongoModel):
    action: str
    reason: str | None = None


class CreateAdminRequest(MongoModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str | None = None
    department: str | None = None
    permissions: list[str] | None = None


async def _get_user_or_404(user_id: str) -> dict:
    user = await get_users_collection().find_one({"_id": parse_object_id(user_id, "user")})
    if not user:
        raise AppError("User not found", 404)
    return user


@router.get("/users", response_model=APIResponse)
async def list_users(
    role: str | None = None,
    verification_status: str | None = Query(None, alias="verificationStatus"),
    is_active: bool | None = Query(None, alias="isActive"),
    is_banned: bool | None = Query(None, alias="isBanned"),
    search: str | None = None,
    params: PageParams = Depends(page_params),
    admin: dict = Depends(require_permission("manage_users", "view_analytics")),
):
    query: dict = {}
    if role:
        query["role"] = role
    if verification_status:
        query["$or"] = [
            {"guideProfile.verificationStatus": verification_status},
            {"organiserProfile.verificationStatus": verification_status},
        ]
    if is_active is not None:
        query["isActive"] = is_active
    if is_banned is not None:
        query["isBanned"] = is_banned
    text = search_clause(search, "firstName", "lastName", "email", "phone")
    if text:
        query = {"$and": [query, text]} if query else text

    users, pagination = await find_page(
        get_users_collection(), query, [("createdAt", -1)], params
    )
    return APIResponse(data=[sanitize_user(u) for u in users], pagination=pagination)


@router.get("/users/{user_id}", response_model=APIResponse)
async def get_user(user_id: str, admin: dict = Depends(require_permission("manage_users"))):
    return APIResponse(data=sanitize_user(await _get_user_or_404(user_id)))


@router.put("/users/{user_id}", response_model=APIResponse)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    admin: dict = Depends(require_permission("manage_users")),
):
    user = await _get_user_or_404(user_id)
    changes = body.model_dump(by_alias=True, exclude_none=True)
    if body.is_banned is not None:
        changes["banReason"] = body.ban_reason if body.is_banned else None
    if not changes:
        raise AppError("No fields to update", 400)

    changes["updatedAt"] = datetime.utcnow()
    users = get_users_collection()
    await users.update_one({"_id": user["_id"]}, {"$set": changes})
    print(f"[update_user] Admin {admin['email']} updated {user['email']}: {sorted(changes)}")
    return APIResponse(
        message="User updated successfully",
        data=sanitize_user(await users.find_one({"_id": user["_id"]})),
    )


@router.delete("/users/{user_id}", response_model=APIResponse)
async def delete_user(user_id: str, admin: dict = Depends(require_permission("manage_users"))):
    user = await _get_user_or_404(user_id)
    if user["_id"] == admin["_id"]:
        raise AppError("You cannot delete your own account", 400)

    await get_users_collection().update_one({"_id": user["_id"]}, {"$set": soft_delete_changes(user)})
    print(f"[delete_user] Admin {admin['email']} deactivated {user['email']}")
    return APIResponse(message="User deleted successfully")


@router.put("/users/{user_id}/ban", response_model=APIResponse)
async def ban_user(
    user_id: str,
    body: BanRequest,
    admin: dict = Depends(require_permission("manage_users")),
):
    user = await _get_user_or_404(user_id)
    if user["_id"] == admin["_id"]:
        raise AppError("You cannot ban yourself", 400)

    ban_reason = body.reason if body.is_banned else None
    await get_users_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"isBanned": body.is_banned, "banReason": ban_reason, "updatedAt": datetime.utcnow()}},
    )
    print(f"[ban_user] {user['email']} banned={body.is_banned}")
    return APIResponse(
        message="User banned successfully" if body.is_banned else "User unbanned successfully",
        data={"isBanned": body.is_banned, "banReason": ban_reason},
    )


@router.get("/verifications/pending", response_model=APIResponse)
async def pending_verifications(
    role: Literal["guide", "organiser"] | None = None,
    params: PageParams = Depends(page_params),
    admin: dict = Depends(require_permission("verify_users", "manage_guides", "manage_organisers")),
):
    clauses = []
    if role in (None, "guide"):
        clauses.append({"role": "guide", "guideProfile.verificationStatus": "under_review"})
    if role in (None, "organiser"):
        clauses.append({"role": "organiser", "organiserProfile.verificationStatus": "under_review"})

    users, pagination = await find_page(
        get_users_collection(), {"$or": clauses}, [("createdAt", 1)], params
    )
    return APIResponse(data=[sanitize_user(u) for u in users], pagination=pagination)


async def _verify(user_id: str, role: str, body: VerifyRequest, admin: dict) -> APIResponse:
    user = await _get_user_or_404(user_id)
    if user.get("role") != role:
        raise AppError(f"User is not a {role}", 400)

    field = f"{role}Profile"
    profile = dict(user.get(field) or {})
    review_verification(profile, body.action, admin["_id"], body.reason)
    await get_users_collection().update_one(
        {"_id": user["_id"]}, {"$set": {field: profile, "updatedAt": datetime.utcnow()}}
    )

    decision = "approved" if body.action == "approve" else "rejected"
    print(f"[verify_{role}] {full_name(user)} {decision} by {admin['email']}")
    return APIResponse(
        message=f"{role.capitalize()} {decision} successfully",
        data={"id": str(user["_id"]), field: serialize_doc(profile)},
    )


@router.put("/verify/guide/{user_id}", response_model=APIResponse)
async def verify_guide(
    user_id: str,
    body: VerifyRequest,
    admin: dict = Depends(require_permission("verify_users", "manage_guides")),
):
    return await _verify(user_id, "guide", body, admin)


@router.put("/verify/organiser/{user_id}", response_model=APIResponse)
async def verify_organiser(
    user_id: str,
    body: VerifyRequest,
    admin: dict = Depends(require_permission("verify_users", "manage_organisers")),
):
    return await _verify(user_id, "organiser", body, admin)


@router.get("/dashboard", response_model=APIResponse)
async def dashboard(admin: dict = Depends(require_roles("admin"))):
    users = get_users_collection()
    week_ago = datetime.utcnow() - timedelta(days=7)
    roles = ("tourist", "guide", "organiser", "admin")

    counts = await asyncio.gather(
        users.count_documents({}),
        users.count_documents({"isActive": True}),
        users.count_documents({"isBanned": True}),
        users.count_documents({"createdAt": {"$gte": week_ago}}),
        users.count_documents({"role": "guide", "guideProfile.verificationStatus": "under_review"}),
        users.count_documents({"role": "organiser", "organiserProfile.verificationStatus": "under_review"}),
        users.count_documents({"role": "guide", "guideProfile.isVerified": True}),
        users.count_documents({"role": "organiser", "organiserProfile.isVerified": True}),
        *(users.count_documents({"role": r}) for r in roles),
    )
    total, active, banned, recent, pending_g, pending_o, verified_g, verified_o = counts[:8]

    return APIResponse(
        data={
            "users": {
                "total": total,
                "active": active,
                "banned": banned,
                "recentRegistrations": recent,
            },
            "byRole": dict(zip(roles, counts[8:])),
            "verifications": {
                "pendingGuides": pending_g,
                "pendingOrganisers": pending_o,
                "verifiedGuides": verified_g,
                "verifiedOrganisers": verified_o,
            },
        }
    )


@router.get("/analytics/registrations", response_model=APIResponse)
async def registration_analytics(
    days: int = Query(30, ge=1, le=365),
    admin: dict = Depends(require_permission("view_analytics")),
):
    start = datetime.utcnow() - timedelta(days=days)
    docs = await get_users_collection().find(
        {"createdAt": {"$gte": start}}, {"role": 1, "createdAt": 1}
    ).to_list(length=None)

    per_day: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for doc in docs:
        per_day[doc["createdAt"].strftime("%Y-%m-%d")][doc.get("role", "tourist")] += 1

    data = [
        {
            "date": day,
            "roles": [{"role": r, "count": c} for r, c in sorted(roles.items())],
            "total": sum(roles.values()),
        }
        for day, roles in sorted(per_day.items())
    ]
    return APIResponse(data=data)


@router.post("/create-admin", response_model=APIResponse, status_code=201)
async def create_admin(
    body: CreateAdminRequest,
    admin: dict = Depends(require_permission("full_access")),
):
    users = get_users_collection()
    email = body.email.lower()
    if await users.find_one({"email": email}):
        raise AppError("Email already registered", 400)

    permissions = body.permissions or ["view_analytics"]
    unknown = [p for p in permissions if p not in ADMIN_PERMISSIONS]
    if unknown:
        raise AppError(f"Unknown permissions: {', '.join(unknown)}", 400)

    doc = User(
        email=email,
        password=hash_password(body.password),
        phone=body.phone,
        first_name=body.first_name,
        last_name=body.last_name,
        role="admin",
        admin_profile=AdminProfile(department=body.department, permissions=permissions),
    ).to_document()
    result = await users.insert_one(doc)
    doc["_id"] = result.inserted_id

    print(f"[create_admin] {admin['email']} created admin {email}")
    return APIResponse(message="Admin created successfully", data=sanitize_user(doc))
