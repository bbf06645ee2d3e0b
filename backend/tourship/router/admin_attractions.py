"""
Admin Attractions Router
Attraction CRUD, media, schedule and bulk management for admins
"""

import asyncio
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from tourship.core.deps import require_permission
from tourship.core.errors import AppError
from tourship.db.database import get_attractions_collection
from tourship.models.attraction import (
    Analytics,
    Attraction,
    AttractionStatus,
    DayHours,
    EntryFee,
    Event,
    Location,
)
from tourship.models.common import APIResponse, MongoModel, parse_object_id, serialize_doc
from tourship.services.query import (
    PageParams,
    exact_ci,
    find_page,
    page_params,
    resolve_sort,
    search_clause,
)
from tourship.services.ratings import prepare_attraction

router = APIRouter(prefix="/api/admin/attractions", tags=["Admin Attractions"])

manage = require_permission("manage_attractions")
manage_or_view = require_permission("manage_attractions", "view_analytics")

BULK_UPDATE_FIELDS = ("isActive", "isFeatured", "status", "isPopular", "isMustVisit")

ADMIN_SORTS = {
    "newest": [("createdAt", -1)],
    "oldest": [("createdAt", 1)],
    "name": [("name", 1)],
    "rating": [("ratings.overall", -1)],
    "popularity": [("analytics.popularityScore", -1)],
    "views": [("analytics.viewCount", -1)],
}


class AttractionUpdate(MongoModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = Field(None, min_length=1, max_length=5000)
    short_description: str | None = Field(None, max_length=300)
    location: Location | None = None
    category: str | None = None
    tags: list[str] | None = None
    is_unesco_site: bool | None = Field(None, alias="isUNESCOSite")
    closed_on: list[str] | None = None
    is_free_entry: bool | None = None
    best_time_to_visit: str | None = None
    average_visit_duration: str | None = None
    is_popular: bool | None = None
    is_must_visit: bool | None = None
    is_hidden_gem: bool | None = None


class StatusRequest(MongoModel):
    status: AttractionStatus
    closure_reason: str | None = None
    reopening_date: datetime | None = None


class ImagesRequest(MongoModel):
    images: list[str] = Field(..., min_length=1)


class ThumbnailRequest(MongoModel):
    thumbnail: str = Field(..., min_length=1)


class OpeningHoursRequest(MongoModel):
    opening_hours: dict[str, DayHours]
    closed_on: list[str] | None = None


class BulkUpdateRequest(MongoModel):
    ids: list[str] = Field(..., min_length=1)
    updates: dict


class BulkDeleteRequest(MongoModel):
    ids: list[str] = Field(..., min_length=1)


async def _get_or_404(attraction_id: str) -> dict:
    doc = await get_attractions_collection().find_one(
        {"_id": parse_object_id(attraction_id, "attraction")}
    )
    if not doc:
        raise AppError("Attraction not found", 404)
    return doc


async def save_attraction(doc: dict, name_changed: bool = False) -> dict:
    """Recompute derived fields and write the whole document back."""
    prepare_attraction(doc, name_changed)
    await get_attractions_collection().replace_one({"_id": doc["_id"]}, doc)
    return doc


@router.post("", response_model=APIResponse, status_code=201)
async def create_attraction(body: Attraction, admin: dict = Depends(manage)):
    doc = body.to_document()
    doc.update(
        {
            "createdBy": admin["_id"],
            "lastUpdatedBy": admin["_id"],
            "slug": None,
            "reviews": [],
            "analytics": Analytics().to_document(),
        }
    )
    prepare_attraction(doc, name_changed=True)

    result = await get_attractions_collection().insert_one(doc)
    doc["_id"] = result.inserted_id
    print(f"[create_attraction] {doc['name']} ({doc['slug']}) created by {admin['email']}")
    return APIResponse(message="Attraction created successfully", data=serialize_doc(doc))


@router.get("", response_model=APIResponse)
async def list_attractions(
    city: str | None = None,
    category: str | None = None,
    status: str | None = None,
    is_active: bool | None = Query(None, alias="isActive"),
    is_featured: bool | None = Query(None, alias="isFeatured"),
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    params: PageParams = Depends(page_params),
    admin: dict = Depends(manage_or_view),
):
    query: dict = {}
    if city:
        query["location.city"] = exact_ci(city)
    if category:
        query["category"] = category
    if status:
        query["status"] = status
    if is_active is not None:
        query["isActive"] = is_active
    if is_featured is not None:
        query["isFeatured"] = is_featured
    query.update(search_clause(search, "name", "description", "location.city", "tags"))

    docs, pagination = await find_page(
        get_attractions_collection(),
        query,
        resolve_sort(sort_by, ADMIN_SORTS, "newest"),
        params,
        {"reviews": 0},
    )
    return APIResponse(data=serialize_doc(docs), pagination=pagination)


@router.get("/stats", response_model=APIResponse)
async def attraction_stats(admin: dict = Depends(manage_or_view)):
    col = get_attractions_collection()
    total, active, featured, unesco, closed = await asyncio.gather(
        col.count_documents({}),
        col.count_documents({"isActive": True}),
        col.count_documents({"isFeatured": True}),
        col.count_documents({"isUNESCOSite": True}),
        col.count_documents({"status": {"$ne": "open"}}),
    )
    docs = await col.find({}, {"category": 1, "ratings": 1, "analytics": 1}).to_list(length=None)

    by_category: dict[str, int] = {}
    for doc in docs:
        by_category[doc.get("category", "other")] = by_category.get(doc.get("category", "other"), 0) + 1
    rated = [d["ratings"]["overall"] for d in docs if (d.get("ratings") or {}).get("totalReviews")]

    return APIResponse(
        data={
            "total": total,
            "active": active,
            "inactive": total - active,
            "featured": featured,
            "unesco": unesco,
            "notOpen": closed,
            "byCategory": by_category,
            "averageRating": round(sum(rated) / len(rated), 1) if rated else 0,
            "totalViews": sum((d.get("analytics") or {}).get("viewCount", 0) for d in docs),
        }
    )


@router.get("/cities-summary", response_model=APIResponse)
async def cities_summary(admin: dict = Depends(manage_or_view)):
    docs = await get_attractions_collection().find(
        {}, {"location.city": 1, "isActive": 1, "ratings": 1}
    ).to_list(length=None)

    summary: dict[str, dict] = {}
    for doc in docs:
        city = (doc.get("location") or {}).get("city") or "Unknown"
        entry = summary.setdefault(city, {"city": city, "total": 0, "active": 0, "ratingSum": 0.0})
        entry["total"] += 1
        entry["active"] += 1 if doc.get("isActive") else 0
        entry["ratingSum"] += (doc.get("ratings") or {}).get("overall", 0)

    data = []
    for entry in sorted(summary.values(), key=lambda e: e["total"], reverse=True):
        rating_sum = entry.pop("ratingSum")
        entry["averageRating"] = round(rating_sum / entry["total"], 1)
        data.append(entry)
    return APIResponse(data=data)


@router.put("/bulk-update", response_model=APIResponse)
async def bulk_update(body: BulkUpdateRequest, admin: dict = Depends(manage)):
    changes = {k: v for k, v in body.updates.items() if k in BULK_UPDATE_FIELDS}
    if not changes:
        raise AppError(f"No valid fields to update. Allowed: {', '.join(BULK_UPDATE_FIELDS)}", 400)

    ids = [parse_object_id(i, "attraction") for i in body.ids]
    changes.update({"lastUpdatedBy": admin["_id"], "updatedAt": datetime.utcnow()})
    result = await get_attractions_collection().update_many({"_id": {"$in": ids}}, {"$set": changes})
    print(f"[bulk_update] {result.modified_count} attractions updated by {admin['email']}")
    return APIResponse(
        message=f"{result.modified_count} attractions updated",
        data={"matched": result.matched_count, "modified": result.modified_count},
    )


@router.delete("/bulk-delete", response_model=APIResponse)
async def bulk_delete(
    body: BulkDeleteRequest,
    admin: dict = Depends(require_permission("manage_attractions", "full_access")),
):
    ids = [parse_object_id(i, "attraction") for i in body.ids]
    result = await get_attractions_collection().delete_many({"_id": {"$in": ids}})
    print(f"[bulk_delete] {result.deleted_count} attractions deleted by {admin['email']}")
    return APIResponse(
        message=f"{result.deleted_count} attractions deleted",
        data={"deleted": result.deleted_count},
    )


@router.get("/{attraction_id}", response_model=APIResponse)
async def get_attraction(attraction_id: str, admin: dict = Depends(manage)):
    return APIResponse(data=serialize_doc(await _get_or_404(attraction_id)))


@router.put("/{attraction_id}", response_model=APIResponse)
async def update_attraction(attraction_id: str, body: AttractionUpdate, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    changes = body.model_dump(by_alias=True, exclude_none=True)
    if not changes:
        raise AppError("No fields to update", 400)

    name_changed = "name" in changes and changes["name"] != doc.get("name")
    city_changed = "location" in changes and changes["location"].get("city") != (doc.get("location") or {}).get("city")
    doc.update(changes)
    doc["lastUpdatedBy"] = admin["_id"]
    await save_attraction(doc, name_changed or city_changed)
    return APIResponse(message="Attraction updated successfully", data=serialize_doc(doc))


@router.delete("/{attraction_id}", response_model=APIResponse)
async def delete_attraction(attraction_id: str, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    await get_attractions_collection().delete_one({"_id": doc["_id"]})
    print(f"[delete_attraction] {doc.get('name')} deleted by {admin['email']}")
    return APIResponse(message="Attraction deleted successfully")


@router.put("/{attraction_id}/toggle-active", response_model=APIResponse)
async def toggle_active(attraction_id: str, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["isActive"] = not doc.get("isActive", True)
    await save_attraction(doc)
    state = "activated" if doc["isActive"] else "deactivated"
    return APIResponse(message=f"Attraction {state}", data={"isActive": doc["isActive"]})


@router.put("/{attraction_id}/toggle-featured", response_model=APIResponse)
async def toggle_featured(attraction_id: str, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["isFeatured"] = not doc.get("isFeatured", False)
    await save_attraction(doc)
    return APIResponse(
        message="Attraction featured" if doc["isFeatured"] else "Attraction unfeatured",
        data={"isFeatured": doc["isFeatured"], "popularityScore": doc["analytics"]["popularityScore"]},
    )


@router.put("/{attraction_id}/status", response_model=APIResponse)
async def update_status(attraction_id: str, body: StatusRequest, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["status"] = body.status
    if body.status == "open":
        doc["closureReason"] = None
        doc["reopeningDate"] = None
    else:
        doc["closureReason"] = body.closure_reason
        doc["reopeningDate"] = body.reopening_date
    await save_attraction(doc)
    return APIResponse(
        message=f"Attraction status updated to {body.status}",
        data={
            "status": doc["status"],
            "closureReason": doc["closureReason"],
            "reopeningDate": doc["reopeningDate"],
        },
    )


@router.put("/{attraction_id}/verify", response_model=APIResponse)
async def verify_attraction(
    attraction_id: str,
    admin: dict = Depends(require_permission("manage_attractions", "verify_users")),
):
    doc = await _get_or_404(attraction_id)
    doc["isVerified"] = True
    doc["lastUpdatedBy"] = admin["_id"]
    await save_attraction(doc)
    return APIResponse(message="Attraction verified", data={"isVerified": True})


@router.post("/{attraction_id}/images", response_model=APIResponse)
async def add_images(attraction_id: str, body: ImagesRequest, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc.setdefault("images", []).extend(body.images)
    if not doc.get("thumbnail"):
        doc["thumbnail"] = doc["images"][0]
    await save_attraction(doc)
    return APIResponse(message=f"{len(body.images)} images added", data={"images": doc["images"]})


@router.delete("/{attraction_id}/images/{image_index}", response_model=APIResponse)
async def remove_image(attraction_id: str, image_index: int, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    images = doc.get("images") or []
    if image_index < 0 or image_index >= len(images):
        raise AppError("Invalid image index", 400)

    removed = images.pop(image_index)
    if doc.get("thumbnail") == removed:
        doc["thumbnail"] = images[0] if images else None
    await save_attraction(doc)
    return APIResponse(message="Image removed", data={"images": images, "thumbnail": doc["thumbnail"]})


@router.put("/{attraction_id}/thumbnail", response_model=APIResponse)
async def update_thumbnail(attraction_id: str, body: ThumbnailRequest, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["thumbnail"] = body.thumbnail
    await save_attraction(doc)
    return APIResponse(message="Thumbnail updated", data={"thumbnail": body.thumbnail})


@router.put("/{attraction_id}/entry-fees", response_model=APIResponse)
async def update_entry_fees(attraction_id: str, body: EntryFee, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["entryFees"] = body.to_document()
    doc["isFreeEntry"] = not any(doc["entryFees"].values())
    await save_attraction(doc)
    return APIResponse(
        message="Entry fees updated",
        data={"entryFees": doc["entryFees"], "isFreeEntry": doc["isFreeEntry"]},
    )


@router.put("/{attraction_id}/opening-hours", response_model=APIResponse)
async def update_opening_hours(attraction_id: str, body: OpeningHoursRequest, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    doc["openingHours"] = {day: hours.to_document() for day, hours in body.opening_hours.items()}
    if body.closed_on is not None:
        doc["closedOn"] = body.closed_on
    await save_attraction(doc)
    return APIResponse(
        message="Opening hours updated",
        data={"openingHours": doc["openingHours"], "closedOn": doc.get("closedOn", [])},
    )


@router.post("/{attraction_id}/events", response_model=APIResponse, status_code=201)
async def add_event(attraction_id: str, body: Event, admin: dict = Depends(manage)):
    if body.start_date and body.end_date and body.end_date < body.start_date:
        raise AppError("Event end date must be after start date", 400)
    doc = await _get_or_404(attraction_id)
    doc.setdefault("events", []).append(body.to_document())
    await save_attraction(doc)
    return APIResponse(message="Event added", data={"events": doc["events"]})


@router.delete("/{attraction_id}/events/{event_index}", response_model=APIResponse)
async def remove_event(attraction_id: str, event_index: int, admin: dict = Depends(manage)):
    doc = await _get_or_404(attraction_id)
    events = doc.get("events") or []
    if event_index < 0 or event_index >= len(events):
        raise AppError("Invalid event index", 400)
    events.pop(event_index)
    await save_attraction(doc)
    return APIResponse(message="Event removed", data={"events": events})
