"""
Attractions Router
Public attraction discovery, reviews and the user wishlist
"""

from datetime import datetime
from typing import Literal

from bson import ObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import Field

from tourship.core.deps import get_current_user
from tourship.core.errors import AppError
from tourship.db.database import get_attractions_collection, get_users_collection
from tourship.models.attraction import CATEGORIES
from tourship.models.common import APIResponse, MongoModel, parse_object_id, serialize_doc
from tourship.models.user import full_name
from tourship.services.geo import bounding_box, haversine_km
from tourship.services.query import (
    PageParams,
    exact_ci,
    find_page,
    page_params,
    paginate_list,
    resolve_sort,
    search_clause,
)
from tourship.services.ratings import popularity_score, prepare_attraction

router = APIRouter(prefix="/api/attractions", tags=["Attractions"])

PUBLIC_SORTS = {
    "popularity": [("analytics.popularityScore", -1)],
    "rating": [("ratings.overall", -1)],
    "rating_asc": [("ratings.overall", 1)],
    "name": [("name", 1)],
    "name_desc": [("name", -1)],
    "newest": [("createdAt", -1)],
    "views": [("analytics.viewCount", -1)],
    "reviews": [("ratings.totalReviews", -1)],
}

# Listings never ship the embedded review list
LIST_PROJECTION = {"reviews": 0}
SHOWCASE_LIMIT = 10


class ReviewRequest(MongoModel):
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(None, max_length=100)
    comment: str | None = Field(None, max_length=1000)
    photos: list[str] = Field(default_factory=list)
    visit_date: datetime | None = None
    visit_type: Literal["solo", "couple", "family", "friends", "business"] | None = None


def public_filter(**extra) -> dict:
    return {"isActive": True, **extra}


async def _bump_counter(doc: dict, field: str, amount: int) -> None:
    """
    Atomic $inc of one analytics counter. The popularity score is recomputed
    from the in-hand document; reviews are never rewritten here.
    """
    analytics = doc.setdefault("analytics", {})
    analytics[field] = max(int(analytics.get(field) or 0) + amount, 0)
    analytics["popularityScore"] = popularity_score(doc)

    query = {"_id": doc["_id"]}
    if amount < 0:
        query[f"analytics.{field}"] = {"$gt": 0}
    await get_attractions_collection().update_one(
        query,
        {
            "$inc": {f"analytics.{field}": amount},
            "$set": {"analytics.popularityScore": analytics["popularityScore"]},
        },
    )


async def _save_reviews(doc: dict) -> None:
    """Write the review list and its aggregates without touching the counters."""
    prepare_attraction(doc)
    await get_attractions_collection().update_one(
        {"_id": doc["_id"]},
        {
            "$set": {
                "reviews": doc["reviews"],
                "ratings": doc["ratings"],
                "analytics.popularityScore": doc["analytics"]["popularityScore"],
                "updatedAt": doc["updatedAt"],
            }
        },
    )


async def _get_by_slug(slug: str) -> dict:
    doc = await get_attractions_collection().find_one(public_filter(slug=slug.lower()))
    if not doc:
        raise AppError("Attraction not found", 404)
    return doc


async def _showcase(query: dict, sort: list[tuple[str, int]], limit: int) -> list[dict]:
    docs = await get_attractions_collection().find(query, LIST_PROJECTION).sort(sort).limit(limit).to_list(length=limit)
    return serialize_doc(docs)


@router.get("", response_model=APIResponse)
async def list_attractions(
    city: str | None = None,
    district: str | None = None,
    category: str | None = None,
    categories: str | None = Query(None, description="Comma separated categories"),
    featured: bool | None = None,
    unesco: bool | None = None,
    free_entry: bool | None = Query(None, alias="freeEntry"),
    must_visit: bool | None = Query(None, alias="mustVisit"),
    hidden_gem: bool | None = Query(None, alias="hiddenGem"),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    params: PageParams = Depends(page_params),
):
    query = public_filter()
    if city:
        query["location.city"] = exact_ci(city)
    if district:
        query["location.district"] = exact_ci(district)
    if category:
        query["category"] = category
    elif categories:
        query["category"] = {"$in": [c.strip() for c in categories.split(",") if c.strip()]}
    flags = {
        "isFeatured": featured,
        "isUNESCOSite": unesco,
        "isFreeEntry": free_entry,
        "isMustVisit": must_visit,
        "isHiddenGem": hidden_gem,
    }
    query.update({field: value for field, value in flags.items() if value is not None})
    if min_rating is not None:
        query["ratings.overall"] = {"$gte": min_rating}
    query.update(search_clause(search, "name", "description", "shortDescription", "tags", "location.city"))

    docs, pagination = await find_page(
        get_attractions_collection(),
        query,
        resolve_sort(sort_by, PUBLIC_SORTS, "popularity"),
        params,
        LIST_PROJECTION,
    )
    return APIResponse(data=serialize_doc(docs), pagination=pagination)


@router.get("/search", response_model=APIResponse)
async def search_attractions(
    q: str = Query(..., min_length=2),
    params: PageParams = Depends(page_params),
):
    query = public_filter(**search_clause(q, "name", "description", "tags", "location.city", "location.district"))
    docs, pagination = await find_page(
        get_attractions_collection(), query, PUBLIC_SORTS["popularity"], params, LIST_PROJECTION
    )
    return APIResponse(data=serialize_doc(docs), pagination=pagination)


@router.get("/featured", response_model=APIResponse)
async def featured(limit: int = Query(SHOWCASE_LIMIT, ge=1, le=50)):
    return APIResponse(data=await _showcase(public_filter(isFeatured=True), PUBLIC_SORTS["popularity"], limit))


@router.get("/popular", response_model=APIResponse)
async def popular(limit: int = Query(SHOWCASE_LIMIT, ge=1, le=50)):
    return APIResponse(data=await _showcase(public_filter(), PUBLIC_SORTS["popularity"], limit))


@router.get("/must-visit", response_model=APIResponse)
async def must_visit(limit: int = Query(SHOWCASE_LIMIT, ge=1, le=50)):
    return APIResponse(data=await _showcase(public_filter(isMustVisit=True), PUBLIC_SORTS["rating"], limit))


@router.get("/hidden-gems", response_model=APIResponse)
async def hidden_gems(limit: int = Query(SHOWCASE_LIMIT, ge=1, le=50)):
    return APIResponse(data=await _showcase(public_filter(isHiddenGem=True), PUBLIC_SORTS["rating"], limit))


@router.get("/nearby", response_model=APIResponse)
async def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(50, gt=0, le=500, description="Kilometres"),
    limit: int = Query(20, ge=1, le=100),
):
    docs = await get_attractions_collection().find(
        public_filter(**bounding_box(lat, lng, radius)), LIST_PROJECTION
    ).to_list(length=None)

    results = []
    for doc in docs:
        coords = (doc.get("location") or {}).get("coordinates") or {}
        distance = haversine_km(lat, lng, coords["latitude"], coords["longitude"])
        if distance <= radius:
            doc["distance"] = round(distance, 2)
            results.append(doc)
    results.sort(key=lambda d: d["distance"])
    return APIResponse(data=serialize_doc(results[:limit]))


@router.get("/cities", response_model=APIResponse)
async def cities():
    docs = await get_attractions_collection().find(public_filter(), {"location.city": 1}).to_list(length=None)
    counts: dict[str, int] = {}
    for doc in docs:
        city = (doc.get("location") or {}).get("city")
        if city:
            counts[city] = counts.get(city, 0) + 1
    data = [{"city": c, "count": n} for c, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]
    return APIResponse(data=data)


@router.get("/districts", response_model=APIResponse)
async def districts():
    docs = await get_attractions_collection().find(public_filter(), {"location.district": 1}).to_list(length=None)
    names = {(d.get("location") or {}).get("district") for d in docs}
    return APIResponse(data=sorted(n for n in names if n))


@router.get("/categories", response_model=APIResponse)
async def categories():
    docs = await get_attractions_collection().find(public_filter(), {"category": 1}).to_list(length=None)
    counts = {c: 0 for c in CATEGORIES}
    for doc in docs:
        counts[doc.get("category", "other")] = counts.get(doc.get("category", "other"), 0) + 1
    return APIResponse(data=[{"category": c, "count": n} for c, n in counts.items() if n])


@router.get("/city/{city}", response_model=APIResponse)
async def by_city(
    city: str,
    sort_by: str | None = Query(None, alias="sortBy"),
    params: PageParams = Depends(page_params),
):
    docs, pagination = await find_page(
        get_attractions_collection(),
        public_filter(**{"location.city": exact_ci(city)}),
        resolve_sort(sort_by, PUBLIC_SORTS, "popularity"),
        params,
        LIST_PROJECTION,
    )
    return APIResponse(data=serialize_doc(docs), pagination=pagination)


@router.get("/user/wishlist", response_model=APIResponse)
async def get_wishlist(user: dict = Depends(get_current_user)):
    ids = (user.get("touristProfile") or {}).get("wishlist") or []
    docs = await get_attractions_collection().find(
        public_filter(_id={"$in": ids}), LIST_PROJECTION
    ).to_list(length=None)
    return APIResponse(data=serialize_doc(docs))


@router.post("/{attraction_id}/wishlist", response_model=APIResponse)
async def add_to_wishlist(attraction_id: str, user: dict = Depends(get_current_user)):
    oid = parse_object_id(attraction_id, "attraction")
    attractions = get_attractions_collection()
    doc = await attractions.find_one(public_filter(_id=oid))
    if not doc:
        raise AppError("Attraction not found", 404)

    wishlist = list((user.get("touristProfile") or {}).get("wishlist") or [])
    if oid in wishlist:
        raise AppError("Attraction already in wishlist", 400)

    wishlist.append(oid)
    await get_users_collection().update_one({"_id": user["_id"]}, {"$set": {"touristProfile.wishlist": wishlist}})
    await _bump_counter(doc, "wishlistCount", 1)
    return APIResponse(message="Added to wishlist", data={"wishlist": serialize_doc(wishlist)})


@router.delete("/{attraction_id}/wishlist", response_model=APIResponse)
async def remove_from_wishlist(attraction_id: str, user: dict = Depends(get_current_user)):
    oid = parse_object_id(attraction_id, "attraction")
    wishlist = list((user.get("touristProfile") or {}).get("wishlist") or [])
    if oid not in wishlist:
        raise AppError("Attraction not in wishlist", 400)

    wishlist.remove(oid)
    await get_users_collection().update_one({"_id": user["_id"]}, {"$set": {"touristProfile.wishlist": wishlist}})

    doc = await get_attractions_collection().find_one({"_id": oid}, LIST_PROJECTION)
    if doc:
        await _bump_counter(doc, "wishlistCount", -1)
    return APIResponse(message="Removed from wishlist", data={"wishlist": serialize_doc(wishlist)})


@router.get("/{slug}/reviews", response_model=APIResponse)
async def get_reviews(slug: str, params: PageParams = Depends(page_params)):
    doc = await _get_by_slug(slug)
    reviews = sorted(doc.get("reviews") or [], key=lambda r: r.get("createdAt") or datetime.min, reverse=True)
    page, pagination = paginate_list(reviews, params)
    return APIResponse(
        data={"reviews": serialize_doc(page), "ratings": doc.get("ratings")},
        pagination=pagination,
    )


@router.post("/{slug}/reviews", response_model=APIResponse, status_code=201)
async def add_review(slug: str, body: ReviewRequest, user: dict = Depends(get_current_user)):
    doc = await _get_by_slug(slug)
    reviews = doc.setdefault("reviews", [])
    if any(r.get("user") == user["_id"] for r in reviews):
        raise AppError("You have already reviewed this attraction", 400)

    review = {
        "_id": ObjectId(),
        "user": user["_id"],
        "userName": full_name(user),
        **body.to_document(),
        "isVerified": False,
        "helpfulCount": 0,
        "createdAt": datetime.utcnow(),
    }
    reviews.append(review)
    await _save_reviews(doc)

    print(f"[add_review] {user['email']} rated {doc['slug']} {body.rating}/5")
    return APIResponse(
        message="Review added successfully",
        data={"review": serialize_doc(review), "ratings": doc["ratings"]},
    )


@router.post("/{slug}/reviews/{review_id}/helpful", response_model=APIResponse)
async def mark_helpful(slug: str, review_id: str, user: dict = Depends(get_current_user)):
    oid = parse_object_id(review_id, "review")
    doc = await _get_by_slug(slug)
    review = next((r for r in doc.get("reviews") or [] if r.get("_id") == oid), None)
    if not review:
        raise AppError("Review not found", 404)

    voters = review.setdefault("helpfulBy", [])
    if user["_id"] in voters:
        raise AppError("You have already marked this review as helpful", 400)
    voters.append(user["_id"])
    review["helpfulCount"] = len(voters)
    await _save_reviews(doc)
    return APIResponse(message="Review marked as helpful", data={"helpfulCount": review["helpfulCount"]})


@router.get("/{slug}", response_model=APIResponse)
async def get_attraction(slug: str):
    doc = await _get_by_slug(slug)
    await _bump_counter(doc, "viewCount", 1)

    doc["reviews"] = sorted(doc.get("reviews") or [], key=lambda r: r.get("createdAt") or datetime.min, reverse=True)[:10]
    return APIResponse(data=serialize_doc(doc))
