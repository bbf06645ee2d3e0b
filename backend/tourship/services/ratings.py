"""
Derived attraction fields: slug, rating aggregate and popularity score
"""

import re
from datetime import datetime

_BUCKETS = {5: "five", 4: "four", 3: "three", 2: "two", 1: "one"}


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")


def attraction_slug(name: str, city: str) -> str:
    return f"{slugify(name)}-{slugify(city)}"


def trip_slug(title: str, now: datetime | None = None) -> str:
    now = now or datetime.utcnow()
    return f"{slugify(title)}-{int(now.timestamp() * 1000)}"


def calculate_ratings(reviews: list[dict]) -> dict:
    """Full re-scan of the embedded reviews."""
    distribution = {bucket: 0 for bucket in _BUCKETS.values()}
    if not reviews:
        return {"overall": 0, "totalReviews": 0, "distribution": distribution}

    total = 0
    for review in reviews:
        rating = int(review.get("rating") or 0)
        total += rating
        bucket = _BUCKETS.get(rating)
        if bucket:
            distribution[bucket] += 1

    return {
        "overall": round(total / len(reviews), 1),
        "totalReviews": len(reviews),
        "distribution": distribution,
    }


def popularity_score(attraction: dict) -> float:
    ratings = attraction.get("ratings") or {}
    analytics = attraction.get("analytics") or {}
    score = (
        float(ratings.get("overall") or 0) * 20
        + float(analytics.get("viewCount") or 0) * 0.01
        + float(analytics.get("wishlistCount") or 0) * 0.5
        + float(ratings.get("totalReviews") or 0) * 2
        + (50 if attraction.get("isFeatured") else 0)
        + (100 if attraction.get("isUNESCOSite") else 0)
    )
    return round(score, 2)


def prepare_attraction(doc: dict, name_changed: bool = False) -> dict:
    """
    Refresh every derived field before an attraction is written.
    The slug is only regenerated for new documents or a changed name.
    """
    if name_changed or not doc.get("slug"):
        city = (doc.get("location") or {}).get("city", "")
        doc["slug"] = attraction_slug(doc.get("name", ""), city)

    doc["ratings"] = calculate_ratings(doc.get("reviews") or [])
    analytics = doc.setdefault("analytics", {})
    analytics["popularityScore"] = popularity_score(doc)
    doc["updatedAt"] = datetime.utcnow()
    return doc
