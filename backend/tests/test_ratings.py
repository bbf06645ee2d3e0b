from datetime import datetime

from tourship.services.ratings import (
    attraction_slug,
    calculate_ratings,
    popularity_score,
    prepare_attraction,
    slugify,
    trip_slug,
)


def test_slugs():
    assert slugify("  Hawa Mahal (Palace of Winds)! ") == "hawa-mahal-palace-of-winds"
    assert attraction_slug("City Palace", "Udaipur") == "city-palace-udaipur"
    assert attraction_slug("Jal Mahal", "Jaipur City") == "jal-mahal-jaipur-city"
    assert trip_slug("Desert Safari", datetime(2026, 1, 1)).startswith("desert-safari-")
    assert trip_slug("Desert Safari", datetime(2026, 1, 1)) != trip_slug("Desert Safari", datetime(2026, 1, 2))


def test_ratings_aggregate():
    ratings = calculate_ratings([{"rating": 5}, {"rating": 4}, {"rating": 4}])
    assert ratings["overall"] == 4.3
    assert ratings["totalReviews"] == 3
    assert ratings["distribution"] == {"five": 1, "four": 2, "three": 0, "two": 0, "one": 0}

    empty = calculate_ratings([])
    assert empty["overall"] == 0
    assert empty["totalReviews"] == 0


def test_popularity_score():
    attraction = {
        "ratings": {"overall": 4.5, "totalReviews": 10},
        "analytics": {"viewCount": 1000, "wishlistCount": 4},
        "isFeatured": True,
        "isUNESCOSite": True,
    }
    # 90 + 10 + 2 + 20 + 50 + 100
    assert popularity_score(attraction) == 272.0
    assert popularity_score({}) == 0


def test_prepare_keeps_slug_unless_name_changed():
    doc = {"name": "Amber Fort", "location": {"city": "Jaipur"}, "reviews": [{"rating": 3}]}
    prepare_attraction(doc)
    assert doc["slug"] == "amber-fort-jaipur"
    assert doc["ratings"]["overall"] == 3.0
    assert doc["analytics"]["popularityScore"] == 62.0

    doc["name"] = "Amer Fort"
    prepare_attraction(doc)
    assert doc["slug"] == "amber-fort-jaipur"
    prepare_attraction(doc, name_changed=True)
    assert doc["slug"] == "amer-fort-jaipur"
