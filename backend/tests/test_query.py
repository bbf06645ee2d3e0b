import asyncio

from conftest import FakeCollection

from tourship.services.geo import bounding_box, haversine_km
from tourship.services.query import (
    PageParams,
    contains,
    date_range,
    find_page,
    pagination_meta,
    paginate_list,
    resolve_sort,
    search_clause,
)


def test_pagination_meta():
    assert pagination_meta(1, 10, 25) == {
        "page": 1,
        "limit": 10,
        "total": 25,
        "pages": 3,
        "hasNext": True,
        "hasPrev": False,
    }
    meta = pagination_meta(3, 10, 25)
    assert meta["hasNext"] is False
    assert meta["hasPrev"] is True
    assert pagination_meta(1, 10, 0)["pages"] == 0


def test_search_input_is_escaped():
    assert contains(" a.b* ") == {"$regex": r"a\.b\*", "$options": "i"}
    assert search_clause("  ") == {}
    clause = search_clause("fort", "name", "tags")
    assert [list(c) for c in clause["$or"]] == [["name"], ["tags"]]


def test_sort_and_dates():
    options = {"rating": [("ratings.overall", -1)], "name": [("name", 1)]}
    assert resolve_sort("name", options, "rating") == [("name", 1)]
    assert resolve_sort("bogus", options, "rating") == [("ratings.overall", -1)]
    assert resolve_sort(None, options, "rating") == [("ratings.overall", -1)]
    assert date_range() is None
    assert date_range(start=1) == {"$gte": 1}


def test_find_page_and_list_paging():
    collection = FakeCollection()
    collection.docs = [{"_id": i, "n": i} for i in range(23)]
    docs, meta = asyncio.run(find_page(collection, {}, [("n", -1)], PageParams(page=2, limit=10)))
    assert [d["n"] for d in docs] == list(range(12, 2, -1))
    assert meta["total"] == 23
    assert meta["pages"] == 3

    items, meta = paginate_list(list(range(5)), PageParams(page=2, limit=2))
    assert items == [2, 3]
    assert meta["hasNext"] is True


def test_haversine_and_box():
    # Jaipur to Udaipur is roughly 330 km as the crow flies
    distance = haversine_km(26.9124, 75.7873, 24.5854, 73.7125)
    assert 320 < distance < 345
    assert haversine_km(10, 10, 10, 10) == 0

    box = bounding_box(26.0, 75.0, 111.0)
    assert box["location.coordinates.latitude"] == {"$gte": 25.0, "$lte": 27.0}
