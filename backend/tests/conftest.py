"""
Shared fixtures: an in-memory stand-in for the motor collections and
helpers for creating users and tokens.
"""

import copy
import re
import sys
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

# Add parent directory to path to import tourship modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from tourship.core.rate_limit import limiter  # noqa: E402
from tourship.core.security import create_access_token, hash_password  # noqa: E402
from tourship.db import database  # noqa: E402

_MISSING = object()


def _values(value, parts):
    if not parts:
        return [value]
    if isinstance(value, list):
        out = []
        for item in value:
            out.extend(_values(item, parts))
        return out
    if isinstance(value, dict) and parts[0] in value:
        return _values(value[parts[0]], parts[1:])
    return []


def _candidates(doc, path):
    found = _values(doc, path.split("."))
    expanded = list(found)
    for value in found:
        if isinstance(value, list):
            expanded.extend(value)
    return expanded


def _compare(candidates, op, target):
    for value in candidates:
        if value is None or isinstance(value, (list, dict)):
            continue
        try:
            if op == "$gt" and value > target:
                return True
            if op == "$gte" and value >= target:
                return True
            if op == "$lt" and value < target:
                return True
            if op == "$lte" and value <= target:
                return True
        except TypeError:
            continue
    return False


def _match_condition(candidates, cond):
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, target in cond.items():
            if op == "$options":
                continue
            if op == "$exists":
                if bool(candidates) != bool(target):
                    return False
            elif op == "$ne":
                if any(c == target for c in candidates):
                    return False
            elif op == "$in":
                if not any(c in target for c in candidates if not isinstance(c, (list, dict))):
                    return False
            elif op == "$nin":
                if any(c in target for c in candidates if not isinstance(c, (list, dict))):
                    return False
            elif op == "$regex":
                flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
                if not any(isinstance(c, str) and re.search(target, c, flags) for c in candidates):
                    return False
            elif op in ("$gt", "$gte", "$lt", "$lte"):
                if not _compare(candidates, op, target):
                    return False
            else:
                raise NotImplementedError(op)
        return True
    if cond is None:
        return not candidates or any(c is None for c in candidates)
    return any(c == cond for c in candidates)


def matches(doc, query) -> bool:
    for key, cond in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in cond):
                return False
        elif not _match_condition(_candidates(doc, key), cond):
            return False
    return True


def _set_path(doc, path, value):
    parts = path.split(".")
    for part in parts[:-1]:
        if not isinstance(doc.get(part), dict):
            doc[part] = {}
        doc = doc[part]
    doc[parts[-1]] = value


def _get_path(doc, path, default=None):
    for part in path.split("."):
        if not isinstance(doc, dict) or part not in doc:
            return default
        doc = doc[part]
    return doc


def _project(doc, projection):
    if not projection:
        return doc
    include = {k.split(".")[0] for k, v in projection.items() if v}
    exclude = {k for k, v in projection.items() if not v}
    if include:
        return {k: v for k, v in doc.items() if k in include or k == "_id"}
    return {k: v for k, v in doc.items() if k not in exclude}


def _sort_key(value):
    # None sorts before everything, like a missing field in MongoDB
    return (value is not None, value if value is not None else 0)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for field, order in reversed(keys):
            self._docs.sort(key=lambda d: _sort_key(_get_path(d, field)), reverse=order == -1)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        if length:
            docs = docs[:length]
        return docs


class FakeCollection:
    """Async in-memory collection covering the motor calls the app makes."""

    def __init__(self, unique=()):
        self.docs: list[dict] = []
        self.unique = tuple(unique)

    def _check_unique(self, doc, ignore_id=None):
        for field in self.unique:
            value = _get_path(doc, field)
            if value is None:
                continue
            for other in self.docs:
                if other["_id"] != ignore_id and _get_path(other, field) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error: {field}",
                        11000,
                        {"keyValue": {field: value}},
                    )

    def _find(self, query):
        return [d for d in self.docs if matches(d, query)]

    async def create_index(self, *args, **kwargs):
        return "ok"

    async def find_one(self, query=None, projection=None):
        for doc in self.docs:
            if matches(doc, query):
                return _project(copy.deepcopy(doc), projection)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([_project(copy.deepcopy(d), projection) for d in self._find(query)])

    async def count_documents(self, query):
        return len(self._find(query))

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.docs.append(stored)
        doc["_id"] = stored["_id"]
        return SimpleNamespace(inserted_id=stored["_id"])

    async def replace_one(self, query, doc):
        for index, existing in enumerate(self.docs):
            if matches(existing, query):
                replacement = copy.deepcopy(doc)
                replacement["_id"] = existing["_id"]
                self._check_unique(replacement, ignore_id=existing["_id"])
                self.docs[index] = replacement
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def _apply(self, doc, update):
        for path, value in (update.get("$set") or {}).items():
            _set_path(doc, path, copy.deepcopy(value))
        for path, amount in (update.get("$inc") or {}).items():
            _set_path(doc, path, (_get_path(doc, path) or 0) + amount)
        for path, value in (update.get("$push") or {}).items():
            current = _get_path(doc, path) or []
            _set_path(doc, path, current + [copy.deepcopy(value)])

    async def update_one(self, query, update):
        for doc in self.docs:
            if matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        targets = self._find(query)
        for doc in targets:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(targets), modified_count=len(targets))

    async def delete_one(self, query):
        for doc in self.docs:
            if matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        targets = self._find(query)
        for doc in targets:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(targets))


class FakeDatabase:
    def __init__(self):
        self.users = FakeCollection(unique=("email",))
        self.attractions = FakeCollection(unique=("slug",))
        self.trips = FakeCollection(unique=("slug",))

    async def command(self, name):
        return {"ok": 1}


@pytest.fixture
def db(monkeypatch):
    fake = FakeDatabase()
    monkeypatch.setattr(database, "_database", fake)
    return fake


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from tourship.main import app

    limiter.reset()
    return TestClient(app)


_phone_counter = iter(range(10**9))


def make_user(db, role="tourist", verified=True, password="secret123", **overrides) -> dict:
    """Insert a user straight into the fake store and return the document."""
    n = next(_phone_counter)
    doc = {
        "_id": ObjectId(),
        "email": f"{role}{n}@example.com",
        "password": hash_password(password),
        "phone": f"9{n:09d}",
        "firstName": role.capitalize(),
        "lastName": str(n),
        "role": role,
        "isActive": True,
        "isBanned": False,
        "createdAt": datetime.utcnow(),
        "updatedAt": datetime.utcnow(),
    }
    if role == "tourist":
        doc["touristProfile"] = {"wishlist": [], "loyaltyPoints": 0}
    elif role == "guide":
        doc["guideProfile"] = {
            "licenseNumber": "RJ-GD-1001",
            "languagesSpoken": [{"language": "Hindi", "proficiency": "native"}],
            "operatingDistricts": ["Jaipur"],
            "specializations": ["heritage"],
            "isAvailable": True,
            "isVerified": verified,
            "verificationStatus": "approved" if verified else "pending",
            "totalTours": 0,
            "averageRating": 4.5,
        }
    elif role == "organiser":
        doc["organiserProfile"] = {
            "companyName": "Desert Trails",
            "companyType": "tour_operator",
            "registrationNumber": "REG-42",
            "isVerified": verified,
            "verificationStatus": "approved" if verified else "pending",
            "totalPackages": 0,
            "totalBookings": 0,
        }
    elif role == "admin":
        doc["adminProfile"] = {"permissions": ["full_access"], "isSuperAdmin": False}
    doc.update(overrides)
    db.users.docs.append(doc)
    return doc


def auth_headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def make_attraction(db, name="Amber Fort", city="Jaipur", **overrides) -> dict:
    from tourship.services.ratings import prepare_attraction

    doc = {
        "_id": ObjectId(),
        "name": name,
        "description": f"{name} description",
        "location": {"city": city, "district": city, "coordinates": {"latitude": 26.98, "longitude": 75.85}},
        "category": "fort",
        "tags": ["heritage"],
        "isUNESCOSite": False,
        "isActive": True,
        "isFeatured": False,
        "status": "open",
        "reviews": [],
        "images": [],
        "analytics": {"viewCount": 0, "wishlistCount": 0},
        "createdAt": datetime.utcnow(),
    }
    doc.update(overrides)
    prepare_attraction(doc, name_changed=True)
    db.attractions.docs.append(doc)
    return doc


def make_trip(db, organiser: dict, attraction: dict, max_people=10, status="published", **overrides) -> dict:
    start = datetime.utcnow() + timedelta(days=30)
    doc = {
        "_id": ObjectId(),
        "title": "Amber Fort Morning Walk",
        "slug": f"amber-fort-morning-walk-{ObjectId()}",
        "description": "Guided walk",
        "organiser": organiser["_id"],
        "attraction": attraction["_id"],
        "attractions": [],
        "guide": None,
        "guideAssignment": {"status": "not_assigned"},
        "categories": ["heritage"],
        "destinations": [attraction["name"]],
        "startLocation": {"name": "Fort gate"},
        "startDate": start,
        "endDate": start + timedelta(hours=6),
        "pricing": {"pricePerPerson": 1000.0, "currency": "INR"},
        "capacity": {"minPeople": 1, "maxPeople": max_people, "currentBookings": 0},
        "bookings": [],
        "hotelOptions": [],
        "cancellationPolicy": {"refundRules": []},
        "status": status,
        "isActive": True,
        "visibility": "public",
        "analytics": {"views": 0, "bookingsCount": 0, "revenue": 0},
        "version": 0,
        "createdAt": datetime.utcnow(),
    }
    doc.update(overrides)
    db.trips.docs.append(doc)
    return doc
