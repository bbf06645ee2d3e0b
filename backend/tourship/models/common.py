"""
Common API models and document helpers
"""

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tourship.core.errors import AppError


class APIResponse(BaseModel):
    """
    Unified API response envelope
    """

    success: bool = Field(default=True, description="False when the request failed")
    message: str | None = Field(default=None, description="Human-readable message")
    data: Any | None = Field(default=None, description="Payload data")
    pagination: dict | None = Field(default=None, description="Pagination details for listings")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "ok",
                "data": {"items": []},
                "pagination": {"page": 1, "limit": 10, "total": 0, "pages": 0},
            }
        }


class MongoModel(BaseModel):
    """
    Base for stored documents and request bodies.
    Attributes are snake_case; stored keys and JSON bodies are camelCase.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def store_naive_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return naive_utc(value)
        return value

    def to_document(self, **kwargs) -> dict:
        return self.model_dump(by_alias=True, **kwargs)


def naive_utc(value: datetime | None) -> datetime | None:
    """Offset-aware datetimes are converted to UTC and stored without tzinfo."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_object_id(value: str, name: str = "resource") -> ObjectId:
    """Convert a path/body id to ObjectId, 400 if malformed."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise AppError(f"Invalid {name} ID", 400)
    return ObjectId(value)


def serialize_doc(value: Any) -> Any:
    """
    Make a MongoDB document JSON friendly: `_id` becomes `id` and every
    ObjectId becomes a string. Works on nested dicts and lists.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    if isinstance(value, dict):
        out = {}
        for key, v in value.items():
            out["id" if key == "_id" else key] = serialize_doc(v)
        return out
    return value


USER_PRIVATE_FIELDS = ("password", "passwordResetToken", "passwordResetExpire")


def sanitize_user(user: dict | None) -> dict | None:
    """Strip secrets from a user document before returning it."""
    if user is None:
        return None
    clean = {k: v for k, v in user.items() if k not in USER_PRIVATE_FIELDS}
    return serialize_doc(clean)
