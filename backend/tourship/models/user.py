"""
User model and role profiles for MongoDB storage
"""

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from tourship.models.common import MongoModel

Role = Literal["tourist", "guide", "organiser", "admin"]
VerificationStatus = Literal["pending", "under_review", "approved", "rejected"]

SELF_REGISTER_ROLES = ("tourist", "guide", "organiser")

ADMIN_PERMISSIONS = (
    "manage_users",
    "manage_guides",
    "manage_organisers",
    "manage_attractions",
    "manage_bookings",
    "view_analytics",
    "manage_content",
    "manage_settings",
    "verify_users",
    "financial_access",
    "full_access",
)

PHONE_PATTERN = r"^[6-9]\d{9}$"
PINCODE_PATTERN = r"^\d{6}$"
GST_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"


class Address(MongoModel):
    street: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    state: str = "Rajasthan"
    pincode: str | None = Field(None, pattern=PINCODE_PATTERN)
    country: str = "India"


class LanguageSkill(MongoModel):
    language: str
    proficiency: Literal["basic", "conversational", "fluent", "native"] = "conversational"


class DayAvailability(MongoModel):
    available: bool = True
    slots: list[str] = Field(default_factory=list)


class VerificationMixin(MongoModel):
    is_verified: bool = False
    verification_status: VerificationStatus = "pending"
    submitted_at: datetime | None = None
    verified_at: datetime | None = None
    verified_by: str | None = None
    rejection_reason: str | None = None


class TouristProfile(MongoModel):
    travel_preferences: list[str] = Field(default_factory=list)
    wishlist: list = Field(default_factory=list, description="Attraction ids")
    loyalty_points: int = 0
    membership_tier: Literal["bronze", "silver", "gold", "platinum"] = "bronze"


class GuideProfile(VerificationMixin):
    license_number: str | None = None
    experience_years: int = Field(0, ge=0)
    specializations: list[str] = Field(default_factory=list)
    languages_spoken: list[LanguageSkill] = Field(default_factory=list)
    operating_districts: list[str] = Field(default_factory=list)
    hourly_rate: float = Field(500, ge=0)
    daily_rate: float = Field(3000, ge=0)
    currency: str = "INR"
    availability: dict[str, DayAvailability] = Field(default_factory=dict)
    is_available: bool = True
    average_rating: float = Field(0, ge=0, le=5)
    total_reviews: int = 0
    total_tours: int = 0
    completed_tours: int = 0
    bio: str | None = Field(None, max_length=1000)
    tagline: str | None = Field(None, max_length=150)


class OrganiserProfile(VerificationMixin):
    company_name: str | None = Field(None, max_length=200)
    company_type: Literal[
        "travel_agency",
        "tour_operator",
        "hotel",
        "transport",
        "event_organizer",
        "destination_management",
    ] | None = None
    registration_number: str | None = None
    gst_number: str | None = Field(None, pattern=GST_PATTERN)
    established_year: int | None = Field(None, ge=1900)
    business_email: str | None = None
    business_phone: str | None = None
    website: str | None = None
    business_address: Address | None = None
    services_offered: list[str] = Field(default_factory=list)
    operating_regions: list[str] = Field(default_factory=list)
    total_packages: int = 0
    total_bookings: int = 0
    average_rating: float = Field(0, ge=0, le=5)
    total_reviews: int = 0
    description: str | None = Field(None, max_length=2000)
    tagline: str | None = Field(None, max_length=200)
    logo: str | None = None


class AdminProfile(MongoModel):
    department: str | None = None
    permissions: list[str] = Field(default_factory=list)
    is_super_admin: bool = False
    assigned_districts: list[str] = Field(default_factory=list)


PROFILE_FIELDS = {
    "tourist": "touristProfile",
    "guide": "guideProfile",
    "organiser": "organiserProfile",
    "admin": "adminProfile",
}

PROFILE_MODELS = {
    "tourist": TouristProfile,
    "guide": GuideProfile,
    "organiser": OrganiserProfile,
    "admin": AdminProfile,
}


class User(MongoModel):
    """
    User account. `role` decides which profile sub-document is meaningful;
    the others are left unset.
    """

    email: EmailStr
    password: str = Field(..., description="Password hash, never returned")
    phone: str = Field(..., pattern=PHONE_PATTERN)
    first_name: str = Field(..., max_length=50)
    last_name: str | None = Field(None, max_length=50)
    profile_picture: str | None = None
    date_of_birth: datetime | None = None
    gender: Literal["male", "female", "other", "prefer_not_to_say"] = "prefer_not_to_say"
    address: Address | None = None
    role: Role = "tourist"

    tourist_profile: TouristProfile | None = None
    guide_profile: GuideProfile | None = None
    organiser_profile: OrganiserProfile | None = None
    admin_profile: AdminProfile | None = None

    nationality: str = "Indian"
    tourist_type: Literal["domestic", "international"] = "domestic"
    preferred_language: str = "english"

    is_email_verified: bool = False
    is_active: bool = True
    is_banned: bool = False
    ban_reason: str | None = None

    password_reset_token: str | None = None
    password_reset_expire: datetime | None = None

    last_login: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def with_default_profile(self) -> "User":
        """Populate the profile matching `role` when it was not supplied."""
        attr = {
            "tourist": "tourist_profile",
            "guide": "guide_profile",
            "organiser": "organiser_profile",
            "admin": "admin_profile",
        }[self.role]
        if getattr(self, attr) is None:
            setattr(self, attr, PROFILE_MODELS[self.role]())
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "email": "meera@example.com",
                "phone": "9876543210",
                "firstName": "Meera",
                "lastName": "Rathore",
                "role": "guide",
                "guideProfile": {"licenseNumber": "RJ-GD-2231", "verificationStatus": "pending"},
            }
        }


def full_name(user: dict) -> str:
    return f"{user.get('firstName', '')} {user.get('lastName') or ''}".strip()


class GuideProfileUpdate(MongoModel):
    license_number: str | None = None
    experience_years: int | None = Field(None, ge=0)
    specializations: list[str] | None = None
    languages_spoken: list[LanguageSkill] | None = None
    operating_districts: list[str] | None = None
    hourly_rate: float | None = Field(None, ge=0)
    daily_rate: float | None = Field(None, ge=0)
    is_available: bool | None = None
    bio: str | None = Field(None, max_length=1000)
    tagline: str | None = Field(None, max_length=150)


class OrganiserProfileUpdate(MongoModel):
    company_name: str | None = Field(None, max_length=200)
    company_type: Literal[
        "travel_agency",
        "tour_operator",
        "hotel",
        "transport",
        "event_organizer",
        "destination_management",
    ] | None = None
    registration_number: str | None = None
    gst_number: str | None = Field(None, pattern=GST_PATTERN)
    established_year: int | None = Field(None, ge=1900)
    business_email: str | None = None
    business_phone: str | None = None
    website: str | None = None
    business_address: Address | None = None
    services_offered: list[str] | None = None
    operating_regions: list[str] | None = None
    description: str | None = Field(None, max_length=2000)
    tagline: str | None = Field(None, max_length=200)
    logo: str | None = None


class ProfileUpdate(MongoModel):
    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    profile_picture: str | None = None
    date_of_birth: datetime | None = None
    gender: Literal["male", "female", "other", "prefer_not_to_say"] | None = None
    address: Address | None = None
    nationality: str | None = None
    preferred_language: str | None = None


def profile_changes(update: MongoModel, prefix: str = "") -> dict:
    """Dotted `$set` document for the fields present in an update DTO."""
    values = update.model_dump(by_alias=True, exclude_none=True)
    return {f"{prefix}{key}": value for key, value in values.items()}
