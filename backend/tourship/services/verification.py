"""
Guide and organiser profile verification: pending -> under_review -> approved | rejected
"""

from datetime import datetime

from tourship.core.errors import AppError

REVIEW_ACTIONS = ("approve", "reject")


def missing_fields(role: str, profile: dict) -> list[str]:
    if role == "guide":
        checks = {
            "licenseNumber": profile.get("licenseNumber"),
            "languagesSpoken": profile.get("languagesSpoken"),
            "operatingDistricts": profile.get("operatingDistricts"),
        }
    elif role == "organiser":
        checks = {
            "companyName": profile.get("companyName"),
            "companyType": profile.get("companyType"),
            "registrationNumber": profile.get("registrationNumber"),
        }
    else:
        raise AppError(f"Role '{role}' does not require verification", 400)
    return [name for name, value in checks.items() if not value]


def submit_for_verification(role: str, profile: dict, now: datetime | None = None) -> dict:
    if profile.get("isVerified"):
        raise AppError("Profile is already verified", 400)
    if profile.get("verificationStatus") == "under_review":
        raise AppError("Verification is already under review", 400)

    missing = missing_fields(role, profile)
    if missing:
        raise AppError(f"Please complete required fields: {', '.join(missing)}", 400)

    profile["verificationStatus"] = "under_review"
    profile["submittedAt"] = now or datetime.utcnow()
    profile["rejectionReason"] = None
    return profile


def review_verification(
    profile: dict,
    action: str,
    admin_id,
    reason: str | None = None,
    now: datetime | None = None,
) -> dict:
    if action not in REVIEW_ACTIONS:
        raise AppError("Action must be 'approve' or 'reject'", 400)
    if profile.get("verificationStatus") != "under_review":
        raise AppError(
            f"Profile is not under review (status: {profile.get('verificationStatus', 'pending')})",
            400,
        )

    now = now or datetime.utcnow()
    if action == "approve":
        profile.update(
            {
                "verificationStatus": "approved",
                "isVerified": True,
                "verifiedAt": now,
                "verifiedBy": admin_id,
                "rejectionReason": None,
            }
        )
    else:
        profile.update(
            {
                "verificationStatus": "rejected",
                "isVerified": False,
                "verifiedAt": None,
                "verifiedBy": admin_id,
                "rejectionReason": reason or "No reason provided",
            }
        )
    return profile
