"""
Auth Router
Registration, login, profile and password management
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Response
from pydantic import EmailStr, Field

from tourship.core.config import AUTH_COOKIE_NAME, ENVIRONMENT, JWT_EXPIRATION_DAYS
from tourship.core.deps import get_current_user
from tourship.core.errors import AppError
from tourship.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from tourship.db.database import get_users_collection
from tourship.models.common import APIResponse, MongoModel, sanitize_user
from tourship.models.user import (
    PHONE_PATTERN,
    SELF_REGISTER_ROLES,
    Address,
    GuideProfile,
    GuideProfileUpdate,
    OrganiserProfile,
    OrganiserProfileUpdate,
    ProfileUpdate,
    User,
    profile_changes,
)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# Request Models
class RegisterRequest(MongoModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    address: Address | None = None
    role: str = "tourist"
    guide_profile: GuideProfileUpdate | None = None
    organiser_profile: OrganiserProfileUpdate | None = None


class LoginRequest(MongoModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(MongoModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class ForgotPasswordRequest(MongoModel):
    email: EmailStr


class ResetPasswordRequest(MongoModel):
    password: str = Field(..., min_length=6)


class DeleteAccountRequest(MongoModel):
    password: str = Field(..., min_length=1)


REGISTER_MESSAGES = {
    "tourist": "Registration successful",
    "guide": "Registration successful. Complete your guide profile and submit it for verification.",
    "organiser": "Registration successful. Complete your organiser profile and submit it for verification.",
}


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        httponly=True,
        max_age=JWT_EXPIRATION_DAYS * 24 * 60 * 60,
        samesite="lax",
        secure=ENVIRONMENT == "production",
    )


def build_user(body: RegisterRequest) -> dict:
    role = body.role if body.role in SELF_REGISTER_ROLES else "tourist"
    user = User(
        email=body.email.lower(),
        password=hash_password(body.password),
        phone=body.phone,
        first_name=body.first_name,
        last_name=body.last_name,
        address=body.address,
        role=role,
    )
    if role == "guide" and body.guide_profile:
        user.guide_profile = GuideProfile(**body.guide_profile.model_dump(exclude_none=True))
    if role == "organiser" and body.organiser_profile:
        user.organiser_profile = OrganiserProfile(**body.organiser_profile.model_dump(exclude_none=True))
    return user.with_default_profile().to_document()


@router.post("/register", response_model=APIResponse, status_code=201)
async def register(body: RegisterRequest, response: Response):
    """
    Register a tourist, guide or organiser.
    Guide and organiser profiles start in `pending` verification.
    """
    users = get_users_collection()
    email = body.email.lower()

    if await users.find_one({"email": email}):
        raise AppError("User already exists with this email", 400)
    if await users.find_one({"phone": body.phone}):
        raise AppError("User already exists with this phone number", 400)

    doc = build_user(body)
    result = await users.insert_one(doc)
    doc["_id"] = result.inserted_id
    token = create_access_token(doc)
    _set_auth_cookie(response, token)

    print(f"[register] New {doc['role']} registered: {email}")
    return APIResponse(
        message=REGISTER_MESSAGES[doc["role"]],
        data={"user": sanitize_user(doc), "token": token},
    )


@router.post("/login", response_model=APIResponse)
async def login(body: LoginRequest, response: Response):
    users = get_users_collection()
    user = await users.find_one({"email": body.email.lower()})

    # verify_password runs a dummy hash when the user is unknown
    if not verify_password(body.password, (user or {}).get("password")):
        raise AppError("Invalid email or password", 401)
    if not user.get("isActive", True):
        raise AppError("Account has been deactivated", 401)
    if user.get("isBanned"):
        raise AppError(f"Account has been banned: {user.get('banReason') or 'No reason provided'}", 403)

    now = datetime.utcnow()
    await users.update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now}})
    user["lastLogin"] = now

    token = create_access_token(user)
    _set_auth_cookie(response, token)
    print(f"[login] {user['email']} logged in as {user.get('role')}")
    return APIResponse(message="Login successful", data={"user": sanitize_user(user), "token": token})


@router.post("/logout", response_model=APIResponse)
async def logout(response: Response, user: dict = Depends(get_current_user)):
    response.delete_cookie(AUTH_COOKIE_NAME)
    return APIResponse(message="Logged out successfully")


@router.get("/me", response_model=APIResponse)
async def get_me(user: dict = Depends(get_current_user)):
    return APIResponse(data=sanitize_user(user))


@router.put("/profile", response_model=APIResponse)
async def update_profile(body: ProfileUpdate, user: dict = Depends(get_current_user)):
    users = get_users_collection()
    changes = profile_changes(body)
    if not changes:
        raise AppError("No fields to update", 400)

    if body.phone and body.phone != user.get("phone"):
        if await users.find_one({"phone": body.phone, "_id": {"$ne": user["_id"]}}):
            raise AppError("Phone number already in use", 400)

    changes["updatedAt"] = datetime.utcnow()
    await users.update_one({"_id": user["_id"]}, {"$set": changes})
    updated = await users.find_one({"_id": user["_id"]})
    return APIResponse(message="Profile updated successfully", data=sanitize_user(updated))


@router.put("/change-password", response_model=APIResponse)
async def change_password(
    body: ChangePasswordRequest, response: Response, user: dict = Depends(get_current_user)
):
    if not verify_password(body.current_password, user.get("password")):
        raise AppError("Current password is incorrect", 401)
    if body.current_password == body.new_password:
        raise AppError("New password must be different from the current password", 400)

    await get_users_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(body.new_password), "updatedAt": datetime.utcnow()}},
    )
    token = create_access_token(user)
    _set_auth_cookie(response, token)
    print(f"[change_password] Password changed for {user['email']}")
    return APIResponse(message="Password changed successfully", data={"token": token})


@router.post("/forgot-password", response_model=APIResponse)
async def forgot_password(body: ForgotPasswordRequest):
    users = get_users_collection()
    user = await users.find_one({"email": body.email.lower(), "isActive": True})
    message = "If an account exists with this email, a password reset link has been sent"
    if not user:
        return APIResponse(message=message)

    raw, token_hash, expires_at = generate_reset_token()
    await users.update_one(
        {"_id": user["_id"]},
        {"$set": {"passwordResetToken": token_hash, "passwordResetExpire": expires_at}},
    )
    print(f"[forgot_password] Reset token issued for {user['email']}")

    data = {"resetToken": raw} if ENVIRONMENT == "development" else None
    return APIResponse(message=message, data=data)


@router.put("/reset-password/{token}", response_model=APIResponse)
async def reset_password(token: str, body: ResetPasswordRequest, response: Response):
    users = get_users_collection()
    user = await users.find_one(
        {
            "passwordResetToken": hash_token(token),
            "passwordResetExpire": {"$gt": datetime.utcnow()},
        }
    )
    if not user:
        raise AppError("Invalid or expired reset token", 400)

    await users.update_one(
        {"_id": user["_id"]},
        {
            "$set": {
                "password": hash_password(body.password),
                "passwordResetToken": None,
                "passwordResetExpire": None,
                "updatedAt": datetime.utcnow(),
            }
        },
    )
    new_token = create_access_token(user)
    _set_auth_cookie(response, new_token)
    print(f"[reset_password] Password reset for {user['email']}")
    return APIResponse(message="Password reset successful", data={"token": new_token})


def soft_delete_changes(user: dict, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    return {
        "isActive": False,
        "email": f"deleted_{int(now.timestamp() * 1000)}_{user['email']}",
        "updatedAt": now,
    }


@router.delete("/account", response_model=APIResponse)
async def delete_account(
    body: DeleteAccountRequest, response: Response, user: dict = Depends(get_current_user)
):
    if not verify_password(body.password, user.get("password")):
        raise AppError("Password is incorrect", 401)

    await get_users_collection().update_one({"_id": user["_id"]}, {"$set": soft_delete_changes(user)})
    response.delete_cookie(AUTH_COOKIE_NAME)
    print(f"[delete_account] Account deactivated: {user['email']}")
    return APIResponse(message="Account deleted successfully")
