"""
Authentication and authorization dependencies
"""

from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tourship.core.config import AUTH_COOKIE_NAME
from tourship.core.errors import AppError
from tourship.core.security import decode_access_token
from tourship.db.database import get_users_collection

security = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(AUTH_COOKIE_NAME)


async def _load_user(token: str | None) -> dict:
    if not token:
        raise AppError("Not authorized to access this route", 401)

    payload = decode_access_token(token)
    user_id = (payload or {}).get("id")
    if not user_id or not ObjectId.is_valid(user_id):
        raise AppError("Not authorized, token failed", 401)

    user = await get_users_collection().find_one({"_id": ObjectId(user_id)})
    if not user:
        raise AppError("User not found", 401)
    if not user.get("isActive", True):
        raise AppError("Account has been deactivated", 401)
    if user.get("isBanned"):
        raise AppError(f"Account has been banned: {user.get('banReason') or 'No reason provided'}", 403)
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Resolve the authenticated user document from a bearer token or cookie."""
    return await _load_user(_extract_token(request, credentials))


def require_roles(*roles: str):
    async def checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in roles:
            raise AppError(f"User role '{user.get('role')}' is not authorized to access this route", 403)
        return user

    return checker


async def require_verified(user: dict = Depends(get_current_user)) -> dict:
    """Guides and organisers must hold an approved profile."""
    role = user.get("role")
    if role == "guide":
        profile = user.get("guideProfile") or {}
    elif role == "organiser":
        profile = user.get("organiserProfile") or {}
    else:
        return user

    if not profile.get("isVerified"):
        raise AppError(
            f"Your {role} profile is not verified yet. Current status: "
            f"{profile.get('verificationStatus', 'pending')}",
            403,
        )
    return user


def has_permission(user: dict, *permissions: str) -> bool:
    if user.get("role") != "admin":
        return False
    profile = user.get("adminProfile") or {}
    if profile.get("isSuperAdmin"):
        return True
    granted = set(profile.get("permissions") or [])
    if "full_access" in granted:
        return True
    return any(p in granted for p in permissions)


def require_permission(*permissions: str):
    async def checker(user: dict = Depends(require_roles("admin"))) -> dict:
        if not has_permission(user, *permissions):
            raise AppError("You do not have permission to perform this action", 403)
        return user

    return checker


async def require_verified_organiser(
    user: dict = Depends(require_roles("organiser")),
) -> dict:
    return await require_verified(user)
