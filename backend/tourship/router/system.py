from datetime import datetime

from fastapi import APIRouter

from tourship.core.config import APP_NAME, APP_VERSION, ENVIRONMENT
from tourship.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse)
def root():
    return APIResponse(
        message=f"Welcome to {APP_NAME}",
        data={"version": APP_VERSION, "docs": "/docs"},
    )


@router.get("/health", response_model=APIResponse)
def health_check():
    return APIResponse(
        message="Server is running",
        data={
            "status": "healthy",
            "service": "tourship-server",
            "environment": ENVIRONMENT,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
