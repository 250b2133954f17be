from fastapi import APIRouter, Depends

from report_uploader.config.settings import Settings
from report_uploader.dependencies import get_app_settings

router = APIRouter()


@router.get("/")
async def root():
    return {"message": "OneDrive Upload API is running"}


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)):
    """
    Health check endpoint for monitoring API status.

    The service stays "OK" without identity settings, but sign-in cannot work
    until they are provided, so that is reported per component.
    """
    missing = settings.missing_auth_settings()
    return {
        "status": "OK",
        "environment": settings.environment,
        "components": {
            "api": "ready",
            "identity_provider": "configured" if not missing else f"missing: {', '.join(missing)}",
            "sharepoint_site": settings.sharepoint_hostname or "disabled",
        },
    }
