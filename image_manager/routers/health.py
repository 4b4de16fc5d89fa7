"""
Health check endpoint.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from image_manager.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    """
    Liveness plus the filesystem state resolve() depends on.

    `degraded` means the public root or the placeholder image is missing, so
    failing sources can't fall back.
    """
    startup_time = getattr(request.app.state, "startup_time", None)
    uptime_seconds = 0
    if startup_time is not None:
        uptime_seconds = int((datetime.now(timezone.utc) - startup_time).total_seconds())

    public_root_ok = settings.PUBLIC_ROOT.is_dir()
    error_image_ok = settings.error_image_path.is_file()

    return {
        "status": "ok" if public_root_ok and error_image_ok else "degraded",
        "uptimeSeconds": uptime_seconds,
        "version": request.app.version,
        "publicRoot": public_root_ok,
        "errorImage": error_image_ok,
    }
