from datetime import datetime, timezone

from fastapi import APIRouter

from wl_app.core.config import settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.env,
    }
