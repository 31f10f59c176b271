from datetime import datetime, timezone

from fastapi import APIRouter

from code_explorer import __version__

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """Liveness check; no authentication required."""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
