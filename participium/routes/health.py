"""
Liveness and readiness endpoints for deployments.

/health answers as long as the process is up. /health/db reads the
collections every request depends on, so an unseeded database shows up
before the first login fails.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from participium.config.firebase import get_db
from participium.core.settings import settings
from participium.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _is_seeded(db, collection: str) -> bool:
    return bool(list(db.collection(collection).limit(1).stream()))


@router.get("")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    }


@router.get("/db")
async def database_health():
    """
    Firestore readiness.

    Roles are needed by every session lookup; a boundary is needed to
    accept reports while boundary enforcement is on. Missing seed data
    reports "degraded", an unreachable store answers 503.
    """
    try:
        db = get_db()
        roles_seeded = _is_seeded(db, "roles")
        boundary_seeded = _is_seeded(db, "boundaries")
    except Exception as e:
        logger.error(f"Firestore health check failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {str(e)}"
        )

    ready = roles_seeded and (boundary_seeded or not settings.ENFORCE_MUNICIPAL_BOUNDARY)
    return {
        "status": "healthy" if ready else "degraded",
        "database": "firestore",
        "connected": True,
        "roles_seeded": roles_seeded,
        "boundary_seeded": boundary_seeded,
        "timestamp": utcnow().isoformat(),
    }
