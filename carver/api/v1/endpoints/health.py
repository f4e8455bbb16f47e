from fastapi import APIRouter

from carver.core.config import settings
from carver.core.database_utils import check_connection

router = APIRouter()


@router.get("")
def health_check():
    """Service liveness plus a database round trip."""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "project": settings.PROJECT_NAME,
        "database": "healthy" if check_connection() else "unhealthy",
    }
