from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from blog_api.pagination.errors import BackendError
from blog_api.routers.deps import PostRepositoryDep

router = APIRouter(tags=["system"])


@router.get("/health")
def health_check(repo: PostRepositoryDep):
    """Report service health, including database connectivity."""
    try:
        repo.ping()
    except BackendError as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "database", "error": str(e)},
        )
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        "database": "connected",
    }
