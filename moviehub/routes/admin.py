"""
Admin Routes for Cache and Background Jobs Monitoring
Lets operators inspect and reset the in-memory caches behind the site

Features:
- Cache statistics (size, capacity, TTL, hit rate, keys)
- Cache clearing
- Job status monitoring
- Protected by the ADMIN_API_TOKEN bearer token
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone

from moviehub.database import get_db
from moviehub.services.movie_service import MovieService
from moviehub.utils.cache import AppCaches
from moviehub.utils.dependencies import get_caches, require_admin

router = APIRouter(prefix="/api/admin", tags=["Admin - Cache Monitor"], dependencies=[Depends(require_admin)])


@router.get("/cache/stats", status_code=status.HTTP_200_OK)
async def get_cache_statistics(
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """
    Get statistics for every application cache

    Returns:
    - Per-cache size, capacity, TTL, hits, misses, coalesced waits, keys
    - Total movies in the catalog (null if storage is unreachable)

    **Requires admin token**
    """
    try:
        total_movies = await MovieService.count_movies(db)
    except Exception:
        total_movies = None

    return {
        "success": True,
        "caches": caches.get_stats(),
        "total_movies": total_movies,
        "checked_at": datetime.now(timezone.utc).isoformat()
    }


@router.delete("/cache/clear", status_code=status.HTTP_200_OK)
async def clear_all_cache(
    confirm: bool = False,
    caches: AppCaches = Depends(get_caches),
):
    """
    Clear every in-memory cache

    Query Parameters:
    - confirm: Must be true to execute

    **Requires admin token**
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Must set confirm=true to clear cache"
        )

    deleted_count = caches.clear_all()
    return {
        "success": True,
        "message": "Cache cleared successfully",
        "deleted_count": deleted_count,
        "cleared_at": datetime.now(timezone.utc).isoformat()
    }


@router.get("/jobs/status", status_code=status.HTTP_200_OK)
async def get_jobs_status(request: Request):
    """
    Get status of the scheduled background jobs

    Returns:
    - Job IDs and names
    - Next run times
    - Last execution times and results
    - Current status (idle/running/success/failed)

    **Requires admin token**
    """
    jobs = getattr(request.app.state, "background_jobs", None)
    if jobs is None:
        return {
            "scheduler_running": False,
            "jobs": [],
            "checked_at": datetime.now(timezone.utc).isoformat()
        }

    stats = jobs.get_job_stats()
    return {
        "scheduler_running": stats['scheduler_running'],
        "timezone": stats['timezone'],
        "jobs": stats['jobs'],
        "checked_at": datetime.now(timezone.utc).isoformat()
    }
