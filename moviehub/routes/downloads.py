from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import get_db
from moviehub.schemas.movie import DownloadIncrementRequest
from moviehub.services.download_service import DownloadService
from moviehub.services.monthly_service import MonthlyService
from moviehub.utils.cache import AppCaches
from moviehub.utils.dependencies import get_caches
from moviehub.utils.responses import envelope_response

router = APIRouter(prefix="/api", tags=["Downloads"])


@router.post("/downloadincrement")
async def increment_download(
    body: DownloadIncrementRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Count one download

    Monthly counter restarts at 1 when the stored month is not the current one;
    the all-time counter always grows by 1.
    """
    result = await DownloadService.increment_download(db, body.movieId)
    return envelope_response(result)


@router.get("/monthly-movies")
async def get_monthly_movies(
    limit: int = Query(MonthlyService.DEFAULT_LIMIT, description="Number of movies (1-100)"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """Most downloaded movies this month"""
    result = await MonthlyService.get_top_monthly_movies(db, limit, caches.monthly)
    return envelope_response(result)
