"""
Static regeneration helpers
Identifier listings used by the frontend to pre-render detail pages
"""
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import get_db
from moviehub.services.movie_service import MovieService
from moviehub.utils.cache import AppCaches
from moviehub.utils.dependencies import get_caches
from moviehub.utils.responses import envelope_response, error_response

router = APIRouter(prefix="/api/isr", tags=["ISR"])


@router.get("/ids")
async def get_movie_ids(
    limit: int = Query(MovieService.ISR_ID_LIMIT, ge=1, le=MovieService.ISR_ID_LIMIT),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Identifiers of the newest movies"""
    ids = await MovieService.get_all_movie_ids(db, limit)
    return {"success": True, "data": ids, "count": len(ids)}


@router.get("/ids/batch")
async def get_movie_id_batch(
    skip: int = Query(0, ge=0),
    limit: int = Query(MovieService.ISR_BATCH_SIZE, ge=1, le=1000),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """One batch of identifiers with ``hasMore``"""
    result = await MovieService.get_movie_id_batch(db, skip, limit)
    return envelope_response(result)


@router.get("/count")
async def get_movie_count(
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """Total number of movies"""
    try:
        total = await MovieService.count_movies(db, caches.counts)
    except Exception as e:
        return error_response(str(e) or "Unknown error occurred", 500)
    return {"success": True, "data": {"totalMovies": total}}
