from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import get_db
from moviehub.schemas.movie import HomepageRequest
from moviehub.services.movie_service import MovieService
from moviehub.utils.cache import AppCaches
from moviehub.utils.dependencies import get_caches
from moviehub.utils.responses import envelope_response

router = APIRouter(prefix="/api", tags=["Movies"])


# ============================================
# Homepage listing
# ============================================

@router.get("/homepage")
async def get_homepage(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(MovieService.DEFAULT_LIMIT, ge=1, description="Movies per page (max 100)"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """
    Latest movies, newest release first

    Used for: homepage grid and its pagination
    """
    result = await MovieService.get_latest_movies(db, page, limit, caches.counts)
    return envelope_response(result)


@router.post("/homepage")
async def post_homepage(
    body: HomepageRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """Same listing, page number sent in the JSON body"""
    result = await MovieService.get_latest_movies(db, body.page, MovieService.DEFAULT_LIMIT, caches.counts)
    return envelope_response(result)


# ============================================
# Single movie
# ============================================

@router.get("/movies/{movie_id}/detail")
async def get_movie_detail(
    movie_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """
    Detail page data through the in-memory TTL cache

    Response carries ``cached: true`` when storage was not queried.
    """
    result = await MovieService.get_movie_detail(db, movie_id, caches.movie_detail)
    return envelope_response(result)


@router.get("/movies/{identifier}")
async def get_movie(identifier: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Movie by ObjectId or by link slug"""
    result = await MovieService.get_movie(db, identifier)
    return envelope_response(result)
