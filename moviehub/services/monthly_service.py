"""
Monthly Service - Most downloaded records of the current month

The leaderboard is read on every page of the site, so it is served from a
TTL cache and concurrent cold reads share a single aggregation.
"""
from typing import List, Optional
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import MONTHLY_PROJECTION, document_to_monthly_movie
from moviehub.schemas.movie import ErrorType, MonthlyMovie, MonthlyMoviesResponse
from moviehub.utils.cache import TTLCache

logger = logging.getLogger(__name__)

# Records never counted carry no monthlydownload field and stay off the board
RANKED_FILTER = {"monthlydownload": {"$exists": True, "$gte": 0}}


class MonthlyService:

    DEFAULT_LIMIT = 22
    MAX_LIMIT = 100

    @staticmethod
    def cache_key(limit: int) -> str:
        return f"top_monthly:{limit}"

    @staticmethod
    async def load_top_monthly(db: AsyncIOMotorDatabase, limit: int) -> List[MonthlyMovie]:
        """Highest monthlydownload first; ties ordered by _id ascending."""
        cursor = (
            db[MOVIES_COLLECTION]
            .find(RANKED_FILTER, MONTHLY_PROJECTION)
            .sort([("monthlydownload", -1), ("_id", 1)])
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [document_to_monthly_movie(doc) for doc in documents]

    @staticmethod
    async def get_top_monthly_movies(
        db: AsyncIOMotorDatabase,
        limit: int = DEFAULT_LIMIT,
        cache: Optional[TTLCache] = None,
    ) -> MonthlyMoviesResponse:
        """
        Top records by monthly downloads.

        Args:
            db: Database handle
            limit: Number of entries (1..MAX_LIMIT)
            cache: Leaderboard cache; concurrent cold reads are coalesced

        Returns:
            MonthlyMoviesResponse
        """
        if limit < 1 or limit > MonthlyService.MAX_LIMIT:
            return MonthlyMoviesResponse.fail(
                f"Limit must be between 1 and {MonthlyService.MAX_LIMIT}",
                ErrorType.INVALID_INPUT,
            )

        try:
            if cache is None:
                movies = await MonthlyService.load_top_monthly(db, limit)
            else:
                movies = await cache.get_or_fetch(
                    MonthlyService.cache_key(limit),
                    lambda: MonthlyService.load_top_monthly(db, limit),
                )
            return MonthlyMoviesResponse(success=True, data=movies)

        except Exception as e:
            logger.error(f"Error fetching top monthly movies: {str(e)}")
            return MonthlyMoviesResponse.fail(str(e) or "Unknown error occurred")

    @staticmethod
    async def refresh(db: AsyncIOMotorDatabase, cache: TTLCache, limit: int = DEFAULT_LIMIT) -> int:
        """Reload the default leaderboard into the cache. Returns the entry count."""
        movies = await MonthlyService.load_top_monthly(db, limit)
        cache.set(MonthlyService.cache_key(limit), movies)
        return len(movies)
