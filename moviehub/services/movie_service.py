"""
Movie Service - Homepage listing, single-record lookups and ISR helpers

Features:
- Latest movies with pagination (total count cached briefly)
- Lookup by ObjectId or by link slug
- Detail fetch through the bounded TTL cache
- Identifier lists and batches for static page regeneration
"""
from typing import List, Optional
import asyncio
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import MOVIE_PROJECTION, document_to_movie, extract_clean_title
from moviehub.schemas.movie import (
    ErrorType,
    MovieDetailResponse,
    MovieIdBatch,
    MovieIdBatchResponse,
    MovieListData,
    MovieListResponse,
    MovieRecord,
    PaginationInfo,
)
from moviehub.schemas.validation import validate_pagination
from moviehub.utils.cache import TTLCache

logger = logging.getLogger(__name__)

TOTAL_COUNT_KEY = "total_movies"


def is_object_id(value: Optional[str]) -> bool:
    """True for a 24-character hex string usable as a MongoDB ObjectId."""
    return bool(value) and len(value) == 24 and ObjectId.is_valid(value)


class MovieService:
    """Read access to the movies collection outside search and categories"""

    DEFAULT_LIMIT = 30
    MAX_LIMIT = 100
    ISR_ID_LIMIT = 6000
    ISR_BATCH_SIZE = 100

    @staticmethod
    async def count_movies(
        db: AsyncIOMotorDatabase,
        cache: Optional[TTLCache] = None,
    ) -> int:
        """Total number of records, cached when a cache is provided."""
        if cache is None:
            return await db[MOVIES_COLLECTION].count_documents({})
        return await cache.get_or_fetch(
            TOTAL_COUNT_KEY,
            lambda: db[MOVIES_COLLECTION].count_documents({}),
        )

    @staticmethod
    async def get_latest_movies(
        db: AsyncIOMotorDatabase,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        count_cache: Optional[TTLCache] = None,
    ) -> MovieListResponse:
        """
        Newest releases first, paginated.

        Args:
            db: Database handle
            page: 1-based page number
            limit: Page size (clamped to 1..MAX_LIMIT)
            count_cache: Optional cache for the total count

        Returns:
            MovieListResponse
        """
        if page < 1:
            return MovieListResponse.fail("Invalid page number", ErrorType.INVALID_INPUT)

        page, limit = validate_pagination(page, limit, MovieService.MAX_LIMIT)
        skip = (page - 1) * limit

        try:
            cursor = (
                db[MOVIES_COLLECTION]
                .find({}, MOVIE_PROJECTION)
                .sort([("releaseDate", -1), ("_id", -1)])
                .skip(skip)
                .limit(limit)
            )
            documents, total = await asyncio.gather(
                cursor.to_list(length=limit),
                MovieService.count_movies(db, count_cache),
            )

            return MovieListResponse(
                success=True,
                data=MovieListData(
                    movies=[document_to_movie(doc) for doc in documents],
                    pagination=PaginationInfo.build(page, limit, total),
                ),
            )

        except Exception as e:
            logger.error(f"Error fetching latest movies (page {page}): {str(e)}")
            return MovieListResponse.fail(str(e) or "Unknown error occurred")

    @staticmethod
    async def find_movie(db: AsyncIOMotorDatabase, identifier: str) -> Optional[MovieRecord]:
        """Fetch one record by ObjectId, falling back to the link slug."""
        collection = db[MOVIES_COLLECTION]
        doc = None
        if is_object_id(identifier):
            doc = await collection.find_one({"_id": ObjectId(identifier)})
        if doc is None:
            doc = await collection.find_one({"link": identifier})
        return document_to_movie(doc) if doc else None

    @staticmethod
    async def get_movie(db: AsyncIOMotorDatabase, identifier: str) -> MovieDetailResponse:
        """Single record by id or slug, uncached."""
        identifier = (identifier or "").strip()
        if not identifier:
            return MovieDetailResponse.fail("Movie identifier is required", ErrorType.INVALID_INPUT)

        try:
            movie = await MovieService.find_movie(db, identifier)
        except Exception as e:
            logger.error(f"Error fetching movie '{identifier}': {str(e)}")
            return MovieDetailResponse.fail(str(e) or "Unknown error occurred")

        if movie is None:
            return MovieDetailResponse.fail("Movie not found", ErrorType.NOT_FOUND)
        return MovieDetailResponse(success=True, data=movie)

    @staticmethod
    async def get_movie_detail(
        db: AsyncIOMotorDatabase,
        movie_id: str,
        cache: TTLCache,
    ) -> MovieDetailResponse:
        """
        Detail-page fetch through the bounded TTL cache.

        Args:
            db: Database handle
            movie_id: 24-hex ObjectId string
            cache: Detail record cache

        Returns:
            MovieDetailResponse with ``cached`` telling whether storage was skipped
        """
        if not is_object_id(movie_id):
            return MovieDetailResponse.fail("Invalid movie ID format", ErrorType.INVALID_INPUT)

        was_cached = movie_id in cache

        async def load() -> Optional[MovieRecord]:
            doc = await db[MOVIES_COLLECTION].find_one({"_id": ObjectId(movie_id)})
            return document_to_movie(doc) if doc else None

        try:
            movie = await cache.get_or_fetch(movie_id, load)
        except Exception as e:
            logger.error(f"Error fetching movie detail {movie_id}: {str(e)}")
            return MovieDetailResponse.fail(str(e) or "Unknown error occurred")

        if movie is None:
            return MovieDetailResponse.fail("Movie not found", ErrorType.NOT_FOUND)

        logger.debug(
            f"Detail '{extract_clean_title(movie.title, movie.short_title)}' "
            f"served {'from cache' if was_cached else 'from storage'}"
        )
        return MovieDetailResponse(success=True, data=movie, cached=was_cached)

    @staticmethod
    async def get_all_movie_ids(
        db: AsyncIOMotorDatabase,
        limit: int = ISR_ID_LIMIT,
    ) -> List[str]:
        """Identifiers of the newest `limit` records, for static path generation."""
        try:
            cursor = (
                db[MOVIES_COLLECTION]
                .find({}, {"_id": 1})
                .sort([("releaseDate", -1), ("_id", -1)])
                .limit(limit)
            )
            documents = await cursor.to_list(length=limit)
            return [str(doc["_id"]) for doc in documents]
        except Exception as e:
            logger.error(f"Error fetching movie IDs: {str(e)}")
            return []

    @staticmethod
    async def get_movie_id_batch(
        db: AsyncIOMotorDatabase,
        skip: int = 0,
        limit: int = ISR_BATCH_SIZE,
    ) -> MovieIdBatchResponse:
        """One page of identifiers plus whether another page exists."""
        if skip < 0 or limit < 1:
            return MovieIdBatchResponse.fail("Invalid batch parameters", ErrorType.INVALID_INPUT)

        try:
            # One extra row tells us whether a further batch exists.
            cursor = (
                db[MOVIES_COLLECTION]
                .find({}, {"_id": 1})
                .sort([("releaseDate", -1), ("_id", -1)])
                .skip(skip)
                .limit(limit + 1)
            )
            documents = await cursor.to_list(length=limit + 1)
            ids = [str(doc["_id"]) for doc in documents[:limit]]
            return MovieIdBatchResponse(
                success=True,
                data=MovieIdBatch(ids=ids, has_more=len(documents) > limit),
            )
        except Exception as e:
            logger.error(f"Error fetching movie ID batch (skip={skip}): {str(e)}")
            return MovieIdBatchResponse.fail(str(e) or "Unknown error occurred")
