"""
Category Service - Genre slug resolution and category listings

Stored genre values are free text written by the ingestion scraper
("Sci-Fi", "HollyWood", "Hindi Dubbed", "18+"), not a controlled vocabulary.
A URL slug is reconciled against the distinct stored values with an ordered
cascade; the first strategy that matches wins.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import asyncio
import re
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import MOVIE_PROJECTION, coerce_genres, document_to_movie
from moviehub.schemas.movie import (
    ErrorType,
    MovieListData,
    MovieListResponse,
    PaginationInfo,
)
from moviehub.schemas.validation import validate_pagination
from moviehub.services.text_matching import (
    decode_slug,
    fallback_genre,
    normalize_for_comparison,
    slug_to_genre_variants,
)
from moviehub.utils.cache import TTLCache

logger = logging.getLogger(__name__)

GENRE_CACHE_KEY = "distinct_genres"


@dataclass(frozen=True)
class CategoryBinding:
    """A slug resolved to the genre literal used in the storage query"""
    slug: str
    genre: str
    method: str

    @property
    def matched(self) -> bool:
        return self.method != "fallback"


def resolve_genre(slug: str, genres: List[str]) -> CategoryBinding:
    """
    Map a category slug to one of the stored genre literals.

    Cascade (first match wins):
    1. normalized equality ("sci-fi" == "Sci-Fi")
    2. case-insensitive equality with the decoded slug
    3. hyphens as spaces, case-insensitive ("hindi-dubbed" -> "Hindi Dubbed")
    4. normalized containment either way, shortest genre preferred
    5. generated spellings (Title Case, Title-Case, lower, UPPER, PascalCase)
    6. fallback: Title Case of the slug, even if nothing stores it

    Args:
        slug: Raw category slug from the URL
        genres: Distinct genre values present in storage

    Returns:
        CategoryBinding with the chosen literal and the strategy that produced it
    """
    candidates = [genre for genre in genres if genre]
    decoded = decode_slug(slug)
    normalized_input = normalize_for_comparison(decoded)

    # 1. Exact normalized match (most reliable)
    if normalized_input:
        for genre in candidates:
            if normalize_for_comparison(genre) == normalized_input:
                return CategoryBinding(slug, genre, "normalized")

    # 2. Case-insensitive match on the decoded slug
    lowered = decoded.lower()
    for genre in candidates:
        if genre.lower() == lowered:
            return CategoryBinding(slug, genre, "case_insensitive")

    # 3. Hyphens replaced by spaces
    with_spaces = decoded.replace("-", " ").lower()
    for genre in candidates:
        if genre.lower() == with_spaces:
            return CategoryBinding(slug, genre, "hyphen_to_space")

    # 4. Partial match either way, most specific (shortest) genre first
    if normalized_input:
        partial = []
        for genre in candidates:
            normalized_genre = normalize_for_comparison(genre)
            if not normalized_genre:
                continue
            if normalized_genre in normalized_input or normalized_input in normalized_genre:
                partial.append(genre)
        if partial:
            best = sorted(partial, key=len)[0]
            if len(partial) > 1:
                logger.debug(f"Category '{slug}' partially matched {partial}, using '{best}'")
            return CategoryBinding(slug, best, "partial")

    # 5. Generated spellings
    by_lower: Dict[str, str] = {}
    for genre in candidates:
        by_lower.setdefault(genre.lower(), genre)
    for variant in slug_to_genre_variants(slug):
        genre = by_lower.get(variant.lower())
        if genre is not None:
            return CategoryBinding(slug, genre, "variant")

    # 6. Nothing stored matches: query the Title Case form anyway
    fallback = fallback_genre(slug)
    logger.info(f"Category '{slug}' matched no stored genre, falling back to '{fallback}'")
    return CategoryBinding(slug, fallback, "fallback")


def build_genre_filter(genre: str) -> dict:
    """Case-insensitive, anchored match on the genre field (string or array)."""
    return {"genre": {"$regex": f"^{re.escape(genre)}$", "$options": "i"}}


class CategoryService:
    """Category listing backed by the genre resolver"""

    DEFAULT_LIMIT = 30
    MAX_LIMIT = 100

    @staticmethod
    async def _load_distinct_genres(db: AsyncIOMotorDatabase) -> List[str]:
        raw_values = await db[MOVIES_COLLECTION].distinct("genre")

        # distinct() unwinds arrays; nested or non-string values still need coercion.
        unique: Dict[str, str] = {}
        for value in raw_values:
            for genre in coerce_genres(value):
                unique.setdefault(genre, genre)
        return sorted(unique.values(), key=lambda genre: (genre.lower(), genre))

    @staticmethod
    async def get_distinct_genres(
        db: AsyncIOMotorDatabase,
        cache: Optional[TTLCache] = None,
    ) -> List[str]:
        """
        All distinct genre literals, sorted case-insensitively.
        Cached for GENRE_CACHE_TTL_SECONDS when a cache is provided.
        """
        if cache is None:
            return await CategoryService._load_distinct_genres(db)
        return await cache.get_or_fetch(
            GENRE_CACHE_KEY,
            lambda: CategoryService._load_distinct_genres(db),
        )

    @staticmethod
    async def get_movies_by_category(
        db: AsyncIOMotorDatabase,
        category: str,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        genre_cache: Optional[TTLCache] = None,
    ) -> MovieListResponse:
        """
        List movies of a category, newest release first.

        Args:
            db: Database handle
            category: Category slug from the URL
            page: 1-based page number
            limit: Page size (clamped to 1..MAX_LIMIT)
            genre_cache: Optional cache for the distinct genre list

        Returns:
            MovieListResponse; an unknown category is a success with no movies
        """
        if not category or not category.strip():
            return MovieListResponse.fail("Category name is required", ErrorType.INVALID_INPUT)
        if page < 1:
            return MovieListResponse.fail(
                "Page number must be a positive integer", ErrorType.INVALID_INPUT
            )

        page, limit = validate_pagination(page, limit, CategoryService.MAX_LIMIT)
        skip = (page - 1) * limit

        try:
            genres = await CategoryService.get_distinct_genres(db, genre_cache)
            binding = resolve_genre(category, genres)
            logger.info(
                f"Category '{category}' resolved to '{binding.genre}' via {binding.method}"
            )

            query = build_genre_filter(binding.genre)
            collection = db[MOVIES_COLLECTION]
            cursor = (
                collection.find(query, MOVIE_PROJECTION)
                .sort("releaseDate", -1)
                .skip(skip)
                .limit(limit)
            )
            documents, total = await asyncio.gather(
                cursor.to_list(length=limit),
                collection.count_documents(query),
            )

            movies = [document_to_movie(doc) for doc in documents]
            if total == 0:
                logger.warning(f"No movies found for category '{category}' ({binding.genre})")

            return MovieListResponse(
                success=True,
                data=MovieListData(
                    movies=movies,
                    pagination=PaginationInfo.build(page, limit, total),
                ),
            )

        except Exception as e:
            logger.error(f"Error fetching movies for category '{category}': {str(e)}")
            return MovieListResponse.fail(str(e) or "Unknown error occurred")

    @staticmethod
    async def get_all_categories(
        db: AsyncIOMotorDatabase,
        genre_cache: Optional[TTLCache] = None,
    ) -> List[str]:
        """Distinct genres for navigation; an empty list if storage fails."""
        try:
            return await CategoryService.get_distinct_genres(db, genre_cache)
        except Exception as e:
            logger.error(f"Error fetching categories: {str(e)}")
            return []

    @staticmethod
    async def probe_category(db: AsyncIOMotorDatabase, name: str) -> dict:
        """
        Debug helper: how many records store this genre exactly, and how many
        mention it as a whole word in any casing.
        """
        collection = db[MOVIES_COLLECTION]
        word_filter = {"genre": {"$regex": rf"\b{re.escape(name)}\b", "$options": "i"}}

        exact_matches, regex_matches, sample = await asyncio.gather(
            collection.count_documents({"genre": name}),
            collection.count_documents(word_filter),
            collection.find_one(word_filter, {"title": 1, "genre": 1}),
        )

        return {
            "searchedFor": name,
            "exactMatches": exact_matches,
            "regexMatches": regex_matches,
            "sampleMovie": {
                "_id": str(sample["_id"]),
                "title": sample.get("title", ""),
                "genre": coerce_genres(sample.get("genre")),
            } if sample else None,
            "resolvesTo": resolve_genre(name, await CategoryService.get_distinct_genres(db)).genre,
        }
