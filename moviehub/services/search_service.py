"""
Search Service - Free-text movie search with in-memory relevance ranking

Stored titles are noisy ("Inception (2010) BluRay Hindi-English 1080p"), so a
query is expanded into several independent conditions that are OR'ed:

- the phrase anywhere in title / shortTitle / heading
- the query with spaces and punctuation removed, same fields
- every query word somewhere in the title fields (any order)
- the phrase in genre / stars / director

A year in the query (1900-2099) additionally restricts releaseDate to that
calendar year. Matching records are scored and sorted in memory, then paginated.

Scaling note: every candidate is pulled into memory before scoring. That is
fine for a catalog of a few thousand titles; a much larger catalog needs a
storage-side ranking (text index / Atlas Search) with the same score tiers.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import re
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import PEOPLE_FIELDS, SEARCH_PROJECTION, TITLE_FIELDS, document_to_movie
from moviehub.schemas.movie import (
    ErrorType,
    MovieRecord,
    PaginationInfo,
    SearchData,
    SearchResponse,
    SearchType,
)
from moviehub.schemas.validation import validate_pagination
from moviehub.services.recommendation_service import RecommendationService
from moviehub.services.text_matching import (
    classify_search_type,
    extract_year,
    normalize_text,
    similarity_score,
)

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """A candidate movie with its ranking signals"""
    movie: MovieRecord
    score: float
    relevance: float


def _contains(pattern: str) -> dict:
    return {"$regex": pattern, "$options": "i"}


def build_search_filter(query: str) -> dict:
    """
    Build the MongoDB filter for a free-text query.

    Args:
        query: Raw (trimmed) query text

    Returns:
        Filter document: {"$or": [...]} or, with a year,
        {"$and": [{"$or": [...]}, {"releaseDate": {...}}]}
    """
    phrase = re.escape(query)
    compact = normalize_text(query).replace(" ", "")
    words = query.split()

    conditions = [{field: _contains(phrase)} for field in TITLE_FIELDS]

    if compact:
        conditions.extend({field: _contains(re.escape(compact))} for field in TITLE_FIELDS)

    if len(words) > 1:
        conditions.append({
            "$and": [
                {"$or": [{field: _contains(re.escape(word))} for field in TITLE_FIELDS]}
                for word in words
            ]
        })

    conditions.extend({field: _contains(phrase)} for field in PEOPLE_FIELDS)

    year = extract_year(query)
    if year is None:
        return {"$or": conditions}

    return {
        "$and": [
            {"$or": conditions},
            {"releaseDate": {"$gte": datetime(year, 1, 1), "$lt": datetime(year + 1, 1, 1)}},
        ]
    }


class SearchService:
    """Multi-strategy search with composite scoring"""

    DEFAULT_LIMIT = 30
    MAX_LIMIT = 50
    MAX_QUERY_LENGTH = 200

    # Title similarity weights; the composite adds all three, relevance keeps the best
    TITLE_WEIGHT = 1.0
    SHORT_TITLE_WEIGHT = 0.8
    HEADING_WEIGHT = 0.6

    # Flat and per-word bonuses added on top of the weighted title sum
    GENRE_BONUS = 15
    LANGUAGE_BONUS = 10
    STAR_WORD_BONUS = 5
    DIRECTOR_WORD_BONUS = 5
    RATING_MULTIPLIER = 2
    RECENCY_BONUS = 5
    RECENT_YEARS = 3

    @staticmethod
    def weighted_title_scores(movie: MovieRecord, query: str) -> List[float]:
        return [
            similarity_score(movie.title, query) * SearchService.TITLE_WEIGHT,
            similarity_score(movie.short_title, query) * SearchService.SHORT_TITLE_WEIGHT,
            similarity_score(movie.heading, query) * SearchService.HEADING_WEIGHT,
        ]

    @staticmethod
    def title_relevance(movie: MovieRecord, query: str) -> float:
        """Best weighted similarity across title, shortTitle and heading (0-100)."""
        return max(SearchService.weighted_title_scores(movie, query))

    @staticmethod
    def score_movie(movie: MovieRecord, query: str, now: Optional[datetime] = None) -> SearchResult:
        """
        Composite ranking score for one candidate.

        relevance = best weighted title similarity (drives searchType)
        score = weighted title/shortTitle/heading sum + genre/language bonuses
                + per-word star/director bonuses + rating x 2 + recency bonus
        """
        now = now or datetime.now()
        title_scores = SearchService.weighted_title_scores(movie, query)
        relevance = max(title_scores)
        score = sum(title_scores)

        normalized_query = normalize_text(query)
        query_words = [word for word in normalized_query.split(" ") if len(word) > 1]

        for genre in movie.genre:
            normalized_genre = normalize_text(genre)
            if normalized_genre and (
                normalized_query in normalized_genre or normalized_genre in normalized_query
            ):
                score += SearchService.GENRE_BONUS
                break

        language = normalize_text(movie.language)
        if language and normalized_query and (
            normalized_query in language or language in normalized_query
        ):
            score += SearchService.LANGUAGE_BONUS

        stars = normalize_text(movie.stars)
        director = normalize_text(movie.director)
        for word in query_words:
            if word in stars:
                score += SearchService.STAR_WORD_BONUS
            if word in director:
                score += SearchService.DIRECTOR_WORD_BONUS

        score += movie.imdb_rating * SearchService.RATING_MULTIPLIER

        if movie.release_date and movie.release_date.year >= now.year - SearchService.RECENT_YEARS:
            score += SearchService.RECENCY_BONUS

        return SearchResult(movie=movie, score=score, relevance=relevance)

    @staticmethod
    def rank_movies(
        movies: List[MovieRecord],
        query: str,
        now: Optional[datetime] = None,
    ) -> List[SearchResult]:
        """Score and sort descending; ties keep database order (stable sort)."""
        scored = [SearchService.score_movie(movie, query, now) for movie in movies]
        return sorted(scored, key=lambda result: result.score, reverse=True)

    @staticmethod
    async def search_movies(
        db: AsyncIOMotorDatabase,
        query: Optional[str],
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        now: Optional[datetime] = None,
    ) -> SearchResponse:
        """
        Search movies by free text.

        Args:
            db: Database handle
            query: Search text (required, non-blank)
            page: 1-based page number
            limit: Page size (clamped to 1..MAX_LIMIT)
            now: Reference time for the recency bonus

        Returns:
            SearchResponse with ranked movies, up to 4 recommendations,
            pagination and searchType; a failure envelope on invalid input
            or storage errors
        """
        query = (query or "").strip()
        if not query:
            return SearchResponse.fail("Search query is required", ErrorType.INVALID_INPUT)
        if len(query) > SearchService.MAX_QUERY_LENGTH:
            return SearchResponse.fail(
                f"Search query must be at most {SearchService.MAX_QUERY_LENGTH} characters",
                ErrorType.INVALID_INPUT,
            )
        if page < 1:
            return SearchResponse.fail("Invalid page number", ErrorType.INVALID_INPUT)

        page, limit = validate_pagination(page, limit, SearchService.MAX_LIMIT)
        skip = (page - 1) * limit

        try:
            search_filter = build_search_filter(query)
            cursor = (
                db[MOVIES_COLLECTION]
                .find(search_filter, SEARCH_PROJECTION)
                .sort([("imdbRating", -1), ("releaseDate", -1)])
            )
            documents = await cursor.to_list(length=None)

            ranked = SearchService.rank_movies(
                [document_to_movie(doc) for doc in documents], query, now
            )
            page_results = ranked[skip:skip + limit]
            movies = [result.movie for result in page_results]

            search_type = classify_search_type(ranked[0].relevance) if ranked else SearchType.PARTIAL

            anchor = ranked[0].movie if ranked else None
            recommendations = await RecommendationService.get_recommendations(
                db, query, anchor=anchor, exclude_ids=[movie.id for movie in movies]
            )

            logger.info(
                f"Search '{query}' page {page}: {len(ranked)} matches, "
                f"type={search_type.value}, {len(recommendations)} recommendations"
            )

            return SearchResponse(
                success=True,
                data=SearchData(
                    movies=movies,
                    pagination=PaginationInfo.build(page, limit, len(ranked)),
                    recommendations=recommendations,
                    search_type=search_type,
                    query=query,
                ),
            )

        except Exception as e:
            logger.error(f"Error searching movies for '{query}': {str(e)}")
            return SearchResponse.fail(str(e) or "Unknown error occurred")
