"""
Recommendation Service - "You might also like" records for search pages

- With search results: records sharing genre, language, lead actor or
  director with the top hit, best rated first
- Without results: best rated records of any genre named in the query,
  or simply the best rated records
- Never fails the search: errors degrade to an empty list
"""
from typing import List, Optional
import re
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import SEARCH_PROJECTION, document_to_movie
from moviehub.schemas.movie import MovieRecord
from moviehub.services.text_matching import normalize_text
from moviehub.utils.constants import GENRES

logger = logging.getLogger(__name__)


def _to_object_ids(ids: List[str]) -> list:
    converted = []
    for movie_id in ids:
        if ObjectId.is_valid(movie_id) and len(movie_id) == 24:
            converted.append(ObjectId(movie_id))
        else:
            converted.append(movie_id)
    return converted


def lead_actor(stars: str) -> str:
    """First billed name in a comma-separated stars string."""
    return stars.split(",")[0].strip() if stars else ""


def detect_genres(query: str) -> List[str]:
    """Genre keywords appearing as whole words in the normalized query."""
    normalized_query = normalize_text(query)
    detected = []
    for genre in GENRES:
        keyword = normalize_text(genre).replace(" ", "")
        if keyword and re.search(rf"\b{re.escape(keyword)}\b", normalized_query):
            detected.append(genre)
    return detected


class RecommendationService:
    """Fallback and related-title suggestions derived from search results"""

    DEFAULT_LIMIT = 4

    @staticmethod
    def build_related_filter(anchor: MovieRecord) -> Optional[dict]:
        """
        Filter for records related to anchor, or None if anchor has no
        usable genre/language/star/director values.
        """
        conditions = []
        if anchor.genre:
            conditions.append({"genre": {"$in": anchor.genre}})
        if anchor.language:
            conditions.append({"language": anchor.language})
        lead = lead_actor(anchor.stars)
        if lead:
            conditions.append({"stars": {"$regex": re.escape(lead), "$options": "i"}})
        if anchor.director:
            conditions.append({"director": {"$regex": f"^{re.escape(anchor.director)}$", "$options": "i"}})

        if not conditions:
            return None
        return {"$or": conditions}

    @staticmethod
    def build_fallback_filter(query: str) -> dict:
        """Genres named in the query, or everything when none is named."""
        genres = detect_genres(query)
        if not genres:
            return {}
        return {
            "$or": [
                {"genre": {"$regex": f"^{re.escape(genre)}$", "$options": "i"}}
                for genre in genres
            ]
        }

    @staticmethod
    async def _top_rated(
        db: AsyncIOMotorDatabase,
        query_filter: dict,
        limit: int,
    ) -> List[MovieRecord]:
        cursor = (
            db[MOVIES_COLLECTION]
            .find(query_filter, SEARCH_PROJECTION)
            .sort([("imdbRating", -1), ("releaseDate", -1)])
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [document_to_movie(doc) for doc in documents]

    @staticmethod
    async def get_recommendations(
        db: AsyncIOMotorDatabase,
        query: str,
        anchor: Optional[MovieRecord] = None,
        exclude_ids: Optional[List[str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[MovieRecord]:
        """
        Recommend up to `limit` records for a search.

        Args:
            db: Database handle
            query: The search text
            anchor: Top search result, or None when the search found nothing
            exclude_ids: Records already shown to the user
            limit: Maximum recommendations

        Returns:
            List of MovieRecord sorted by rating (empty on any error)
        """
        try:
            if anchor is not None:
                related_filter = RecommendationService.build_related_filter(anchor)
                if related_filter is None:
                    return []

                excluded = set(exclude_ids or [])
                excluded.add(anchor.id)
                query_filter = {
                    "$and": [
                        related_filter,
                        {"_id": {"$nin": _to_object_ids(sorted(excluded))}},
                    ]
                }
            else:
                query_filter = RecommendationService.build_fallback_filter(query)

            return await RecommendationService._top_rated(db, query_filter, limit)

        except Exception as e:
            logger.warning(f"Recommendations unavailable for '{query}': {str(e)}")
            return []
