from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from typing import Optional

from moviehub.database import get_db
from moviehub.schemas.validation import SearchQuerySchema
from moviehub.services.search_service import SearchService
from moviehub.utils.responses import envelope_response, error_response

router = APIRouter(prefix="/api", tags=["Search"])


@router.get("/search")
async def search_movies(
    query: Optional[str] = Query(None, max_length=200, description="Search text"),
    q: Optional[str] = Query(None, max_length=200, description="Alias of query"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(SearchService.DEFAULT_LIMIT, ge=1, description="Results per page (max 50)"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """
    Free-text search over titles, genres, cast and director

    - A year in the query (e.g. "Inception 2010") limits results to that year
    - ``searchType`` is exact / fuzzy / partial depending on the best title match
    - Up to 4 recommendations accompany every successful search
    """
    text = query if query and query.strip() else q
    if text and text.strip():
        try:
            text = SearchQuerySchema(query=text).query
        except ValidationError:
            return error_response("Invalid search query", status.HTTP_400_BAD_REQUEST)

    result = await SearchService.search_movies(db, text, page, limit)
    return envelope_response(result)
