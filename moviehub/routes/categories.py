from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from typing import Optional

from moviehub.database import get_db
from moviehub.schemas.validation import CategorySlugSchema
from moviehub.services.category_service import CategoryService
from moviehub.utils.cache import AppCaches
from moviehub.utils.constants import MAIN_CATEGORIES
from moviehub.utils.dependencies import get_caches
from moviehub.utils.responses import envelope_response, error_response

router = APIRouter(prefix="/api", tags=["Categories"])


@router.get("/category/{category_slug}")
async def get_category_movies(
    category_slug: str,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(CategoryService.DEFAULT_LIMIT, ge=1, description="Movies per page (max 100)"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """
    Movies of one category, newest release first

    The slug is matched against the genres actually stored
    ("sci-fi" -> "Sci-Fi", "hindi-dubbed" -> "Hindi Dubbed").
    An unknown category returns an empty list, not an error.
    """
    try:
        slug = CategorySlugSchema(slug=category_slug).slug
    except ValidationError:
        return error_response("Invalid category name", status.HTTP_400_BAD_REQUEST)

    result = await CategoryService.get_movies_by_category(db, slug, page, limit, caches.genres)
    return envelope_response(result)


@router.get("/categories")
async def get_categories(
    test: Optional[str] = Query(None, max_length=100, description="Genre to probe"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    caches: AppCaches = Depends(get_caches),
):
    """
    Category debug listing

    - allCategories: every distinct stored genre
    - mainCategories: the navigation entries
    - testResult: match counts for ``test`` when given
    """
    categories = await CategoryService.get_all_categories(db, caches.genres)
    response = {
        "success": True,
        "allCategories": categories,
        "totalCategories": len(categories),
        "mainCategories": MAIN_CATEGORIES,
    }

    if test:
        try:
            response["testResult"] = await CategoryService.probe_category(db, test)
        except Exception as e:
            response["testResult"] = {"searchedFor": test, "error": str(e)}

    return response
