"""
Movie catalog schemas
JSON contract shared by every listing, search and detail endpoint.

Fields are snake_case in Python and camelCase on the wire
(``short_title`` <-> ``shortTitle``), matching the documents stored in MongoDB.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum
import math


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Movie record
# ============================================

class DownloadLink(CamelModel):
    """A labelled download URL"""
    href: str = ""
    value: str = ""


class EpisodeLink(CamelModel):
    """Per-episode links: quality -> platform -> URL"""
    episode: str = ""
    links: Dict[str, Dict[str, str]] = Field(default_factory=dict)


class MovieRecord(CamelModel):
    """
    Canonical movie/series document as seen by the rest of the application.
    Built only through moviehub.models.movie.document_to_movie so that
    ``genre`` is always a list of strings.
    """
    id: str = Field(..., alias="_id")
    title: str = ""
    link: str = ""
    image: str = ""
    short_title: str = ""
    heading: str = ""
    imdb_rating: float = 0.0
    genre: List[str] = Field(default_factory=list)
    stars: str = ""
    director: str = ""
    language: str = ""
    quality: str = ""
    screenshots: List[str] = Field(default_factory=list)
    download_links: List[DownloadLink] = Field(default_factory=list)
    trailer: str = ""
    storyline: str = ""
    release_date: Optional[datetime] = None
    episode_links: List[EpisodeLink] = Field(default_factory=list)
    alltimedownload: int = 0
    monthlydownload: int = 0
    last_reset_month: Optional[int] = None
    last_reset_year: Optional[int] = None


# ============================================
# Pagination
# ============================================

class PaginationInfo(CamelModel):
    """Pagination summary attached to every list response"""
    current_page: int
    total_pages: int
    total_movies: int
    movies_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationInfo":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_movies=total,
            movies_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


# ============================================
# Result envelopes {success, data | error}
# ============================================

class ErrorType(str, Enum):
    """Failure categories, mapped to HTTP status codes by the route layer"""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    STORAGE = "storage"


class SearchType(str, Enum):
    """How closely the best search hit matched the query"""
    EXACT = "exact"
    FUZZY = "fuzzy"
    PARTIAL = "partial"


class ServiceResponse(CamelModel):
    """Discriminated success/failure result returned by every service call"""
    success: bool
    error: Optional[str] = None
    error_type: Optional[ErrorType] = Field(default=None, exclude=True)

    @classmethod
    def fail(cls, error: str, error_type: ErrorType = ErrorType.STORAGE):
        return cls(success=False, error=error, error_type=error_type)


class MovieListData(CamelModel):
    movies: List[MovieRecord]
    pagination: PaginationInfo


class MovieListResponse(ServiceResponse):
    data: Optional[MovieListData] = None


class SearchData(MovieListData):
    recommendations: List[MovieRecord] = Field(default_factory=list)
    search_type: SearchType
    query: str


class SearchResponse(ServiceResponse):
    data: Optional[SearchData] = None


class MovieDetailResponse(ServiceResponse):
    data: Optional[MovieRecord] = None
    cached: Optional[bool] = None


class DownloadCounts(CamelModel):
    alltimedownload: int
    monthlydownload: int


class DownloadResponse(ServiceResponse):
    data: Optional[DownloadCounts] = None


class MonthlyMovie(CamelModel):
    """Leaderboard entry for the best-of-the-month sidebar"""
    id: str = Field(..., alias="_id")
    title: str = ""
    image: str = ""
    monthlydownload: int = 0


class MonthlyMoviesResponse(ServiceResponse):
    data: Optional[List[MonthlyMovie]] = None


class MovieIdBatch(CamelModel):
    ids: List[str]
    has_more: bool


class MovieIdBatchResponse(ServiceResponse):
    data: Optional[MovieIdBatch] = None


class DownloadIncrementRequest(BaseModel):
    """Body of POST /api/downloadincrement"""
    movieId: Optional[str] = None


class HomepageRequest(BaseModel):
    """Body of POST /api/homepage"""
    page: int = 1
