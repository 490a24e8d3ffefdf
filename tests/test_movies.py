from datetime import datetime

from pymongo.errors import PyMongoError

from conftest import INCEPTION_ID, PUSHPA_ID, UNKNOWN_ID
from moviehub.models.movie import coerce_genres, document_to_movie, extract_clean_title, safe_float
from moviehub.schemas.movie import ErrorType
from moviehub.services.movie_service import MovieService
from moviehub.utils.cache import TTLCache


# ============================================
# Document mapping
# ============================================

def test_genre_coercion():
    assert coerce_genres("Action") == ["Action"]
    assert coerce_genres(["Action", " ", None, "Drama "]) == ["Action", "Drama"]
    assert coerce_genres("Action, Drama") == ["Action, Drama"]
    assert coerce_genres(None) == []


def test_safe_float():
    assert safe_float("7,5") == 7.5
    assert safe_float("8.1") == 8.1
    assert safe_float("N/A") == 0.0


def test_document_to_movie_fills_defaults():
    movie = document_to_movie({
        "_id": INCEPTION_ID,
        "title": "Sparse",
        "genre": "Drama",
        "imdbRating": "7.2",
        "releaseDate": "2020-01-01",
        "screenshots": "https://img.example.com/1.jpg",
    })

    assert movie.id == str(INCEPTION_ID)
    assert movie.genre == ["Drama"]
    assert movie.imdb_rating == 7.2
    assert movie.release_date is None
    assert movie.screenshots == ["https://img.example.com/1.jpg"]
    assert movie.download_links == []
    assert movie.alltimedownload == 0


def test_document_to_movie_episode_links():
    movie = document_to_movie({
        "_id": "s1",
        "episodeLinks": [
            {"episode": "E01", "links": {"720p": {"drive": "https://d/1"}}},
            "garbage",
        ],
    })

    assert len(movie.episode_links) == 1
    assert movie.episode_links[0].links["720p"]["drive"] == "https://d/1"


def test_extract_clean_title():
    assert extract_clean_title("Inception (2010) 1080p") == "Inception"
    assert extract_clean_title("Inception (2010) 1080p", "Inception ") == "Inception"
    assert extract_clean_title("Dark") == "Dark"


# ============================================
# Service
# ============================================

async def test_latest_movies_newest_first(db):
    result = await MovieService.get_latest_movies(db, page=1, limit=2)

    assert [movie.title for movie in result.data.movies] == [
        "Pushpa (2021) Hindi Dubbed",
        "Dark (2017) Season 1",
    ]
    assert result.data.pagination.total_movies == 7
    assert result.data.pagination.total_pages == 4


async def test_total_count_is_cached(db):
    cache = TTLCache(max_size=8, ttl_seconds=300)

    await MovieService.get_latest_movies(db, 1, 2, cache)
    await MovieService.get_latest_movies(db, 2, 2, cache)

    assert db.calls.count(("movies", "count_documents")) == 1


async def test_latest_movies_invalid_page(db):
    result = await MovieService.get_latest_movies(db, page=0)
    assert result.error_type == ErrorType.INVALID_INPUT
    assert db.calls == []


async def test_latest_movies_pagination_is_clamped(db):
    oversized = await MovieService.get_latest_movies(db, page=1, limit=500)
    far_away = await MovieService.get_latest_movies(db, page=50000, limit=1)

    assert oversized.data.pagination.movies_per_page == MovieService.MAX_LIMIT
    assert far_away.data.pagination.current_page == 10000
    assert far_away.data.movies == []


async def test_find_movie_by_id_or_slug(db):
    by_id = await MovieService.find_movie(db, str(INCEPTION_ID))
    by_slug = await MovieService.find_movie(db, "inception-2010")

    assert by_id.id == by_slug.id == str(INCEPTION_ID)
    assert await MovieService.find_movie(db, "no-such-slug") is None


async def test_detail_goes_through_cache(db):
    cache = TTLCache(max_size=100, ttl_seconds=86400)

    first = await MovieService.get_movie_detail(db, str(INCEPTION_ID), cache)
    second = await MovieService.get_movie_detail(db, str(INCEPTION_ID), cache)

    assert first.cached is False
    assert second.cached is True
    assert second.data == first.data
    assert db.calls.count(("movies", "find_one")) == 1


async def test_detail_errors(db):
    cache = TTLCache()

    invalid = await MovieService.get_movie_detail(db, "abc", cache)
    missing = await MovieService.get_movie_detail(db, str(UNKNOWN_ID), cache)

    assert invalid.error_type == ErrorType.INVALID_INPUT
    assert missing.error_type == ErrorType.NOT_FOUND
    assert len(cache) == 0


async def test_detail_storage_failure(db):
    db.fail_with = PyMongoError("timed out")

    result = await MovieService.get_movie_detail(db, str(INCEPTION_ID), TTLCache())

    assert result.error_type == ErrorType.STORAGE
    assert result.error == "timed out"


async def test_movie_id_batches(db):
    first = await MovieService.get_movie_id_batch(db, skip=0, limit=5)
    last = await MovieService.get_movie_id_batch(db, skip=5, limit=5)

    assert len(first.data.ids) == 5 and first.data.has_more
    assert len(last.data.ids) == 2 and not last.data.has_more
    assert set(first.data.ids).isdisjoint(last.data.ids)
    assert first.data.ids[0] == str(PUSHPA_ID)


async def test_all_movie_ids_degrade_to_empty(db):
    db.fail_with = PyMongoError("down")
    assert await MovieService.get_all_movie_ids(db) == []


# ============================================
# Routes
# ============================================

def test_homepage_route(client):
    response = client.get("/api/homepage", params={"limit": 3})

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]["movies"]) == 3
    assert body["data"]["pagination"] == {
        "currentPage": 1,
        "totalPages": 3,
        "totalMovies": 7,
        "moviesPerPage": 3,
        "hasNextPage": True,
        "hasPrevPage": False,
    }
    assert body["data"]["movies"][0]["releaseDate"].startswith("2021-12-17")


def test_homepage_post_route(client):
    response = client.post("/api/homepage", json={"page": 2})

    assert response.status_code == 200
    pagination = response.json()["data"]["pagination"]
    assert pagination["currentPage"] == 2
    assert pagination["hasPrevPage"] is True
    assert response.json()["data"]["movies"] == []


def test_homepage_rejects_bad_page(client):
    assert client.get("/api/homepage", params={"page": 0}).status_code == 400
    assert client.get("/api/homepage", params={"page": "two"}).status_code == 400
    assert client.post("/api/homepage", json={"page": 0}).status_code == 400


def test_movie_route_by_slug(client):
    response = client.get("/api/movies/inception-2010")

    assert response.status_code == 200
    assert response.json()["data"]["_id"] == str(INCEPTION_ID)


def test_movie_route_not_found(client):
    response = client.get("/api/movies/no-such-movie")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Movie not found"}


def test_detail_route_reports_cache_use(client):
    url = f"/api/movies/{INCEPTION_ID}/detail"

    first = client.get(url).json()
    second = client.get(url).json()

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["data"]["title"] == "Inception (2010) 1080p"


def test_detail_route_errors(client):
    assert client.get("/api/movies/not-an-id/detail").status_code == 400
    assert client.get(f"/api/movies/{UNKNOWN_ID}/detail").status_code == 404


def test_isr_routes(client):
    ids = client.get("/api/isr/ids").json()
    assert ids["count"] == 7

    batch = client.get("/api/isr/ids/batch", params={"skip": 4, "limit": 2}).json()
    assert len(batch["data"]["ids"]) == 2
    assert batch["data"]["hasMore"] is True

    assert client.get("/api/isr/count").json()["data"]["totalMovies"] == 7


def test_health_routes(client):
    assert client.get("/").json()["status"] == "healthy"
    health = client.get("/health")
    assert health.json()["background_jobs"] is False
    assert health.headers["X-Frame-Options"] == "DENY"
