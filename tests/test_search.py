import math
from datetime import datetime

import pytest
from pymongo.errors import PyMongoError

from conftest import INCEPTION_EXTRAS_ID, INCEPTION_ID
from moviehub.schemas.movie import ErrorType, MovieRecord, SearchType
from moviehub.services.search_service import SearchService, build_search_filter

NOW = datetime(2026, 6, 1)


def record(title, **fields):
    return MovieRecord(_id=fields.pop("id", title), title=title, **fields)


# ============================================
# Filter planning
# ============================================

class TestBuildSearchFilter:

    def test_single_word_query(self):
        conditions = build_search_filter("inception")["$or"]
        fields = [next(iter(condition)) for condition in conditions]

        assert fields == [
            "title", "shortTitle", "heading",
            "title", "shortTitle", "heading",
            "genre", "stars", "director",
        ]
        assert conditions[0] == {"title": {"$regex": "inception", "$options": "i"}}

    def test_multi_word_query_requires_every_word(self):
        conditions = build_search_filter("dark knight")["$or"]
        per_word = [condition for condition in conditions if "$and" in condition]

        assert len(per_word) == 1
        assert len(per_word[0]["$and"]) == 2
        assert per_word[0]["$and"][1]["$or"][0] == {"title": {"$regex": "knight", "$options": "i"}}

    def test_compact_form_drops_spaces_and_punctuation(self):
        conditions = build_search_filter("Spider Man!")["$or"]
        assert {"title": {"$regex": "spiderman", "$options": "i"}} in conditions

    def test_regex_metacharacters_are_escaped(self):
        conditions = build_search_filter("c++ (2020")["$and"][0]["$or"]
        assert conditions[0] == {"title": {"$regex": "c\\+\\+\\ \\(2020", "$options": "i"}}

    def test_year_intersects_release_range(self):
        search_filter = build_search_filter("Inception 2010")

        assert "$or" in search_filter["$and"][0]
        assert search_filter["$and"][1] == {
            "releaseDate": {"$gte": datetime(2010, 1, 1), "$lt": datetime(2011, 1, 1)}
        }


# ============================================
# Ranking
# ============================================

class TestRanking:

    def test_composite_score(self):
        movie = record("Inception", imdb_rating=8.0, release_date=datetime(2000, 1, 1))
        result = SearchService.score_movie(movie, "inception", NOW)

        assert result.relevance == 100
        assert result.score == 100 + 8.0 * 2

    def test_short_title_and_heading_are_down_weighted(self):
        by_short_title = record("Something Else", short_title="Inception")
        by_heading = record("Another", heading="Inception")

        assert SearchService.title_relevance(by_short_title, "inception") == 80
        assert SearchService.title_relevance(by_heading, "inception") == 60

    def test_title_fields_add_up(self):
        everywhere = record("Inception", id="everywhere", short_title="Inception", heading="Inception")
        title_only = record("Inception", id="title-only", imdb_rating=1.0)

        ranked = SearchService.rank_movies([title_only, everywhere], "inception", NOW)

        assert [result.movie.id for result in ranked] == ["everywhere", "title-only"]
        assert ranked[0].score == 100 + 80 + 60
        assert ranked[0].relevance == 100

    def test_bonuses(self):
        movie = record(
            "Unrelated",
            genre=["Action"],
            language="Hindi",
            stars="Shah Rukh Khan",
            director="Rohit Shetty",
            release_date=datetime(2025, 1, 1),
        )

        assert SearchService.score_movie(movie, "action", NOW).score == 15 + 5
        assert SearchService.score_movie(movie, "hindi", NOW).score == 10 + 5
        assert SearchService.score_movie(movie, "shah khan", NOW).score == 5 + 5 + 5
        assert SearchService.score_movie(movie, "rohit", NOW).score == 5 + 5

    def test_sort_is_stable_for_ties(self):
        movies = [record("Alpha", id="1"), record("Beta", id="2"), record("Gamma", id="3")]
        ranked = SearchService.rank_movies(movies, "zzz", NOW)

        assert [result.movie.id for result in ranked] == ["1", "2", "3"]

    def test_better_match_ranks_first(self):
        movies = [
            record("The Dark Knight Rises", id="rises", imdb_rating=8.4),
            record("The Dark Knight", id="knight", imdb_rating=9.0),
            record("Dark", id="dark", imdb_rating=8.7),
        ]
        ranked = SearchService.rank_movies(movies, "the dark knight", NOW)

        assert ranked[0].movie.id == "knight"
        assert ranked[0].relevance == 100


# ============================================
# Search execution
# ============================================

async def test_inception_2010_scenario(db):
    result = await SearchService.search_movies(db, "Inception 2010", now=NOW)

    assert result.success
    ids = [movie.id for movie in result.data.movies]
    assert ids == [str(INCEPTION_ID)]
    assert str(INCEPTION_EXTRAS_ID) not in ids
    assert result.data.search_type == SearchType.EXACT
    assert result.data.query == "Inception 2010"


async def test_year_in_query_limits_results_to_that_year(db):
    result = await SearchService.search_movies(db, "Inception 2012", now=NOW)

    assert result.success
    assert result.data.movies
    assert all(movie.release_date.year == 2012 for movie in result.data.movies)


async def test_word_order_does_not_matter(db):
    result = await SearchService.search_movies(db, "idiots 3", now=NOW)
    assert [movie.title for movie in result.data.movies] == ["3 Idiots (2009) Hindi"]


async def test_people_fields_are_searched(db):
    result = await SearchService.search_movies(db, "christopher nolan", now=NOW)

    titles = {movie.title for movie in result.data.movies}
    assert titles == {"Inception (2010) 1080p", "Interstellar (2014)", "Inception Extras (2012)"}
    assert result.data.search_type == SearchType.PARTIAL


@pytest.mark.parametrize("page", [1, 2, 3, 4])
async def test_pagination_invariant(db, page):
    result = await SearchService.search_movies(db, "Hindi", page=page, limit=1, now=NOW)
    pagination = result.data.pagination

    assert pagination.total_movies == 3
    assert pagination.total_pages == math.ceil(pagination.total_movies / 1)
    assert pagination.has_next_page == (pagination.current_page < pagination.total_pages)
    assert pagination.has_prev_page == (page > 1)
    assert len(result.data.movies) == (1 if page <= 3 else 0)


async def test_limit_is_capped(db):
    result = await SearchService.search_movies(db, "a", limit=500, now=NOW)
    assert result.data.pagination.movies_per_page == SearchService.MAX_LIMIT


@pytest.mark.parametrize("query", ["", "   ", None])
async def test_empty_query_is_rejected_without_storage_access(db, query):
    result = await SearchService.search_movies(db, query)

    assert not result.success
    assert result.error_type == ErrorType.INVALID_INPUT
    assert db.calls == []


async def test_invalid_page_is_rejected_without_storage_access(db):
    result = await SearchService.search_movies(db, "inception", page=0)

    assert result.error_type == ErrorType.INVALID_INPUT
    assert db.calls == []


async def test_storage_failure_becomes_failure_result(db):
    db.fail_with = PyMongoError("connection refused")

    result = await SearchService.search_movies(db, "inception")

    assert not result.success
    assert result.error_type == ErrorType.STORAGE
    assert result.error == "connection refused"


async def test_no_results_is_a_success(db):
    result = await SearchService.search_movies(db, "qwertyuiop", now=NOW)

    assert result.success
    assert result.data.movies == []
    assert result.data.pagination.total_pages == 0
    assert result.data.search_type == SearchType.PARTIAL


# ============================================
# Routes
# ============================================

def test_search_route(client):
    response = client.get("/api/search", params={"q": "inception 2010"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["searchType"] == "exact"
    assert body["data"]["movies"][0]["_id"] == str(INCEPTION_ID)
    assert body["data"]["movies"][0]["shortTitle"] == "Inception"
    assert body["data"]["pagination"]["totalPages"] == 1
    assert len(body["data"]["recommendations"]) <= 4


def test_search_route_prefers_query_over_q(client):
    response = client.get("/api/search", params={"query": "pushpa", "q": "inception"})
    assert response.json()["data"]["movies"][0]["title"] == "Pushpa (2021) Hindi Dubbed"


def test_search_route_requires_query(client):
    response = client.get("/api/search")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Search query is required"}


def test_search_route_rejects_script(client):
    response = client.get("/api/search", params={"query": "<script>alert(1)</script>"})
    assert response.status_code == 400


def test_search_route_storage_failure(client, db):
    db.fail_with = PyMongoError("connection refused")

    response = client.get("/api/search", params={"query": "inception"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}
