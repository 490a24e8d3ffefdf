import os
from datetime import datetime

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from moviehub.database import MOVIES_COLLECTION, get_db
from moviehub.main import app
from mock_db import AsyncMockDatabase

# Ensure background jobs stay disabled during tests
os.environ.setdefault("ENABLE_BACKGROUND_JOBS", "false")


def oid(n: int) -> ObjectId:
    return ObjectId(f"{n:024x}")


INCEPTION_ID = oid(1)
INTERSTELLAR_ID = oid(2)
INCEPTION_EXTRAS_ID = oid(3)
THREE_IDIOTS_ID = oid(4)
PUSHPA_ID = oid(5)
CONJURING_ID = oid(6)
DARK_ID = oid(7)
UNKNOWN_ID = oid(99)


def make_movie(_id, title, **fields):
    """Catalog document shaped like the ones the ingestion process writes."""
    doc = {
        "_id": _id,
        "title": title,
        "link": title.lower().split(" (")[0].replace(" ", "-"),
        "image": f"https://img.example.com/{_id}.jpg",
        "shortTitle": "",
        "heading": "",
        "imdbRating": 0,
        "genre": [],
        "stars": "",
        "director": "",
        "language": "English",
        "quality": "1080p",
        "screenshots": [],
        "downloadLinks": [{"href": f"https://dl.example.com/{_id}", "value": "1080p"}],
        "trailer": "",
        "storyline": "",
        "releaseDate": datetime(2000, 1, 1),
        "alltimedownload": 0,
        "monthlydownload": 0,
    }
    doc.update(fields)
    return doc


CATALOG = [
    make_movie(
        INCEPTION_ID, "Inception (2010) 1080p",
        link="inception-2010",
        shortTitle="Inception",
        heading="Inception 2010 Hindi-English",
        imdbRating=8.8,
        genre=["Sci-Fi", "Action", "Hollywood"],
        stars="Leonardo DiCaprio, Joseph Gordon-Levitt",
        director="Christopher Nolan",
        releaseDate=datetime(2010, 7, 16),
        alltimedownload=10,
        monthlydownload=3,
        lastResetMonth=0,
        lastResetYear=2026,
    ),
    make_movie(
        INTERSTELLAR_ID, "Interstellar (2014)",
        shortTitle="Interstellar",
        imdbRating=8.7,
        genre="Sci-Fi",
        stars="Matthew McConaughey, Anne Hathaway",
        director="Christopher Nolan",
        releaseDate=datetime(2014, 11, 7),
    ),
    make_movie(
        INCEPTION_EXTRAS_ID, "Inception Extras (2012)",
        imdbRating=6.0,
        genre=["Documentary"],
        director="Christopher Nolan",
        releaseDate=datetime(2012, 3, 1),
    ),
    make_movie(
        THREE_IDIOTS_ID, "3 Idiots (2009) Hindi",
        shortTitle="3 Idiots",
        imdbRating=8.4,
        genre=["Bollywood", "Comedy", "Drama"],
        stars="Aamir Khan, R. Madhavan",
        director="Rajkumar Hirani",
        language="Hindi",
        releaseDate=datetime(2009, 12, 25),
        monthlydownload=7,
    ),
    make_movie(
        PUSHPA_ID, "Pushpa (2021) Hindi Dubbed",
        shortTitle="Pushpa",
        imdbRating=7.6,
        genre=["Hindi Dubbed", "Action", "South Hindi"],
        stars="Allu Arjun",
        director="Sukumar",
        language="Hindi",
        releaseDate=datetime(2021, 12, 17),
        monthlydownload=7,
    ),
    make_movie(
        CONJURING_ID, "The Conjuring (2013)",
        imdbRating=7.5,
        genre="Horror",
        stars="Vera Farmiga, Patrick Wilson",
        director="James Wan",
        releaseDate=datetime(2013, 7, 19),
        monthlydownload=1,
    ),
    make_movie(
        DARK_ID, "Dark (2017) Season 1",
        imdbRating=8.7,
        genre=["Web Series", "Sci-Fi", "Mystery"],
        stars="Louis Hofmann",
        director="Baran bo Odar",
        language="German",
        releaseDate=datetime(2017, 12, 1),
        monthlydownload=2,
    ),
]


@pytest.fixture
def db():
    """Fresh in-memory catalog for each test."""
    database = AsyncMockDatabase()
    database.sync[MOVIES_COLLECTION].insert_many([dict(doc) for doc in CATALOG])
    return database


@pytest.fixture
def empty_db():
    return AsyncMockDatabase()


@pytest.fixture
def client(db, monkeypatch):
    """FastAPI test client with the database dependency overridden."""
    app.dependency_overrides[get_db] = lambda: db
    monkeypatch.setenv("ENABLE_BACKGROUND_JOBS", "false")

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)
