"""
Movie document mapping
Turns raw MongoDB documents from the ``movies`` collection into MovieRecord.

Stored documents are produced by an external ingestion process and are not
uniform: ``genre`` may be a string or a list, ratings may be strings, and
optional fields may be missing entirely. Everything is normalized here,
right after reading, so downstream code only sees one shape.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from moviehub.schemas.movie import MovieRecord, DownloadLink, EpisodeLink, MonthlyMovie


# Projection to fetch only required fields
MOVIE_PROJECTION = {
    "_id": 1,
    "title": 1,
    "link": 1,
    "image": 1,
    "heading": 1,
    "shortTitle": 1,
    "imdbRating": 1,
    "genre": 1,
    "stars": 1,
    "director": 1,
    "language": 1,
    "quality": 1,
    "screenshots": 1,
    "downloadLinks": 1,
    "trailer": 1,
    "storyline": 1,
    "releaseDate": 1,
    "episodeLinks": 1,
}

# Lighter projection for search candidates (scored in memory)
SEARCH_PROJECTION = {
    "_id": 1,
    "title": 1,
    "link": 1,
    "image": 1,
    "heading": 1,
    "shortTitle": 1,
    "imdbRating": 1,
    "genre": 1,
    "stars": 1,
    "director": 1,
    "language": 1,
    "quality": 1,
    "releaseDate": 1,
}

MONTHLY_PROJECTION = {"_id": 1, "title": 1, "image": 1, "monthlydownload": 1}

TITLE_FIELDS = ("title", "shortTitle", "heading")
PEOPLE_FIELDS = ("genre", "stars", "director")


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Convert arbitrary values into floats while guarding against failures.

    Args:
        value: Raw value to convert ("7,5", "8.1", 6, None...)
        default: Fallback value when parsing is unsuccessful
    """
    if value is None or value == "":
        return default
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return default


def safe_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    """Parse a value into an integer, tolerating strings and floats."""
    if value is None or value == "":
        return default
    try:
        return int(float(str(value).split()[0]))
    except (TypeError, ValueError, IndexError):
        return default


def coerce_genres(value: Any) -> List[str]:
    """
    Normalize the genre field into a list of non-empty strings.

    A single string becomes a one-element list; it is not split on commas
    because some stored genre literals contain them.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        value = [value]

    genres = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            genres.append(text)
    return genres


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value)


def _download_links(value: Any) -> List[DownloadLink]:
    if not isinstance(value, list):
        return []
    return [
        DownloadLink(href=_text(item.get("href")), value=_text(item.get("value")))
        for item in value
        if isinstance(item, dict)
    ]


def _episode_links(value: Any) -> List[EpisodeLink]:
    if not isinstance(value, list):
        return []

    episodes = []
    for item in value:
        if not isinstance(item, dict):
            continue
        links: Dict[str, Dict[str, str]] = {}
        raw_links = item.get("links")
        if isinstance(raw_links, dict):
            for quality, platforms in raw_links.items():
                if isinstance(platforms, dict):
                    links[str(quality)] = {
                        str(platform): _text(url) for platform, url in platforms.items()
                    }
        episodes.append(EpisodeLink(episode=_text(item.get("episode")), links=links))
    return episodes


def document_to_movie(doc: Dict[str, Any]) -> MovieRecord:
    """
    Map a MongoDB document to a MovieRecord.

    Args:
        doc: Raw document (any projection)

    Returns:
        MovieRecord with defaults filled in and genre as list[str]
    """
    release_date = doc.get("releaseDate")
    if not isinstance(release_date, datetime):
        release_date = None

    screenshots = doc.get("screenshots")
    if not isinstance(screenshots, list):
        screenshots = [screenshots] if screenshots else []

    return MovieRecord(
        id=str(doc.get("_id", "")),
        title=_text(doc.get("title")),
        link=_text(doc.get("link")),
        image=_text(doc.get("image")),
        short_title=_text(doc.get("shortTitle")),
        heading=_text(doc.get("heading")),
        imdb_rating=safe_float(doc.get("imdbRating")),
        genre=coerce_genres(doc.get("genre")),
        stars=_text(doc.get("stars")),
        director=_text(doc.get("director")),
        language=_text(doc.get("language")),
        quality=_text(doc.get("quality")),
        screenshots=[_text(item) for item in screenshots if item],
        download_links=_download_links(doc.get("downloadLinks")),
        trailer=_text(doc.get("trailer")),
        storyline=_text(doc.get("storyline")),
        release_date=release_date,
        episode_links=_episode_links(doc.get("episodeLinks")),
        alltimedownload=safe_int(doc.get("alltimedownload")),
        monthlydownload=safe_int(doc.get("monthlydownload")),
        last_reset_month=safe_int(doc.get("lastResetMonth"), None),
        last_reset_year=safe_int(doc.get("lastResetYear"), None),
    )


def document_to_monthly_movie(doc: Dict[str, Any]) -> MonthlyMovie:
    return MonthlyMovie(
        id=str(doc.get("_id", "")),
        title=_text(doc.get("title")),
        image=_text(doc.get("image")),
        monthlydownload=safe_int(doc.get("monthlydownload")),
    )


def extract_clean_title(title: str, short_title: Optional[str] = None) -> str:
    """
    Human-friendly title for logs and page metadata.

    Prefers the short title; otherwise cuts the full title at the first
    bracket ("Inception (2010) 1080p" -> "Inception").
    """
    if short_title and short_title.strip():
        return short_title.strip()

    bracket = title.find("(")
    if bracket != -1:
        return title[:bracket].strip()
    return title.strip()
