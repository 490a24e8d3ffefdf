"""
Text matching helpers shared by search and category resolution.

- normalize_text: lowercase, strip punctuation, collapse whitespace
- extract_year: first 19xx/20xx token in free text
- similarity_score: tiered title relevance (100 exact / 80 containment / <=60 word overlap)
- normalize_for_comparison + slug helpers: genre slug reconciliation
"""
from typing import List, Optional
from urllib.parse import unquote
import re

from moviehub.schemas.movie import SearchType

EXACT_SCORE = 100
CONTAINS_SCORE = 80
WORD_OVERLAP_WEIGHT = 60

EXACT_THRESHOLD = 80
FUZZY_THRESHOLD = 50

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
_SLUG_SPLIT = re.compile(r"[-\s]+")


def normalize_text(text: Optional[str]) -> str:
    """
    Lowercase text keeping only [a-z0-9] and single spaces.

    normalize_text(normalize_text(x)) == normalize_text(x) for any x.
    """
    if not text:
        return ""
    lowered = _NON_ALNUM.sub("", text.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def extract_year(text: Optional[str]) -> Optional[int]:
    """Return the first standalone 4-digit year (1900-2099) in text, or None."""
    if not text:
        return None
    match = _YEAR.search(text)
    return int(match.group(0)) if match else None


def similarity_score(field: Optional[str], query: Optional[str]) -> float:
    """
    Heuristic relevance of a record field to a query.

    Both sides are normalized first. Tiers:
    - equal -> 100
    - either contains the other -> 80
    - otherwise fraction of query words found inside some field word x 60
    """
    field_norm = normalize_text(field)
    query_norm = normalize_text(query)
    if not field_norm or not query_norm:
        return 0.0

    if field_norm == query_norm:
        return float(EXACT_SCORE)

    if query_norm in field_norm or field_norm in query_norm:
        return float(CONTAINS_SCORE)

    query_words = query_norm.split(" ")
    field_words = field_norm.split(" ")
    matched = sum(
        1 for query_word in query_words
        if any(query_word in field_word for field_word in field_words)
    )
    return matched / len(query_words) * WORD_OVERLAP_WEIGHT


def classify_search_type(score: float) -> SearchType:
    """Label a result set by its best relevance score."""
    if score >= EXACT_THRESHOLD:
        return SearchType.EXACT
    if score >= FUZZY_THRESHOLD:
        return SearchType.FUZZY
    return SearchType.PARTIAL


# ============================================
# Genre slug helpers
# ============================================

def normalize_for_comparison(text: Optional[str]) -> str:
    """
    Collapse a genre or slug to its comparable core.

    "Sci-Fi", "sci_fi", "SCI FI" and "[Sci-Fi]" all become "scifi".
    """
    if not text:
        return ""
    lowered = text.lower()
    for token in ("+", "[", "]", "'", "-"):
        lowered = lowered.replace(token, "")
    lowered = _WHITESPACE.sub("", lowered)
    return re.sub(r"[\W_]+", "", lowered)


def decode_slug(slug: str) -> str:
    return unquote(slug).strip()


def _title_words(slug: str) -> List[str]:
    return [word[:1].upper() + word[1:].lower() for word in _SLUG_SPLIT.split(slug) if word]


def slug_to_genre_variants(slug: str) -> List[str]:
    """
    Spellings a stored genre might use for this slug, without duplicates.

    "hindi-dubbed" -> ["hindi-dubbed", "Hindi Dubbed", "Hindi-Dubbed",
                       "HINDI-DUBBED", "HindiDubbed"]
    """
    decoded = decode_slug(slug)
    words = _title_words(decoded)
    title_case = " ".join(words)

    variants = [
        decoded,
        title_case,
        "-".join(words),
        decoded.lower(),
        decoded.upper(),
        "".join(words),
    ]

    unique = []
    for variant in variants:
        if variant and variant not in unique:
            unique.append(variant)
    return unique


def fallback_genre(slug: str) -> str:
    """Last-resort genre literal: capitalize each hyphen-separated word."""
    words = decode_slug(slug).split("-")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)
