"""
Document mapping for the movies collection
"""
from moviehub.models.movie import coerce_genres, document_to_monthly_movie, document_to_movie

__all__ = [
    "coerce_genres",
    "document_to_movie",
    "document_to_monthly_movie",
]
