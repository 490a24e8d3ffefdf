"""
Database Performance Indexes
============================
Creates indexes on the movies collection for the queries the API issues.

Usage:
    python -m moviehub.models.indexes
    python -m moviehub.models.indexes --drop

This module creates indexes to optimize:
- Homepage and category listings (releaseDate desc)
- Category filters (genre)
- Monthly leaderboard (monthlydownload desc, _id)
- Slug lookups (link)

Run this after initial deployment. Safe to run multiple times.
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError
import logging
import os

from moviehub.database import MONGODB_DB_NAME, MONGODB_URI, MOVIES_COLLECTION

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

INDEXES = [
    {
        "name": "idx_movies_release_date",
        "keys": [("releaseDate", DESCENDING)],
        "purpose": "Sort listings by newest release",
    },
    {
        "name": "idx_movies_genre",
        "keys": [("genre", ASCENDING)],
        "purpose": "Filter category listings",
    },
    {
        "name": "idx_movies_monthly_downloads",
        "keys": [("monthlydownload", DESCENDING), ("_id", ASCENDING)],
        "purpose": "Serve the monthly leaderboard",
    },
    {
        "name": "idx_movies_link",
        "keys": [("link", ASCENDING)],
        "purpose": "Look up records by slug",
    },
]


def _collection():
    client = MongoClient(
        MONGODB_URI,
        serverSelectionTimeoutMS=int(os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", 5000)),
    )
    return client, client[MONGODB_DB_NAME][MOVIES_COLLECTION]


def create_performance_indexes(collection=None):
    """
    Create every index in INDEXES that does not exist yet.

    Returns:
        Summary dict with created/skipped/errors/total counts
    """
    client = None
    if collection is None:
        client, collection = _collection()

    created_count = 0
    skipped_count = 0
    error_count = 0

    try:
        existing = set(collection.index_information().keys())
        for idx in INDEXES:
            if idx["name"] in existing:
                logger.info(f"Index {idx['name']} already exists - {idx['purpose']}")
                skipped_count += 1
                continue
            try:
                collection.create_index(idx["keys"], name=idx["name"])
                logger.info(f"Created index {idx['name']} - {idx['purpose']}")
                created_count += 1
            except PyMongoError as e:
                logger.error(f"Error creating index {idx['name']}: {str(e)}")
                error_count += 1
    finally:
        if client is not None:
            client.close()

    logger.info(
        f"Index creation summary: created={created_count} skipped={skipped_count} "
        f"errors={error_count} total={len(INDEXES)}"
    )

    return {
        "created": created_count,
        "skipped": skipped_count,
        "errors": error_count,
        "total": len(INDEXES),
    }


def drop_all_custom_indexes(collection=None):
    """Drop the indexes this module manages (for testing/debugging)."""
    client = None
    if collection is None:
        client, collection = _collection()

    try:
        existing = set(collection.index_information().keys())
        for idx in INDEXES:
            if idx["name"] not in existing:
                continue
            try:
                collection.drop_index(idx["name"])
                logger.info(f"Dropped index {idx['name']}")
            except PyMongoError as e:
                logger.error(f"Error dropping index {idx['name']}: {str(e)}")
    finally:
        if client is not None:
            client.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage movies collection indexes")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop the managed indexes instead of creating them"
    )

    args = parser.parse_args()

    if args.drop:
        drop_all_custom_indexes()
    else:
        create_performance_indexes()
