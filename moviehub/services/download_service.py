"""
Download Service - Per-record download counters with monthly rollover

Each record keeps ``alltimedownload``, ``monthlydownload`` and the
``lastResetMonth`` / ``lastResetYear`` pair naming the month the monthly
counter belongs to. Months are stored 0-based (January == 0) to stay
compatible with documents already written by the site.
"""
from datetime import datetime
from typing import Optional
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from moviehub.database import MOVIES_COLLECTION
from moviehub.models.movie import safe_int
from moviehub.schemas.movie import DownloadCounts, DownloadResponse, ErrorType
from moviehub.services.movie_service import is_object_id

logger = logging.getLogger(__name__)

COUNTER_PROJECTION = {"alltimedownload": 1, "monthlydownload": 1}


def current_period(now: Optional[datetime] = None) -> tuple[int, int]:
    """(0-based month, year) of now."""
    now = now or datetime.now()
    return now.month - 1, now.year


class DownloadService:

    @staticmethod
    async def increment_download(
        db: AsyncIOMotorDatabase,
        movie_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> DownloadResponse:
        """
        Count one download of a record.

        Same month as the stored reset period: both counters +1.
        Any other month (or no period stored): monthly counter restarts at 1,
        the reset period moves to the current month, all-time counter +1.

        Args:
            db: Database handle
            movie_id: 24-hex ObjectId string
            now: Current time (injectable for tests)

        Returns:
            DownloadResponse with the updated counters
        """
        if not movie_id:
            return DownloadResponse.fail("Movie ID is required", ErrorType.INVALID_INPUT)
        if not is_object_id(movie_id):
            return DownloadResponse.fail("Invalid movie ID format", ErrorType.INVALID_INPUT)

        now = now or datetime.now()
        month, year = current_period(now)
        object_id = ObjectId(movie_id)
        collection = db[MOVIES_COLLECTION]

        same_month = {"_id": object_id, "lastResetMonth": month, "lastResetYear": year}

        async def increment_same_month():
            return await collection.find_one_and_update(
                same_month,
                {
                    "$inc": {"alltimedownload": 1, "monthlydownload": 1},
                    "$set": {"lastDownloadDate": now},
                },
                projection=COUNTER_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )

        try:
            # Each update is atomic on its own; the period match decides which one applies.
            updated = await increment_same_month()

            if updated is None:
                updated = await collection.find_one_and_update(
                    {
                        "_id": object_id,
                        "$or": [
                            {"lastResetMonth": {"$ne": month}},
                            {"lastResetYear": {"$ne": year}},
                        ],
                    },
                    {
                        "$set": {
                            "monthlydownload": 1,
                            "lastResetMonth": month,
                            "lastResetYear": year,
                            "lastDownloadDate": now,
                        },
                        "$inc": {"alltimedownload": 1},
                    },
                    projection=COUNTER_PROJECTION,
                    return_document=ReturnDocument.AFTER,
                )
                if updated is not None:
                    logger.info(f"Monthly downloads reset for {movie_id} ({year}-{month + 1:02d})")
                else:
                    # A concurrent request rolled the period over first.
                    updated = await increment_same_month()

            if updated is None:
                return DownloadResponse.fail("Movie not found", ErrorType.NOT_FOUND)

            return DownloadResponse(
                success=True,
                data=DownloadCounts(
                    alltimedownload=safe_int(updated.get("alltimedownload")),
                    monthlydownload=safe_int(updated.get("monthlydownload")),
                ),
            )

        except Exception as e:
            logger.error(f"Error incrementing downloads for {movie_id}: {str(e)}")
            return DownloadResponse.fail(str(e) or "Unknown error occurred")
