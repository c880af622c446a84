"""
Video catalog access for the upload pipeline.

The catalog schema belongs to the wider platform. The pipeline needs exactly
two operations on it: fetch a record by id, and set one of its URL fields.
It never creates or deletes records.
"""

import logging

from datetime import UTC, datetime
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError as ModelValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.core.database import get_db_client
from app.models.video import Video


# Configure module logger
logger = logging.getLogger(__name__)

# Record fields the upload pipeline is allowed to write
URL_FIELDS = ("thumbnail_url", "video_url")


class CatalogError(Exception):
    """Raised when the catalog cannot be read or written."""


class VideoCatalog:
    """
    Read/update access to the ``videos`` collection.

    Example:
        ```python
        catalog = VideoCatalog(get_db_client().get_videos_collection())
        video = await catalog.get_by_id(video_id)
        video = await catalog.update_url(video.id, "video_url", url)
        ```
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_by_id(self, video_id: UUID) -> Video | None:
        """
        Fetch one video record.

        Returns:
            The record, or None if no video has this id.

        Raises:
            CatalogError: If the lookup fails or the stored document is invalid.
        """
        try:
            document = await self.collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.exception("Catalog lookup failed for video %s", video_id)
            raise CatalogError(f"Couldn't find video: {e}") from e

        if document is None:
            return None

        try:
            return Video.from_document(document)
        except ModelValidationError as e:
            logger.exception("Catalog document for video %s is malformed", video_id)
            raise CatalogError("Stored video record is malformed") from e

    async def update_url(self, video_id: UUID, field: str, url: str) -> Video:
        """
        Set one URL field on a record and bump ``updated_at``.

        Only ``field`` is written, so concurrent thumbnail and video uploads
        for the same record never overwrite each other's URL.

        Args:
            video_id: Record to update.
            field: ``"thumbnail_url"`` or ``"video_url"``.
            url: Public URL of the stored object.

        Returns:
            The record as stored after the write.

        Raises:
            ValueError: If ``field`` is not a URL field.
            CatalogError: If the write fails or the record no longer exists.
        """
        if field not in URL_FIELDS:
            raise ValueError(f"Not a URL field: {field}")

        try:
            document = await self.collection.find_one_and_update(
                {"_id": str(video_id)},
                {"$set": {field: url, "updated_at": datetime.now(UTC)}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.exception("Catalog update failed for video %s", video_id)
            raise CatalogError(f"Couldn't update video: {e}") from e

        if document is None:
            raise CatalogError(f"Video {video_id} no longer exists")

        try:
            video = Video.from_document(document)
        except ModelValidationError as e:
            logger.exception("Catalog document for video %s is malformed", video_id)
            raise CatalogError("Stored video record is malformed") from e

        logger.info("Catalog %s updated for video %s", field, video_id)
        return video


def get_video_catalog() -> VideoCatalog:
    """FastAPI dependency returning a catalog bound to the shared Mongo client."""
    return VideoCatalog(get_db_client().get_videos_collection())
