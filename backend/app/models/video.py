"""
Video record Pydantic model for Tubely.

The video catalog is owned by the wider platform; the media pipeline only
reads a record by id and overwrites one of its URL fields. This model mirrors
the documents stored in the MongoDB ``videos`` collection.
"""

from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Video(BaseModel):
    """
    Pydantic model for a video catalog record.

    Attributes:
        id: Video UUID (stored as the MongoDB ``_id`` string)
        user_id: UUID of the owning user
        title: Display title
        description: Free-form description
        thumbnail_url: Delivery URL of the thumbnail, if uploaded
        video_url: Delivery URL of the video file, if uploaded
        created_at: Record creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)

    Example:
        ```python
        video = Video(id=uuid4(), user_id=owner_id, title="Boots launch")
        document = video.to_document()
        ```
    """

    id: UUID = Field(..., alias="_id", description="Video identifier")

    user_id: UUID = Field(..., description="Owner of the video")

    title: str = Field(default="", max_length=500, description="Display title")

    description: str | None = Field(default=None, max_length=5000, description="Description")

    thumbnail_url: str | None = Field(default=None, description="Thumbnail delivery URL")

    video_url: str | None = Field(default=None, description="Video delivery URL")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "8c5a3a2e-0a52-4f0f-9a0b-1b0b0f5a7d11",
                "user_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "title": "Boots launch",
                "description": "First flight",
                "thumbnail_url": "https://tubely-media.s3.us-east-1.amazonaws.com/Zk3...Q.png",
                "video_url": "https://tubely-media.s3.us-east-1.amazonaws.com/landscape/a9...w.mp4",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )

    @classmethod
    def from_document(cls, document: dict) -> "Video":
        """Build a Video from a raw MongoDB document."""
        return cls.model_validate(document)

    def to_document(self) -> dict:
        """Serialize for MongoDB, keeping UUIDs as strings under ``_id``."""
        document = self.model_dump(by_alias=True)
        document["_id"] = str(self.id)
        document["user_id"] = str(self.user_id)
        return document
