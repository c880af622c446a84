"""
Media asset models for the Tubely ingestion pipeline.

These types describe an upload while it moves through the pipeline. Nothing
here is persisted; the only durable outputs are the stored object and the
URL written back onto the catalog record.
"""

from dataclasses import dataclass
from enum import Enum


class UploadKind(str, Enum):
    """Endpoint an upload arrived on."""

    THUMBNAIL = "thumbnail"
    VIDEO = "video"


class Orientation(str, Enum):
    """
    Coarse aspect-ratio category of a video.

    Doubles as the top-level directory of the video's object-store key.
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# Accepted declared content types per endpoint
ACCEPTED_CONTENT_TYPES: dict[UploadKind, frozenset[str]] = {
    UploadKind.THUMBNAIL: frozenset({"image/jpeg", "image/png"}),
    UploadKind.VIDEO: frozenset({"video/mp4"}),
}

# Multipart field name carrying the file for each endpoint
FORM_FIELDS: dict[UploadKind, str] = {
    UploadKind.THUMBNAIL: "thumbnail",
    UploadKind.VIDEO: "video",
}


@dataclass(frozen=True)
class VideoStream:
    """Dimensions of the first video stream reported by the container probe."""

    width: int
    height: int
    codec_name: str | None = None


@dataclass
class MediaAsset:
    """
    An uploaded asset on its way to the object store.

    Attributes:
        identity: Random token plus extension, e.g. ``"Zk3...Q.png"``
        content_type: Parsed media type, e.g. ``"image/png"``
        orientation: Video orientation; None for images
        key: Object-store key built from orientation and identity
        url: Delivery URL resolved from the key
    """

    identity: str
    content_type: str
    orientation: Orientation | None = None
    key: str | None = None
    url: str | None = None
