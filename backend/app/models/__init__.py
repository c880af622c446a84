"""
Models Package for Tubely.

Exports the catalog record model and the upload pipeline types.

Example Usage:
    ```python
    from app.models import Orientation, UploadKind, Video
    ```
"""

from app.models.media import (
    ACCEPTED_CONTENT_TYPES,
    FORM_FIELDS,
    MediaAsset,
    Orientation,
    UploadKind,
    VideoStream,
)
from app.models.video import Video


__all__ = [
    "ACCEPTED_CONTENT_TYPES",
    "FORM_FIELDS",
    "MediaAsset",
    "Orientation",
    "UploadKind",
    "Video",
    "VideoStream",
]
