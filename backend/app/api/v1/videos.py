"""Read access to video records for their owners."""

import logging

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.v1.upload import get_upload_service, parse_video_id
from app.core.auth import get_current_user_id
from app.models.video import Video
from app.services.upload_service import UploadService


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/videos/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    summary="Get a video record",
)
async def get_video(
    video_id: str,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """Return the record, including any URLs set by earlier uploads."""
    return await upload_service.get_video(parse_video_id(video_id), user_id)
