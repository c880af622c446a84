"""
FastAPI Upload Router for Tubely

Two multipart endpoints attach media to an existing video record:
- POST /thumbnail_upload/{video_id} - form field ``thumbnail``, JPEG/PNG, <= 10 MB
- POST /video_upload/{video_id} - form field ``video``, MP4, <= 1 GB

Both require a bearer JWT and return the updated video record. The declared
Content-Length is checked before the multipart body is parsed, and the body
itself is counted while it is read, so oversize requests are refused before
anything is staged, chunked ones included.

Errors are raised as upload service exceptions and rendered by the
application's exception handlers as ``{"error": "<message>"}``.
"""

import logging

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.types import Message

from app.config import Settings, get_settings
from app.core.auth import get_current_user_id
from app.core.storage import get_storage_client
from app.models.media import FORM_FIELDS, UploadKind
from app.models.video import Video
from app.services.catalog_service import get_video_catalog
from app.services.delivery_service import get_url_resolver
from app.services.media_service import get_media_service
from app.services.upload_service import UploadService, ValidationError
from app.utils.file_validator import format_file_size


# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter()


def get_upload_service(settings: Settings = Depends(get_settings)) -> UploadService:
    """Dependency injection for UploadService."""
    return UploadService(
        storage=get_storage_client(),
        catalog=get_video_catalog(),
        media=get_media_service(settings),
        resolver=get_url_resolver(settings),
        settings=settings,
    )


def parse_video_id(raw: str) -> UUID:
    """Parse a path id, mapping anything that is not a UUID to a 400."""
    try:
        return UUID(raw)
    except ValueError as e:
        raise ValidationError("Invalid ID") from e


def declared_content_length(request: Request) -> int | None:
    header = request.headers.get("content-length")
    if header is None:
        return None
    try:
        length = int(header)
    except ValueError as e:
        raise ValidationError("Invalid Content-Length") from e
    if length < 0:
        raise ValidationError("Invalid Content-Length")
    return length


def limit_request_body(request: Request, limit: int) -> Request:
    """
    Wrap ``request`` so its body stream fails once more than ``limit`` bytes arrive.

    Chunked requests carry no Content-Length, so the ceiling has to be
    enforced while the multipart parser reads, before it spools the body.

    Raises:
        ValidationError: From the wrapped receive, when the ceiling is crossed.
    """
    received = 0

    async def receive() -> Message:
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise ValidationError(
                    f"Upload exceeds maximum allowed size ({format_file_size(limit)})"
                )
        return message

    return Request(request.scope, receive=receive)


async def _run_upload(
    kind: UploadKind,
    raw_video_id: str,
    request: Request,
    user_id: UUID,
    upload_service: UploadService,
) -> Video:
    video_id = parse_video_id(raw_video_id)
    content_length = declared_content_length(request)
    upload_service.check_content_length(kind, content_length)
    bounded = limit_request_body(request, upload_service.max_upload_bytes(kind))

    try:
        form = await bounded.form(max_files=1, max_fields=10)
    except HTTPException as e:
        logger.warning("Malformed multipart body for %s upload: %s", kind.value, e.detail)
        raise ValidationError("Unable to parse form file") from e

    try:
        upload = form.get(FORM_FIELDS[kind])
        if not isinstance(upload, UploadFile):
            raise ValidationError("Unable to parse form file")

        if kind == UploadKind.VIDEO:
            return await upload_service.handle_video_upload(
                video_id, user_id, upload, content_length
            )
        return await upload_service.handle_thumbnail_upload(
            video_id, user_id, upload, content_length
        )
    finally:
        await form.close()


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    summary="Upload a video thumbnail",
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Store a JPEG or PNG thumbnail and set the video's ``thumbnail_url``.

    Responses:
        200: Updated video record
        400: Invalid id, missing field, wrong content type or too large
        401: Missing/invalid JWT or caller is not the owner
        500: No such video, or store or catalog failure
    """
    logger.info("Thumbnail upload for video %s by user %s", video_id, user_id)
    return await _run_upload(UploadKind.THUMBNAIL, video_id, request, user_id, upload_service)


@router.post(
    "/video_upload/{video_id}",
    response_model=Video,
    response_model_by_alias=False,
    summary="Upload a video file",
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    """
    Stage, classify, remux and store an MP4, then set the video's ``video_url``.

    Responses:
        200: Updated video record
        400: Invalid id, missing field, wrong content type or too large
        401: Missing/invalid JWT or caller is not the owner
        500: No such video, or staging, probe, remux, store or catalog failure
    """
    logger.info("Video upload for video %s by user %s", video_id, user_id)
    return await _run_upload(UploadKind.VIDEO, video_id, request, user_id, upload_service)
