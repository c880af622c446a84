"""
Tubely Upload Service Module

This module drives a media upload from the raw request to the updated
catalog record. Each upload walks the same state machine:

    Received -> Validated -> Staged -> [Classified -> Remuxed] -> Uploaded
             -> Recorded -> Responded

with ``Aborted`` reachable from every non-terminal state. The bracketed
states only apply to videos; thumbnails go straight from Staged to Uploaded.

- Thumbnails (<= 10 MB, image/jpeg or image/png) are read into memory and
  stored under ``<identity>``.
- Videos (<= 1 GB, video/mp4) are streamed to a private temporary file,
  probed for orientation, remuxed for fast start and stored under
  ``<orientation>/<identity>``.

Every temporary file created for a request is removed when the request
finishes, whatever the outcome. The catalog is only written after the
object store accepted the file. If the catalog write then fails, the stored
object is left behind and logged as orphaned.

The service keeps no state between requests; temp files get random names,
so any number of uploads can run concurrently.
"""

import asyncio
import logging
import os
import shutil
import tempfile

from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

import aiofiles

from fastapi import UploadFile

from app.config import Settings, get_settings
from app.core.storage import StorageClient, StorageError
from app.models.media import ACCEPTED_CONTENT_TYPES, MediaAsset, UploadKind
from app.models.video import Video
from app.services.catalog_service import CatalogError, VideoCatalog
from app.services.delivery_service import DeliveryURLResolver, build_object_key
from app.services.media_service import FASTSTART_SUFFIX, MediaProcessingError, MediaService
from app.utils.file_validator import validate_content_type, validate_file_size
from app.utils.logger import add_log_context
from app.utils.security import generate_asset_identity


# Configure module logger
logger = logging.getLogger(__name__)

# Chunk size used when streaming a video to its staging file
STAGING_CHUNK_SIZE = 1024 * 1024

# Prefix of staging files in the scratch directory
STAGING_PREFIX = "tubely-upload-"


class UploadServiceError(Exception):
    """Base exception for upload service errors."""


class ValidationError(UploadServiceError):
    """Malformed id, unsupported content type, missing field or oversize upload."""


class AuthError(UploadServiceError):
    """The caller may not modify the target video."""


class PipelineError(UploadServiceError):
    """Staging, probing, remuxing, storing or recording failed."""


class UploadState(str, Enum):
    """States of a single upload."""

    RECEIVED = "received"
    VALIDATED = "validated"
    STAGED = "staged"
    CLASSIFIED = "classified"
    REMUXED = "remuxed"
    UPLOADED = "uploaded"
    RECORDED = "recorded"
    RESPONDED = "responded"
    ABORTED = "aborted"


class _UploadRun:
    """Per-request bookkeeping: current state, log context and temp artifacts."""

    def __init__(self, kind: UploadKind, video_id: UUID, user_id: UUID) -> None:
        self.kind = kind
        self.state = UploadState.RECEIVED
        self.artifacts: list[str] = []
        self.log = add_log_context(
            logger,
            video_id=str(video_id),
            user_id=str(user_id),
            upload_kind=kind.value,
        )
        self.log.info("Upload received")

    def advance(self, state: UploadState, **details: Any) -> None:
        self.state = state
        self.log.info("Upload %s", state.value, extra={"upload_state": state.value, **details})

    def abort(self, error: BaseException) -> None:
        failed_in = self.state
        self.state = UploadState.ABORTED
        self.log.warning(
            "Upload aborted in state %s: %s",
            failed_in.value,
            error,
            extra={"upload_state": UploadState.ABORTED.value, "failed_in": failed_in.value},
        )

    def cleanup(self) -> None:
        """Best-effort removal of every temp file created for this upload."""
        for path in reversed(self.artifacts):
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError:
                self.log.warning("Could not remove temporary file %s", path, exc_info=True)
        self.artifacts.clear()


class UploadService:
    """
    Orchestrates thumbnail and video uploads.

    Attributes:
        storage: Object store client (sync boto3, run in worker threads)
        catalog: Video catalog accessor
        media: Container probe/remux facade
        resolver: Delivery URL strategy
        settings: Application settings (limits, scratch dir, assets root)

    Example:
        ```python
        service = UploadService(
            storage=get_storage_client(),
            catalog=get_video_catalog(),
            media=get_media_service(),
            resolver=get_url_resolver(),
        )
        video = await service.handle_video_upload(video_id, user_id, upload_file)
        ```
    """

    def __init__(
        self,
        storage: StorageClient,
        catalog: VideoCatalog,
        media: MediaService,
        resolver: DeliveryURLResolver,
        settings: Settings | None = None,
    ) -> None:
        self.storage = storage
        self.catalog = catalog
        self.media = media
        self.resolver = resolver
        self.settings: Settings = settings or get_settings()

    # =========================================================================
    # Validation
    # =========================================================================

    def max_upload_bytes(self, kind: UploadKind) -> int:
        """Size ceiling for an endpoint."""
        if kind == UploadKind.VIDEO:
            return self.settings.max_video_upload_bytes
        return self.settings.max_thumbnail_upload_bytes

    def check_content_length(self, kind: UploadKind, content_length: int | None) -> None:
        """
        Reject a request whose declared size is over the ceiling.

        Called before the multipart body is parsed, so an oversize request
        never reaches staging.

        Raises:
            ValidationError: The declared size exceeds the endpoint ceiling.
        """
        result = validate_file_size(content_length, self.max_upload_bytes(kind))
        if not result["is_valid"]:
            logger.warning("Rejected %s upload: %s", kind.value, result["error"])
            raise ValidationError(result["error"])

    def _validate_content_type(self, kind: UploadKind, upload: UploadFile) -> str:
        result = validate_content_type(upload.content_type, ACCEPTED_CONTENT_TYPES[kind])
        if not result["is_valid"]:
            raise ValidationError(result["error"])
        return result["media_type"]

    async def _authorize(self, video_id: UUID, user_id: UUID) -> Video:
        try:
            video = await self.catalog.get_by_id(video_id)
        except CatalogError as e:
            raise PipelineError("Couldn't find video") from e

        if video is None:
            raise PipelineError("Couldn't find video")
        if video.user_id != user_id:
            raise AuthError("Not authorized to update this video")
        return video

    async def _validate(
        self,
        run: _UploadRun,
        video_id: UUID,
        user_id: UUID,
        upload: UploadFile,
        content_length: int | None,
    ) -> tuple[Video, str]:
        self.check_content_length(run.kind, content_length)
        video = await self._authorize(video_id, user_id)
        media_type = self._validate_content_type(run.kind, upload)
        run.advance(UploadState.VALIDATED, media_type=media_type)
        return video, media_type

    # =========================================================================
    # Staging
    # =========================================================================

    async def _read_image(self, upload: UploadFile, limit: int) -> bytes:
        data = await upload.read(limit + 1)
        if len(data) > limit:
            raise ValidationError(validate_file_size(len(data), limit)["error"])
        return data

    async def _stage_video(self, run: _UploadRun, upload: UploadFile, limit: int) -> str:
        """Stream the upload into a fresh private temp file and return its path."""
        try:
            fd, path = tempfile.mkstemp(
                prefix=STAGING_PREFIX, suffix=".mp4", dir=self.settings.temp_dir
            )
        except OSError as e:
            raise PipelineError("Could not create temp file") from e
        run.artifacts.append(path)
        os.close(fd)

        written = 0
        try:
            async with aiofiles.open(path, "wb") as staged:
                while chunk := await upload.read(STAGING_CHUNK_SIZE):
                    written += len(chunk)
                    if written > limit:
                        raise ValidationError(validate_file_size(written, limit)["error"])
                    await staged.write(chunk)
        except OSError as e:
            raise PipelineError("Could not write file to disk") from e

        run.log.debug("Staged %d bytes to %s", written, path)
        return path

    # =========================================================================
    # Storage
    # =========================================================================

    def _put_file(self, key: str, path: str, content_type: str) -> dict[str, Any]:
        with open(path, "rb") as body:
            return self.storage.put_object(key, body, content_type)

    def _mirror_path(self, key: str) -> Path:
        return Path(self.settings.assets_root) / key

    def _mirror_file(self, key: str, path: str) -> None:
        destination = self._mirror_path(key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(path, destination)

    def _mirror_bytes(self, key: str, data: bytes) -> None:
        destination = self._mirror_path(key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)

    async def _store(self, run: _UploadRun, asset: MediaAsset, body: str | bytes) -> None:
        """Write the artifact (a staged path or in-memory bytes) under ``asset.key``."""
        try:
            if isinstance(body, bytes):
                await asyncio.to_thread(
                    self.storage.put_object, asset.key, body, asset.content_type
                )
            else:
                await asyncio.to_thread(self._put_file, asset.key, body, asset.content_type)
        except (StorageError, OSError) as e:
            run.log.exception("Object store write failed for key %s", asset.key)
            raise PipelineError("Error uploading file") from e

        if self.resolver.mirrors_locally:
            mirror = self._mirror_bytes if isinstance(body, bytes) else self._mirror_file
            try:
                await asyncio.to_thread(mirror, asset.key, body)
            except OSError as e:
                run.log.exception("Local asset mirror failed for key %s", asset.key)
                raise PipelineError("Error saving file") from e

        run.advance(UploadState.UPLOADED, key=asset.key)

    async def _record(self, run: _UploadRun, video: Video, asset: MediaAsset) -> Video:
        asset.url = self.resolver.resolve(asset.key)
        field = "video_url" if run.kind == UploadKind.VIDEO else "thumbnail_url"

        try:
            updated = await self.catalog.update_url(video.id, field, asset.url)
        except CatalogError as e:
            # The object is already stored; nothing rolls it back.
            run.log.exception(
                "Catalog update failed after upload; stored object %s is orphaned",
                asset.key,
                extra={"orphaned_key": asset.key},
            )
            raise PipelineError("Couldn't update video") from e

        run.advance(UploadState.RECORDED, url=asset.url)
        return updated

    # =========================================================================
    # Entry points
    # =========================================================================

    async def handle_thumbnail_upload(
        self,
        video_id: UUID,
        user_id: UUID,
        upload: UploadFile,
        content_length: int | None = None,
    ) -> Video:
        """
        Store a thumbnail for ``video_id`` and return the updated record.

        Raises:
            ValidationError: Oversize upload or content type not JPEG/PNG.
            AuthError: ``user_id`` does not own the video.
            PipelineError: No such video, or the store or catalog write failed.
        """
        run = _UploadRun(UploadKind.THUMBNAIL, video_id, user_id)
        try:
            video, media_type = await self._validate(
                run, video_id, user_id, upload, content_length
            )

            data = await self._read_image(upload, self.max_upload_bytes(run.kind))
            run.advance(UploadState.STAGED, size=len(data))

            identity = generate_asset_identity(media_type)
            asset = MediaAsset(
                identity=identity,
                content_type=media_type,
                key=build_object_key(identity),
            )
            await self._store(run, asset, data)
            updated = await self._record(run, video, asset)

            run.advance(UploadState.RESPONDED)
            return updated
        except Exception as e:
            run.abort(e)
            raise
        finally:
            run.cleanup()

    async def handle_video_upload(
        self,
        video_id: UUID,
        user_id: UUID,
        upload: UploadFile,
        content_length: int | None = None,
    ) -> Video:
        """
        Process and store a video for ``video_id`` and return the updated record.

        Raises:
            ValidationError: Oversize upload or content type not MP4.
            AuthError: ``user_id`` does not own the video.
            PipelineError: No such video, or staging, probe, remux, store or
                catalog write failed.
        """
        run = _UploadRun(UploadKind.VIDEO, video_id, user_id)
        try:
            video, media_type = await self._validate(
                run, video_id, user_id, upload, content_length
            )

            staged_path = await self._stage_video(run, upload, self.max_upload_bytes(run.kind))
            run.advance(UploadState.STAGED)

            try:
                orientation = await self.media.classify(staged_path)
            except MediaProcessingError as e:
                run.log.exception("Probe failed", extra={"stderr": e.stderr})
                raise PipelineError("Error determining aspect ratio") from e
            run.advance(UploadState.CLASSIFIED, orientation=orientation.value)

            # Registered before the call so a partial output is removed too
            run.artifacts.append(f"{staged_path}{FASTSTART_SUFFIX}")
            try:
                processed_path = await self.media.remux(staged_path)
            except MediaProcessingError as e:
                run.log.exception("Fast-start remux failed", extra={"stderr": e.stderr})
                raise PipelineError("Error processing video") from e
            if processed_path not in run.artifacts:
                run.artifacts.append(processed_path)
            run.advance(UploadState.REMUXED)

            identity = generate_asset_identity(media_type)
            asset = MediaAsset(
                identity=identity,
                content_type=media_type,
                orientation=orientation,
                key=build_object_key(identity, orientation),
            )
            await self._store(run, asset, processed_path)
            updated = await self._record(run, video, asset)

            run.advance(UploadState.RESPONDED)
            return updated
        except Exception as e:
            run.abort(e)
            raise
        finally:
            run.cleanup()

    async def get_video(self, video_id: UUID, user_id: UUID) -> Video:
        """Fetch a record the caller owns."""
        return await self._authorize(video_id, user_id)
