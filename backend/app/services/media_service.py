"""
Container inspection and fast-start remuxing for Tubely.

The pipeline only needs two capabilities from a media toolkit:

- ``probe(path)``: report the first video stream's dimensions
- ``remux(path)``: rewrite the container with its index at the head of the
  file (stream copy, no re-encode) and return the new path

``FFmpegToolkit`` implements them with the ffprobe/ffmpeg binaries. Any
object with the same two methods can stand in for it, e.g. an in-process
codec binding or a test double.

Both toolkit calls block; ``MediaService`` runs them in a worker thread.
"""

import asyncio
import json
import logging
import os
import subprocess

from typing import Any, Protocol

from app.config import Settings, get_settings
from app.models.media import Orientation, VideoStream


# Configure module logger
logger = logging.getLogger(__name__)

# Suffix appended to the input path for the remuxed output
FASTSTART_SUFFIX = ".processing"

# Numerator/denominator of the widescreen ratio used for classification
WIDE_RATIO = (16, 9)


class MediaProcessingError(Exception):
    """Base exception for container inspection and remux failures."""

    def __init__(self, message: str, stderr: str | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr


class ProbeError(MediaProcessingError):
    """The inspection tool could not run or exited non-zero."""


class ParseError(MediaProcessingError):
    """The inspection tool's output could not be understood."""


class NoStreamError(MediaProcessingError):
    """The container holds no video stream."""


class RemuxError(MediaProcessingError):
    """The fast-start remux failed or produced an empty file."""


class MediaToolkit(Protocol):
    """Capability interface for container inspection and remuxing."""

    def probe(self, path: str) -> VideoStream:
        """Return the first video stream of the file at ``path``."""
        ...

    def remux(self, path: str) -> str:
        """Write a fast-start copy of ``path`` and return its location."""
        ...


def orientation_for_dimensions(width: int, height: int) -> Orientation:
    """
    Classify a frame size as landscape, portrait or other.

    Uses truncating integer arithmetic, so only frames that are exactly 16:9
    (or 9:16) after flooring qualify.

    Example:
        >>> orientation_for_dimensions(1920, 1080)
        <Orientation.LANDSCAPE: 'landscape'>
        >>> orientation_for_dimensions(1000, 1000)
        <Orientation.OTHER: 'other'>
    """
    num, den = WIDE_RATIO
    if width == num * height // den:
        return Orientation.LANDSCAPE
    if height == num * width // den:
        return Orientation.PORTRAIT
    return Orientation.OTHER


def parse_probe_output(raw: str | bytes) -> VideoStream:
    """
    Extract the first video stream from ffprobe's ``-show_streams`` JSON.

    Streams that do not declare a ``codec_type`` are treated as video.

    Raises:
        ParseError: Output is not JSON of the expected shape, or the stream's
            dimensions are missing or not positive integers.
        NoStreamError: No video stream is present.
    """
    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"could not parse probe output: {e}") from e

    if not isinstance(document, dict):
        raise ParseError("probe output is not a JSON object")

    streams = document.get("streams") or []
    if not isinstance(streams, list):
        raise ParseError("probe output 'streams' is not a list")

    video_streams = [
        stream
        for stream in streams
        if isinstance(stream, dict) and stream.get("codec_type", "video") == "video"
    ]
    if not video_streams:
        raise NoStreamError("no video streams found")

    first: dict[str, Any] = video_streams[0]
    width, height = first.get("width"), first.get("height")
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ParseError(f"video stream has invalid {name}: {value!r}")

    return VideoStream(width=width, height=height, codec_name=first.get("codec_name"))


class FFmpegToolkit:
    """
    MediaToolkit backed by the ffprobe and ffmpeg command-line tools.

    Attributes:
        ffprobe_path: ffprobe executable name or path
        ffmpeg_path: ffmpeg executable name or path
        timeout: Seconds before a tool is killed; None waits indefinitely
    """

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        ffmpeg_path: str = "ffmpeg",
        timeout: float | None = None,
    ) -> None:
        self.ffprobe_path = ffprobe_path
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "FFmpegToolkit":
        return cls(
            ffprobe_path=settings.ffprobe_path,
            ffmpeg_path=settings.ffmpeg_path,
            timeout=settings.media_tool_timeout_seconds,
        )

    def _run(self, args: list[str], error_cls: type[MediaProcessingError]) -> subprocess.CompletedProcess:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                stdin=subprocess.DEVNULL,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise error_cls(f"{args[0]} timed out after {self.timeout}s") from e
        except OSError as e:
            raise error_cls(f"could not run {args[0]}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise error_cls(f"{args[0]} exited with status {result.returncode}", stderr=stderr)

        return result

    def probe(self, path: str) -> VideoStream:
        result = self._run(
            [
                self.ffprobe_path,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_streams",
                path,
            ],
            ProbeError,
        )
        return parse_probe_output(result.stdout)

    def remux(self, path: str) -> str:
        output_path = f"{path}{FASTSTART_SUFFIX}"
        self._run(
            [
                self.ffmpeg_path,
                "-y",
                "-i",
                path,
                "-movflags",
                "faststart",
                "-codec",
                "copy",
                "-f",
                "mp4",
                output_path,
            ],
            RemuxError,
        )

        try:
            size = os.path.getsize(output_path)
        except OSError as e:
            raise RemuxError(f"could not stat processed file: {e}") from e
        if size == 0:
            raise RemuxError("processed file is empty")

        return output_path


class MediaService:
    """
    Async facade over a MediaToolkit used by the upload pipeline.

    Example:
        ```python
        media = MediaService(FFmpegToolkit())
        orientation = await media.classify("/tmp/tubely-upload-x.mp4")
        faststart_path = await media.remux("/tmp/tubely-upload-x.mp4")
        ```
    """

    def __init__(self, toolkit: MediaToolkit) -> None:
        self.toolkit = toolkit

    async def classify(self, path: str) -> Orientation:
        """Probe ``path`` and classify its first video stream."""
        stream = await asyncio.to_thread(self.toolkit.probe, path)
        orientation = orientation_for_dimensions(stream.width, stream.height)
        logger.debug(
            "Classified %dx%d video as %s", stream.width, stream.height, orientation.value
        )
        return orientation

    async def remux(self, path: str) -> str:
        """Produce a fast-start copy of ``path`` and return its path."""
        output_path = await asyncio.to_thread(self.toolkit.remux, path)
        logger.debug("Remuxed %s for fast start", os.path.basename(path))
        return output_path


def get_media_service(settings: Settings | None = None) -> MediaService:
    """Build a MediaService using the ffmpeg toolkit from settings."""
    return MediaService(FFmpegToolkit.from_settings(settings or get_settings()))
