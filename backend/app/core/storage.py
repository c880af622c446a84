"""
Tubely S3-Compatible Storage Client

This module provides the object-store layer using boto3. It supports AWS S3
in production and any S3-compatible endpoint (e.g. MinIO) for development
through a configurable endpoint URL.

Writes are single streamed PUTs with botocore's retry loop disabled: a
transient failure surfaces to the caller immediately instead of being
retried behind its back.
"""

import logging

from typing import Any, BinaryIO

import boto3

from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings, get_settings


# Configure module-level logger
logger = logging.getLogger(__name__)

# Singleton container for storage client instance
# Using a dict container allows modification without global statement
_singleton_container: dict[str, "StorageClient"] = {}


class StorageError(Exception):
    """Raised when an object-store operation fails."""


class StorageClient:
    """
    S3-compatible storage client for processed media.

    Attributes:
        settings: Application settings containing S3 configuration
        s3_client: Initialized boto3 S3 client
        bucket_name: Target bucket for all operations

    Example usage:
        ```python
        from app.core.storage import get_storage_client

        storage = get_storage_client()
        with open("/tmp/clip.mp4.processing", "rb") as body:
            storage.put_object("landscape/a9...w.mp4", body, "video/mp4")
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """
        Initialize the S3 storage client with configuration from settings.

        Args:
            settings: Optional Settings instance. If None, the cached
                     application settings are used.

        Raises:
            StorageError: If the boto3 client cannot be created.
        """
        self.settings = settings or get_settings()

        client_config = Config(
            signature_version="s3v4",
            retries={"total_max_attempts": 1, "mode": "standard"},
        )

        client_kwargs: dict[str, Any] = {
            "endpoint_url": self.settings.s3_endpoint_url,
            "region_name": self.settings.s3_region,
            "config": client_config,
        }
        # Without explicit keys boto3 falls back to env/instance credentials
        if self.settings.s3_access_key_id and self.settings.s3_secret_access_key:
            client_kwargs["aws_access_key_id"] = self.settings.s3_access_key_id
            client_kwargs["aws_secret_access_key"] = self.settings.s3_secret_access_key

        try:
            self.s3_client = boto3.client("s3", **client_kwargs)
        except BotoCoreError as e:
            logger.exception(
                "Failed to initialize S3 storage client",
                extra={"endpoint": self.settings.s3_endpoint_url},
            )
            raise StorageError(f"Failed to initialize S3 client: {e}") from e

        self.bucket_name = self.settings.s3_bucket

        logger.info(
            "S3 storage client initialized successfully",
            extra={
                "bucket": self.bucket_name,
                "region": self.settings.s3_region,
                "endpoint": self.settings.s3_endpoint_url or "AWS S3 (default)",
            },
        )

    def put_object(
        self,
        key: str,
        body: BinaryIO | bytes,
        content_type: str,
    ) -> dict[str, Any]:
        """
        Stream ``body`` to the bucket under ``key``.

        Args:
            key: The S3 object key, e.g. ``"portrait/a9...w.mp4"``
            body: Open binary file or raw bytes
            content_type: MIME type stored as the object's Content-Type

        Returns:
            dict: ``{"bucket", "key", "etag"}`` of the written object.

        Raises:
            StorageError: If S3 rejects the write or the transfer fails.
        """
        try:
            response = self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except ClientError as e:
            error_message = e.response.get("Error", {}).get("Message", str(e))
            logger.exception(
                "Failed to upload object to S3",
                extra={"key": key, "bucket": self.bucket_name},
            )
            raise StorageError(f"Failed to upload object: {error_message}") from e
        except (BotoCoreError, OSError) as e:
            logger.exception(
                "Storage transfer error during object upload",
                extra={"key": key, "bucket": self.bucket_name},
            )
            raise StorageError(f"Storage transfer error: {e}") from e

        logger.info(
            "Uploaded object to S3",
            extra={"key": key, "bucket": self.bucket_name, "content_type": content_type},
        )

        return {
            "bucket": self.bucket_name,
            "key": key,
            "etag": response.get("ETag", ""),
        }


def get_storage_client() -> StorageClient:
    """
    Get the singleton StorageClient instance.

    The boto3 client is thread-safe, so one instance is shared by every
    request; it holds no per-upload state.

    Returns:
        StorageClient: The shared storage client instance.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageClient()
        logger.info("Created new StorageClient singleton instance")

    return _singleton_container["instance"]
