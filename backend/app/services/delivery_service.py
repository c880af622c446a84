"""
Object-store key layout and delivery URL resolution for Tubely.

Both concerns are pure functions of their inputs: the same identity always
maps to the same key, and the same key always maps to the same URL for a
given configuration. A record's URL is computed once, when the upload
completes, and stored; changing the delivery mode later does not touch URLs
that were already written.

Layout:
    images  -> <identity>                e.g. "Zk3...Q.png"
    videos  -> <orientation>/<identity>  e.g. "landscape/a9...w.mp4"
"""

import logging

from app.config import DeliveryMode, Settings, get_settings
from app.models.media import Orientation


# Configure module logger
logger = logging.getLogger(__name__)

# Path under which local-mode assets are served
LOCAL_ASSETS_PATH = "assets"


def build_object_key(identity: str, orientation: Orientation | None = None) -> str:
    """
    Map an asset identity (and, for videos, its orientation) to an object key.

    Args:
        identity: Asset identity including its extension.
        orientation: Video orientation; None for images.

    Returns:
        ``identity`` for images, ``"<orientation>/<identity>"`` for videos.
    """
    if orientation is None:
        return identity
    return f"{Orientation(orientation).value}/{identity}"


def local_url(host: str, port: int | str, key: str) -> str:
    """URL of an asset served from the local static mount."""
    return f"http://{host}:{port}/{LOCAL_ASSETS_PATH}/{key}"


def direct_url(bucket: str, region: str, key: str) -> str:
    """Virtual-hosted-style S3 URL of an object."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def cdn_url(base: str, key: str) -> str:
    """URL of an object behind a CDN distribution whose origin is the bucket."""
    return f"{base.rstrip('/')}/{key}"


class DeliveryURLResolver:
    """
    Resolve object keys to caller-facing URLs using one configured strategy.

    Attributes:
        mode: Active delivery strategy
        settings: Settings supplying host/port, bucket/region or CDN base

    Example:
        ```python
        resolver = DeliveryURLResolver(get_settings())
        url = resolver.resolve("portrait/a9...w.mp4")
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.mode = DeliveryMode(settings.delivery_mode)

        if self.mode == DeliveryMode.CDN and not settings.cdn_distribution_url:
            raise ValueError("cdn delivery requires cdn_distribution_url")

        logger.info("Delivery URL resolver configured for %s mode", self.mode.value)

    def resolve(self, key: str) -> str:
        """Return the delivery URL for ``key`` under the configured mode."""
        if self.mode == DeliveryMode.LOCAL:
            return local_url(self.settings.asset_host, self.settings.port, key)
        if self.mode == DeliveryMode.CDN:
            return cdn_url(self.settings.cdn_distribution_url or "", key)
        return direct_url(self.settings.s3_bucket, self.settings.s3_region, key)

    @property
    def mirrors_locally(self) -> bool:
        """Whether stored assets must also be written under ``assets_root``."""
        return self.mode == DeliveryMode.LOCAL


def get_url_resolver(settings: Settings | None = None) -> DeliveryURLResolver:
    """Build a resolver from the application settings."""
    return DeliveryURLResolver(settings or get_settings())
