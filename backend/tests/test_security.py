"""Tests for asset identities, media type parsing and content/size validation."""

import base64
import re

import pytest

from app.utils.file_validator import (
    format_file_size,
    parse_media_type,
    validate_content_type,
    validate_file_size,
)
from app.utils.security import generate_asset_identity, media_type_to_ext


class TestMediaTypeToExt:
    @pytest.mark.parametrize(
        ("media_type", "ext"),
        [
            ("image/png", ".png"),
            ("image/jpeg", ".jpeg"),
            ("video/mp4", ".mp4"),
            ("video/MP4", ".mp4"),
            ("not-a-type", ".bin"),
            ("a/b/c", ".bin"),
            ("/png", ".bin"),
            ("", ".bin"),
        ],
    )
    def test_mapping(self, media_type, ext) -> None:
        assert media_type_to_ext(media_type) == ext


class TestAssetIdentity:
    def test_shape(self) -> None:
        identity = generate_asset_identity("video/mp4")

        token, ext = identity.rsplit(".", 1)
        assert ext == "mp4"
        assert re.fullmatch(r"[A-Za-z0-9_-]{43}", token)
        assert "=" not in identity

    def test_token_carries_256_bits(self) -> None:
        token = generate_asset_identity("image/png").rsplit(".", 1)[0]
        assert len(base64.urlsafe_b64decode(token + "=")) == 32

    def test_unique(self) -> None:
        identities = {generate_asset_identity("image/png") for _ in range(1000)}
        assert len(identities) == 1000

    def test_unknown_type_gets_fallback_extension(self) -> None:
        assert generate_asset_identity("garbage").endswith(".bin")


class TestParseMediaType:
    @pytest.mark.parametrize(
        ("raw", "parsed"),
        [
            ("image/png", "image/png"),
            ("Image/PNG", "image/png"),
            ("video/mp4; codecs=avc1", "video/mp4"),
            ("  image/jpeg ", "image/jpeg"),
            ("", None),
            (None, None),
            ("png", None),
            ("image/", None),
        ],
    )
    def test_parse(self, raw, parsed) -> None:
        assert parse_media_type(raw) == parsed


class TestValidateContentType:
    def test_accepted(self) -> None:
        result = validate_content_type("image/png", {"image/png", "image/jpeg"})
        assert result["is_valid"] is True
        assert result["media_type"] == "image/png"
        assert result["error"] is None

    def test_rejected(self) -> None:
        result = validate_content_type("image/gif", {"image/png", "image/jpeg"})
        assert result["is_valid"] is False
        assert "Invalid file type" in result["error"]

    def test_unparseable(self) -> None:
        result = validate_content_type("garbage", {"video/mp4"})
        assert result["is_valid"] is False
        assert result["error"] == "Invalid Content-Type"


class TestValidateFileSize:
    def test_at_ceiling(self) -> None:
        assert validate_file_size(1024, 1024)["is_valid"] is True

    def test_over_ceiling(self) -> None:
        result = validate_file_size(1025, 1024)
        assert result["is_valid"] is False
        assert "exceeds maximum allowed size" in result["error"]

    def test_unknown_size_passes(self) -> None:
        assert validate_file_size(None, 1024)["is_valid"] is True

    def test_negative(self) -> None:
        assert validate_file_size(-1, 1024)["is_valid"] is False

    def test_format(self) -> None:
        assert format_file_size(1536) == "1.50 KB"
        assert format_file_size(1048576) == "1.00 MB"
