"""
HTTP-level tests for the upload and video endpoints.

The upload service is wired to mocked storage/catalog and a fake media
toolkit through dependency overrides (see conftest.test_client).
"""

from uuid import uuid4

import pytest

from fastapi import Request
from fastapi.testclient import TestClient

from app.api.v1.upload import limit_request_body
from app.services.media_service import NoStreamError
from app.services.upload_service import ValidationError

from tests.conftest import FASTSTART_MARKER, scratch_files


MB = 1024 * 1024

BOUNDARY = "tubely-boundary"
MULTIPART_PREAMBLE = (
    f"--{BOUNDARY}\r\n"
    'Content-Disposition: form-data; name="video"; filename="clip.mp4"\r\n'
    "Content-Type: video/mp4\r\n\r\n"
).encode()


class TestThumbnailEndpoint:
    def test_upload_sets_thumbnail_url(
        self, test_client: TestClient, sample_video, owner_headers, mock_storage
    ) -> None:
        response = test_client.post(
            f"/api/v1/thumbnail_upload/{sample_video.id}",
            files={"thumbnail": ("cover.png", b"\x89PNG data", "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        key = next(iter(mock_storage.objects))
        assert body["id"] == str(sample_video.id)
        assert body["thumbnail_url"] == f"https://tubely-test.s3.us-east-1.amazonaws.com/{key}"

    def test_wrong_field_name(self, test_client, sample_video, owner_headers) -> None:
        response = test_client.post(
            f"/api/v1/thumbnail_upload/{sample_video.id}",
            files={"image": ("cover.png", b"data", "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unable to parse form file"}

    def test_unsupported_type(self, test_client, sample_video, owner_headers) -> None:
        response = test_client.post(
            f"/api/v1/thumbnail_upload/{sample_video.id}",
            files={"thumbnail": ("cover.gif", b"GIF89a", "image/gif")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["error"]

    def test_oversize_request_rejected(
        self, test_client, sample_video, owner_headers, mock_catalog
    ) -> None:
        response = test_client.post(
            f"/api/v1/thumbnail_upload/{sample_video.id}",
            files={"thumbnail": ("big.png", b"x" * (MB + 10), "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        mock_catalog.get_by_id.assert_not_awaited()


class TestVideoEndpoint:
    def test_upload_sets_video_url(
        self, test_client, sample_video, owner_headers, mock_storage, scratch_dir
    ) -> None:
        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mp4", b"raw mp4", "video/mp4")},
            headers=owner_headers,
        )

        assert response.status_code == 200
        key, (data, _) = next(iter(mock_storage.objects.items()))
        assert key.startswith("landscape/")
        assert data == FASTSTART_MARKER + b"raw mp4"
        assert response.json()["video_url"].endswith(key)
        assert scratch_files(scratch_dir) == []

    def test_oversize_video_never_staged(
        self, test_client, sample_video, owner_headers, fake_toolkit, scratch_dir
    ) -> None:
        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mp4", b"v" * (2 * MB + 10), "video/mp4")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert fake_toolkit.probed == []
        assert scratch_files(scratch_dir) == []

    def test_chunked_oversize_video_refused(
        self, test_client, sample_video, owner_headers, mock_catalog, fake_toolkit, scratch_dir
    ) -> None:
        def chunked_body():
            yield MULTIPART_PREAMBLE
            for _ in range(8):
                yield b"v" * MB

        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            content=chunked_body(),
            headers={**owner_headers, "Content-Type": f"multipart/form-data; boundary={BOUNDARY}"},
        )

        assert response.status_code == 400
        assert "exceeds maximum allowed size (2.00 MB)" in response.json()["error"]
        mock_catalog.get_by_id.assert_not_awaited()
        assert fake_toolkit.probed == []
        assert scratch_files(scratch_dir) == []

    def test_pipeline_failure_is_opaque(
        self, test_client, sample_video, owner_headers, fake_toolkit, scratch_dir
    ) -> None:
        fake_toolkit.probe_error = NoStreamError("no video streams found", stderr="/tmp/secret")

        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mp4", b"audio only", "video/mp4")},
            headers=owner_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Error determining aspect ratio"}
        assert scratch_files(scratch_dir) == []

    def test_wrong_type(self, test_client, sample_video, owner_headers) -> None:
        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mov", b"moov", "video/quicktime")},
            headers=owner_headers,
        )

        assert response.status_code == 400


class TestAccessControl:
    @pytest.mark.parametrize(
        ("path", "field", "content_type"),
        [
            ("thumbnail_upload", "thumbnail", "image/png"),
            ("video_upload", "video", "video/mp4"),
        ],
    )
    def test_missing_token(self, test_client, sample_video, path, field, content_type) -> None:
        response = test_client.post(
            f"/api/v1/{path}/{sample_video.id}",
            files={field: ("f", b"data", content_type)},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Couldn't find JWT"}

    def test_invalid_token(self, test_client, sample_video) -> None:
        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mp4", b"data", "video/mp4")},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    def test_non_owner(
        self, test_client, sample_video, stranger_headers, mock_storage, scratch_dir
    ) -> None:
        response = test_client.post(
            f"/api/v1/video_upload/{sample_video.id}",
            files={"video": ("clip.mp4", b"data", "video/mp4")},
            headers=stranger_headers,
        )

        assert response.status_code == 401
        mock_storage.put_object.assert_not_called()
        assert scratch_files(scratch_dir) == []

    def test_unknown_video(self, test_client, owner_headers) -> None:
        response = test_client.post(
            f"/api/v1/thumbnail_upload/{uuid4()}",
            files={"thumbnail": ("cover.png", b"data", "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Couldn't find video"}

    def test_malformed_id(self, test_client, owner_headers) -> None:
        response = test_client.post(
            "/api/v1/thumbnail_upload/not-a-uuid",
            files={"thumbnail": ("cover.png", b"data", "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ID"}


class TestVideoRead:
    def test_owner_can_read(self, test_client, sample_video, owner_headers) -> None:
        response = test_client.get(f"/api/v1/videos/{sample_video.id}", headers=owner_headers)

        assert response.status_code == 200
        assert response.json()["title"] == "Boots launch"

    def test_stranger_cannot_read(self, test_client, sample_video, stranger_headers) -> None:
        response = test_client.get(f"/api/v1/videos/{sample_video.id}", headers=stranger_headers)

        assert response.status_code == 401


class TestHealth:
    @pytest.mark.parametrize("path", ["/health", "/api/v1/health"])
    def test_health(self, test_client, path) -> None:
        response = test_client.get(path)

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestRequestBodyLimit:
    @pytest.mark.asyncio
    async def test_parsing_stops_at_the_ceiling(self) -> None:
        chunk = b"v" * (16 * 1024)
        pulled = []

        async def receive():
            pulled.append(len(chunk))
            body = MULTIPART_PREAMBLE + chunk if len(pulled) == 1 else chunk
            return {"type": "http.request", "body": body, "more_body": len(pulled) < 64}

        request = Request(
            {
                "type": "http",
                "method": "POST",
                "path": "/api/v1/video_upload/x",
                "headers": [
                    (b"content-type", f"multipart/form-data; boundary={BOUNDARY}".encode()),
                ],
            },
            receive=receive,
        )

        with pytest.raises(ValidationError, match="exceeds maximum allowed size"):
            await limit_request_body(request, 64 * 1024).form()

        # The fourth 16 KiB chunk crosses 64 KiB; the rest is never read
        assert len(pulled) == 4

    @pytest.mark.asyncio
    async def test_body_under_the_ceiling_passes_through(self) -> None:
        messages = [
            {"type": "http.request", "body": b"abc", "more_body": True},
            {"type": "http.request", "body": b"def", "more_body": False},
        ]

        async def receive():
            return messages.pop(0)

        request = Request({"type": "http", "method": "POST", "headers": []}, receive=receive)

        assert await limit_request_body(request, 6).body() == b"abcdef"
