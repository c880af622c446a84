"""
Tubely Backend Application Package

Media ingestion for the Tubely video platform: attaches thumbnails and
fast-start MP4 videos to existing video records and hands back delivery URLs.

Package Structure:
- api/: REST endpoints organized by version (v1)
- core/: Infrastructure clients (MongoDB, S3, bearer auth)
- models/: Video record and upload pipeline types
- services/: Upload orchestration, media processing, delivery URLs, catalog
- utils/: Logging, validation and security helpers
"""

__version__ = "1.0.0"
__app_name__ = "Tubely"
