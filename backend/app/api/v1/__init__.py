"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter mounted by the
application under /api/v1:
    - POST /thumbnail_upload/{video_id}
    - POST /video_upload/{video_id}
    - GET /videos/{video_id}
"""

import logging

from fastapi import APIRouter

from app.api.v1.upload import router as upload_router
from app.api.v1.videos import router as videos_router


logger = logging.getLogger(__name__)

api_router = APIRouter()

api_router.include_router(upload_router, tags=["upload"])
api_router.include_router(videos_router, tags=["videos"])

__all__ = ["api_router"]
