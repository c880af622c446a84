#!/usr/bin/env python3
"""
MongoDB Database Initialization Script for Tubely.

Creates the indexes on the ``videos`` collection and, optionally, seeds a
demo video record owned by a demo user and prints a bearer token for that
user so the upload endpoints can be exercised locally. Safe to run more
than once.

Usage:
    python scripts/init_db.py [options]

Options:
    --seed-demo     Insert (or reuse) a demo video and print an access token
    --verbose       Display detailed operation logs

Configuration is read from the same environment variables / .env file as
the API (MONGODB_URI, MONGODB_DB_NAME, SECRET_KEY, ...).
"""

import argparse
import sys
import time

from datetime import UTC, datetime
from uuid import UUID, uuid5

from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

from app.config import Settings, get_settings
from app.core.auth import create_access_token
from app.core.database import VIDEOS_COLLECTION
from app.models.video import Video


CONNECTION_TIMEOUT_MS = 5000

# Stable ids so repeated seeding reuses the same records
DEMO_NAMESPACE = UUID("6f1f6c1e-3b7e-4d2a-9a55-0c1f2d9e7a10")
DEMO_USER_ID = uuid5(DEMO_NAMESPACE, "demo-user")
DEMO_VIDEO_ID = uuid5(DEMO_NAMESPACE, "demo-video")

VIDEO_INDEXES = [
    IndexModel([("user_id", ASCENDING)], name="user_id_1"),
    IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)], name="user_id_1_created_at_-1"),
]


class DatabaseInitializer:
    """Creates the catalog indexes and seeds demo data."""

    def __init__(self, settings: Settings, verbose: bool = False) -> None:
        self.settings = settings
        self.verbose = verbose
        self.client: MongoClient | None = None
        self.db: Database | None = None

    def log(self, message: str, level: str = "INFO") -> None:
        if level == "DEBUG" and not self.verbose:
            return
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
        print(f"[{timestamp}] [{level}] {message}")

    def connect(self) -> bool:
        """Connect with up to three attempts and exponential backoff."""
        retry_delay = 2
        max_retries = 3

        for attempt in range(1, max_retries + 1):
            try:
                self.client = MongoClient(
                    self.settings.mongodb_uri,
                    serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                    connectTimeoutMS=CONNECTION_TIMEOUT_MS,
                )
                self.client.admin.command("ping")
                self.db = self.client[self.settings.mongodb_db_name]
                self.log(f"Connected to MongoDB database {self.settings.mongodb_db_name}")
                return True
            except ServerSelectionTimeoutError as e:
                self.log(f"Server selection timeout: {e}", "ERROR")
                return False
            except ConnectionFailure as e:
                self.log(f"Connection attempt {attempt}/{max_retries} failed: {e}", "WARNING")
                if attempt < max_retries:
                    time.sleep(retry_delay)
                    retry_delay *= 2

        self.log("Failed to connect after all retry attempts", "ERROR")
        return False

    def create_video_indexes(self) -> bool:
        try:
            names = self.db[VIDEOS_COLLECTION].create_indexes(VIDEO_INDEXES)
        except OperationFailure as e:
            self.log(f"Index creation failed: {e}", "ERROR")
            return False
        self.log(f"Indexes ready on {VIDEOS_COLLECTION}: {', '.join(names)}")
        return True

    def seed_demo_video(self) -> Video:
        """Insert the demo record if it is missing and return it."""
        videos = self.db[VIDEOS_COLLECTION]
        existing = videos.find_one({"_id": str(DEMO_VIDEO_ID)})
        if existing is not None:
            self.log("Demo video already present", "DEBUG")
            return Video.from_document(existing)

        video = Video(
            id=DEMO_VIDEO_ID,
            user_id=DEMO_USER_ID,
            title="Demo video",
            description="Seeded by init_db.py",
        )
        videos.insert_one(video.to_document())
        self.log(f"Seeded demo video {video.id}")
        return video

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.log("MongoDB connection closed", "DEBUG")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize MongoDB for Tubely")
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Insert a demo video and print a bearer token for its owner",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Detailed logs")
    return parser.parse_args()


def main() -> int:
    args = parse_arguments()
    settings = get_settings()
    initializer = DatabaseInitializer(settings, verbose=args.verbose)

    try:
        if not initializer.connect():
            return 1
        if not initializer.create_video_indexes():
            return 1

        if args.seed_demo:
            video = initializer.seed_demo_video()
            token = create_access_token(video.user_id, settings)
            print(f"\nDemo video id: {video.id}")
            print(f"Demo user id:  {video.user_id}")
            print(f"Authorization: Bearer {token}")
        return 0

    except KeyboardInterrupt:
        print("\nInitialization interrupted by user.")
        return 130

    finally:
        initializer.close()


if __name__ == "__main__":
    sys.exit(main())
