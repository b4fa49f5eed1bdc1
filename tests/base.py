"""
Shared fixtures for API tests: a fresh SQLite schema per test and an
in-memory object store in place of S3.
"""
import asyncio
import unittest
from typing import Dict, Optional
from unittest.mock import patch

from fastapi.testclient import TestClient

import fitsnap.models  # noqa: F401
from fitsnap.database import Base, engine
from fitsnap.main import app
from fitsnap.services.object_storage import StorageError


class InMemoryStorage:
    """Object store double with the ObjectStorageService interface."""

    is_configured = False
    bucket = "test-bucket"

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.fail_uploads = False
        self.fail_downloads = False

    async def upload_file(self, file_content: bytes, object_name: str, content_type: str) -> str:
        if self.fail_uploads:
            raise StorageError("File upload failed")
        self.objects[object_name] = file_content
        self.content_types[object_name] = content_type
        return object_name

    async def download_file(self, object_name: str) -> bytes:
        if self.fail_downloads or object_name not in self.objects:
            raise StorageError("File download failed")
        return self.objects[object_name]

    async def delete_file(self, object_name: str) -> bool:
        self.objects.pop(object_name, None)
        self.content_types.pop(object_name, None)
        return True

    async def file_exists(self, object_name: str) -> bool:
        return object_name in self.objects

    async def check_connection(self) -> bool:
        return True

    def generate_presigned_download_url(self, object_name: str, expires_in: Optional[int] = None) -> str:
        return f"https://storage.example.com/{self.bucket}/{object_name}?X-Amz-Expires={expires_in or 120}"


async def reset_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


class ApiTestCase(unittest.TestCase):
    """Runs the app (including lifespan) against an empty database."""

    password = "s3cret-pass"

    def setUp(self):
        asyncio.run(reset_schema())

        self.storage = InMemoryStorage()
        patcher = patch("fitsnap.services.object_storage._storage_service", self.storage)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def register(self, email: str = "alice@example.com", username: str = "alice") -> dict:
        response = self.client.post(
            "/auth/register",
            json={"email": email, "username": username, "password": self.password},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def login(self, email: str = "alice@example.com") -> Dict[str, str]:
        response = self.client.post("/auth/login", json={"email": email, "password": self.password})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    def signup(self, email: str = "alice@example.com", username: str = "alice") -> Dict[str, str]:
        self.register(email, username)
        return self.login(email)

    def upload(
        self,
        headers: Dict[str, str],
        day: str,
        side: str = "front",
        content: bytes = b"\xff\xd8\xff\xe0fake-jpeg",
        filename: str = "photo.jpg",
        content_type: str = "image/jpeg",
    ):
        return self.client.post(
            f"/photos/{day}/{side}",
            headers=headers,
            files={"file": (filename, content, content_type)},
        )
