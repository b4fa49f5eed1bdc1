"""
S3-compatible object storage service.
Handles photo upload, download, deletion and presigned GET URLs.

boto3 클라이언트는 동기식이므로 모든 호출은 기본 executor에서 실행한다.
"""
import asyncio
import functools
from typing import Any, Callable, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from fitsnap.config import get_settings
from fitsnap.utils.logger import log_error, log_warning
from fitsnap.utils.prometheus_metrics import record_external_request

_SERVICE_LABEL = "object_storage"


class StorageError(Exception):
    """Raised when an object storage call fails."""


class ObjectStorageService:
    """
    Service for interacting with an S3-compatible bucket.

    오브젝트 키 구조: photos/{user_id}/{date}/{side}.jpg
    같은 키로 다시 업로드하면 덮어쓴다.
    """

    def __init__(self):
        self.settings = get_settings()
        self._s3_client = None

    @property
    def bucket(self) -> str:
        return self.settings.storage_bucket

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.storage_bucket and self.settings.storage_access_key)

    def _get_s3_client(self):
        """Get or create the boto3 S3 client."""
        if self._s3_client is not None:
            return self._s3_client

        endpoint = self.settings.storage_endpoint_url.strip() or None
        self._s3_client = boto3.client(
            "s3",
            aws_access_key_id=self.settings.storage_access_key or None,
            aws_secret_access_key=self.settings.storage_secret_key or None,
            endpoint_url=endpoint,
            region_name=self.settings.storage_region_name,
            config=Config(
                signature_version="s3v4",
                # 커스텀 엔드포인트(MinIO 등)는 path-style URL 사용
                s3={"addressing_style": "path" if endpoint else "auto"},
            ),
        )
        return self._s3_client

    async def _call(self, func: Callable[..., Any], **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, **kwargs))

    async def upload_file(
        self,
        file_content: bytes,
        object_name: str,
        content_type: str,
    ) -> str:
        """
        Upload a file to the bucket.

        Args:
            file_content: The file content as bytes
            object_name: Object key (예: photos/1/2024-01-01/front.jpg)
            content_type: MIME type of the file

        Returns:
            The object key
        """
        client = self._get_s3_client()
        try:
            async with record_external_request(_SERVICE_LABEL):
                await self._call(
                    client.put_object,
                    Bucket=self.bucket,
                    Key=object_name,
                    Body=file_content,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as e:
            log_error("File upload failed", event="storage", exc_info=True, object_name=object_name)
            raise StorageError("File upload failed") from e
        return object_name

    async def download_file(self, object_name: str) -> bytes:
        """Download an object and return its bytes."""
        client = self._get_s3_client()
        try:
            async with record_external_request(_SERVICE_LABEL):
                response = await self._call(client.get_object, Bucket=self.bucket, Key=object_name)
                body = response["Body"]
                try:
                    return await asyncio.get_running_loop().run_in_executor(None, body.read)
                finally:
                    body.close()
        except (ClientError, BotoCoreError) as e:
            log_error("File download failed", event="storage", exc_info=True, object_name=object_name)
            raise StorageError("File download failed") from e

    async def delete_file(self, object_name: str) -> bool:
        """
        Delete an object.

        Returns:
            True if deletion was successful (S3 delete is idempotent)
        """
        client = self._get_s3_client()
        try:
            async with record_external_request(_SERVICE_LABEL):
                await self._call(client.delete_object, Bucket=self.bucket, Key=object_name)
            return True
        except (ClientError, BotoCoreError) as e:
            log_error("File deletion failed", event="storage", exc_info=True, object_name=object_name)
            return False

    async def file_exists(self, object_name: str) -> bool:
        client = self._get_s3_client()
        try:
            async with record_external_request(_SERVICE_LABEL):
                await self._call(client.head_object, Bucket=self.bucket, Key=object_name)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            log_error("File exists check failed", event="storage", exc_info=True, object_name=object_name)
            raise StorageError("File exists check failed") from e
        except BotoCoreError as e:
            log_error("File exists check failed", event="storage", exc_info=True, object_name=object_name)
            raise StorageError("File exists check failed") from e

    async def check_connection(self) -> bool:
        """HEAD the bucket (health check)."""
        client = self._get_s3_client()
        try:
            async with record_external_request(_SERVICE_LABEL):
                await self._call(client.head_bucket, Bucket=self.bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            log_warning("Bucket check failed", event="storage", error=str(e)[:200])
            return False

    def generate_presigned_download_url(
        self,
        object_name: str,
        expires_in: Optional[int] = None,
    ) -> str:
        """
        Generate a short-lived presigned GET URL.

        서명은 로컬 연산이라 네트워크 호출이 없다.
        """
        if expires_in is None:
            expires_in = self.settings.storage_presigned_url_expire_seconds
        client = self._get_s3_client()
        try:
            return client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": object_name},
                ExpiresIn=expires_in,
                HttpMethod="GET",
            )
        except (ClientError, BotoCoreError) as e:
            log_error("Presigned URL generation failed", event="storage", exc_info=True, object_name=object_name)
            raise StorageError("Failed to generate presigned URL") from e


# Singleton instance
_storage_service: Optional[ObjectStorageService] = None


def get_storage_service() -> ObjectStorageService:
    """Get the singleton storage service instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = ObjectStorageService()
    return _storage_service
