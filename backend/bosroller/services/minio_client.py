import io
import json
import logging
from typing import Optional, Dict, Any
from pathlib import PurePosixPath
from minio import Minio
from minio.error import S3Error
import asyncio
from concurrent.futures import ThreadPoolExecutor
from bosroller.core.config import settings

logger = logging.getLogger(__name__)


class ObjectExistsError(Exception):
    """Uploads never overwrite; raised when the object name is taken."""

    status = 409

    def __init__(self, object_name: str):
        super().__init__(f"Object already exists: {object_name}")
        self.object_name = object_name


def _strip_scheme(endpoint: str) -> str:
    if endpoint.startswith('http://'):
        endpoint = endpoint[7:]
    elif endpoint.startswith('https://'):
        endpoint = endpoint[8:]
    return endpoint.rstrip('/')


class MinioService:
    """MinIO storage for uploaded videos."""

    def __init__(self):
        self.endpoint = _strip_scheme(settings.minio_endpoint)
        # Public URLs point at the public endpoint when one is configured
        self.public_endpoint = _strip_scheme(settings.minio_public_endpoint) if settings.minio_public_endpoint else self.endpoint

        self.internal_client = Minio(
            self.endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region="us-east-1"
        )

        self.bucket_name = settings.minio_bucket_name
        self.executor = ThreadPoolExecutor(max_workers=4)

    async def _run(self, func):
        return await asyncio.get_event_loop().run_in_executor(self.executor, func)

    async def ensure_bucket_exists(self) -> bool:
        """Create the bucket if needed and make its objects publicly readable."""
        def _ensure_bucket():
            try:
                if not self.internal_client.bucket_exists(self.bucket_name):
                    self.internal_client.make_bucket(self.bucket_name)
                    logger.info(f"MinIO bucket '{self.bucket_name}' created")

                bucket_policy = {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"AWS": "*"},
                            "Action": ["s3:GetObject"],
                            "Resource": [f"arn:aws:s3:::{self.bucket_name}/*"]
                        }
                    ]
                }
                try:
                    self.internal_client.set_bucket_policy(self.bucket_name, json.dumps(bucket_policy))
                    logger.info(f"MinIO bucket '{self.bucket_name}' policy set to public read")
                except S3Error as policy_error:
                    logger.warning(f"Failed to set bucket policy: {policy_error}")

                return True
            except S3Error as e:
                logger.error(f"MinIO bucket operation failed: {e}")
                return False

        return await self._run(_ensure_bucket)

    def build_object_name(self, video_id: str, filename: str) -> str:
        """`{prefix}/{video_id}{ext}`; the extension comes from the original file name."""
        ext = PurePosixPath(filename).suffix.lower()
        return f"{settings.storage_path_prefix}/{video_id}{ext}"

    def get_public_url(self, object_name: str) -> str:
        scheme = "https" if settings.minio_secure else "http"
        return f"{scheme}://{self.public_endpoint}/{self.bucket_name}/{object_name}"

    async def object_exists(self, object_name: str) -> bool:
        def _exists():
            try:
                self.internal_client.stat_object(self.bucket_name, object_name)
                return True
            except S3Error as e:
                if e.code in ("NoSuchKey", "NoSuchObject", "NoSuchBucket"):
                    return False
                raise

        return await self._run(_exists)

    async def upload_file_content(
        self,
        content: bytes,
        object_name: str,
        content_type: str = "application/octet-stream"
    ) -> str:
        """Store bytes under `object_name`. Errors propagate to the caller."""
        if await self.object_exists(object_name):
            raise ObjectExistsError(object_name)

        def _upload():
            self.internal_client.put_object(
                self.bucket_name,
                object_name,
                io.BytesIO(content),
                len(content),
                content_type=content_type,
                metadata={"Cache-Control": f"max-age={settings.storage_cache_control}"}
            )
            return object_name

        return await self._run(_upload)

    async def delete_file(self, object_name: str) -> bool:
        """Remove an object. Record deletion never calls this; stored videos are kept."""
        def _delete():
            try:
                self.internal_client.remove_object(self.bucket_name, object_name)
                return True
            except S3Error as e:
                logger.error(f"Failed to delete object {object_name}: {e}")
                return False

        return await self._run(_delete)

    async def test_connection(self) -> Dict[str, Any]:
        """Connectivity summary for the system endpoints."""
        def _test():
            try:
                buckets = self.internal_client.list_buckets()
                bucket_exists = self.internal_client.bucket_exists(self.bucket_name)
                return {
                    "connected": True,
                    "buckets_count": len(buckets),
                    "bucket_exists": bucket_exists,
                    "endpoint": settings.minio_endpoint,
                    "bucket_name": self.bucket_name,
                    "secure": settings.minio_secure
                }
            except Exception as e:
                return {
                    "connected": False,
                    "error": str(e),
                    "endpoint": settings.minio_endpoint,
                    "bucket_name": self.bucket_name
                }

        return await self._run(_test)


minio_service: Optional[MinioService] = None


def get_storage() -> MinioService:
    """FastAPI dependency; the client is created on first use."""
    global minio_service
    if minio_service is None:
        minio_service = MinioService()
    return minio_service
