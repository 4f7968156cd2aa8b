"""
S3 Storage Adapter for Enqor Media.

Persists resized output to S3-compatible storage (MinIO) and returns its
public URL. The media engine never calls this itself; request handlers do.
"""

import asyncio
import io
import re
import time
from urllib.parse import urlparse

from minio import Minio
from minio.error import MinioException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from ..core.config import S3Config, settings
from ..core.logging import get_logger
from ..observability.metrics import metrics

logger = get_logger("adapters.storage_s3")

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class StorageError(Exception):
    """Raised when an object could not be stored."""

    pass


def build_object_key(owner: str, extension: str, timestamp_ms: int | None = None) -> str:
    """Object key ``<owner>/<epoch-ms><extension>``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    owner = _UNSAFE_KEY_CHARS.sub("_", owner.strip()) or "anonymous"
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return f"{owner}/{timestamp_ms}{extension}"


class S3Storage:
    """S3-compatible storage adapter using MinIO."""

    def __init__(self, config: S3Config | None = None):
        """Initialize S3 storage adapter."""
        self.config = config or settings.s3
        self.bucket = self.config.bucket_name
        self._client = None
        logger.info("S3Storage initialized", endpoint=self.config.endpoint, bucket=self.bucket)

    def _get_client(self) -> Minio:
        """Get or create MinIO client."""
        if self._client is None:
            parsed = urlparse(self.config.endpoint)
            client = Minio(
                parsed.netloc or parsed.path,
                access_key=self.config.access_key,
                secret_key=self.config.secret_key.get_secret_value(),
                secure=parsed.scheme == "https",
                region=self.config.region,
            )

            if not client.bucket_exists(self.bucket):
                client.make_bucket(self.bucket)
                logger.info("Created bucket", bucket=self.bucket)

            self._client = client

        return self._client

    def public_url(self, object_name: str) -> str:
        base = self.config.public_base_url or f"{self.config.endpoint.rstrip('/')}/{self.bucket}"
        return f"{base.rstrip('/')}/{object_name}"

    async def put_bytes(self, object_name: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Upload bytes to the media bucket.

        Args:
            object_name: Object key inside the bucket
            data: Object contents
            content_type: MIME type stored with the object

        Returns:
            Public URL of the uploaded object
        """
        start_time = time.time()

        def _upload():
            client = self._get_client()
            client.put_object(
                self.bucket,
                object_name,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )

        try:
            await asyncio.get_running_loop().run_in_executor(None, _upload)
        except (MinioException, Urllib3HTTPError, OSError, ValueError) as e:
            metrics.track_storage_operation("put", self.bucket, "failure", time.time() - start_time)
            raise StorageError(f"Failed to upload {object_name}: {e}") from e

        metrics.track_storage_operation("put", self.bucket, "success", time.time() - start_time)

        url = self.public_url(object_name)
        logger.info("Uploaded object", object_name=object_name, size=len(data), url=url)
        return url


# Global instance
s3_storage = S3Storage()
