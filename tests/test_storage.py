"""
Unit tests for the S3 storage adapter.

The MinIO client is mocked; no network access is needed.
"""

from unittest.mock import MagicMock, patch

import pytest
from urllib3.exceptions import MaxRetryError

from enqor.adapters.storage_s3 import S3Storage, StorageError, build_object_key
from enqor.core.config import S3Config


@pytest.fixture
def s3_config():
    return S3Config(
        endpoint="http://minio.local:9000",
        bucket_name="test-bucket",
        public_base_url="https://cdn.example.com/media",
    )


@pytest.fixture
def minio_client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


class TestObjectKey:
    """Test object key construction."""

    def test_key_layout(self):
        assert build_object_key("user-42", ".jpg", 1700000000000) == "user-42/1700000000000.jpg"

    def test_extension_without_dot(self):
        assert build_object_key("user", "mp4", 1) == "user/1.mp4"

    def test_owner_is_sanitised(self):
        assert build_object_key("../evil owner", ".jpg", 1) == ".._evil_owner/1.jpg"

    def test_blank_owner(self):
        assert build_object_key("   ", ".jpg", 1) == "anonymous/1.jpg"

    def test_default_timestamp(self):
        with patch("enqor.adapters.storage_s3.time.time", return_value=1700000000.5):
            assert build_object_key("user", ".jpg") == "user/1700000000500.jpg"


class TestS3Storage:
    """Test uploads through the MinIO client."""

    def test_public_url_with_base(self, s3_config):
        storage = S3Storage(s3_config)

        assert storage.public_url("user/1.jpg") == "https://cdn.example.com/media/user/1.jpg"

    def test_public_url_without_base(self):
        storage = S3Storage(S3Config(endpoint="http://minio.local:9000/", bucket_name="media"))

        assert storage.public_url("user/1.jpg") == "http://minio.local:9000/media/user/1.jpg"

    def test_client_creates_missing_bucket(self, s3_config, minio_client):
        minio_client.bucket_exists.return_value = False

        with patch("enqor.adapters.storage_s3.Minio", return_value=minio_client) as minio_cls:
            storage = S3Storage(s3_config)
            assert storage._get_client() is minio_client
            assert storage._get_client() is minio_client

        minio_cls.assert_called_once()
        assert minio_cls.call_args[0][0] == "minio.local:9000"
        assert minio_cls.call_args[1]["secure"] is False
        minio_client.make_bucket.assert_called_once_with("test-bucket")

    @pytest.mark.asyncio
    async def test_put_bytes(self, s3_config, minio_client):
        storage = S3Storage(s3_config)
        storage._client = minio_client

        url = await storage.put_bytes("user/1.jpg", b"jpeg-bytes", "image/jpeg")

        assert url == "https://cdn.example.com/media/user/1.jpg"
        args, kwargs = minio_client.put_object.call_args
        assert args[:2] == ("test-bucket", "user/1.jpg")
        assert args[2].read() == b"jpeg-bytes"
        assert kwargs["length"] == 10
        assert kwargs["content_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_put_bytes_failure(self, s3_config, minio_client):
        minio_client.put_object.side_effect = ValueError("stream length mismatch")
        storage = S3Storage(s3_config)
        storage._client = minio_client

        with patch("enqor.adapters.storage_s3.metrics") as metrics:
            with pytest.raises(StorageError):
                await storage.put_bytes("user/1.jpg", b"jpeg-bytes", "image/jpeg")

        assert metrics.track_storage_operation.call_args[0][2] == "failure"

    @pytest.mark.asyncio
    async def test_connection_failure(self, s3_config, minio_client):
        minio_client.put_object.side_effect = MaxRetryError(
            None, "/test-bucket/user/1.jpg", reason=ConnectionRefusedError("connection refused")
        )
        storage = S3Storage(s3_config)
        storage._client = minio_client

        with patch("enqor.adapters.storage_s3.metrics") as metrics:
            with pytest.raises(StorageError) as exc_info:
                await storage.put_bytes("user/1.jpg", b"x")

        assert "user/1.jpg" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, MaxRetryError)
        assert metrics.track_storage_operation.call_args[0][2] == "failure"

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_on_bucket_check(self, s3_config, minio_client):
        minio_client.bucket_exists.side_effect = MaxRetryError(
            None, "/test-bucket", reason=ConnectionRefusedError("connection refused")
        )

        with patch("enqor.adapters.storage_s3.Minio", return_value=minio_client):
            storage = S3Storage(s3_config)
            with pytest.raises(StorageError):
                await storage.put_bytes("user/1.jpg", b"x")

        minio_client.put_object.assert_not_called()
        assert storage._client is None
