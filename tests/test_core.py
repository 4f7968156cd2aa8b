"""
Unit tests for configuration, logging helpers and metrics.
"""

import os

import pytest
from pydantic import ValidationError

from enqor.core.config import AppConfig, MediaConfig, S3Config, get_test_settings
from enqor.core.logging import (
    add_context_fields,
    create_request_id,
    filter_sensitive_data,
    request_id_ctx,
    with_logging_context,
)
from enqor.observability.metrics import get_metrics_response, get_test_metrics


class TestConfig:
    """Test settings loading and validation."""

    def test_media_defaults(self):
        config = MediaConfig()

        assert config.default_quality == 0.92
        assert config.large_source_quality == 0.75
        assert config.fallback_quality == 0.6
        assert config.hard_ceiling_bytes == 10 * 1024 * 1024
        assert config.inline_url_threshold_bytes == 5 * 1024 * 1024
        assert config.video_thumbnail_position == 1.0
        assert config.output_format == "JPEG"

    def test_media_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MEDIA_FALLBACK_QUALITY", "0.5")
        monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "50")

        config = MediaConfig()

        assert config.fallback_quality == 0.5
        assert config.max_upload_size_mb == 50

    @pytest.mark.parametrize("quality", [0, 1.2, -0.5])
    def test_rejects_bad_quality(self, quality):
        with pytest.raises(ValidationError):
            MediaConfig(default_quality=quality)

    def test_output_format_is_normalised(self):
        assert MediaConfig(output_format="webp").output_format == "WEBP"
        with pytest.raises(ValidationError):
            MediaConfig(output_format="gif")

    def test_app_validation(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "moon")
        with pytest.raises(ValidationError):
            AppConfig()

    def test_log_level_is_upper_cased(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert AppConfig().log_level == "DEBUG"

    def test_s3_endpoint_validation(self):
        with pytest.raises(ValidationError):
            S3Config(endpoint="minio:9000")

    def test_test_settings(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET_NAME", "other-bucket")
        monkeypatch.setenv("DEBUG", "false")
        monkeypatch.setenv("ENVIRONMENT", "production")

        test_settings = get_test_settings()

        assert test_settings.app.environment == "testing"
        assert test_settings.s3.bucket_name == "test-bucket"
        assert test_settings.app.debug is True

    def test_test_settings_leave_environment_untouched(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET_NAME", "other-bucket")
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.delenv("DEBUG", raising=False)

        get_test_settings()

        assert os.environ["S3_BUCKET_NAME"] == "other-bucket"
        assert os.environ["ENVIRONMENT"] == "production"
        assert "DEBUG" not in os.environ
        assert S3Config().bucket_name == "other-bucket"


class TestLoggingHelpers:
    """Test structlog processors and context."""

    def test_request_context(self):
        with with_logging_context(request_id="req-1"):
            assert request_id_ctx.get() == "req-1"
            event = add_context_fields(None, "info", {"event": "x"})

        assert event["request_id"] == "req-1"
        assert event["app"] == "Enqor Media"
        assert request_id_ctx.get() is None

    def test_generated_request_id(self):
        with with_logging_context() as context:
            assert request_id_ctx.get() == context.request_id

    def test_create_request_id(self):
        assert create_request_id() != create_request_id()

    def test_sensitive_fields_are_redacted(self):
        event = filter_sensitive_data(None, "info", {
            "event": "Uploaded",
            "secret_key": "minioadmin123",
            "nested": {"api_key": "k", "bucket": "media"},
        })

        assert event["secret_key"] == "[REDACTED]"
        assert event["nested"] == {"api_key": "[REDACTED]", "bucket": "media"}
        assert event["event"] == "Uploaded"


class TestMetrics:
    """Test the metrics collector."""

    def test_media_transform_metrics(self):
        collector = get_test_metrics()

        collector.track_media_transform("image", "instagram-post", 0.2, 123456, 2)
        collector.track_media_failed("video", "tiktok-video", "DecodeError")

        output = collector.get_metrics().decode()
        assert 'enqor_media_transforms_total{media_type="image",format="instagram-post",status="success"} 1.0' in output
        assert 'status="DecodeError"' in output
        assert "enqor_media_encode_passes_bucket" in output

    def test_storage_metrics(self):
        collector = get_test_metrics()

        collector.track_storage_operation("put", "media", "success", 0.3)

        assert "enqor_storage_operations_total" in collector.get_metrics().decode()

    def test_metrics_response(self):
        content, headers = get_metrics_response()

        assert b"enqor_media_info" in content
        assert headers["Content-Type"].startswith("text/plain")
