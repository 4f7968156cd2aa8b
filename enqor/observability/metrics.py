"""
Prometheus metrics collection for Enqor Media.

This module provides:
- Application metrics (requests, response times)
- Media transform metrics (outcomes, durations, encode passes, output sizes)
- Storage operation metrics
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from ..core.config import settings

SIZE_BUCKETS = [1024, 10240, 102400, 1048576, 5242880, 10485760, 104857600, 524288000]


class MetricsCollector:
    """Central metrics collector for the application."""

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics collector."""
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Initialize all application metrics."""

        # Application info
        self.app_info = Info(
            'enqor_media_info',
            'Application information',
            registry=self.registry
        )
        self.app_info.info({
            'version': settings.app.version,
            'environment': settings.app.environment,
            'name': settings.app.app_name
        })

        # HTTP request metrics
        self.http_requests_total = Counter(
            'enqor_http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status_code'],
            registry=self.registry
        )

        self.http_request_duration = Histogram(
            'enqor_http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method', 'endpoint'],
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry
        )

        # Media transform metrics
        self.media_transforms_total = Counter(
            'enqor_media_transforms_total',
            'Total media transforms',
            ['media_type', 'format', 'status'],
            registry=self.registry
        )

        self.media_transform_duration = Histogram(
            'enqor_media_transform_duration_seconds',
            'Media transform duration in seconds',
            ['media_type', 'format'],
            buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
            registry=self.registry
        )

        self.media_encode_passes = Histogram(
            'enqor_media_encode_passes',
            'Encode passes per image transform',
            ['format'],
            buckets=[1, 2],
            registry=self.registry
        )

        self.media_output_size = Histogram(
            'enqor_media_output_size_bytes',
            'Encoded output size in bytes',
            ['media_type', 'format'],
            buckets=SIZE_BUCKETS,
            registry=self.registry
        )

        # Storage metrics
        self.storage_operations_total = Counter(
            'enqor_storage_operations_total',
            'Total storage operations',
            ['operation', 'bucket', 'status'],
            registry=self.registry
        )

        self.storage_operation_duration = Histogram(
            'enqor_storage_operation_duration_seconds',
            'Storage operation duration',
            ['operation', 'bucket'],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
            registry=self.registry
        )

    def track_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Track HTTP request metrics."""
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()

        self.http_request_duration.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def track_media_transform(self, media_type: str, format_id: str, duration: float,
                              output_size: int = 0, passes: int = 0):
        """Track a successful media transform."""
        self.media_transforms_total.labels(
            media_type=media_type, format=format_id, status="success"
        ).inc()

        self.media_transform_duration.labels(
            media_type=media_type, format=format_id
        ).observe(duration)

        if output_size > 0:
            self.media_output_size.labels(
                media_type=media_type, format=format_id
            ).observe(output_size)

        if passes > 0:
            self.media_encode_passes.labels(format=format_id).observe(passes)

    def track_media_failed(self, media_type: str, format_id: str, error_type: str):
        """Track a failed media transform."""
        self.media_transforms_total.labels(
            media_type=media_type, format=format_id, status=error_type
        ).inc()

    def track_storage_operation(self, operation: str, bucket: str, status: str, duration: float):
        """Track storage operation."""
        self.storage_operations_total.labels(
            operation=operation, bucket=bucket, status=status
        ).inc()

        self.storage_operation_duration.labels(
            operation=operation, bucket=bucket
        ).observe(duration)

    def get_metrics(self) -> bytes:
        """Render metrics in Prometheus exposition format."""
        return generate_latest(self.registry)


# Global metrics instance
metrics = MetricsCollector()


def get_metrics_response() -> tuple[bytes, dict[str, str]]:
    """Metrics body and headers for the /metrics endpoint."""
    return metrics.get_metrics(), {"Content-Type": CONTENT_TYPE_LATEST}


def get_test_metrics() -> MetricsCollector:
    """Metrics collector on its own registry, for tests."""
    return MetricsCollector(CollectorRegistry())
