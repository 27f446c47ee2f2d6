"""
Prometheus metrics for the Partner Signing Proxy.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest

# Status label recorded when the upstream never answered.
NO_RESPONSE_STATUS = 0


class MetricsCollector:
    """Owns one registry and every metric the service exports."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Per-collector registry; the global default rejects re-registration.
        self.registry = registry if registry is not None else CollectorRegistry()

        self.service_info = Info("service_info", "Service information", registry=self.registry)
        self.service_info.info({"service": service_name, "version": "1.0.0"})

        self.http_requests = Counter(
            "http_requests_total",
            "Inbound HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.http_duration = Histogram(
            "http_request_duration_seconds",
            "Inbound HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry,
        )
        self.errors = Counter(
            "errors_total",
            "Requests ended by an error",
            ["error_type", "service"],
            registry=self.registry,
        )
        self.upstream_requests = Counter(
            "upstream_requests_total",
            "Requests forwarded to the upstream gateway",
            ["method", "status_code"],
            registry=self.registry,
        )
        self.upstream_duration = Histogram(
            "upstream_request_duration_seconds",
            "Upstream gateway round-trip duration in seconds",
            ["method"],
            registry=self.registry,
        )

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.http_requests.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        self.http_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_upstream_request(self, method: str, status_code: int, duration: float):
        """Record one upstream round trip; ``NO_RESPONSE_STATUS`` when it failed."""
        self.upstream_requests.labels(method=method, status_code=str(status_code)).inc()
        self.upstream_duration.labels(method=method).observe(duration)

    def record_error(self, error_type: str, service: Optional[str] = None):
        self.errors.labels(error_type=error_type, service=service or self.service_name).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Create the metrics collector for a service."""
    return MetricsCollector(service_name, registry)
