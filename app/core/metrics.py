"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Modules import the metric they own and increment or
observe it at the point of action.  Prometheus scrapes them from /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Credential lifecycle
# ---------------------------------------------------------------------------

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates minted, by issuance path",
    ["path"],  # "approval" or "direct"
)

CERTIFICATE_REQUESTS = Counter(
    "certificate_requests_total",
    "Certificate request lifecycle events",
    ["outcome"],  # created|approved|rejected|paid
)

VERIFICATIONS = Counter(
    "certificate_verifications_total",
    "Verification attempts by result",
    ["result"],  # active|expired|revoked|invalid_id|invalid_hash|not_found
)

ARTIFACT_FAILURES = Counter(
    "verification_artifact_failures_total",
    "Verification artifact (QR code) generation failures tolerated at issuance",
)
