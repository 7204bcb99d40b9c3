"""
Prometheus metrics middleware.

Collects HTTP request metrics (counter + histogram) and exposes
application-level counters for compliance checks, fallback substitution,
reasoning backend latency and record store health.
"""

import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# ── HTTP metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ── Compliance metrics ───────────────────────────────────────────────────────

compliance_checks_total = Counter(
    "compliance_checks_total",
    "Compliance checks by industry, producing backend and outcome",
    ["industry", "source", "outcome"],
)

fallback_substitutions_total = Counter(
    "fallback_substitutions_total",
    "Live backend failures masked by a fallback result",
    ["reason"],
)

reasoning_backend_duration_seconds = Histogram(
    "reasoning_backend_duration_seconds",
    "Reasoning backend call duration in seconds",
    ["mode", "outcome"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0),
)

record_store_failures_total = Counter(
    "record_store_failures_total",
    "Compliance records that could not be persisted",
)


def _normalize_path(path: str) -> str:
    """Collapse path parameters to reduce cardinality.

    e.g. /api/compliance-checks/42 → /api/compliance-checks/{id}
    """
    parts = path.strip("/").split("/")
    normalized = []
    for i, part in enumerate(parts):
        if i > 1 and (part.isdigit() or len(part) > 20):
            normalized.append("{id}")
        else:
            normalized.append(part)
    return "/" + "/".join(normalized)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint itself to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        http_requests_total.labels(
            method=method,
            path=path,
            status_code=response.status_code,
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            path=path,
        ).observe(duration)

        return response
