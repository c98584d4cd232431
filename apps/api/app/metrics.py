from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

analytics_requests_total = Counter(
    "analytics_requests_total",
    "Total analytics requests by action and outcome",
    ["action", "status"],
)

analytics_build_duration_seconds = Histogram(
    "analytics_build_duration_seconds",
    "Analytics payload build duration in seconds",
    ["action"],
)

analytics_fetch_failures_total = Counter(
    "analytics_fetch_failures_total",
    "Data source fetches absorbed as empty results",
    ["source"],
)

analytics_access_denied_total = Counter(
    "analytics_access_denied_total",
    "Denied analytics reads by reason",
    ["resource", "reason"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        route_path = getattr(route, "path_format", None) or getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return route_path
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_analytics_request(action: str, status: str, duration: float | None = None) -> None:
    analytics_requests_total.labels(action=action, status=status).inc()
    if duration is not None:
        analytics_build_duration_seconds.labels(action=action).observe(duration)


def observe_analytics_fetch_failure(source: str) -> None:
    analytics_fetch_failures_total.labels(source=source).inc()


def observe_access_denied(resource: str, reason: str) -> None:
    analytics_access_denied_total.labels(resource=resource, reason=reason).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
