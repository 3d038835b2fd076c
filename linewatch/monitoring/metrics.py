"""
Prometheus metrics for the HTTP surface and the refresh cycle.
"""
from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "linewatch_api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)

REQUEST_DURATION = Histogram(
    "linewatch_api_request_duration_seconds",
    "API request duration in seconds",
    ["method", "endpoint"],
)

REFRESH_OUTCOMES = Counter(
    "linewatch_refresh_total",
    "Projection refresh requests by outcome",
    ["outcome"],
)

FETCH_DURATION = Histogram(
    "linewatch_upstream_fetch_duration_seconds",
    "Partner projections fetch duration in seconds",
)

LINE_MOVEMENTS = Counter(
    "linewatch_line_movements_total",
    "Projection line movements detected",
    ["direction"],
)

SNAPSHOT_SIZE = Gauge(
    "linewatch_snapshot_projections",
    "Projections held in the comparison snapshot",
)
