# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "coparent_requests_total",
    "Total HTTP requests to the scheduling service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "coparent_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "coparent_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
ROTATIONS_CREATED = Counter(
    "coparent_rotations_created_total",
    "Total rotation patterns created",
    ["pattern_type"],
)
ROTATIONS_DELETED = Counter(
    "coparent_rotations_deleted_total",
    "Total rotation patterns deactivated",
)
VISITATION_EVENTS = Counter(
    "coparent_visitation_events_total",
    "Visitation event writes",
    ["action"],
)
SCHEDULE_CONFLICTS = Counter(
    "coparent_schedule_conflicts_total",
    "Writes rejected by an overlap guard",
    ["kind"],
)
ROTATION_EVENTS_GENERATED = Histogram(
    "coparent_rotation_events_generated",
    "Number of virtual events produced per projection",
    buckets=(0, 7, 14, 31, 62, 93, 186, 366, 1000),
)
ROTATION_PROJECTION_TRUNCATED = Counter(
    "coparent_rotation_projection_truncated_total",
    "Projections cut short by the event cap",
)
SWAP_REQUESTS = Counter(
    "coparent_swap_requests_total",
    "Swap request transitions",
    ["status"],
)
NOTIFICATIONS_SENT = Counter(
    "coparent_notifications_sent_total",
    "Total notifications dispatched",
    ["channel"],
)
