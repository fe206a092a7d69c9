"""Application metrics using the Prometheus client library.

This module defines all metrics in one place, a single inventory of
everything the service measures.  Other modules import specific metrics
and increment/observe them at the point of action.

Counters only go up; rates come from PromQL, e.g.
  rate(course_completions_total[1h])
Labels are kept low-cardinality: never a user_id or course_id.
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
# Engine metrics
# ---------------------------------------------------------------------------

LESSONS_COMPLETED = Counter(
    "lessons_completed_total",
    "Lesson completions recorded, by outcome",
    ["outcome"],  # "recorded" or "duplicate" (idempotent replay)
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Enrollments that transitioned to completed",
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificate records created",
    ["rendered"],  # "true" when the renderer returned a file URL
)

CERTIFICATE_RENDER_FAILURES = Counter(
    "certificate_render_failures_total",
    "Renderer calls that failed (record kept, URL backfilled later)",
)

CERTIFICATE_CONFLICTS = Counter(
    "certificate_conflicts_total",
    "Certificate inserts rejected by a unique key",
    ["key"],  # "user_course" or "certificate_number"
)

ENROLLMENTS_REOPENED = Counter(
    "enrollments_reopened_total",
    "Completed enrollments reverted to active by new content",
)

NOTIFICATIONS_FAILED = Counter(
    "notifications_failed_total",
    "Notifications that could not be stored",
    ["type"],
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
