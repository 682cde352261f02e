"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"alumni_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"alumni_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

REDIS_UP = Gauge("alumni_redis_up", "Redis reachability from the API (1 = up)")
REDIS_LATENCY = Histogram("alumni_redis_ping_seconds", "Redis ping latency in seconds")
POSTGRES_UP = Gauge("alumni_postgres_up", "Postgres reachability from the API (1 = up)")
POSTGRES_LATENCY = Histogram("alumni_postgres_ping_seconds", "Postgres ping latency in seconds")

FORUM_TOPICS_CREATED = Counter(
	"alumni_forum_topics_created_total",
	"Forum topics created",
)

FORUM_TOPICS_DELETED = Counter(
	"alumni_forum_topics_deleted_total",
	"Forum topics soft-deleted",
)

FORUM_POSTS = Counter(
	"alumni_forum_posts_total",
	"Forum post lifecycle events",
	["action"],
)

FORUM_LIKES = Counter(
	"alumni_forum_likes_total",
	"Post like toggles",
	["action"],
)

FORUM_REPORTS = Counter(
	"alumni_forum_reports_total",
	"Post reports filed and resolved",
	["action"],
)

FORUM_MODERATION = Counter(
	"alumni_forum_moderation_total",
	"Pin/lock toggles and moderator changes",
	["action"],
)

EVENT_REGISTRATIONS = Counter(
	"alumni_event_registrations_total",
	"Event registration attempts by outcome",
	["outcome"],
)

EVENTS_WRITTEN = Counter(
	"alumni_events_written_total",
	"Event create/update/delete operations",
	["action"],
)

SCHOOL_ADMIN_CHANGES = Counter(
	"alumni_school_admin_changes_total",
	"School administrator grants and revocations",
	["action"],
)

UPLOADS = Counter(
	"alumni_uploads_total",
	"Image uploads by kind and outcome",
	["kind", "outcome"],
)

RATE_LIMITED = Counter(
	"alumni_rate_limited_total",
	"Requests rejected by the per-actor rate limiter",
	["kind"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def inc_topic_created() -> None:
	FORUM_TOPICS_CREATED.inc()


def inc_topic_deleted() -> None:
	FORUM_TOPICS_DELETED.inc()


def inc_post(action: str) -> None:
	FORUM_POSTS.labels(action=action).inc()


def inc_like(action: str) -> None:
	FORUM_LIKES.labels(action=action).inc()


def inc_report(action: str) -> None:
	FORUM_REPORTS.labels(action=action).inc()


def inc_moderation(action: str) -> None:
	FORUM_MODERATION.labels(action=action).inc()


def inc_event_registration(outcome: str) -> None:
	EVENT_REGISTRATIONS.labels(outcome=outcome).inc()


def inc_event_written(action: str) -> None:
	EVENTS_WRITTEN.labels(action=action).inc()


def inc_school_admin_change(action: str) -> None:
	SCHOOL_ADMIN_CHANGES.labels(action=action).inc()


def inc_upload(kind: str, outcome: str) -> None:
	UPLOADS.labels(kind=kind, outcome=outcome).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()
