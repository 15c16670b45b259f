"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Info

BUILD_INFO = Info("undongjang_build", "Service name, version and environment of the running build")

REQUEST_COUNTER = Counter(
	"undongjang_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"undongjang_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SEARCH_QUERIES = Counter(
	"undongjang_search_queries_total",
	"Search queries executed",
	["kind"],
)

SEARCH_LATENCY = Histogram(
	"undongjang_search_latency_seconds",
	"Search latency by kind",
	["kind"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

SEARCH_FALLBACKS = Counter(
	"undongjang_search_fallbacks_total",
	"Searches retried with the reduced filter set",
	["kind"],
)

SEARCH_SHORT_CIRCUITS = Counter(
	"undongjang_search_short_circuits_total",
	"Searches answered without a backend call",
	["kind", "reason"],
)

MESSAGES_SENT = Counter(
	"undongjang_messages_sent_total",
	"Messages appended to conversations",
)

CONVERSATIONS_OPENED = Counter(
	"undongjang_conversations_opened_total",
	"Conversations resolved through create-or-get",
	["subject", "result"],
)

READ_MARKERS = Counter(
	"undongjang_read_markers_total",
	"Conversation read markers written",
)

NOTIFICATIONS_MARKED = Counter(
	"undongjang_notifications_marked_total",
	"Notifications marked as read",
	["result"],
)

EVENTS_CREATED = Counter(
	"undongjang_events_created_total",
	"Events created",
	["kind"],
)

EVENT_RSVPS = Counter(
	"undongjang_event_rsvps_total",
	"RSVP state transitions",
	["action"],
)

UPLOADS = Counter(
	"undongjang_uploads_total",
	"Object storage uploads",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_search_query(kind: str) -> None:
	SEARCH_QUERIES.labels(kind=kind).inc()


def observe_search_latency(kind: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(kind=kind).observe(latency_seconds)


def inc_search_fallback(kind: str) -> None:
	SEARCH_FALLBACKS.labels(kind=kind).inc()


def inc_search_short_circuit(kind: str, reason: str) -> None:
	SEARCH_SHORT_CIRCUITS.labels(kind=kind, reason=reason).inc()


def inc_message_sent() -> None:
	MESSAGES_SENT.inc()


def inc_conversation_opened(subject: str, result: str) -> None:
	CONVERSATIONS_OPENED.labels(subject=subject, result=result).inc()


def inc_read_marker() -> None:
	READ_MARKERS.inc()


def inc_notification_marked(result: str) -> None:
	NOTIFICATIONS_MARKED.labels(result=result).inc()


def inc_event_created(kind: str) -> None:
	EVENTS_CREATED.labels(kind=kind).inc()


def inc_event_rsvp(action: str) -> None:
	EVENT_RSVPS.labels(action=action).inc()


def inc_upload(result: str) -> None:
	UPLOADS.labels(result=result).inc()


def set_build_info(service: str, commit: str, environment: str) -> None:
	BUILD_INFO.info({"service": service, "commit": commit, "environment": environment})
