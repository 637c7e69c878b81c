"""Central registry for Prometheus metrics used across the gate service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"readgate_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"readgate_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

GATE_TOKENS_ISSUED = Counter(
	"readgate_gate_tokens_issued_total",
	"Gate tokens issued to visitors",
)

GATE_REJECTIONS = Counter(
	"readgate_gate_rejections_total",
	"Gate submissions rejected, by internal cause",
	["cause"],
)

GATE_UNLOCKS = Counter(
	"readgate_gate_unlocks_total",
	"Gate unlocks granted",
	["result"],
)

RATE_LIMITED_EVENTS = Counter(
	"readgate_rate_limited_total",
	"Gate submissions refused because a counter reached its ceiling",
	["kind"],
)

LEADS_PERSISTED = Counter(
	"readgate_leads_persisted_total",
	"Lead records written",
)

NONCE_FAILURES = Counter(
	"readgate_nonce_failures_total",
	"Requests refused for a missing or stale anti-forgery nonce",
	["action"],
)

REDIS_UP = Gauge("readgate_redis_up", "Redis reachability (1 = up)")
REDIS_LATENCY = Histogram("readgate_redis_ping_seconds", "Redis ping latency in seconds")
POSTGRES_UP = Gauge("readgate_postgres_up", "Postgres reachability (1 = up)")
POSTGRES_LATENCY = Histogram("readgate_postgres_ping_seconds", "Postgres ping latency in seconds")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_token_issued() -> None:
	GATE_TOKENS_ISSUED.inc()


def inc_gate_rejection(cause: str) -> None:
	GATE_REJECTIONS.labels(cause=cause).inc()


def inc_gate_unlock(result: str) -> None:
	GATE_UNLOCKS.labels(result=result).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_lead_persisted() -> None:
	LEADS_PERSISTED.inc()


def inc_nonce_failure(action: str) -> None:
	NONCE_FAILURES.labels(action=action).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
