"""Liveness and readiness probes.

Readiness needs both stores: Redis holds tokens, counters and dedup marks, and
Postgres receives leads. A failed probe reports the error text and flips the
matching ``*_up`` gauge to zero.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Tuple

from readgate.infra import postgres
from readgate.infra.redis import redis_client
from readgate.obs import metrics

logger = logging.getLogger(__name__)

REDIS_TIMEOUT_SECONDS = 0.2
POSTGRES_TIMEOUT_SECONDS = 0.3


async def _ping_redis() -> None:
	await asyncio.wait_for(redis_client.ping(), timeout=REDIS_TIMEOUT_SECONDS)


async def _ping_postgres() -> None:
	pool = await postgres.get_pool()
	async with pool.acquire() as conn:
		await asyncio.wait_for(conn.execute("SELECT 1"), timeout=POSTGRES_TIMEOUT_SECONDS)


async def _probe(name: str, ping: Callable[[], Awaitable[None]], mark: Callable[..., None]) -> Dict[str, Any]:
	started = perf_counter()
	try:
		await ping()
	except Exception as exc:  # any driver or timeout error marks the dependency down
		mark(False)
		logger.warning("readiness_probe_failed", extra={"dependency": name}, exc_info=True)
		return {"ok": False, "error": str(exc) or exc.__class__.__name__}
	latency = perf_counter() - started
	mark(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks = {
		"redis": await _probe("redis", _ping_redis, metrics.mark_redis),
		"postgres": await _probe("postgres", _ping_postgres, metrics.mark_postgres),
	}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}
