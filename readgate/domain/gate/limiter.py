"""Three-way submission throttling keyed by IP, visitor, and attempt."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redis.asyncio import Redis

from readgate.domain.gate import policy
from readgate.infra.rate_limit import KeyedCounter
from readgate.infra.redis import RedisProxy
from readgate.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LimiterKeys:
	visitor_id: str
	attempt_id: str
	ip: str


class SubmissionLimiter:
	"""Denies when any counter is at its ceiling; failures bump all three."""

	def __init__(self, redis: Redis | RedisProxy | None = None, *, ttl_seconds: int = policy.RATE_WINDOW_SECONDS) -> None:
		self.ip = KeyedCounter("gate_ip", ceiling=policy.IP_CEILING, ttl_seconds=ttl_seconds, redis=redis)
		self.visitor = KeyedCounter("gate_vid", ceiling=policy.VISITOR_CEILING, ttl_seconds=ttl_seconds, redis=redis)
		self.attempt = KeyedCounter("gate_attempt", ceiling=policy.ATTEMPT_CEILING, ttl_seconds=ttl_seconds, redis=redis)

	def _pairs(self, keys: LimiterKeys) -> tuple[tuple[KeyedCounter, str], ...]:
		return (
			(self.ip, keys.ip),
			(self.visitor, keys.visitor_id),
			(self.attempt, keys.attempt_id),
		)

	async def is_rate_limited(self, keys: LimiterKeys) -> bool:
		for counter, value in self._pairs(keys):
			if await counter.exceeded(value):
				obs_metrics.inc_rate_limited(counter.kind)
				return True
		return False

	async def record_failure(self, keys: LimiterKeys) -> None:
		for counter, value in self._pairs(keys):
			count = await counter.increment(value)
			if count == counter.ceiling:
				logger.warning("gate_counter_ceiling_reached", extra={"kind": counter.kind, "count": count})
