"""Redis-backed keyed counters used for abuse throttling."""

from __future__ import annotations

import hashlib
from typing import Callable, Optional

from redis.asyncio import Redis

from readgate.infra.redis import RedisProxy, redis_client


def digest(value: str) -> str:
	return hashlib.sha256(value.encode("utf-8")).hexdigest()


class KeyedCounter:
	"""Counter bucket keyed by a derived identity with a ceiling and a TTL.

	Every increment refreshes the TTL, so the window is fixed-length but extends
	while activity continues. Counts only fall back to zero through expiry.
	"""

	def __init__(
		self,
		kind: str,
		*,
		ceiling: int,
		ttl_seconds: int,
		key_func: Callable[[str], str] = digest,
		redis: Redis | RedisProxy | None = None,
		namespace: str = "rl",
	) -> None:
		self.kind = kind
		self.ceiling = int(ceiling)
		self.ttl_seconds = max(1, int(ttl_seconds))
		self._key_func = key_func
		self._redis = redis
		self._namespace = namespace

	@property
	def redis(self) -> Redis | RedisProxy:
		return self._redis if self._redis is not None else redis_client

	def key_for(self, value: str) -> str:
		return f"{self._namespace}:{self.kind}:{self._key_func(value or '')}"

	async def count(self, value: str) -> int:
		raw: Optional[str] = await self.redis.get(self.key_for(value))
		try:
			return max(0, int(raw or 0))
		except (TypeError, ValueError):
			return 0

	async def increment(self, value: str) -> int:
		"""Atomically bump the bucket and refresh its TTL; return the new count."""
		key = self.key_for(value)
		async with self.redis.pipeline(transaction=True) as pipe:
			pipe.incr(key)
			pipe.expire(key, self.ttl_seconds)
			count, _ = await pipe.execute()
		return int(count)

	async def exceeded(self, value: str) -> bool:
		if self.ceiling <= 0:
			return True
		return await self.count(value) >= self.ceiling
