"""Short-window suppression of repeat lead records for the same email."""

from __future__ import annotations

from redis.asyncio import Redis

from readgate.domain.gate import policy
from readgate.infra.rate_limit import digest
from readgate.infra.redis import RedisProxy, redis_client


class DedupGate:
	"""One mark per normalised email for the dedup window.

	``reserve`` claims the mark with ``SET NX`` so exactly one concurrent
	submission wins the right to write the lead; ``release`` gives it back when
	that write fails.
	"""

	def __init__(
		self,
		redis: Redis | RedisProxy | None = None,
		*,
		ttl_seconds: int = policy.DEDUP_TTL_SECONDS,
		namespace: str = "gate:dup",
	) -> None:
		self._redis = redis
		self._ttl = max(1, int(ttl_seconds))
		self._namespace = namespace

	@property
	def redis(self) -> Redis | RedisProxy:
		return self._redis if self._redis is not None else redis_client

	def key_for(self, email: str) -> str:
		return f"{self._namespace}:{digest(policy.normalise_email(email))}"

	async def is_duplicate(self, email: str) -> bool:
		return bool(await self.redis.exists(self.key_for(email)))

	async def mark_duplicate(self, email: str) -> None:
		await self.redis.set(self.key_for(email), "1", ex=self._ttl)

	async def reserve(self, email: str) -> bool:
		"""Return True if this caller now owns the mark, False if it already existed."""
		return bool(await self.redis.set(self.key_for(email), "1", ex=self._ttl, nx=True))

	async def release(self, email: str) -> None:
		await self.redis.delete(self.key_for(email))
