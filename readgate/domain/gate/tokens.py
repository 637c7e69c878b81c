"""Ephemeral gate tokens binding a served modal to a later submission."""

from __future__ import annotations

import hmac
import secrets
import string
from typing import Optional

from redis.asyncio import Redis

from readgate.domain.gate import policy
from readgate.infra.redis import RedisProxy, redis_client

_ALPHABET = string.ascii_letters + string.digits


def generate_secret(length: int = policy.TOKEN_LENGTH) -> str:
	return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class GateTokenStore:
	"""One live token per visitor; issuing again overwrites the previous value."""

	def __init__(
		self,
		redis: Redis | RedisProxy | None = None,
		*,
		ttl_seconds: int = policy.TOKEN_TTL_SECONDS,
		namespace: str = "gate:token",
	) -> None:
		self._redis = redis
		self._ttl = max(1, int(ttl_seconds))
		self._namespace = namespace

	@property
	def redis(self) -> Redis | RedisProxy:
		return self._redis if self._redis is not None else redis_client

	def _key(self, visitor_id: str) -> str:
		return f"{self._namespace}:{visitor_id}"

	async def issue_token(self, visitor_id: str) -> str:
		token = generate_secret()
		await self.redis.set(self._key(visitor_id), token, ex=self._ttl)
		return token

	async def check_token(self, visitor_id: str, presented: Optional[str]) -> None:
		"""Raise ``AbuseSignal`` unless ``presented`` matches the stored token.

		The token is left in place so retries within the TTL keep working.
		"""
		stored = await self.redis.get(self._key(visitor_id))
		if not stored:
			raise policy.AbuseSignal("token_missing")
		if not hmac.compare_digest(str(stored).encode("utf-8"), (presented or "").encode("utf-8")):
			raise policy.AbuseSignal("token_mismatch")
