"""Shared Redis handle for tokens, throttle counters and dedup marks.

Modules import ``redis_client`` once; the proxy forwards to whichever client is
installed, so tests can swap in fakeredis after import time.
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as redis

from readgate.settings import settings


class RedisProxy:
	def __init__(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	def __getattr__(self, name: str) -> Any:
		return getattr(self._client, name)


# from_url does not connect until the first command
redis_client = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)
