"""Lazily created asyncpg pool for lead writes and readiness probes."""

from __future__ import annotations

from typing import Optional

import asyncpg

from readgate.settings import settings

_pool: Optional[asyncpg.Pool] = None


def _dsn() -> str:
	# localhost can resolve to ::1 first and stall the connect
	return settings.postgres_url.replace("@localhost", "@127.0.0.1")


async def init_pool() -> asyncpg.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=_dsn(),
			min_size=settings.postgres_min_pool_size,
			max_size=max(1, settings.postgres_max_pool_size),
			ssl="require" if settings.postgres_ssl else "disable",
		)
	return _pool


async def get_pool() -> asyncpg.Pool:
	return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
