import pytest

from readgate.infra.rate_limit import KeyedCounter, digest


@pytest.mark.asyncio
async def test_counter_starts_at_zero():
    counter = KeyedCounter("probe", ceiling=3, ttl_seconds=60)
    assert await counter.count("fresh") == 0
    assert not await counter.exceeded("fresh")


@pytest.mark.asyncio
async def test_counter_blocks_at_ceiling():
    counter = KeyedCounter("probe", ceiling=2, ttl_seconds=60)
    assert await counter.increment("k1") == 1
    assert not await counter.exceeded("k1")
    assert await counter.increment("k1") == 2
    assert await counter.exceeded("k1")


@pytest.mark.asyncio
async def test_increment_refreshes_ttl(fake_redis):
    counter = KeyedCounter("probe", ceiling=5, ttl_seconds=3600)
    await counter.increment("k2")
    key = counter.key_for("k2")
    await fake_redis.expire(key, 10)
    await counter.increment("k2")
    ttl = await fake_redis.ttl(key)
    assert 3590 <= ttl <= 3600
    assert await counter.count("k2") == 2


@pytest.mark.asyncio
async def test_keys_are_hashed_and_isolated(fake_redis):
    counter = KeyedCounter("probe", ceiling=1, ttl_seconds=60)
    await counter.increment("10.0.0.1")
    assert counter.key_for("10.0.0.1") == f"rl:probe:{digest('10.0.0.1')}"
    assert "10.0.0.1" not in counter.key_for("10.0.0.1")
    assert await counter.exceeded("10.0.0.1")
    assert not await counter.exceeded("10.0.0.2")


@pytest.mark.asyncio
async def test_zero_ceiling_always_denies():
    counter = KeyedCounter("probe", ceiling=0, ttl_seconds=60)
    assert await counter.exceeded("anyone")
