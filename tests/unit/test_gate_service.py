import asyncio
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from readgate.domain.gate import policy
from readgate.domain.gate.dedup import DedupGate
from readgate.domain.gate.limiter import LimiterKeys
from readgate.domain.gate.models import SubmissionPayload
from readgate.domain.gate.service import SubmissionPipeline


class FailingLeads:
    def __init__(self) -> None:
        self.calls = 0

    async def insert(self, record) -> None:
        self.calls += 1
        raise OSError("connection refused")


def _keys() -> LimiterKeys:
    return LimiterKeys(visitor_id=str(uuid4()), attempt_id=str(uuid4()), ip="192.0.2.44")


def _payload(token: str, **overrides) -> SubmissionPayload:
    fields = {
        "email": "a@b.com",
        "consent": True,
        "page_url": "https://news.example/story",
        "page_title": "Story",
        "honeypot": "",
        "token": token,
        "elapsed_ms": 3000,
        "interaction": True,
    }
    fields.update(overrides)
    return SubmissionPayload(**fields)


async def _counts(pipeline: SubmissionPipeline, keys: LimiterKeys) -> tuple[int, int, int]:
    limiter = pipeline.limiter
    return (
        await limiter.ip.count(keys.ip),
        await limiter.visitor.count(keys.visitor_id),
        await limiter.attempt.count(keys.attempt_id),
    )


@pytest.mark.asyncio
async def test_valid_submission_persists_one_lead(pipeline, leads):
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    result = await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert result.success
    assert result.message == policy.SUCCESS_MESSAGE
    assert not result.duplicate
    assert len(leads.records) == 1
    assert leads.records[0].consent is True
    assert leads.records[0].page_title == "Story"
    assert await _counts(pipeline, keys) == (0, 0, 0)


@pytest.mark.asyncio
async def test_plaintext_rejected_when_https_available(leads):
    pipeline = SubmissionPipeline(leads=leads, https_available=lambda: True)
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.TransportRejected):
        await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert await _counts(pipeline, keys) == (0, 0, 0)
    result = await pipeline.submit(_payload(token), keys=keys, secure=True)
    assert result.success


@pytest.mark.asyncio
async def test_rate_limited_submission_does_not_bump_counters(pipeline, leads):
    keys = _keys()
    for _ in range(policy.VISITOR_CEILING):
        await pipeline.limiter.record_failure(keys)
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.GateRateLimited) as excinfo:
        await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert excinfo.value.status_code == 429
    assert await _counts(pipeline, keys) == (8, 8, 8)
    assert leads.records == []


@pytest.mark.asyncio
async def test_honeypot_bumps_all_counters(pipeline, leads):
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.AbuseSignal) as excinfo:
        await pipeline.submit(_payload(token, honeypot="Acme"), keys=keys, secure=False)
    assert excinfo.value.cause == "honeypot_filled"
    assert await _counts(pipeline, keys) == (1, 1, 1)
    assert leads.records == []


@pytest.mark.asyncio
async def test_dwell_boundary_through_pipeline(pipeline, leads):
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.AbuseSignal):
        await pipeline.submit(_payload(token, elapsed_ms=2499), keys=keys, secure=False)
    result = await pipeline.submit(_payload(token, elapsed_ms=2500), keys=keys, secure=False)
    assert result.success
    assert len(leads.records) == 1


@pytest.mark.asyncio
async def test_validation_failures_count_and_carry_messages(pipeline):
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.GateValidationError) as bad_email:
        await pipeline.submit(_payload(token, email="not-an-email"), keys=keys, secure=False)
    assert bad_email.value.message == policy.INVALID_EMAIL_MESSAGE
    with pytest.raises(policy.GateValidationError) as no_consent:
        await pipeline.submit(_payload(token, consent=False), keys=keys, secure=False)
    assert no_consent.value.message == policy.CONSENT_MESSAGE
    assert await _counts(pipeline, keys) == (2, 2, 2)


@pytest.mark.asyncio
async def test_missing_and_wrong_token(pipeline):
    keys = _keys()
    with pytest.raises(policy.AbuseSignal) as missing:
        await pipeline.submit(_payload("anything"), keys=keys, secure=False)
    assert missing.value.cause == "token_missing"
    await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.AbuseSignal) as wrong:
        await pipeline.submit(_payload("wrong-token"), keys=keys, secure=False)
    assert wrong.value.cause == "token_mismatch"
    assert await _counts(pipeline, keys) == (2, 2, 2)


@pytest.mark.asyncio
async def test_duplicate_email_unlocks_without_second_lead(pipeline, leads):
    first = _keys()
    token = await pipeline.issue(first.visitor_id)
    await pipeline.submit(_payload(token), keys=first, secure=False)

    second = _keys()
    token = await pipeline.issue(second.visitor_id)
    result = await pipeline.submit(_payload(token, email="A@B.com"), keys=second, secure=False)
    assert result.success
    assert result.duplicate
    assert result.message == policy.SUCCESS_MESSAGE
    assert len(leads.records) == 1


@pytest.mark.asyncio
async def test_new_lead_after_dedup_window(pipeline, leads, fake_redis):
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert await fake_redis.ttl(pipeline.dedup.key_for("a@b.com")) > 3500
    assert (await pipeline.submit(_payload(token), keys=keys, secure=False)).duplicate
    await fake_redis.pexpire(pipeline.dedup.key_for("a@b.com"), 1)
    await asyncio.sleep(0.01)
    result = await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert result.success
    assert not result.duplicate
    assert len(leads.records) == 2


@pytest.mark.asyncio
async def test_storage_failure_is_500_without_counter_bump():
    failing = FailingLeads()
    pipeline = SubmissionPipeline(leads=failing)
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    with pytest.raises(policy.GateStorageError) as excinfo:
        await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == policy.GENERIC_MESSAGE
    assert failing.calls == 1
    assert await _counts(pipeline, keys) == (0, 0, 0)
    # Not marked as seen, so a retry reaches storage again
    assert not await pipeline.dedup.is_duplicate("a@b.com")


@pytest.mark.asyncio
async def test_rate_limit_check_precedes_token_check(pipeline):
    keys = _keys()
    for _ in range(policy.ATTEMPT_CEILING):
        await pipeline.limiter.record_failure(keys)
    with pytest.raises(policy.GateRateLimited):
        await pipeline.submit(_payload("no-token-issued"), keys=keys, secure=False)


class UnreachableRedis:
    def __init__(self) -> None:
        self.calls = 0

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            self.calls += 1
            raise RedisConnectionError("redis unreachable")

        return fail


@pytest.mark.asyncio
async def test_concurrent_first_submissions_write_one_lead(pipeline, leads):
    async def one():
        keys = _keys()
        token = await pipeline.issue(keys.visitor_id)
        return await pipeline.submit(_payload(token), keys=keys, secure=False)

    results = await asyncio.gather(one(), one(), one())
    assert all(result.success for result in results)
    assert sorted(result.duplicate for result in results) == [False, True, True]
    assert len(leads.records) == 1


@pytest.mark.asyncio
async def test_redis_outage_becomes_storage_error(leads):
    down = UnreachableRedis()
    pipeline = SubmissionPipeline(leads=leads)
    keys = _keys()
    token = await pipeline.issue(keys.visitor_id)
    pipeline.dedup = DedupGate(down)
    with pytest.raises(policy.GateStorageError) as excinfo:
        await pipeline.submit(_payload(token), keys=keys, secure=False)
    assert excinfo.value.status_code == 500
    assert excinfo.value.cause == "store_unavailable"
    assert excinfo.value.message == policy.GENERIC_MESSAGE
    assert down.calls == 1
    assert leads.records == []
    assert await _counts(pipeline, keys) == (0, 0, 0)


@pytest.mark.asyncio
async def test_token_issue_during_outage_is_storage_error(fake_redis):
    from readgate.infra.redis import set_redis_client

    pipeline = SubmissionPipeline()
    set_redis_client(UnreachableRedis())
    with pytest.raises(policy.GateStorageError):
        await pipeline.issue("visitor-x")
