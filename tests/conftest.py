import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_SAMPLING_RATE_INFO", "1.0")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

from readgate.domain.gate.leads import InMemoryLeadRepository
from readgate.domain.gate.service import SubmissionPipeline
from readgate.infra import nonce, postgres
from readgate.main import app
from readgate.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from readgate.infra.redis import redis_client, set_redis_client

    original = redis_client.client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
    async def _noop():
        return None

    monkeypatch.setattr(postgres, "init_pool", _noop)
    monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
    """Pin the settings the gate tests depend on and restore them afterwards."""
    fields = (
        "environment",
        "https_available",
        "trust_forwarded_proto",
        "gate_enabled",
        "exclude_url_patterns",
        "preview_token",
        "cookie_duration_days",
        "obs_metrics_public",
        "obs_admin_token",
    )
    original = {name: getattr(settings, name) for name in fields}
    settings.environment = "test"
    settings.https_available = False
    settings.trust_forwarded_proto = False
    settings.gate_enabled = True
    settings.exclude_url_patterns = ()
    settings.preview_token = None
    settings.cookie_duration_days = 30
    try:
        yield settings
    finally:
        for name, value in original.items():
            setattr(settings, name, value)


@pytest.fixture
def leads():
    return InMemoryLeadRepository()


@pytest.fixture
def pipeline(leads):
    return SubmissionPipeline(leads=leads)


@pytest.fixture
def installed_pipeline(pipeline):
    original = getattr(app.state, "gate_pipeline", None)
    app.state.gate_pipeline = pipeline
    try:
        yield pipeline
    finally:
        app.state.gate_pipeline = original


@pytest_asyncio.fixture
async def api_client(installed_pipeline):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def nonces():
    return {
        "token": nonce.create_nonce(nonce.TOKEN_ACTION),
        "submit": nonce.create_nonce(nonce.SUBMIT_ACTION),
    }
