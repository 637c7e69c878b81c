import pytest


@pytest.mark.asyncio
async def test_liveness(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers.get("X-Request-Id")


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, force_test_settings):
    force_test_settings.obs_metrics_public = False
    force_test_settings.obs_admin_token = None
    response = await api_client.get("/metrics")
    assert response.status_code == 403

    force_test_settings.obs_admin_token = "ops-secret"
    response = await api_client.get("/metrics", headers={"X-Admin-Token": "nope"})
    assert response.status_code == 403
    response = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-secret"})
    assert response.status_code == 200
    assert "readgate_http_requests_total" in response.text


@pytest.mark.asyncio
async def test_metrics_public_flag(api_client, force_test_settings):
    force_test_settings.obs_metrics_public = True
    response = await api_client.get("/metrics")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_metrics_forbidden_detail_carries_request_id(api_client, force_test_settings):
    force_test_settings.obs_metrics_public = False
    force_test_settings.obs_admin_token = None
    response = await api_client.get("/metrics", headers={"X-Request-Id": "req-123"})
    assert response.status_code == 403
    assert response.json()["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_accept_bearer_token(api_client, force_test_settings):
    force_test_settings.obs_metrics_public = False
    force_test_settings.obs_admin_token = "ops-secret"
    response = await api_client.get("/metrics", headers={"Authorization": "Bearer ops-secret"})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_readiness_reports_degraded_without_postgres(api_client):
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["redis"]["ok"] is True
    assert body["checks"]["postgres"]["ok"] is False
