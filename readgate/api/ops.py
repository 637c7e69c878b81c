"""Probe and scrape endpoints for the platform, outside the ``/gate`` surface."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from readgate.obs import health
from readgate.settings import settings

router = APIRouter(tags=["ops"])

ADMIN_TOKEN_HEADER = "X-Admin-Token"


def _presented_admin_token(request: Request) -> str:
	direct = request.headers.get(ADMIN_TOKEN_HEADER)
	if direct:
		return direct
	scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
	return credentials.strip() if scheme.lower() == "bearer" else ""


def require_metrics_access(request: Request) -> None:
	"""Metrics are private unless explicitly published; no configured token means no access."""
	if settings.obs_metrics_public:
		return
	expected: Optional[str] = settings.obs_admin_token
	if not expected:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if not hmac.compare_digest(_presented_admin_token(request).encode("utf-8"), expected.encode("utf-8")):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
	status_code, body = await health.readiness()
	return JSONResponse(content=body, status_code=status_code)


@router.get("/metrics", dependencies=[Depends(require_metrics_access)])
async def metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
