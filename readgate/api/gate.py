"""Public gate endpoints: client bootstrap, token issue, and submission."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from readgate.domain.gate import eligibility, policy
from readgate.domain.gate.limiter import LimiterKeys
from readgate.domain.gate.models import GateSettings, SubmissionPayload
from readgate.domain.gate.schemas import (
	ClientSettings,
	GateConfigResponse,
	GateNonces,
	SubmitResponse,
	TokenResponse,
)
from readgate.domain.gate.service import SubmissionPipeline
from readgate.infra import cookies, nonce
from readgate.obs import metrics as obs_metrics
from readgate.settings import settings

router = APIRouter(prefix="/gate", tags=["gate"])

PREVIEW_HEADER = "X-Gate-Preview"


def get_pipeline(request: Request) -> SubmissionPipeline:
	pipeline = getattr(request.app.state, "gate_pipeline", None)
	if pipeline is None:
		pipeline = SubmissionPipeline()
		request.app.state.gate_pipeline = pipeline
	return pipeline


def _client_ip(request: Request) -> str:
	return request.client.host if request.client else ""


def _is_preview(request: Request, preview: Optional[str]) -> bool:
	expected = settings.preview_token
	presented = preview or request.headers.get(PREVIEW_HEADER)
	if not expected or not presented:
		return False
	return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def _forbidden(action: str) -> JSONResponse:
	obs_metrics.inc_nonce_failure(action)
	return JSONResponse(
		status_code=status.HTTP_403_FORBIDDEN,
		content={"success": False, "message": policy.GENERIC_MESSAGE},
	)


@router.get("/config", response_model=GateConfigResponse)
async def gate_config(
	request: Request,
	url: str = Query(default="", max_length=policy.PAGE_URL_MAX_LEN),
	preview: Optional[str] = Query(default=None, max_length=128),
) -> GateConfigResponse:
	ctx = eligibility.EligibilityContext(
		url=url,
		unlocked=cookies.has_unlocked_cookie(request),
		preview=_is_preview(request, preview),
	)
	if not eligibility.is_eligible(ctx, settings):
		return GateConfigResponse(eligible=False)
	return GateConfigResponse(
		eligible=True,
		preview=ctx.preview,
		settings=ClientSettings.from_gate_settings(GateSettings.from_settings(settings)),
		nonces=GateNonces(
			token=nonce.create_nonce(nonce.TOKEN_ACTION),
			submit=nonce.create_nonce(nonce.SUBMIT_ACTION),
		),
	)


@router.post("/token", response_model=TokenResponse)
async def gate_token(
	request: Request,
	pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> JSONResponse:
	form = await request.form()
	if not nonce.verify_nonce(nonce.TOKEN_ACTION, str(form.get("nonce") or "")):
		return _forbidden(nonce.TOKEN_ACTION)
	identity = cookies.resolve_identity(request)
	try:
		token = await pipeline.issue(identity.visitor_id)
	except policy.GateRejection as exc:
		response = JSONResponse(
			status_code=exc.status_code,
			content=SubmitResponse(success=False, message=exc.message).model_dump(),
		)
	else:
		response = JSONResponse(content=TokenResponse(token=token).model_dump())
	cookies.apply_identity(request, response, identity)
	return response


@router.post("/submit", response_model=SubmitResponse)
async def gate_submit(
	request: Request,
	pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> JSONResponse:
	form = await request.form()
	if not nonce.verify_nonce(nonce.SUBMIT_ACTION, str(form.get("nonce") or "")):
		return _forbidden(nonce.SUBMIT_ACTION)
	identity = cookies.resolve_identity(request)
	keys = LimiterKeys(
		visitor_id=identity.visitor_id,
		attempt_id=identity.attempt_id,
		ip=_client_ip(request),
	)
	payload = SubmissionPayload.from_form(form)
	try:
		result = await pipeline.submit(payload, keys=keys, secure=cookies.request_is_secure(request))
	except policy.GateRejection as exc:
		response = JSONResponse(
			status_code=exc.status_code,
			content=SubmitResponse(success=False, message=exc.message).model_dump(),
		)
	else:
		response = JSONResponse(content=SubmitResponse(success=result.success, message=result.message).model_dump())
		cookies.set_unlocked_cookie(request, response, duration_days=pipeline.unlock_days)
	cookies.apply_identity(request, response, identity)
	return response
