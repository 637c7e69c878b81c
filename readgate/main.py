"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from readgate.api import gate, ops
from readgate.api.errors import install_error_handlers
from readgate.api.middleware_request_id import RequestIdMiddleware
from readgate.domain.gate.service import SubmissionPipeline
from readgate.infra import postgres
from readgate.obs import init as obs_init
from readgate.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.is_prod() and not settings.https_available:
		logger.warning("gate_https_disabled: submissions are accepted over plaintext")
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


def create_app() -> FastAPI:
	app = FastAPI(title="readgate", lifespan=lifespan)
	app.state.gate_pipeline = SubmissionPipeline()
	obs_init(app)
	# Added last so it wraps the observability middleware
	app.add_middleware(RequestIdMiddleware)
	install_error_handlers(app)
	app.include_router(gate.router)
	app.include_router(ops.router)
	return app


app = create_app()


def run() -> None:
	import uvicorn

	uvicorn.run("readgate.main:app", host="0.0.0.0", port=8000, proxy_headers=True)
