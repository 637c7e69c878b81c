"""Per-request metrics and the ``http_request`` access log line."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from readgate.obs import logging as obs_logging
from readgate.obs import metrics
from readgate.settings import settings


def _route_label(request: Request) -> str:
	# Templated path keeps label cardinality bounded
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	"""Runs inside ``RequestIdMiddleware`` and reads the id it bound."""

	def __init__(self, app) -> None:
		super().__init__(app)
		self._log = obs_logging.get_logger("readgate.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not settings.obs_enabled:
			return await call_next(request)

		token = obs_logging.bind_context(
			request_id=getattr(request.state, "request_id", None),
			route=request.url.path,
			client_ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			return response
		except Exception:
			self._log.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			metrics.observe_request(_route_label(request), request.method, status_code, elapsed)
			self._log.info(
				"http_request",
				extra={"method": request.method, "status": status_code, "latency_ms": round(elapsed * 1000, 3)},
			)
			obs_logging.reset_context(token)


def install(app) -> None:
	app.add_middleware(ObservabilityMiddleware)
