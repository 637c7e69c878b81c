"""Outermost middleware: every request gets an id on ``request.state`` and in the response headers."""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from readgate.api.request_id import REQUEST_ID_ATTR, REQUEST_ID_HEADER, resolve_request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		rid = resolve_request_id(request)
		setattr(request.state, REQUEST_ID_ATTR, rid)
		response = await call_next(request)
		response.headers.setdefault(REQUEST_ID_HEADER, rid)
		return response
