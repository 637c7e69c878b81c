"""Exception handlers: every error body carries the request id."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from readgate.api.request_id import get_request_id


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		return JSONResponse(
			status_code=exc.status_code,
			content={"detail": exc.detail, "request_id": get_request_id(request)},
			headers=getattr(exc, "headers", None),
		)

	@app.exception_handler(RequestValidationError)
	async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
		return JSONResponse(
			status_code=422,
			content={
				"detail": "validation_error",
				"errors": jsonable_encoder(exc.errors()),
				"request_id": get_request_id(request),
			},
		)
