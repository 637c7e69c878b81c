"""Request id resolution shared by the middleware and the error handlers."""

from __future__ import annotations

import re
import uuid
from typing import Optional

from fastapi import Request

from readgate.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"

_INBOUND_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(request: Request) -> str:
	"""Reuse a well-formed inbound id, otherwise mint one."""
	bound = getattr(request.state, REQUEST_ID_ATTR, None)
	if bound:
		return str(bound)
	inbound = request.headers.get(REQUEST_ID_HEADER, "")
	return inbound if _INBOUND_ID.match(inbound) else uuid.uuid4().hex


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
	if request is not None:
		rid = getattr(request.state, REQUEST_ID_ATTR, None)
		if rid:
			return str(rid)
	return obs_logging.current_request_id() or default
