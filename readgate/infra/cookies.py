"""Cookie helpers for gate identity and unlock flows.

All gate cookies share one policy: HttpOnly, SameSite=Lax, path-scoped to the
configured cookie path, Secure whenever the request arrived over HTTPS.
- rg_vid: visitor identity, 1 day
- rg_attempt: attempt identity, 1 hour
- rg_unlocked: unlock credential, configurable number of days
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from readgate.settings import settings


VISITOR_COOKIE_NAME = "rg_vid"
ATTEMPT_COOKIE_NAME = "rg_attempt"
UNLOCKED_COOKIE_NAME = "rg_unlocked"

VISITOR_COOKIE_TTL_SECONDS = 24 * 3600
ATTEMPT_COOKIE_TTL_SECONDS = 3600

_MAX_ID_LEN = 64


def request_is_secure(request: Request) -> bool:
	if request.url.scheme == "https":
		return True
	if settings.trust_forwarded_proto:
		proto = request.headers.get("X-Forwarded-Proto", "")
		return proto.split(",")[0].strip().lower() == "https"
	return False


def _clean(value: Optional[str]) -> str:
	text = (value or "").strip()
	if not text or len(text) > _MAX_ID_LEN:
		return ""
	if not all(ch.isalnum() or ch == "-" for ch in text):
		return ""
	return text


def _set(response: Response, key: str, value: str, *, max_age: int, secure: bool) -> None:
	response.set_cookie(
		key=key,
		value=value,
		max_age=max_age,
		expires=max_age,
		path=settings.cookie_path,
		secure=secure,
		httponly=True,
		samesite="lax",
		domain=settings.cookie_domain or None,
	)


@dataclass(slots=True)
class GateIdentity:
	"""Opaque visitor/attempt capability tokens read back from (or minted for) a request."""

	visitor_id: str
	attempt_id: str
	new_visitor: bool = False
	new_attempt: bool = False


def resolve_identity(request: Request) -> GateIdentity:
	"""Read identity cookies, minting fresh ids for any that are absent or malformed."""
	visitor_id = _clean(request.cookies.get(VISITOR_COOKIE_NAME))
	attempt_id = _clean(request.cookies.get(ATTEMPT_COOKIE_NAME))
	return GateIdentity(
		visitor_id=visitor_id or str(uuid.uuid4()),
		attempt_id=attempt_id or str(uuid.uuid4()),
		new_visitor=not visitor_id,
		new_attempt=not attempt_id,
	)


def apply_identity(request: Request, response: Response, identity: GateIdentity) -> None:
	"""Set cookies for ids minted during this request; existing ids are left alone."""
	secure = request_is_secure(request)
	if identity.new_visitor:
		_set(
			response,
			VISITOR_COOKIE_NAME,
			identity.visitor_id,
			max_age=VISITOR_COOKIE_TTL_SECONDS,
			secure=secure,
		)
	if identity.new_attempt:
		_set(
			response,
			ATTEMPT_COOKIE_NAME,
			identity.attempt_id,
			max_age=ATTEMPT_COOKIE_TTL_SECONDS,
			secure=secure,
		)


def set_unlocked_cookie(request: Request, response: Response, *, duration_days: int) -> None:
	_set(
		response,
		UNLOCKED_COOKIE_NAME,
		"1",
		max_age=max(1, int(duration_days)) * 24 * 3600,
		secure=request_is_secure(request),
	)


def has_unlocked_cookie(request: Request) -> bool:
	return bool(request.cookies.get(UNLOCKED_COOKIE_NAME))
