"""Anti-forgery nonces for the public gate endpoints.

A nonce is an HMAC over the action name and a coarse time tick, so it needs no
storage. A nonce minted in the current tick or the previous one verifies, giving
each nonce a lifetime between one and two ticks.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional

from readgate.settings import settings

NONCE_TICK_SECONDS = 12 * 3600
NONCE_LENGTH = 20

TOKEN_ACTION = "gate_token"
SUBMIT_ACTION = "gate_submit"


def _tick(now: Optional[float] = None) -> int:
	return int((now if now is not None else time.time()) // NONCE_TICK_SECONDS)


def _sign(action: str, tick: int) -> str:
	message = f"{action}|{tick}".encode("utf-8")
	mac = hmac.new(settings.secret_key.encode("utf-8"), message, hashlib.sha256).hexdigest()
	return mac[:NONCE_LENGTH]


def create_nonce(action: str, *, now: Optional[float] = None) -> str:
	return _sign(action, _tick(now))


def verify_nonce(action: str, nonce: Optional[str], *, now: Optional[float] = None) -> bool:
	if not nonce:
		return False
	current = _tick(now)
	for tick in (current, current - 1):
		if hmac.compare_digest(_sign(action, tick), nonce):
			return True
	return False
