"""JSON log lines for the gate service.

Request-scoped fields (request id, route, client address) live in a single
context variable bound by the HTTP middleware. Extra fields passed to a logger
are scrubbed: secrets and submission contents never reach the output, and
email-like values are reduced to their domain.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from readgate.settings import settings

_LOGGER_NAME = "readgate"

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("readgate_log_context", default={})

# Output key for each bindable context field
_CONTEXT_KEYS = {"request_id": "request_id", "route": "route", "client_ip": "ip"}

_REDACT_MARKERS = ("token", "secret", "nonce", "authorization", "cookie", "company", "honeypot", "body")
_EMAIL_MARKERS = ("email",)

_MAX_TEXT = 256

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def bind_context(
	*,
	request_id: Optional[str] = None,
	route: Optional[str] = None,
	client_ip: Optional[str] = None,
) -> Token:
	"""Layer request fields over the current context; pass the result to ``reset_context``."""
	merged = dict(_CONTEXT.get())
	for field, value in (("request_id", request_id), ("route", route), ("client_ip", client_ip)):
		if value is not None:
			merged[field] = value
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def mask_email(value: Any) -> str:
	text = str(value or "")
	_, sep, domain = text.rpartition("@")
	return f"***@{domain.lower()}" if sep and domain else "[redacted]"


def _scrub(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(marker in lowered for marker in _REDACT_MARKERS):
		return "[redacted]"
	if any(marker in lowered for marker in _EMAIL_MARKERS):
		return mask_email(value)
	if isinstance(value, str) and len(value) > _MAX_TEXT:
		return value[:_MAX_TEXT] + "..."
	if isinstance(value, Mapping):
		return {str(k): _scrub(str(k), v) for k, v in value.items()}
	return value


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		line: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for field, value in _CONTEXT.get().items():
			line[_CONTEXT_KEYS.get(field, field)] = value
		if record.exc_info:
			line["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key in _RECORD_ATTRS or key in line:
				continue
			line[key] = _scrub(key, value)
		return json.dumps(line, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a configured share of INFO lines; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(0.0, rate)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return get_logger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
