"""Policy constants, rejection taxonomy, and validation helpers for gate submissions."""

from __future__ import annotations

from email_validator import EmailNotValidError, validate_email

TOKEN_TTL_SECONDS = 10 * 60
TOKEN_LENGTH = 20

RATE_WINDOW_SECONDS = 3600
IP_CEILING = 20
VISITOR_CEILING = 8
ATTEMPT_CEILING = 8

DEDUP_TTL_SECONDS = 3600

MIN_DWELL_MS = 2500

EMAIL_MAX_LEN = 254
PAGE_URL_MAX_LEN = 2048
PAGE_TITLE_MAX_LEN = 512

GENERIC_MESSAGE = "Something went wrong. Please try again."
INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
CONSENT_MESSAGE = "Please tick the box to continue."
SUCCESS_MESSAGE = "Thanks. You can keep reading."


class GateRejection(Exception):
	"""Raised when a submission is refused.

	``cause`` is the internal diagnostic reason; ``message`` is what the caller sees.
	``counts_as_abuse`` decides whether the rate-limit counters are bumped.
	"""

	status_code = 400
	message = GENERIC_MESSAGE
	counts_as_abuse = True

	def __init__(self, cause: str):
		super().__init__(cause)
		self.cause = cause


class TransportRejected(GateRejection):
	"""HTTPS is available but the request arrived over plaintext."""

	counts_as_abuse = False


class AbuseSignal(GateRejection):
	"""Honeypot, dwell, interaction, or token failure."""


class GateRateLimited(AbuseSignal):
	"""One of the throttling counters is at its ceiling."""

	status_code = 429
	counts_as_abuse = False


class GateValidationError(GateRejection):
	"""Malformed email or missing consent; carries an actionable message."""

	def __init__(self, cause: str, message: str):
		super().__init__(cause)
		self.message = message


class GateStorageError(GateRejection):
	"""Lead persistence failed."""

	status_code = 500
	counts_as_abuse = False


def normalise_email(email: str) -> str:
	return email.strip().lower()


def is_valid_email(email: str) -> bool:
	"""Syntax-only check; no DNS or deliverability lookups."""
	if not email or len(email) > EMAIL_MAX_LEN:
		return False
	try:
		validate_email(email, check_deliverability=False)
	except EmailNotValidError:
		return False
	return True


def guard_email(email: str) -> None:
	if not is_valid_email(email):
		raise GateValidationError("email_invalid", INVALID_EMAIL_MESSAGE)


def guard_consent(consent: bool) -> None:
	if not consent:
		raise GateValidationError("consent_missing", CONSENT_MESSAGE)


def guard_honeypot(value: str) -> None:
	if value and value.strip():
		raise AbuseSignal("honeypot_filled")


def guard_behaviour(elapsed_ms: int, interaction: bool) -> None:
	if elapsed_ms < MIN_DWELL_MS:
		raise AbuseSignal("dwell_too_short")
	if not interaction:
		raise AbuseSignal("no_interaction")
