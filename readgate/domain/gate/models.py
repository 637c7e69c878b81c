"""Domain models for the reading gate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from readgate.domain.gate import policy
from readgate.settings import Settings


@dataclass(frozen=True, slots=True)
class GateSettings:
	"""The configuration view the detector and pipeline consume."""

	delay_backstop_ms: int = 12_000
	delay_max_ms: int = 20_000
	scroll_depth_percent: int = 30
	min_meaningful_scroll_count: int = 2
	content_selector: Optional[str] = None
	cookie_duration_days: int = 30
	privacy_policy_url: str = ""

	@classmethod
	def from_settings(cls, source: Settings) -> "GateSettings":
		return cls(
			delay_backstop_ms=source.delay_backstop_seconds * 1000,
			delay_max_ms=source.delay_max_seconds * 1000,
			scroll_depth_percent=source.scroll_depth_percent,
			min_meaningful_scroll_count=source.min_meaningful_scroll_count,
			content_selector=source.content_selector or None,
			cookie_duration_days=source.cookie_duration_days,
			privacy_policy_url=source.privacy_policy_url,
		)

	@classmethod
	def from_mapping(cls, data: Mapping[str, Any]) -> "GateSettings":
		"""Build from the camelCase payload served to page scripts."""
		defaults = cls()
		return cls(
			delay_backstop_ms=int(data.get("delayBackstopMs", defaults.delay_backstop_ms)),
			delay_max_ms=int(data.get("delayMaxMs", defaults.delay_max_ms)),
			scroll_depth_percent=int(data.get("scrollDepthPercent", defaults.scroll_depth_percent)),
			min_meaningful_scroll_count=int(data.get("minMeaningfulScrollCount", defaults.min_meaningful_scroll_count)),
			content_selector=data.get("contentSelector") or None,
			cookie_duration_days=int(data.get("cookieDurationDays", defaults.cookie_duration_days)),
			privacy_policy_url=str(data.get("privacyPolicyUrl") or ""),
		)


def _absint(value: Any) -> int:
	try:
		return abs(int(str(value).strip()))
	except (TypeError, ValueError):
		return 0


def _text(value: Any, limit: int) -> str:
	text = " ".join(str(value or "").split())
	return text[:limit]


@dataclass(slots=True)
class SubmissionPayload:
	email: str
	consent: bool
	page_url: str
	page_title: str
	honeypot: str
	token: str
	elapsed_ms: int
	interaction: bool

	@classmethod
	def from_form(cls, form: Mapping[str, Any]) -> "SubmissionPayload":
		"""Sanitise raw form values; anything unparseable degrades to a failing value."""
		return cls(
			email=str(form.get("email") or "").strip()[: policy.EMAIL_MAX_LEN + 1],
			consent=str(form.get("consent") or "") == "1",
			page_url=str(form.get("page_url") or "").strip()[: policy.PAGE_URL_MAX_LEN],
			page_title=_text(form.get("page_title"), policy.PAGE_TITLE_MAX_LEN),
			honeypot=_text(form.get("company"), 256),
			token=str(form.get("token") or "").strip(),
			elapsed_ms=_absint(form.get("elapsed")),
			interaction=_absint(form.get("interaction")) == 1,
		)


@dataclass(slots=True)
class SubmitResult:
	success: bool
	message: str
	duplicate: bool = False
