"""Response models for the gate endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from readgate.domain.gate.models import GateSettings


class TokenResponse(BaseModel):
	token: str


class SubmitResponse(BaseModel):
	success: bool
	message: str


class ClientSettings(BaseModel):
	"""Settings served to the page script, in the camelCase the script reads."""

	model_config = ConfigDict(populate_by_name=True)

	delay_backstop_ms: int = Field(serialization_alias="delayBackstopMs")
	delay_max_ms: int = Field(serialization_alias="delayMaxMs")
	scroll_depth_percent: int = Field(serialization_alias="scrollDepthPercent")
	min_meaningful_scroll_count: int = Field(serialization_alias="minMeaningfulScrollCount")
	content_selector: Optional[str] = Field(default=None, serialization_alias="contentSelector")
	cookie_duration_days: int = Field(serialization_alias="cookieDurationDays")
	privacy_policy_url: str = Field(default="", serialization_alias="privacyPolicyUrl")

	@classmethod
	def from_gate_settings(cls, value: GateSettings) -> "ClientSettings":
		return cls(
			delay_backstop_ms=value.delay_backstop_ms,
			delay_max_ms=value.delay_max_ms,
			scroll_depth_percent=value.scroll_depth_percent,
			min_meaningful_scroll_count=value.min_meaningful_scroll_count,
			content_selector=value.content_selector,
			cookie_duration_days=value.cookie_duration_days,
			privacy_policy_url=value.privacy_policy_url,
		)


class GateNonces(BaseModel):
	token: str
	submit: str


class GateConfigResponse(BaseModel):
	eligible: bool
	preview: bool = False
	settings: Optional[ClientSettings] = None
	nonces: Optional[GateNonces] = None
