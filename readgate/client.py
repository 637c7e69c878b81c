"""HTTP client for the gate endpoints, as used by the page-side detector."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from readgate.domain.engagement.clock import Clock, TimerSource
from readgate.domain.engagement.detector import EngagementDetector
from readgate.domain.engagement.geometry import PageGeometry
from readgate.domain.engagement.state import SubmitOutcome
from readgate.domain.gate.models import GateSettings
from readgate.domain.gate.policy import GENERIC_MESSAGE

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GateBootstrap:
	eligible: bool
	preview: bool = False
	settings: Optional[GateSettings] = None
	token_nonce: str = ""
	submit_nonce: str = ""


class GateClient:
	"""Thin wrapper over ``httpx.AsyncClient``.

	Token fetches degrade to ``None`` and submissions to a generic failure
	outcome; neither raises on network trouble and neither retries.
	"""

	def __init__(
		self,
		http: httpx.AsyncClient,
		*,
		token_nonce: str = "",
		submit_nonce: str = "",
		prefix: str = "/gate",
	) -> None:
		self._http = http
		self.token_nonce = token_nonce
		self.submit_nonce = submit_nonce
		self._prefix = prefix.rstrip("/")

	async def bootstrap(self, url: str, *, preview: Optional[str] = None) -> GateBootstrap:
		params = {"url": url}
		if preview:
			params["preview"] = preview
		response = await self._http.get(f"{self._prefix}/config", params=params)
		response.raise_for_status()
		data = response.json()
		if not data.get("eligible"):
			return GateBootstrap(eligible=False)
		nonces = data.get("nonces") or {}
		self.token_nonce = str(nonces.get("token") or "")
		self.submit_nonce = str(nonces.get("submit") or "")
		return GateBootstrap(
			eligible=True,
			preview=bool(data.get("preview")),
			settings=GateSettings.from_mapping(data.get("settings") or {}),
			token_nonce=self.token_nonce,
			submit_nonce=self.submit_nonce,
		)

	async def fetch_token(self) -> Optional[str]:
		try:
			response = await self._http.post(f"{self._prefix}/token", data={"nonce": self.token_nonce})
			data = response.json()
		except (httpx.HTTPError, ValueError):
			logger.warning("gate_token_request_failed", exc_info=True)
			return None
		if response.status_code != 200 or not isinstance(data, dict):
			return None
		token = data.get("token")
		return str(token) if token else None

	async def submit(self, fields: dict[str, str]) -> SubmitOutcome:
		payload = dict(fields)
		payload["nonce"] = self.submit_nonce
		try:
			response = await self._http.post(f"{self._prefix}/submit", data=payload)
			data = response.json()
		except (httpx.HTTPError, ValueError):
			logger.warning("gate_submit_request_failed", exc_info=True)
			return SubmitOutcome(success=False, message=GENERIC_MESSAGE)
		if not isinstance(data, dict):
			return SubmitOutcome(success=False, message=GENERIC_MESSAGE, status_code=response.status_code)
		return SubmitOutcome(
			success=bool(data.get("success")),
			message=str(data.get("message") or GENERIC_MESSAGE),
			status_code=response.status_code,
		)

	def detector(
		self,
		bootstrap: GateBootstrap,
		geometry: PageGeometry,
		*,
		clock: Optional[Clock] = None,
		timers: Optional[TimerSource] = None,
	) -> EngagementDetector:
		"""Build a detector for an eligible page, wired to this client's token fetch."""
		if not bootstrap.eligible or bootstrap.settings is None:
			raise ValueError("page_not_eligible")
		return EngagementDetector(
			bootstrap.settings,
			geometry,
			fetch_token=self.fetch_token,
			clock=clock,
			timers=timers,
			preview=bootstrap.preview,
		)
