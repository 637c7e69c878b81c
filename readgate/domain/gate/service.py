"""Submission pipeline: token issue and the ordered anti-abuse checks behind a gate unlock."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from redis.exceptions import RedisError

from readgate.domain.gate import policy
from readgate.domain.gate.dedup import DedupGate
from readgate.domain.gate.leads import LeadRecord, LeadRepository, PostgresLeadRepository
from readgate.domain.gate.limiter import LimiterKeys, SubmissionLimiter
from readgate.domain.gate.models import GateSettings, SubmissionPayload, SubmitResult
from readgate.domain.gate.tokens import GateTokenStore
from readgate.obs import metrics as obs_metrics
from readgate.settings import settings

logger = logging.getLogger(__name__)


def _https_available() -> bool:
	return bool(settings.https_available)


def _gate_settings() -> GateSettings:
	return GateSettings.from_settings(settings)


class SubmissionPipeline:
	"""Runs a submission through transport, throttle, behaviour, and token checks.

	Checks are fail-fast. Every abuse or validation rejection bumps all three
	throttle counters before it propagates; transport, throttle, and storage
	rejections do not. A repeat email inside the dedup window still unlocks but
	writes no second lead; the dedup mark is claimed atomically before the
	insert and handed back if the insert fails. Redis outages surface as storage
	errors.
	"""

	def __init__(
		self,
		*,
		tokens: Optional[GateTokenStore] = None,
		limiter: Optional[SubmissionLimiter] = None,
		dedup: Optional[DedupGate] = None,
		leads: Optional[LeadRepository] = None,
		https_available: Callable[[], bool] = _https_available,
		gate_settings: Callable[[], GateSettings] = _gate_settings,
	) -> None:
		self.tokens = tokens or GateTokenStore()
		self.limiter = limiter or SubmissionLimiter()
		self.dedup = dedup or DedupGate()
		self.leads: LeadRepository = leads or PostgresLeadRepository()
		self._https_available = https_available
		self._gate_settings = gate_settings

	@property
	def unlock_days(self) -> int:
		return self._gate_settings().cookie_duration_days

	async def issue(self, visitor_id: str) -> str:
		try:
			token = await self.tokens.issue_token(visitor_id)
		except RedisError as exc:
			logger.error("gate_token_store_unavailable", exc_info=True)
			obs_metrics.inc_gate_rejection("store_unavailable")
			raise policy.GateStorageError("store_unavailable") from exc
		obs_metrics.inc_token_issued()
		return token

	async def submit(self, payload: SubmissionPayload, *, keys: LimiterKeys, secure: bool) -> SubmitResult:
		try:
			return await self._run(payload, keys=keys, secure=secure)
		except RedisError as exc:
			# Counters cannot be bumped either; the reader just retries
			logger.error("gate_store_unavailable", exc_info=True)
			obs_metrics.inc_gate_rejection("store_unavailable")
			raise policy.GateStorageError("store_unavailable") from exc
		except policy.GateRejection as exc:
			obs_metrics.inc_gate_rejection(exc.cause)
			logger.info("gate_submit_rejected", extra={"cause": exc.cause, "status": exc.status_code})
			raise

	async def _run(self, payload: SubmissionPayload, *, keys: LimiterKeys, secure: bool) -> SubmitResult:
		if self._https_available() and not secure:
			raise policy.TransportRejected("transport_plaintext")

		if await self.limiter.is_rate_limited(keys):
			raise policy.GateRateLimited("rate_limited")

		try:
			policy.guard_honeypot(payload.honeypot)
			policy.guard_behaviour(payload.elapsed_ms, payload.interaction)
			policy.guard_email(payload.email)
			policy.guard_consent(payload.consent)
			await self.tokens.check_token(keys.visitor_id, payload.token)
		except policy.GateRejection as exc:
			if exc.counts_as_abuse:
				await self.limiter.record_failure(keys)
			raise

		if not await self.dedup.reserve(payload.email):
			obs_metrics.inc_gate_unlock("duplicate")
			return SubmitResult(success=True, message=policy.SUCCESS_MESSAGE, duplicate=True)

		record = LeadRecord(
			email=payload.email,
			consent=True,
			page_url=payload.page_url,
			page_title=payload.page_title,
		)
		try:
			await self.leads.insert(record)
		except Exception as exc:  # asyncpg errors, pool bootstrap failures, OSError
			logger.error("gate_lead_persist_failed", exc_info=True)
			await self._release_reservation(payload.email)
			raise policy.GateStorageError("storage_failed") from exc
		obs_metrics.inc_lead_persisted()
		obs_metrics.inc_gate_unlock("new")
		return SubmitResult(success=True, message=policy.SUCCESS_MESSAGE)

	async def _release_reservation(self, email: str) -> None:
		try:
			await self.dedup.release(email)
		except RedisError:
			# The mark then lapses with its TTL; a retry inside the window unlocks without a lead
			logger.warning("gate_dedup_release_failed", exc_info=True)
