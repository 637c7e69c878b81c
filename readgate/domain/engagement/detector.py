"""Engagement detector deciding the single moment the gate is revealed.

One detector instance owns one page view. It moves ``IDLE -> ARMED -> SHOWN``:
``start`` arms it (scroll handling plus the backstop and max-delay timers), and
the first of the scroll heuristic, a timer, or a preview override shows the
gate. Showing happens once; later triggers are no-ops.

Revealing is asynchronous: a gate token is requested first and the modal is
revealed whatever the outcome of that request.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Optional, Sequence

from readgate.domain.engagement.clock import Clock, SystemClock, TimerHandle, TimerSource, AsyncioTimerSource
from readgate.domain.engagement.focus import FocusTrap
from readgate.domain.engagement.geometry import PageGeometry, content_depth_percent
from readgate.domain.engagement.state import (
	DetectorPhase,
	EngagementSample,
	EngagementState,
	ShowReason,
	SubmitOutcome,
)
from readgate.domain.gate.models import GateSettings
from readgate.domain.gate.policy import CONSENT_MESSAGE, GENERIC_MESSAGE, INVALID_EMAIL_MESSAGE, SUCCESS_MESSAGE

logger = logging.getLogger(__name__)

_CLIENT_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

EMAIL_FIELD = "email"
CONSENT_FIELD = "consent"
PRIVACY_LINK = "privacy_policy"
SUBMIT_BUTTON = "submit"

TokenFetcher = Callable[[], Awaitable[Optional[str]]]
SubmitSender = Callable[[dict[str, str]], Awaitable[SubmitOutcome]]


def default_focusables(settings: GateSettings) -> tuple[str, ...]:
	if settings.privacy_policy_url:
		return (EMAIL_FIELD, CONSENT_FIELD, PRIVACY_LINK, SUBMIT_BUTTON)
	return (EMAIL_FIELD, CONSENT_FIELD, SUBMIT_BUTTON)


class EngagementDetector:
	def __init__(
		self,
		settings: GateSettings,
		geometry: PageGeometry,
		*,
		fetch_token: TokenFetcher,
		clock: Optional[Clock] = None,
		timers: Optional[TimerSource] = None,
		preview: bool = False,
		state: Optional[EngagementState] = None,
		focusables: Optional[Sequence[str]] = None,
		on_reveal: Optional[Callable[[Optional[str]], None]] = None,
		on_hide: Optional[Callable[[], None]] = None,
		spawn: Callable[[Awaitable[Any]], "asyncio.Future[Any]"] = asyncio.ensure_future,
	) -> None:
		self.settings = settings
		self.geometry = geometry
		self.state = state or EngagementState()
		self.clock = clock or SystemClock()
		self.timers = timers or AsyncioTimerSource()
		self.preview = preview
		self.focus = FocusTrap(focusables if focusables is not None else default_focusables(settings))
		self.token: Optional[str] = None
		self.show_reason: Optional[ShowReason] = None
		self.visible = False
		self.unlocked = False
		self._phase = DetectorPhase.IDLE
		self._fetch_token = fetch_token
		self._on_reveal = on_reveal
		self._on_hide = on_hide
		self._spawn = spawn
		self._timer_handles: list[TimerHandle] = []
		self._reveal_task: Optional["asyncio.Future[Any]"] = None

	@property
	def phase(self) -> DetectorPhase:
		return self._phase

	def start(self, initial_scroll_y: float = 0) -> None:
		"""Arm the detector: either show at once (preview) or start listening and timing."""
		if self._phase is not DetectorPhase.IDLE:
			return
		self.state.last_scroll_y = int(initial_scroll_y)
		self._phase = DetectorPhase.ARMED
		if self.preview:
			self._trigger(ShowReason.PREVIEW)
			return
		self._timer_handles = [
			self.timers.call_later(self.settings.delay_backstop_ms, lambda: self._trigger(ShowReason.BACKSTOP)),
			self.timers.call_later(self.settings.delay_max_ms, lambda: self._trigger(ShowReason.MAX_DELAY)),
		]

	def on_scroll(self, scroll_y: float) -> bool:
		"""Feed one scroll position; return True if this scroll showed the gate."""
		if self.preview:
			return False
		self._note_interaction()
		if self._phase is not DetectorPhase.ARMED:
			return False
		sample = EngagementSample(scroll_y=int(scroll_y), timestamp=self.clock.now_ms())
		if not self.state.is_meaningful(sample):
			return False
		count = self.state.register_meaningful(sample)
		depth = content_depth_percent(self.geometry, sample.scroll_y, self.settings.content_selector)
		if depth >= self.settings.scroll_depth_percent and count >= self.settings.min_meaningful_scroll_count:
			return self._trigger(ShowReason.HEURISTIC)
		return False

	def _note_interaction(self) -> None:
		# Preview pages register no interaction listeners
		if not self.preview:
			self.state.interaction_happened = True

	def on_interaction(self) -> None:
		self._note_interaction()

	def on_key(self, key: str, *, shift: bool = False) -> bool:
		"""Handle a keydown; return True when the browser default must be suppressed."""
		self._note_interaction()
		if not self.state.modal_shown:
			return False
		if key == "Escape":
			return True
		if key == "Tab" and self.visible:
			return self.focus.handle_tab(shift)
		return False

	def on_backdrop_click(self) -> bool:
		return self.visible

	def show(self, reason: ShowReason = ShowReason.PREVIEW) -> bool:
		"""Force the gate open; a no-op once it has been shown."""
		if self._phase is DetectorPhase.IDLE:
			self._phase = DetectorPhase.ARMED
		return self._trigger(reason)

	def _trigger(self, reason: ShowReason) -> bool:
		if self.state.modal_shown:
			return False
		self.state.modal_shown = True
		self._phase = DetectorPhase.SHOWN
		self.show_reason = reason
		for handle in self._timer_handles:
			handle.cancel()
		self._timer_handles = []
		logger.debug("gate_show", extra={"reason": reason.value})
		self._reveal_task = self._spawn(self._reveal())
		return True

	async def _reveal(self) -> None:
		try:
			self.token = await self._fetch_token()
		except Exception:  # network or protocol failure; the modal is shown regardless
			logger.warning("gate_token_fetch_failed", exc_info=True)
			self.token = None
		self.state.modal_shown_at = self.clock.now_ms()
		self.visible = True
		self.focus.activate(EMAIL_FIELD)
		if self._on_reveal is not None:
			self._on_reveal(self.token)

	async def wait_until_revealed(self) -> None:
		if self._reveal_task is not None:
			await self._reveal_task

	def elapsed_ms(self) -> int:
		if self.state.modal_shown_at is None:
			return 0
		return max(0, int(self.clock.now_ms() - self.state.modal_shown_at))

	@staticmethod
	def prevalidate(email: str, consent: bool) -> Optional[str]:
		if not _CLIENT_EMAIL_RE.match(email.strip()):
			return INVALID_EMAIL_MESSAGE
		if not consent:
			return CONSENT_MESSAGE
		return None

	def build_submission(
		self,
		email: str,
		consent: bool,
		*,
		honeypot: str = "",
		page_url: str = "",
		page_title: str = "",
	) -> dict[str, str]:
		return {
			"email": email.strip(),
			"consent": "1" if consent else "0",
			"page_url": page_url,
			"page_title": page_title,
			"company": honeypot,
			"token": self.token or "",
			"elapsed": str(self.elapsed_ms()),
			"interaction": "1" if self.state.interaction_happened else "0",
		}

	async def submit(
		self,
		email: str,
		consent: bool,
		send: SubmitSender,
		*,
		honeypot: str = "",
		page_url: str = "",
		page_title: str = "",
	) -> SubmitOutcome:
		"""Validate locally, send once, and hide the modal on success.

		Failures leave the modal open for the reader to try again; nothing is retried.
		"""
		message = self.prevalidate(email, consent)
		if message is not None:
			return SubmitOutcome(success=False, message=message)
		fields = self.build_submission(
			email,
			consent,
			honeypot=honeypot,
			page_url=page_url,
			page_title=page_title,
		)
		try:
			outcome = await send(fields)
		except Exception:  # transport failures surface as the generic retry message
			logger.warning("gate_submit_failed", exc_info=True)
			return SubmitOutcome(success=False, message=GENERIC_MESSAGE)
		if outcome.success:
			self.visible = False
			self.unlocked = True
			self.focus.release()
			if self._on_hide is not None:
				self._on_hide()
			if not outcome.message:
				outcome.message = SUCCESS_MESSAGE
		return outcome
