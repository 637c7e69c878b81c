"""Engagement state for one page view."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


MEANINGFUL_SCROLL_DELTA_PX = 120
MEANINGFUL_SCROLL_DEBOUNCE_MS = 600


class DetectorPhase(str, Enum):
	IDLE = "idle"
	ARMED = "armed"
	SHOWN = "shown"


class ShowReason(str, Enum):
	HEURISTIC = "heuristic"
	BACKSTOP = "backstop"
	MAX_DELAY = "max_delay"
	PREVIEW = "preview"


@dataclass(frozen=True, slots=True)
class EngagementSample:
	scroll_y: int
	timestamp: float


@dataclass(slots=True)
class EngagementState:
	meaningful_scroll_count: int = 0
	last_meaningful_at: Optional[float] = None
	last_scroll_y: int = 0
	interaction_happened: bool = False
	modal_shown: bool = False
	modal_shown_at: Optional[float] = None

	def is_meaningful(self, sample: EngagementSample) -> bool:
		if abs(sample.scroll_y - self.last_scroll_y) < MEANINGFUL_SCROLL_DELTA_PX:
			return False
		if self.last_meaningful_at is None:
			return True
		return sample.timestamp - self.last_meaningful_at >= MEANINGFUL_SCROLL_DEBOUNCE_MS

	def register_meaningful(self, sample: EngagementSample) -> int:
		self.meaningful_scroll_count += 1
		self.last_meaningful_at = sample.timestamp
		self.last_scroll_y = sample.scroll_y
		return self.meaningful_scroll_count


@dataclass(slots=True)
class SubmitOutcome:
	"""What the reader sees after pressing Continue."""

	success: bool
	message: str
	status_code: Optional[int] = None
