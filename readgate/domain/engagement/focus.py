"""Keyboard focus confinement for the open gate modal."""

from __future__ import annotations

from typing import Optional, Sequence


class FocusTrap:
	"""Tab and Shift+Tab cycle through the modal's focusable elements only."""

	def __init__(self, focusables: Sequence[str]) -> None:
		self._items = list(focusables)
		self._index: Optional[int] = None
		self.active = False

	@property
	def current(self) -> Optional[str]:
		if self._index is None or not self._items:
			return None
		return self._items[self._index]

	def activate(self, initial: Optional[str] = None) -> None:
		self.active = True
		if not self._items:
			return
		self._index = self._items.index(initial) if initial in self._items else 0

	def release(self) -> None:
		self.active = False
		self._index = None

	def focus(self, element: str) -> None:
		if element in self._items:
			self._index = self._items.index(element)

	def handle_tab(self, shift: bool = False) -> bool:
		"""Move focus; return True when the move wrapped and the default action was suppressed."""
		if not self.active or not self._items:
			return False
		last = len(self._items) - 1
		if self._index is None:
			self._index = last if shift else 0
			return True
		if shift:
			wrapped = self._index == 0
			self._index = last if wrapped else self._index - 1
		else:
			wrapped = self._index == last
			self._index = 0 if wrapped else self._index + 1
		return wrapped
