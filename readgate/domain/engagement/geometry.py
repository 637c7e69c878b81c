"""Page geometry the detector reads to compute content depth."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True, slots=True)
class ContainerBox:
	"""A content container in document coordinates."""

	top: float
	height: float


class PageGeometry(Protocol):
	def viewport_height(self) -> float:
		...

	def document_height(self) -> float:
		...

	def container(self, selector: str) -> Optional[ContainerBox]:
		...


@dataclass(slots=True)
class StaticPage:
	"""Fixed page layout, used when no live document is available."""

	viewport: float
	document: float
	containers: dict[str, ContainerBox] | None = None

	def viewport_height(self) -> float:
		return self.viewport

	def document_height(self) -> float:
		return self.document

	def container(self, selector: str) -> Optional[ContainerBox]:
		return (self.containers or {}).get(selector)


def content_depth_percent(geometry: PageGeometry, scroll_y: float, selector: Optional[str] = None) -> float:
	"""Viewport bottom relative to the content container (or whole document), in percent.

	Floors at 0; exceeds 100 once the reader is past the end of short content.
	Falls back to the document when the selector matches nothing.
	"""
	scroll_bottom = scroll_y + geometry.viewport_height()
	box = geometry.container(selector) if selector else None
	if box is not None:
		if box.height <= 0:
			return 100.0
		return max(0.0, (scroll_bottom - box.top) / box.height * 100)
	doc_height = geometry.document_height()
	if doc_height <= 0:
		return 100.0
	return max(0.0, scroll_bottom / doc_height * 100)
