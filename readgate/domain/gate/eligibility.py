"""Page eligibility: whether the detector should be loaded for this page view.

Taxonomy rules (post types, categories, roles) belong to the host site; this
module covers the rules the gate itself owns and accepts an extra predicate for
the rest.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from readgate.settings import Settings


@dataclass(slots=True)
class EligibilityContext:
	url: str
	unlocked: bool = False
	preview: bool = False


EligibilityPredicate = Callable[[EligibilityContext], bool]


def matches_excluded_url(url: str, patterns: Iterable[str]) -> bool:
	for pattern in patterns:
		pattern = pattern.strip()
		if pattern and pattern in url:
			return True
	return False


def is_eligible(
	ctx: EligibilityContext,
	source: Settings,
	*,
	extra: Optional[EligibilityPredicate] = None,
) -> bool:
	if not source.gate_enabled and not ctx.preview:
		return False
	if ctx.unlocked:
		return False
	if matches_excluded_url(ctx.url, source.exclude_url_patterns):
		return False
	if extra is not None and not extra(ctx):
		return False
	return True
