"""Debounced suggestion lookups for a search box."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from undongjang.domain.search import guards
from undongjang.domain.search.schemas import Suggestion
from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[list[Suggestion]]]


class SuggestionBox:
	"""Coalesce keystrokes so only the input that settles triggers a lookup.

	Superseded input cancels the pending timer. A lookup already in flight is
	left to finish, but its results are ignored if newer input arrived.
	"""

	def __init__(self, lookup: Lookup, *, delay_ms: Optional[int] = None) -> None:
		self._lookup = lookup
		self._delay = (delay_ms if delay_ms is not None else settings.suggestion_debounce_ms) / 1000
		self._timer: Optional[asyncio.TimerHandle] = None
		self._task: Optional[asyncio.Task[None]] = None
		self._generation = 0
		self.query = ""
		self.suggestions: list[Suggestion] = []
		self.loading = False
		self.mounted = True

	def update(self, raw: str) -> None:
		if not self.mounted:
			return
		self._generation += 1
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None
		self.query = guards.normalize_query(raw)
		if not guards.is_suggestible(self.query):
			self.suggestions = []
			self.loading = False
			return
		generation = self._generation
		loop = asyncio.get_running_loop()
		self._timer = loop.call_later(self._delay, self._fire, self.query, generation)

	def _fire(self, query: str, generation: int) -> None:
		self._timer = None
		self.loading = True
		self._task = asyncio.create_task(self._run(query, generation))

	async def _run(self, query: str, generation: int) -> None:
		try:
			results = await self._lookup(query)
		except Exception:
			_LOG.warning("search.suggestions.failed", exc_info=True)
			results = []
		if not self.mounted or generation != self._generation:
			return
		self.suggestions = results
		self.loading = False

	async def settle(self) -> None:
		"""Wait for any pending timer and the lookup it starts."""
		while self._timer is not None:
			await asyncio.sleep(self._delay / 4 or 0.001)
		if self._task is not None:
			await self._task

	def close(self) -> None:
		self.mounted = False
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None
