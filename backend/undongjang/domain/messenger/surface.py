"""Single active messenger surface shared across a session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SurfaceTarget:
	"""What the surface shows: a conversation, or an organizer inbox for a subject."""

	conversation_id: Optional[str] = None
	group_id: Optional[str] = None
	event_id: Optional[str] = None


class SurfaceState:
	"""At most one surface is open; opening another replaces it."""

	def __init__(self) -> None:
		self._active: Optional[SurfaceTarget] = None
		self._on_complete: Optional[Callable[[], None]] = None

	@property
	def is_open(self) -> bool:
		return self._active is not None

	@property
	def active(self) -> Optional[SurfaceTarget]:
		return self._active

	def open(self, target: SurfaceTarget, on_complete: Optional[Callable[[], None]] = None) -> None:
		self._active = target
		self._on_complete = on_complete

	def close(self) -> None:
		"""Clear the surface, then run the stored callback once."""
		callback = self._on_complete
		self._active = None
		self._on_complete = None
		if callback is not None:
			try:
				callback()
			except Exception:
				_LOG.exception("messenger.surface.callback_failed")
				raise
