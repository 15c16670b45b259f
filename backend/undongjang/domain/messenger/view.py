"""Per-session view state for an open conversation.

The view owns an ordered list of messages for one conversation. Results of
calls that complete after ``close()`` are dropped so a torn-down view never
changes state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from undongjang.domain.messenger.schemas import MessageResponse
from undongjang.infra.auth import AuthenticatedUser

_LOG = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class ConversationView:
	def __init__(
		self,
		service,
		conversation_id: str,
		user: AuthenticatedUser,
		*,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.service = service
		self.conversation_id = conversation_id
		self.user = user
		self.messages: list[MessageResponse] = []
		self.next_cursor: Optional[str] = None
		self.loading = False
		self.error: Optional[str] = None
		self.mounted = True
		self._now = clock or _utcnow

	@property
	def has_older(self) -> bool:
		return self.next_cursor is not None

	def close(self) -> None:
		self.mounted = False

	def _holds(self, message_id: str, seq: int) -> bool:
		"""True when a load already brought in this message or a newer one."""
		if any(message.id == message_id for message in self.messages):
			return True
		return bool(self.messages) and self.messages[-1].seq >= seq

	def _fail(self, action: str, exc: Exception) -> None:
		_LOG.warning(
			"messenger.view.failed",
			extra={"conversation_id": self.conversation_id, "action": action, "error": str(exc)},
		)
		self.error = GENERIC_ERROR

	async def load(self) -> None:
		"""Fetch the newest page, replacing whatever the view held."""
		if not self.mounted:
			return
		self.loading = True
		self.error = None
		try:
			page = await self.service.get_messages(self.conversation_id, self.user)
		except Exception as exc:
			if self.mounted:
				self.loading = False
				self._fail("load", exc)
			return
		if not self.mounted:
			return
		self.messages = list(page.messages)
		self.next_cursor = page.next_cursor
		self.loading = False

	async def load_older(self) -> None:
		if not self.mounted or self.next_cursor is None or self.loading:
			return
		self.loading = True
		try:
			page = await self.service.get_messages(self.conversation_id, self.user, cursor=self.next_cursor)
		except Exception as exc:
			if self.mounted:
				self.loading = False
				self._fail("load_older", exc)
			return
		if not self.mounted:
			return
		self.messages = list(page.messages) + self.messages
		self.next_cursor = page.next_cursor
		self.loading = False

	async def send(self, content: str) -> Optional[str]:
		"""Send and append locally.

		The appended copy carries a locally taken timestamp and is not
		reconciled with the stored one, so its time may differ slightly.
		"""
		if not self.mounted:
			return None
		self.error = None
		try:
			result = await self.service.send_message(self.conversation_id, self.user, content)
		except Exception as exc:
			if self.mounted:
				self._fail("send", exc)
			return None
		if not self.mounted or self._holds(result.id, result.seq):
			return result.id
		self.messages.append(
			MessageResponse(
				id=result.id,
				conversation_id=self.conversation_id,
				seq=result.seq,
				sender_id=self.user.id,
				sender_name=self.user.display_name,
				content=content.strip(),
				created_at=self._now(),
			)
		)
		return result.id
