"""Member-organizer messaging: paging, sending and read state."""

from __future__ import annotations

import itertools
import logging
from typing import Optional

from undongjang.api.pagination import InvalidCursor
from undongjang.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from undongjang.domain.messenger import repo as repo_module
from undongjang.domain.messenger.access import SubjectManagers
from undongjang.domain.messenger.models import Conversation, ConversationCursor, SubjectType, is_unread
from undongjang.domain.messenger.schemas import (
	ConversationResponse,
	ConversationSummary,
	MessagePage,
	MessageResponse,
	ReadStateResponse,
	SendMessageResponse,
	UnreadCountsResponse,
)
from undongjang.infra.auth import AuthenticatedUser
from undongjang.obs import metrics as obs_metrics
from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

_ELLIPSIS = "…"


def preview(content: Optional[str], length: Optional[int] = None) -> str:
	limit = length or settings.message_preview_length
	text = content or ""
	return text if len(text) <= limit else text[:limit] + _ELLIPSIS


class MessengerService:
	def __init__(
		self,
		*,
		repository: repo_module.MessengerRepository | None = None,
		access: SubjectManagers | None = None,
	) -> None:
		self.repo = repository or repo_module.MessengerRepository()
		self.access = access or SubjectManagers()

	# --- Conversations ----------------------------------------------------

	async def create_or_get_conversation(
		self,
		user: AuthenticatedUser,
		*,
		group_id: Optional[str] = None,
		event_id: Optional[str] = None,
	) -> ConversationResponse:
		"""Open the caller's thread with the organizers of a group or event."""
		if bool(group_id) == bool(event_id):
			raise ValidationError("Provide exactly one of group_id or event_id.")
		subject_type = SubjectType.GROUP if group_id else SubjectType.EVENT
		subject_id = str(group_id or event_id)
		name = await self.access.subject_name(subject_type, subject_id)
		if name is None:
			raise NotFoundError(f"{subject_type.value}_not_found")
		conversation, created = await self.repo.get_or_create_conversation(
			member_user_id=user.id,
			group_id=group_id,
			event_id=event_id,
		)
		if conversation.subject_name is None:
			conversation.subject_name = name
		obs_metrics.inc_conversation_opened(subject_type.value, "created" if created else "existing")
		if created:
			_LOG.info(
				"messenger.conversation.created",
				extra={"conversation_id": conversation.id, "subject": subject_type.value},
			)
		return ConversationResponse.from_model(conversation)

	async def _require_participant(self, conversation_id: str, user: AuthenticatedUser) -> Conversation:
		conversation = await self.repo.get_conversation(conversation_id)
		if conversation is None:
			raise NotFoundError("conversation_not_found")
		if not await self.access.is_participant(conversation, user.id):
			raise ForbiddenError()
		if conversation.subject_name is None:
			conversation.subject_name = await self.access.subject_name(
				conversation.subject_type, conversation.subject_id
			)
		return conversation

	async def get_conversation(self, conversation_id: str, user: AuthenticatedUser) -> ConversationResponse:
		conversation = await self._require_participant(conversation_id, user)
		return ConversationResponse.from_model(conversation)

	# --- Messages ---------------------------------------------------------

	async def get_messages(
		self,
		conversation_id: str,
		user: AuthenticatedUser,
		*,
		cursor: Optional[str] = None,
		limit: Optional[int] = None,
	) -> MessagePage:
		"""One page of messages, oldest first.

		Without a cursor the newest page is returned. ``next_cursor`` points at
		the next older page and is ``None`` once the start of the thread is
		reached.
		"""
		conversation = await self._require_participant(conversation_id, user)
		page_size = max(1, min(limit or settings.messages_page_size, 200))
		before_seq = None
		if cursor:
			try:
				before_seq = ConversationCursor.decode(cursor, conversation_id=conversation.id).seq
			except InvalidCursor as exc:
				raise ValidationError("invalid_cursor") from exc
		rows = await self.repo.list_messages(conversation.id, before_seq=before_seq, limit=page_size + 1)
		has_more = len(rows) > page_size
		page = rows[:page_size]
		next_cursor = None
		if has_more and page:
			next_cursor = ConversationCursor(conversation_id=conversation.id, seq=page[-1].seq).encode()
		return MessagePage(
			messages=[MessageResponse.from_model(message) for message in reversed(page)],
			next_cursor=next_cursor,
		)

	async def send_message(self, conversation_id: str, user: AuthenticatedUser, content: str) -> SendMessageResponse:
		text = (content or "").strip()
		if not text:
			raise ValidationError("Message cannot be empty.")
		if len(text) > settings.message_max_length:
			raise ValidationError("Message is too long.")
		conversation = await self._require_participant(conversation_id, user)
		message = await self.repo.append_message(conversation.id, sender_id=user.id, content=text)
		obs_metrics.inc_message_sent()
		_LOG.info(
			"messenger.message.sent",
			extra={"conversation_id": conversation.id, "seq": message.seq},
		)
		return SendMessageResponse(id=message.id, seq=message.seq, created_at=message.created_at)

	async def mark_conversation_read(self, conversation_id: str, user: AuthenticatedUser) -> ReadStateResponse:
		"""Move the caller's read marker to the latest message; repeat calls are no-ops."""
		conversation = await self._require_participant(conversation_id, user)
		marker = await self.repo.mark_read(user.id, conversation.id)
		obs_metrics.inc_read_marker()
		return ReadStateResponse(
			conversation_id=marker.conversation_id,
			last_read_seq=marker.last_read_seq,
			read_at=marker.read_at,
		)

	# --- Listings ---------------------------------------------------------

	async def _summaries(
		self,
		conversations: list[Conversation],
		user_id: str,
		*,
		organizer_view: bool,
	) -> list[ConversationSummary]:
		ids = [conversation.id for conversation in conversations]
		last = await self.repo.last_messages(ids)
		markers = await self.repo.read_markers(user_id, ids)
		summaries = []
		for conversation in conversations:
			if conversation.subject_name is None:
				conversation.subject_name = await self.access.subject_name(
					conversation.subject_type, conversation.subject_id
				)
			if organizer_view:
				label = conversation.member_name or "Member"
			else:
				fallback = "Group" if conversation.subject_type is SubjectType.GROUP else "Event"
				label = f"Organizers of {conversation.subject_name or fallback}"
			message = last.get(conversation.id)
			summaries.append(
				ConversationSummary(
					**ConversationResponse.from_model(conversation).model_dump(),
					label=label,
					member_name=conversation.member_name,
					last_message_preview=preview(message.content) if message else "",
					last_message_at=message.created_at if message else None,
					unread=is_unread(message, markers.get(conversation.id), user_id),
				)
			)
		return summaries

	async def list_conversations_for_user(self, user: AuthenticatedUser) -> list[ConversationSummary]:
		conversations = await self.repo.list_for_member(user.id)
		return await self._summaries(conversations, user.id, organizer_view=False)

	async def list_conversations_for_group(self, group_id: str, user: AuthenticatedUser) -> list[ConversationSummary]:
		if not await self.access.can_manage(SubjectType.GROUP, group_id, user.id):
			raise ForbiddenError()
		conversations = await self.repo.list_for_subjects(group_ids=[group_id], event_ids=[])
		return await self._summaries(conversations, user.id, organizer_view=True)

	async def list_conversations_for_event(self, event_id: str, user: AuthenticatedUser) -> list[ConversationSummary]:
		if not await self.access.can_manage(SubjectType.EVENT, event_id, user.id):
			raise ForbiddenError()
		conversations = await self.repo.list_for_subjects(group_ids=[], event_ids=[event_id])
		return await self._summaries(conversations, user.id, organizer_view=True)

	# --- Unread -----------------------------------------------------------

	async def get_unread_counts(self, user: AuthenticatedUser) -> UnreadCountsResponse:
		"""Unread tallies for the member inbox and every managed group and event."""
		group_ids, event_ids = await self.access.managed_subjects(user.id)
		as_member = await self.repo.list_for_member(user.id)
		as_organizer = await self.repo.list_for_subjects(group_ids=group_ids, event_ids=event_ids)
		member_ids = {conversation.id for conversation in as_member}
		by_id = {conversation.id: conversation for conversation in itertools.chain(as_member, as_organizer)}
		if not by_id:
			return UnreadCountsResponse()

		organizer_ids = {conversation.id for conversation in as_organizer}
		last = await self.repo.last_messages(by_id)
		markers = await self.repo.read_markers(user.id, by_id)
		counts = UnreadCountsResponse()
		for conversation_id, conversation in by_id.items():
			if not is_unread(last.get(conversation_id), markers.get(conversation_id), user.id):
				continue
			if conversation_id in member_ids:
				counts.messages_unread += 1
			if conversation_id not in organizer_ids:
				continue
			if conversation.group_id:
				counts.by_group[conversation.group_id] = counts.by_group.get(conversation.group_id, 0) + 1
			elif conversation.event_id:
				counts.by_event[conversation.event_id] = counts.by_event.get(conversation.event_id, 0) + 1
		counts.groups_unread = sum(counts.by_group.values())
		counts.events_unread = sum(counts.by_event.values())
		counts.total = counts.messages_unread + counts.groups_unread + counts.events_unread
		return counts


__all__ = ["MessengerService", "preview"]
