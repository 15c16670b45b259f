"""Who may speak for a group or event in its organizer conversations."""

from __future__ import annotations

from typing import Optional

from undongjang.domain.events.service import EventsService
from undongjang.domain.groups.service import GroupsService
from undongjang.domain.messenger.models import Conversation, SubjectType


class SubjectManagers:
	def __init__(self, *, groups: GroupsService | None = None, events: EventsService | None = None) -> None:
		self.groups = groups or GroupsService()
		self.events = events or EventsService(groups=self.groups)

	async def subject_name(self, subject_type: SubjectType, subject_id: str) -> Optional[str]:
		"""Display name of the subject, or None when it does not exist."""
		if subject_type is SubjectType.GROUP:
			group = await self.groups.repo.get_group(subject_id)
			return group.name if group else None
		event = await self.events.repo.get_event(subject_id)
		return event.title if event else None

	async def can_manage(self, subject_type: SubjectType, subject_id: str, user_id: str) -> bool:
		if subject_type is SubjectType.GROUP:
			return await self.groups.can_manage_group(subject_id, user_id)
		event = await self.events.repo.get_event(subject_id)
		if event is None:
			return False
		return await self.events.can_manage_event(event, user_id)

	async def is_participant(self, conversation: Conversation, user_id: str) -> bool:
		if conversation.member_user_id == user_id:
			return True
		return await self.can_manage(conversation.subject_type, conversation.subject_id, user_id)

	async def managed_subjects(self, user_id: str) -> tuple[list[str], list[str]]:
		"""Group ids and event ids the user organizes."""
		group_ids = await self.groups.managed_group_ids(user_id)
		event_ids = await self.events.managed_event_ids(user_id)
		return group_ids, event_ids
