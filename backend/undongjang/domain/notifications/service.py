"""Organizer notifications: unread listing and one-way read marking."""

from __future__ import annotations

import logging

from undongjang.domain.exceptions import NotFoundError
from undongjang.domain.notifications import repo as repo_module
from undongjang.domain.notifications.schemas import NotificationReadResponse, NotificationResponse
from undongjang.infra.auth import AuthenticatedUser
from undongjang.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class NotificationsService:
	def __init__(self, *, repository: repo_module.NotificationsRepository | None = None) -> None:
		self.repo = repository or repo_module.NotificationsRepository()

	async def get_unread_notifications(self, user: AuthenticatedUser) -> list[NotificationResponse]:
		notifications = await self.repo.list_unread(user.id)
		return [
			NotificationResponse(
				id=item.id,
				type=item.type.value,
				group_id=item.group_id,
				group_name=item.group_name,
				related_id=item.related_id,
				created_at=item.created_at,
				read_at=item.read_at,
			)
			for item in notifications
		]

	async def mark_notification_read(self, notification_id: str, user: AuthenticatedUser) -> NotificationReadResponse:
		"""Mark read; a notification never returns to unread and repeat calls change nothing."""
		result = await self.repo.mark_read(notification_id, user.id)
		if result is None:
			obs_metrics.inc_notification_marked("missing")
			raise NotFoundError("notification_not_found")
		read_at, changed = result
		obs_metrics.inc_notification_marked("marked" if changed else "noop")
		if changed:
			_LOG.info("notifications.marked_read", extra={"notification_id": notification_id})
		return NotificationReadResponse(id=notification_id, read_at=read_at, changed=changed)


__all__ = ["NotificationsService"]
