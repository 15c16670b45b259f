"""Async repository helpers for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from undongjang.domain.notifications.models import Notification
from undongjang.infra.postgres import get_pool


class NotificationsRepository:
	async def list_unread(self, user_id: str) -> list[Notification]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT n.id, n.user_id, n.type, n.group_id, n.related_id, n.read_at, n.created_at,
				       g.name AS group_name
				FROM notifications n
				LEFT JOIN groups g ON g.id = n.group_id
				WHERE n.user_id = $1 AND n.read_at IS NULL
				ORDER BY n.created_at DESC
				""",
				user_id,
			)
		return [Notification.from_record(row) for row in rows]

	async def mark_read(self, notification_id: str, user_id: str) -> Optional[tuple[datetime, bool]]:
		"""Set ``read_at`` once; returns the stored value and whether this call set it."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				UPDATE notifications n
				SET read_at = COALESCE(n.read_at, NOW())
				FROM (
					SELECT id, read_at AS previous
					FROM notifications
					WHERE id = $1 AND user_id = $2
					FOR UPDATE
				) p
				WHERE n.id = p.id
				RETURNING n.read_at, p.previous IS NULL AS changed
				""",
				notification_id,
				user_id,
			)
		if row is None:
			return None
		return row["read_at"], bool(row["changed"])
