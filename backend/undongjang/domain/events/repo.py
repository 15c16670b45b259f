"""Async repository helpers for events and attendance."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import asyncpg

from undongjang.domain.events.models import Attendee, Event
from undongjang.domain.exceptions import ConflictError, NotFoundError
from undongjang.infra.postgres import get_pool

_EVENT_SELECT = """
	SELECT e.*, g.name AS host_group_name
	FROM events e
	LEFT JOIN groups g ON g.id = e.host_group_id
"""

_UPDATABLE_COLUMNS = (
	"title",
	"description",
	"event_type",
	"privacy",
	"start_time",
	"end_time",
	"recurrence_interval",
	"recurrence_time",
	"recurrence_weekday",
	"recurrence_week_of_month",
	"recurrence_start_date",
	"address",
	"location_name",
	"meeting_url",
	"attendee_limit",
	"host_group_id",
	"banner_image_url",
)


class EventsRepository:
	"""Thin data-access layer around asyncpg."""

	async def create_event(self, values: dict[str, Any]) -> Event:
		columns = [column for column in _UPDATABLE_COLUMNS if column in values] + ["created_by"]
		placeholders = ", ".join(f"${idx}" for idx in range(1, len(columns) + 1))
		params = [values.get(column) for column in columns]
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				event_id = await conn.fetchval(
					f"INSERT INTO events ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
					*params,
				)
				record = await conn.fetchrow(f"{_EVENT_SELECT} WHERE e.id = $1", event_id)
		return Event.from_record(record)

	async def get_event(
		self,
		event_id: str,
		*,
		conn: asyncpg.Connection | None = None,
		for_update: bool = False,
	) -> Optional[Event]:
		query = f"{_EVENT_SELECT} WHERE e.id = $1"
		if for_update:
			query += " FOR UPDATE OF e"

		async def _fetch(connection: asyncpg.Connection) -> Optional[Event]:
			record = await connection.fetchrow(query, event_id)
			return Event.from_record(record) if record else None

		if conn is not None:
			return await _fetch(conn)
		pool = await get_pool()
		async with pool.acquire() as pooled_conn:
			return await _fetch(pooled_conn)

	async def list_upcoming_events(
		self,
		*,
		now: datetime,
		limit: int,
		host_group_id: Optional[str] = None,
	) -> list[Event]:
		params: list[object] = [now, limit]
		where = ["e.cancelled_at IS NULL", "(e.start_time >= $1 OR e.recurrence_interval IS NOT NULL)", "e.privacy <> 'exclusive'"]
		if host_group_id:
			params.append(host_group_id)
			where.append(f"e.host_group_id = ${len(params)}")
		query = f"{_EVENT_SELECT} WHERE {' AND '.join(where)} ORDER BY e.start_time ASC LIMIT $2"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [Event.from_record(row) for row in rows]

	async def update_event(self, event_id: str, values: dict[str, Any]) -> Event:
		columns = [column for column in _UPDATABLE_COLUMNS if column in values]
		if not columns:
			existing = await self.get_event(event_id)
			if existing is None:
				raise NotFoundError("event_not_found")
			return existing
		assignments = ", ".join(f"{column} = ${idx}" for idx, column in enumerate(columns, start=2))
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				updated = await conn.fetchval(
					f"UPDATE events SET {assignments}, updated_at = NOW() WHERE id = $1 RETURNING id",
					event_id,
					*[values[column] for column in columns],
				)
				if updated is None:
					raise NotFoundError("event_not_found")
				record = await conn.fetchrow(f"{_EVENT_SELECT} WHERE e.id = $1", event_id)
		return Event.from_record(record)

	async def cancel_event(self, event_id: str) -> Event:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				updated = await conn.fetchval(
					"UPDATE events SET cancelled_at = COALESCE(cancelled_at, NOW()) WHERE id = $1 RETURNING id",
					event_id,
				)
				if updated is None:
					raise NotFoundError("event_not_found")
				record = await conn.fetchrow(f"{_EVENT_SELECT} WHERE e.id = $1", event_id)
		return Event.from_record(record)

	async def is_event_admin(self, event_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT EXISTS(SELECT 1 FROM event_admins WHERE event_id = $1 AND user_id = $2)",
				event_id,
				user_id,
			)
		return bool(value)

	async def list_managed_event_ids(self, user_id: str) -> list[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id FROM events WHERE created_by = $1
				UNION
				SELECT event_id FROM event_admins WHERE user_id = $1
				""",
				user_id,
			)
		return [str(row["id"]) for row in rows]

	async def list_attendees(self, event_id: str) -> list[Attendee]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT a.user_id, a.joined_at, a.occurrence_start_time,
				       u.full_name AS display_name, u.avatar_url
				FROM event_attendees a
				LEFT JOIN users u ON u.id = a.user_id
				WHERE a.event_id = $1
				ORDER BY a.joined_at ASC
				""",
				event_id,
			)
		return [Attendee.from_record(row) for row in rows]

	async def add_attendee(
		self,
		event_id: str,
		user_id: str,
		*,
		occurrence_start_at: Optional[datetime],
		attendee_limit: Optional[int],
	) -> int:
		"""Insert or update an RSVP inside the event's row lock; returns the attendee count."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				locked = await conn.fetchval("SELECT id FROM events WHERE id = $1 FOR UPDATE", event_id)
				if locked is None:
					raise NotFoundError("event_not_found")
				existing = await conn.fetchval(
					"SELECT 1 FROM event_attendees WHERE event_id = $1 AND user_id = $2",
					event_id,
					user_id,
				)
				count = await conn.fetchval("SELECT COUNT(*) FROM event_attendees WHERE event_id = $1", event_id)
				if existing is None and attendee_limit is not None and count >= attendee_limit:
					raise ConflictError("event_full")
				await conn.execute(
					"""
					INSERT INTO event_attendees (event_id, user_id, occurrence_start_time)
					VALUES ($1, $2, $3)
					ON CONFLICT (event_id, user_id)
					DO UPDATE SET occurrence_start_time = EXCLUDED.occurrence_start_time
					""",
					event_id,
					user_id,
					occurrence_start_at,
				)
		return int(count) + (0 if existing is not None else 1)

	async def remove_attendee(self, event_id: str, user_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"DELETE FROM event_attendees WHERE event_id = $1 AND user_id = $2",
				event_id,
				user_id,
			)
			count = await conn.fetchval("SELECT COUNT(*) FROM event_attendees WHERE event_id = $1", event_id)
		return int(count)

	async def add_photo(self, event_id: str, *, url: str, uploaded_by: str) -> dict[str, Any]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO event_photos (event_id, image_url, uploaded_by)
				VALUES ($1, $2, $3)
				RETURNING id, event_id, image_url, created_at
				""",
				event_id,
				url,
				uploaded_by,
			)
		return dict(row)
