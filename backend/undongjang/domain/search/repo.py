"""Pattern-match queries behind the search endpoints.

Patterns arrive already escaped; every ILIKE declares ``\\`` as its escape
character so escaped metacharacters match literally.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from undongjang.infra.postgres import get_pool

_EVENT_MATCH = "(e.title ILIKE $1 ESCAPE '\\' OR e.address ILIKE $1 ESCAPE '\\' OR e.location_name ILIKE $1 ESCAPE '\\')"
_GROUP_MATCH = "(g.name ILIKE $1 ESCAPE '\\' OR g.description ILIKE $1 ESCAPE '\\' OR g.location_city ILIKE $1 ESCAPE '\\')"
_GROUP_SUGGEST_MATCH = "(g.name ILIKE $1 ESCAPE '\\' OR g.location_city ILIKE $1 ESCAPE '\\')"
_SEARCHABLE_PRIVACY = ["public", "private"]


class SearchRepository:
	async def search_events(
		self,
		pattern: str,
		*,
		now: datetime,
		limit: int,
		restrict_privacy: bool = True,
	) -> list[dict[str, Any]]:
		params: list[Any] = [pattern, now]
		where = [_EVENT_MATCH, "e.start_time >= $2", "e.cancelled_at IS NULL"]
		if restrict_privacy:
			params.append(_SEARCHABLE_PRIVACY)
			where.append(f"e.privacy = ANY(${len(params)}::text[])")
		params.append(limit)
		query = f"""
			SELECT e.id, e.title, e.start_time, e.end_time, e.event_type, e.banner_image_url,
			       e.address, e.location_name
			FROM events e
			WHERE {' AND '.join(where)}
			ORDER BY e.start_time ASC
			LIMIT ${len(params)}
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [dict(row) for row in rows]

	async def search_groups(self, pattern: str, *, limit: int, suggest: bool = False) -> list[dict[str, Any]]:
		match = _GROUP_SUGGEST_MATCH if suggest else _GROUP_MATCH
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT g.id, g.name, g.description, g.cover_image_url, g.location_city, g.privacy,
				       g.organizer_id
				FROM groups g
				WHERE g.deleted_at IS NULL AND {match}
				ORDER BY g.created_at DESC
				LIMIT $2
				""",
				pattern,
				limit,
			)
		return [dict(row) for row in rows]

	async def member_ids_by_group(self, group_ids: list[str]) -> dict[str, set[str]]:
		if not group_ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT group_id, user_id FROM group_members WHERE group_id = ANY($1::uuid[])",
				group_ids,
			)
		members: dict[str, set[str]] = {group_id: set() for group_id in group_ids}
		for row in rows:
			members.setdefault(str(row["group_id"]), set()).add(str(row["user_id"]))
		return members
