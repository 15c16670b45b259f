"""Async repository helpers for groups."""

from __future__ import annotations

from typing import Optional

from undongjang.domain.groups.models import AdminInvite, Group, GroupMember, JoinRequest, OwnershipTransfer
from undongjang.infra.postgres import get_pool

_GROUP_COLUMNS = """
	g.id, g.name, g.description, g.location_city, g.cover_image_url, g.privacy,
	g.organizer_id, g.created_at, g.deleted_at,
	COALESCE(
		(SELECT array_agg(DISTINCT gm.user_id) FROM group_members gm WHERE gm.group_id = g.id),
		'{}'
	) AS member_ids
"""


class GroupsRepository:
	"""Thin data-access layer around asyncpg."""

	async def list_groups(self, *, limit: int, offset: int = 0) -> list[Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_GROUP_COLUMNS}
				FROM groups g
				WHERE g.deleted_at IS NULL
				ORDER BY g.created_at DESC
				LIMIT $1 OFFSET $2
				""",
				limit,
				offset,
			)
		return [Group.from_record(row) for row in rows]

	async def get_group(self, group_id: str) -> Optional[Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"SELECT {_GROUP_COLUMNS} FROM groups g WHERE g.id = $1 AND g.deleted_at IS NULL",
				group_id,
			)
		return Group.from_record(row) if row else None

	async def is_member(self, group_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT EXISTS(SELECT 1 FROM group_members WHERE group_id = $1 AND user_id = $2)
				    OR EXISTS(SELECT 1 FROM groups WHERE id = $1 AND organizer_id = $2)
				""",
				group_id,
				user_id,
			)
		return bool(value)

	async def is_admin(self, group_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT EXISTS(SELECT 1 FROM group_admins WHERE group_id = $1 AND user_id = $2)",
				group_id,
				user_id,
			)
		return bool(value)

	async def add_member(self, group_id: str, user_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO group_members (group_id, user_id)
				VALUES ($1, $2)
				ON CONFLICT (group_id, user_id) DO NOTHING
				RETURNING group_id
				""",
				group_id,
				user_id,
			)
		return row is not None

	async def create_join_request(self, group_id: str, user_id: str) -> bool:
		"""Open or reopen a pending request and notify the organizer.

		Returns False when a pending request already exists.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				WITH req AS (
					INSERT INTO group_join_requests (group_id, user_id, status)
					VALUES ($1, $2, 'pending')
					ON CONFLICT (group_id, user_id) DO UPDATE
					SET status = 'pending', created_at = NOW()
					WHERE group_join_requests.status <> 'pending'
					RETURNING id, group_id
				), note AS (
					INSERT INTO notifications (user_id, type, group_id, related_id)
					SELECT g.organizer_id, 'new_member_request', req.group_id, req.id
					FROM req JOIN groups g ON g.id = req.group_id
					WHERE g.organizer_id IS NOT NULL
					RETURNING id
				)
				SELECT id FROM req
				""",
				group_id,
				user_id,
			)
		return row is not None

	async def list_members(self, group_id: str) -> list[GroupMember]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT gm.id::text AS id, gm.user_id::text AS user_id, gm.joined_at,
				       u.full_name AS display_name
				FROM group_members gm
				LEFT JOIN users u ON u.id = gm.user_id
				WHERE gm.group_id = $1
				UNION ALL
				SELECT 'organizer-' || g.organizer_id::text, g.organizer_id::text, g.created_at,
				       u.full_name
				FROM groups g
				LEFT JOIN users u ON u.id = g.organizer_id
				WHERE g.id = $1
				  AND g.organizer_id IS NOT NULL
				  AND NOT EXISTS (
					SELECT 1 FROM group_members WHERE group_id = $1 AND user_id = g.organizer_id
				  )
				ORDER BY joined_at DESC
				""",
				group_id,
			)
		return [GroupMember.from_record(row) for row in rows]

	async def remove_member(self, group_id: str, user_id: str) -> bool:
		"""Drop the member row and any admin grant with it."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"DELETE FROM group_members WHERE group_id = $1 AND user_id = $2 RETURNING group_id",
					group_id,
					user_id,
				)
				await conn.execute(
					"DELETE FROM group_admins WHERE group_id = $1 AND user_id = $2",
					group_id,
					user_id,
				)
		return row is not None

	async def list_join_requests(self, group_id: str) -> list[JoinRequest]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT r.id, r.group_id, r.user_id, r.status, r.created_at,
				       u.full_name AS display_name
				FROM group_join_requests r
				LEFT JOIN users u ON u.id = r.user_id
				WHERE r.group_id = $1 AND r.status = 'pending'
				ORDER BY r.created_at DESC
				""",
				group_id,
			)
		return [JoinRequest.from_record(row) for row in rows]

	async def accept_join_request(self, group_id: str, request_id: str) -> Optional[JoinRequest]:
		"""Mark a pending request accepted and add its user as a member."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					UPDATE group_join_requests
					SET status = 'accepted'
					WHERE id = $1 AND group_id = $2 AND status = 'pending'
					RETURNING id, group_id, user_id, status, created_at
					""",
					request_id,
					group_id,
				)
				if row is None:
					return None
				await conn.execute(
					"""
					INSERT INTO group_members (group_id, user_id)
					VALUES ($1, $2)
					ON CONFLICT (group_id, user_id) DO NOTHING
					""",
					group_id,
					row["user_id"],
				)
		return JoinRequest.from_record(row)

	async def reject_join_request(self, group_id: str, request_id: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				UPDATE group_join_requests
				SET status = 'rejected'
				WHERE id = $1 AND group_id = $2 AND status = 'pending'
				RETURNING id
				""",
				request_id,
				group_id,
			)
		return row is not None

	async def upsert_ownership_transfer(self, group_id: str, from_user_id: str, to_user_id: str) -> OwnershipTransfer:
		"""One open transfer per group; a new one replaces it and notifies the recipient."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				WITH req AS (
					INSERT INTO group_ownership_transfer_requests (group_id, from_user_id, to_user_id)
					VALUES ($1, $2, $3)
					ON CONFLICT (group_id) DO UPDATE
					SET from_user_id = EXCLUDED.from_user_id,
					    to_user_id = EXCLUDED.to_user_id,
					    created_at = NOW()
					RETURNING id, group_id, from_user_id, to_user_id, created_at
				), note AS (
					INSERT INTO notifications (user_id, type, group_id, related_id)
					SELECT req.to_user_id, 'ownership_transfer_request', req.group_id, req.id FROM req
					RETURNING id
				)
				SELECT * FROM req
				""",
				group_id,
				from_user_id,
				to_user_id,
			)
		return OwnershipTransfer.from_record(row)

	async def accept_ownership_transfer(self, transfer_id: str, user_id: str) -> Optional[OwnershipTransfer]:
		"""Hand the group to the recipient; the previous owner stays on as a member."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					DELETE FROM group_ownership_transfer_requests
					WHERE id = $1 AND to_user_id = $2
					RETURNING id, group_id, from_user_id, to_user_id, created_at
					""",
					transfer_id,
					user_id,
				)
				if row is None:
					return None
				await conn.execute(
					"UPDATE groups SET organizer_id = $2 WHERE id = $1",
					row["group_id"],
					row["to_user_id"],
				)
				await conn.execute(
					"""
					INSERT INTO group_members (group_id, user_id)
					VALUES ($1, $2), ($1, $3)
					ON CONFLICT (group_id, user_id) DO NOTHING
					""",
					row["group_id"],
					row["from_user_id"],
					row["to_user_id"],
				)
		return OwnershipTransfer.from_record(row)

	async def decline_ownership_transfer(self, transfer_id: str, user_id: str) -> Optional[str]:
		"""Either side may withdraw; returns the group id when a row went away."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				DELETE FROM group_ownership_transfer_requests
				WHERE id = $1 AND (from_user_id = $2 OR to_user_id = $2)
				RETURNING group_id
				""",
				transfer_id,
				user_id,
			)
		return str(value) if value is not None else None

	async def list_pending_transfers(self, user_id: str) -> list[OwnershipTransfer]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT t.id, t.group_id, t.from_user_id, t.to_user_id, t.created_at,
				       g.name AS group_name, u.full_name AS from_name
				FROM group_ownership_transfer_requests t
				LEFT JOIN groups g ON g.id = t.group_id
				LEFT JOIN users u ON u.id = t.from_user_id
				WHERE t.to_user_id = $1
				ORDER BY t.created_at DESC
				""",
				user_id,
			)
		return [OwnershipTransfer.from_record(row) for row in rows]

	async def create_admin_invite(self, group_id: str, user_id: str, invited_by: str) -> Optional[AdminInvite]:
		"""Returns None when the user already holds an invite for the group."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				WITH inv AS (
					INSERT INTO group_admin_invites (group_id, user_id, invited_by)
					VALUES ($1, $2, $3)
					ON CONFLICT DO NOTHING
					RETURNING id, group_id, user_id, invited_by, created_at
				), note AS (
					INSERT INTO notifications (user_id, type, group_id, related_id)
					SELECT inv.user_id, 'admin_invite', inv.group_id, inv.id FROM inv
					RETURNING id
				)
				SELECT * FROM inv
				""",
				group_id,
				user_id,
				invited_by,
			)
		return AdminInvite.from_record(row) if row else None

	async def accept_admin_invite(self, invite_id: str, user_id: str) -> Optional[AdminInvite]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					"""
					DELETE FROM group_admin_invites
					WHERE id = $1 AND user_id = $2
					RETURNING id, group_id, user_id, invited_by, created_at
					""",
					invite_id,
					user_id,
				)
				if row is None:
					return None
				await conn.execute(
					"""
					INSERT INTO group_admins (group_id, user_id)
					VALUES ($1, $2)
					ON CONFLICT (group_id, user_id) DO NOTHING
					""",
					row["group_id"],
					row["user_id"],
				)
		return AdminInvite.from_record(row)

	async def decline_admin_invite(self, invite_id: str, user_id: str) -> Optional[str]:
		"""The invitee or the inviter may drop an invite."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				DELETE FROM group_admin_invites
				WHERE id = $1 AND (user_id = $2 OR invited_by = $2)
				RETURNING group_id
				""",
				invite_id,
				user_id,
			)
		return str(value) if value is not None else None

	async def list_pending_admin_invites(self, user_id: str) -> list[AdminInvite]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT i.id, i.group_id, i.user_id, i.invited_by, i.created_at,
				       g.name AS group_name, u.full_name AS invited_by_name
				FROM group_admin_invites i
				LEFT JOIN groups g ON g.id = i.group_id
				LEFT JOIN users u ON u.id = i.invited_by
				WHERE i.user_id = $1
				ORDER BY i.created_at DESC
				""",
				user_id,
			)
		return [AdminInvite.from_record(row) for row in rows]

	async def list_groups_for_user(self, user_id: str) -> list[Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_GROUP_COLUMNS}
				FROM groups g
				WHERE g.deleted_at IS NULL
				  AND (
					g.organizer_id = $1
					OR EXISTS(SELECT 1 FROM group_members gm WHERE gm.group_id = g.id AND gm.user_id = $1)
				  )
				ORDER BY g.created_at DESC
				""",
				user_id,
			)
		return [Group.from_record(row) for row in rows]

	async def list_managed_group_ids(self, user_id: str) -> list[str]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id FROM groups WHERE organizer_id = $1 AND deleted_at IS NULL
				UNION
				SELECT group_id FROM group_admins WHERE user_id = $1
				""",
				user_id,
			)
		return [str(row["id"]) for row in rows]
