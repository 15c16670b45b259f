"""Persistence for conversations, messages and read markers.

Backed by asyncpg. The in-memory store keeps the same ordering guarantees
and serves injected test setups and dev runs without a database.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import ulid

from undongjang.domain.exceptions import BackendUnavailableError, NotFoundError
from undongjang.domain.messenger.models import Conversation, Message, ReadMarker
from undongjang.infra.postgres import pool_or_none
from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

_CONVERSATION_SELECT = """
	SELECT c.id, c.member_user_id, c.group_id, c.event_id, c.last_seq, c.created_at, c.updated_at,
	       COALESCE(g.name, e.title) AS subject_name,
	       u.full_name AS member_name
	FROM conversations c
	LEFT JOIN groups g ON g.id = c.group_id
	LEFT JOIN events e ON e.id = c.event_id
	LEFT JOIN users u ON u.id = c.member_user_id
"""

_MESSAGE_SELECT = """
	SELECT m.id, m.conversation_id, m.seq, m.sender_id, m.content, m.created_at,
	       u.full_name AS sender_name
	FROM messages m
	LEFT JOIN users u ON u.id = m.sender_id
"""


class InMemoryMessengerStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._conversations: dict[str, Conversation] = {}
		self._messages: dict[str, list[Message]] = {}
		self._reads: dict[tuple[str, str], ReadMarker] = {}
		self._ids = itertools.count(1)

	async def get_or_create_conversation(
		self,
		*,
		member_user_id: str,
		group_id: Optional[str],
		event_id: Optional[str],
	) -> tuple[Conversation, bool]:
		async with self._lock:
			for conversation in self._conversations.values():
				if (
					conversation.member_user_id == member_user_id
					and conversation.group_id == group_id
					and conversation.event_id == event_id
				):
					return conversation, False
			now = datetime.now(timezone.utc)
			conversation = Conversation(
				id=str(ulid.new()),
				member_user_id=member_user_id,
				group_id=group_id,
				event_id=event_id,
				created_at=now,
				updated_at=now,
			)
			self._conversations[conversation.id] = conversation
			self._messages[conversation.id] = []
			return conversation, True

	async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
		async with self._lock:
			return self._conversations.get(conversation_id)

	async def append_message(self, conversation_id: str, *, sender_id: str, content: str) -> Message:
		async with self._lock:
			conversation = self._conversations.get(conversation_id)
			if conversation is None:
				raise NotFoundError("conversation_not_found")
			messages = self._messages[conversation_id]
			created_at = datetime.now(timezone.utc)
			if messages and created_at <= messages[-1].created_at:
				created_at = messages[-1].created_at + timedelta(microseconds=1)
			conversation.last_seq += 1
			conversation.updated_at = created_at
			message = Message(
				id=str(ulid.new()),
				conversation_id=conversation_id,
				seq=conversation.last_seq,
				sender_id=sender_id,
				content=content,
				created_at=created_at,
			)
			messages.append(message)
			return message

	async def list_messages(self, conversation_id: str, *, before_seq: Optional[int], limit: int) -> list[Message]:
		async with self._lock:
			messages = self._messages.get(conversation_id, [])
			if before_seq is not None:
				messages = [message for message in messages if message.seq < before_seq]
			return list(reversed(messages))[:limit]

	async def mark_read(self, user_id: str, conversation_id: str) -> ReadMarker:
		async with self._lock:
			conversation = self._conversations.get(conversation_id)
			if conversation is None:
				raise NotFoundError("conversation_not_found")
			key = (user_id, conversation_id)
			existing = self._reads.get(key)
			if existing is not None and existing.last_read_seq >= conversation.last_seq:
				return existing
			marker = ReadMarker(
				user_id=user_id,
				conversation_id=conversation_id,
				last_read_seq=conversation.last_seq,
				read_at=datetime.now(timezone.utc),
			)
			self._reads[key] = marker
			return marker

	async def list_for_member(self, user_id: str) -> list[Conversation]:
		async with self._lock:
			found = [c for c in self._conversations.values() if c.member_user_id == user_id]
		return sorted(found, key=lambda c: c.updated_at or c.created_at, reverse=True)

	async def list_for_subjects(self, *, group_ids: Iterable[str], event_ids: Iterable[str]) -> list[Conversation]:
		groups, events = set(group_ids), set(event_ids)
		async with self._lock:
			found = [
				c
				for c in self._conversations.values()
				if (c.group_id and c.group_id in groups) or (c.event_id and c.event_id in events)
			]
		return sorted(found, key=lambda c: c.updated_at or c.created_at, reverse=True)

	async def last_messages(self, conversation_ids: Iterable[str]) -> dict[str, Message]:
		async with self._lock:
			return {
				cid: self._messages[cid][-1]
				for cid in conversation_ids
				if self._messages.get(cid)
			}

	async def read_markers(self, user_id: str, conversation_ids: Iterable[str]) -> dict[str, ReadMarker]:
		async with self._lock:
			return {
				cid: self._reads[(user_id, cid)]
				for cid in conversation_ids
				if (user_id, cid) in self._reads
			}


_MEMORY_STORE = InMemoryMessengerStore()


class MessengerRepository:
	"""Repository backed by asyncpg.

	An injected ``memory_store`` replaces the database entirely. Without one,
	the process-local store is used only in dev when Postgres is unreachable;
	elsewhere that raises ``BackendUnavailableError``.
	"""

	def __init__(self, *, memory_store: InMemoryMessengerStore | None = None) -> None:
		self._injected = memory_store is not None
		self._memory = memory_store or _MEMORY_STORE
		self._pool = None

	async def _pool_or_none(self):
		if self._injected:
			return None
		if self._pool is not None:
			return self._pool
		pool = await pool_or_none()
		if pool is not None:
			self._pool = pool
			return pool
		if settings.is_dev():
			_LOG.warning("messenger.repo.memory_fallback")
			return None
		raise BackendUnavailableError()

	async def get_or_create_conversation(
		self,
		*,
		member_user_id: str,
		group_id: Optional[str] = None,
		event_id: Optional[str] = None,
	) -> tuple[Conversation, bool]:
		"""Idempotent under concurrent callers: the unique key decides the winner."""
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get_or_create_conversation(
				member_user_id=member_user_id,
				group_id=group_id,
				event_id=event_id,
			)
		subject_column = "group_id" if group_id else "event_id"
		subject_id = group_id or event_id
		async with pool.acquire() as conn:
			inserted = await conn.fetchval(
				f"""
				INSERT INTO conversations (member_user_id, {subject_column})
				VALUES ($1, $2)
				ON CONFLICT (member_user_id, {subject_column}) WHERE {subject_column} IS NOT NULL
				DO NOTHING
				RETURNING id
				""",
				member_user_id,
				subject_id,
			)
			row = await conn.fetchrow(
				f"{_CONVERSATION_SELECT} WHERE c.member_user_id = $1 AND c.{subject_column} = $2",
				member_user_id,
				subject_id,
			)
		return Conversation.from_record(row), inserted is not None

	async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get_conversation(conversation_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"{_CONVERSATION_SELECT} WHERE c.id = $1", conversation_id)
		return Conversation.from_record(row) if row else None

	async def append_message(self, conversation_id: str, *, sender_id: str, content: str) -> Message:
		"""Append under the conversation row lock so sequence order equals commit order."""
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.append_message(conversation_id, sender_id=sender_id, content=content)
		async with pool.acquire() as conn:
			async with conn.transaction():
				seq = await conn.fetchval(
					"""
					UPDATE conversations
					SET last_seq = last_seq + 1, updated_at = clock_timestamp()
					WHERE id = $1
					RETURNING last_seq
					""",
					conversation_id,
				)
				if seq is None:
					raise NotFoundError("conversation_not_found")
				row = await conn.fetchrow(
					"""
					INSERT INTO messages (conversation_id, seq, sender_id, content, created_at)
					VALUES ($1, $2, $3, $4, clock_timestamp())
					RETURNING id, conversation_id, seq, sender_id, content, created_at
					""",
					conversation_id,
					seq,
					sender_id,
					content,
				)
		return Message.from_record(row)

	async def list_messages(self, conversation_id: str, *, before_seq: Optional[int], limit: int) -> list[Message]:
		"""Newest first, strictly older than ``before_seq`` when given."""
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_messages(conversation_id, before_seq=before_seq, limit=limit)
		params: list[object] = [conversation_id]
		where = "m.conversation_id = $1"
		if before_seq is not None:
			params.append(before_seq)
			where += " AND m.seq < $2"
		params.append(limit)
		query = f"{_MESSAGE_SELECT} WHERE {where} ORDER BY m.seq DESC LIMIT ${len(params)}"
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [Message.from_record(row) for row in rows]

	async def mark_read(self, user_id: str, conversation_id: str) -> ReadMarker:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.mark_read(user_id, conversation_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO conversation_reads (user_id, conversation_id, last_read_seq, read_at)
				SELECT $1, c.id, c.last_seq, NOW() FROM conversations c WHERE c.id = $2
				ON CONFLICT (user_id, conversation_id) DO UPDATE SET
					read_at = CASE
						WHEN EXCLUDED.last_read_seq > conversation_reads.last_read_seq THEN EXCLUDED.read_at
						ELSE conversation_reads.read_at
					END,
					last_read_seq = GREATEST(conversation_reads.last_read_seq, EXCLUDED.last_read_seq)
				RETURNING user_id, conversation_id, last_read_seq, read_at
				""",
				user_id,
				conversation_id,
			)
		if row is None:
			raise NotFoundError("conversation_not_found")
		return ReadMarker(
			user_id=str(row["user_id"]),
			conversation_id=str(row["conversation_id"]),
			last_read_seq=int(row["last_read_seq"]),
			read_at=row["read_at"],
		)

	async def list_for_member(self, user_id: str) -> list[Conversation]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_for_member(user_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"{_CONVERSATION_SELECT} WHERE c.member_user_id = $1 ORDER BY c.updated_at DESC",
				user_id,
			)
		return [Conversation.from_record(row) for row in rows]

	async def list_for_subjects(self, *, group_ids: Iterable[str], event_ids: Iterable[str]) -> list[Conversation]:
		groups, events = list(group_ids), list(event_ids)
		if not groups and not events:
			return []
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_for_subjects(group_ids=groups, event_ids=events)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				{_CONVERSATION_SELECT}
				WHERE c.group_id = ANY($1::uuid[]) OR c.event_id = ANY($2::uuid[])
				ORDER BY c.updated_at DESC
				""",
				groups,
				events,
			)
		return [Conversation.from_record(row) for row in rows]

	async def last_messages(self, conversation_ids: Iterable[str]) -> dict[str, Message]:
		ids = list(conversation_ids)
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.last_messages(ids)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT DISTINCT ON (m.conversation_id)
				       m.id, m.conversation_id, m.seq, m.sender_id, m.content, m.created_at
				FROM messages m
				WHERE m.conversation_id = ANY($1::uuid[])
				ORDER BY m.conversation_id, m.seq DESC
				""",
				ids,
			)
		return {str(row["conversation_id"]): Message.from_record(row) for row in rows}

	async def read_markers(self, user_id: str, conversation_ids: Iterable[str]) -> dict[str, ReadMarker]:
		ids = list(conversation_ids)
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.read_markers(user_id, ids)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT user_id, conversation_id, last_read_seq, read_at
				FROM conversation_reads
				WHERE user_id = $1 AND conversation_id = ANY($2::uuid[])
				""",
				user_id,
				ids,
			)
		return {
			str(row["conversation_id"]): ReadMarker(
				user_id=str(row["user_id"]),
				conversation_id=str(row["conversation_id"]),
				last_read_seq=int(row["last_read_seq"]),
				read_at=row["read_at"],
			)
			for row in rows
		}
