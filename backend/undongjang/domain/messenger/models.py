"""Domain models for member-organizer conversations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from undongjang.api.pagination import InvalidCursor, decode_cursor, encode_cursor


class SubjectType(str, Enum):
	GROUP = "group"
	EVENT = "event"


@dataclass(slots=True)
class Conversation:
	"""A thread between one member and the organizers of a group or event."""

	id: str
	member_user_id: str
	group_id: Optional[str] = None
	event_id: Optional[str] = None
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None
	last_seq: int = 0
	subject_name: Optional[str] = None
	member_name: Optional[str] = None

	@property
	def subject_type(self) -> SubjectType:
		return SubjectType.GROUP if self.group_id else SubjectType.EVENT

	@property
	def subject_id(self) -> str:
		return str(self.group_id or self.event_id)

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Conversation":
		return cls(
			id=str(record["id"]),
			member_user_id=str(record["member_user_id"]),
			group_id=str(record["group_id"]) if record.get("group_id") else None,
			event_id=str(record["event_id"]) if record.get("event_id") else None,
			created_at=record.get("created_at"),
			updated_at=record.get("updated_at"),
			last_seq=int(record.get("last_seq") or 0),
			subject_name=record.get("subject_name"),
			member_name=record.get("member_name"),
		)


@dataclass(slots=True)
class Message:
	id: str
	conversation_id: str
	seq: int
	sender_id: str
	content: str
	created_at: datetime
	sender_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Message":
		return cls(
			id=str(record["id"]),
			conversation_id=str(record["conversation_id"]),
			seq=int(record["seq"]),
			sender_id=str(record["sender_id"]),
			content=record["content"],
			created_at=record["created_at"],
			sender_name=record.get("sender_name"),
		)


@dataclass(slots=True)
class ReadMarker:
	user_id: str
	conversation_id: str
	last_read_seq: int
	read_at: Optional[datetime] = None


@dataclass(slots=True)
class ConversationCursor:
	"""Position just past the oldest message of a page; older messages follow."""

	conversation_id: str
	seq: int

	def encode(self) -> str:
		return encode_cursor({"c": self.conversation_id, "s": self.seq})

	@classmethod
	def decode(cls, value: str, *, conversation_id: str) -> "ConversationCursor":
		data = decode_cursor(value)
		seq = data.get("s")
		if data.get("c") != conversation_id or not isinstance(seq, int) or seq < 1:
			raise InvalidCursor("invalid_cursor")
		return cls(conversation_id=conversation_id, seq=seq)


def is_unread(last: Optional[Message], marker: Optional[ReadMarker], user_id: str) -> bool:
	"""Another participant spoke last and the user has not read up to it."""
	if last is None or last.sender_id == user_id:
		return False
	read_seq = marker.last_read_seq if marker else 0
	return last.seq > read_seq
