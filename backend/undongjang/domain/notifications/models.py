"""Notification records shown to group organizers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class NotificationType(str, Enum):
	NEW_MEMBER_REQUEST = "new_member_request"
	OWNERSHIP_TRANSFER_REQUEST = "ownership_transfer_request"
	ADMIN_INVITE = "admin_invite"


@dataclass(slots=True)
class Notification:
	id: str
	user_id: str
	type: NotificationType
	group_id: str
	created_at: datetime
	related_id: Optional[str] = None
	read_at: Optional[datetime] = None
	group_name: Optional[str] = None

	@property
	def is_read(self) -> bool:
		return self.read_at is not None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Notification":
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			type=NotificationType(record["type"]),
			group_id=str(record["group_id"]),
			created_at=record["created_at"],
			related_id=str(record["related_id"]) if record.get("related_id") else None,
			read_at=record.get("read_at"),
			group_name=record.get("group_name"),
		)
