"""Domain models for groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional


def count_members(member_ids: Iterable[str], organizer_id: Optional[str]) -> int:
	"""Distinct members, counting the organizer once even when not a member row."""
	distinct = {str(member_id) for member_id in member_ids}
	if organizer_id and str(organizer_id) not in distinct:
		return len(distinct) + 1
	return len(distinct)


@dataclass(slots=True)
class Group:
	id: str
	name: str
	organizer_id: Optional[str]
	description: Optional[str] = None
	location_city: Optional[str] = None
	cover_image_url: Optional[str] = None
	privacy: str = "public"
	created_at: Optional[datetime] = None
	deleted_at: Optional[datetime] = None
	member_ids: tuple[str, ...] = field(default_factory=tuple)

	@property
	def is_private(self) -> bool:
		return self.privacy == "private"

	@property
	def member_count(self) -> int:
		return count_members(self.member_ids, self.organizer_id)

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Group":
		member_ids = record.get("member_ids") or ()
		return cls(
			id=str(record["id"]),
			name=record["name"],
			organizer_id=str(record["organizer_id"]) if record.get("organizer_id") else None,
			description=record.get("description"),
			location_city=record.get("location_city"),
			cover_image_url=record.get("cover_image_url"),
			privacy=record.get("privacy") or "public",
			created_at=record.get("created_at"),
			deleted_at=record.get("deleted_at"),
			member_ids=tuple(str(member_id) for member_id in member_ids),
		)


@dataclass(slots=True)
class GroupMember:
	id: str
	user_id: str
	joined_at: Optional[datetime] = None
	display_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "GroupMember":
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			joined_at=record.get("joined_at"),
			display_name=record.get("display_name"),
		)


def order_members(group: Group, members: Iterable[GroupMember]) -> list[GroupMember]:
	"""Organizer first, then members newest first.

	An organizer without a member row is listed under a synthetic row that
	carries the group's creation time.
	"""
	rows = sorted(
		members,
		key=lambda member: member.joined_at.timestamp() if member.joined_at else 0.0,
		reverse=True,
	)
	if not group.organizer_id:
		return rows
	organizer = next((member for member in rows if member.user_id == group.organizer_id), None)
	if organizer is None:
		organizer = GroupMember(
			id=f"organizer-{group.organizer_id}",
			user_id=group.organizer_id,
			joined_at=group.created_at,
		)
	return [organizer] + [member for member in rows if member.user_id != group.organizer_id]


@dataclass(slots=True)
class JoinRequest:
	id: str
	group_id: str
	user_id: str
	status: str = "pending"
	created_at: Optional[datetime] = None
	display_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "JoinRequest":
		return cls(
			id=str(record["id"]),
			group_id=str(record["group_id"]),
			user_id=str(record["user_id"]),
			status=record.get("status") or "pending",
			created_at=record.get("created_at"),
			display_name=record.get("display_name"),
		)


@dataclass(slots=True)
class OwnershipTransfer:
	id: str
	group_id: str
	from_user_id: str
	to_user_id: str
	created_at: Optional[datetime] = None
	group_name: Optional[str] = None
	from_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "OwnershipTransfer":
		return cls(
			id=str(record["id"]),
			group_id=str(record["group_id"]),
			from_user_id=str(record["from_user_id"]),
			to_user_id=str(record["to_user_id"]),
			created_at=record.get("created_at"),
			group_name=record.get("group_name"),
			from_name=record.get("from_name"),
		)


@dataclass(slots=True)
class AdminInvite:
	id: str
	group_id: str
	user_id: str
	invited_by: str
	created_at: Optional[datetime] = None
	group_name: Optional[str] = None
	invited_by_name: Optional[str] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "AdminInvite":
		return cls(
			id=str(record["id"]),
			group_id=str(record["group_id"]),
			user_id=str(record["user_id"]),
			invited_by=str(record["invited_by"]),
			created_at=record.get("created_at"),
			group_name=record.get("group_name"),
			invited_by_name=record.get("invited_by_name"),
		)
