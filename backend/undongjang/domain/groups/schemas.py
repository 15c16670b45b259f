"""Pydantic schemas for the groups API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GroupResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	description: Optional[str] = None
	location_city: Optional[str] = None
	cover_image_url: Optional[str] = None
	privacy: str
	organizer_id: Optional[str] = None
	member_count: int
	created_at: Optional[datetime] = None


class GroupDetailResponse(GroupResponse):
	is_member: bool = False
	can_manage: bool = False


class JoinGroupResponse(BaseModel):
	group_id: str
	status: Literal["joined", "requested", "already_member"]


class GroupMemberResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	user_id: str
	display_name: Optional[str] = None
	joined_at: Optional[datetime] = None
	is_organizer: bool = False


class JoinRequestResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	group_id: str
	user_id: str
	display_name: Optional[str] = None
	status: str
	created_at: Optional[datetime] = None


class OwnershipTransferCreateRequest(BaseModel):
	to_user_id: str = Field(min_length=1)


class OwnershipTransferResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	group_id: str
	group_name: str = "Group"
	from_user_id: str
	from_name: Optional[str] = None
	to_user_id: str
	created_at: Optional[datetime] = None


class AdminInviteCreateRequest(BaseModel):
	user_id: str = Field(min_length=1)


class AdminInviteResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	group_id: str
	group_name: str = "Group"
	user_id: str
	invited_by: str
	invited_by_name: Optional[str] = None
	created_at: Optional[datetime] = None


class GroupActionResponse(BaseModel):
	group_id: str
	status: Literal["accepted", "rejected", "declined", "removed", "requested", "invited"]
