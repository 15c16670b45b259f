"""Group browsing, membership and administration."""

from __future__ import annotations

import logging
from typing import Optional

from undongjang.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from undongjang.domain.groups import repo as repo_module
from undongjang.domain.groups.models import AdminInvite, Group, OwnershipTransfer, order_members
from undongjang.domain.groups.schemas import (
	AdminInviteResponse,
	GroupActionResponse,
	GroupDetailResponse,
	GroupMemberResponse,
	GroupResponse,
	JoinGroupResponse,
	JoinRequestResponse,
	OwnershipTransferResponse,
)
from undongjang.infra.auth import AuthenticatedUser

_LOG = logging.getLogger(__name__)


def to_response(group: Group) -> GroupResponse:
	return GroupResponse(
		id=group.id,
		name=group.name,
		description=group.description,
		location_city=group.location_city,
		cover_image_url=group.cover_image_url,
		privacy=group.privacy,
		organizer_id=group.organizer_id,
		member_count=group.member_count,
		created_at=group.created_at,
	)


class GroupsService:
	def __init__(self, *, repository: repo_module.GroupsRepository | None = None) -> None:
		self.repo = repository or repo_module.GroupsRepository()

	async def list_groups(self, *, limit: int = 24, offset: int = 0) -> list[GroupResponse]:
		groups = await self.repo.list_groups(limit=max(1, min(limit, 100)), offset=max(0, offset))
		return [to_response(group) for group in groups]

	async def require_group(self, group_id: str) -> Group:
		group = await self.repo.get_group(group_id)
		if group is None:
			raise NotFoundError("group_not_found")
		return group

	async def get_group(self, group_id: str, viewer: Optional[AuthenticatedUser] = None) -> GroupDetailResponse:
		group = await self.require_group(group_id)
		is_member = False
		can_manage = False
		if viewer is not None:
			is_member = viewer.id == group.organizer_id or viewer.id in group.member_ids
			can_manage = await self.can_manage_group(group, viewer.id)
		return GroupDetailResponse(**to_response(group).model_dump(), is_member=is_member, can_manage=can_manage)

	async def can_manage_group(self, group: Group | str, user_id: str) -> bool:
		"""Organizer or an admin of the group."""
		if isinstance(group, str):
			loaded = await self.repo.get_group(group)
			if loaded is None:
				return False
			group = loaded
		if group.organizer_id == user_id:
			return True
		return await self.repo.is_admin(group.id, user_id)

	async def is_member(self, group_id: str, user_id: str) -> bool:
		return await self.repo.is_member(group_id, user_id)

	async def join_group(self, group_id: str, user: AuthenticatedUser) -> JoinGroupResponse:
		"""Join a public group directly; private groups get a pending join request."""
		group = await self.require_group(group_id)
		if user.id == group.organizer_id or user.id in group.member_ids:
			return JoinGroupResponse(group_id=group.id, status="already_member")
		if group.is_private:
			return await self.request_to_join(group, user)
		await self.repo.add_member(group.id, user.id)
		_LOG.info("groups.joined", extra={"group_id": group.id})
		return JoinGroupResponse(group_id=group.id, status="joined")

	async def request_to_join(self, group: Group | str, user: AuthenticatedUser) -> JoinGroupResponse:
		if isinstance(group, str):
			group = await self.require_group(group)
		if user.id == group.organizer_id or user.id in group.member_ids:
			return JoinGroupResponse(group_id=group.id, status="already_member")
		await self.repo.create_join_request(group.id, user.id)
		_LOG.info("groups.join_requested", extra={"group_id": group.id})
		return JoinGroupResponse(group_id=group.id, status="requested")

	async def managed_group_ids(self, user_id: str) -> list[str]:
		return await self.repo.list_managed_group_ids(user_id)

	async def list_my_groups(self, user: AuthenticatedUser) -> list[GroupResponse]:
		groups = await self.repo.list_groups_for_user(user.id)
		return [to_response(group) for group in groups]

	async def _require_manager(self, group_id: str, user: AuthenticatedUser) -> Group:
		group = await self.require_group(group_id)
		if not await self.can_manage_group(group, user.id):
			raise ForbiddenError()
		return group

	async def _require_owner(self, group_id: str, user: AuthenticatedUser) -> Group:
		group = await self.require_group(group_id)
		if group.organizer_id != user.id:
			raise ForbiddenError("owner_only")
		return group

	# Members

	async def list_members(self, group_id: str) -> list[GroupMemberResponse]:
		group = await self.require_group(group_id)
		members = order_members(group, await self.repo.list_members(group.id))
		return [
			GroupMemberResponse(
				id=member.id,
				user_id=member.user_id,
				display_name=member.display_name,
				joined_at=member.joined_at,
				is_organizer=member.user_id == group.organizer_id,
			)
			for member in members
		]

	async def kick_member(self, group_id: str, member_id: str, actor: AuthenticatedUser) -> GroupActionResponse:
		group = await self.require_group(group_id)
		if member_id == group.organizer_id:
			raise ConflictError("cannot_remove_owner")
		if not await self.can_manage_group(group, actor.id):
			raise ForbiddenError()
		if not await self.repo.remove_member(group.id, member_id):
			raise NotFoundError("member_not_found")
		_LOG.info("groups.member_removed", extra={"group_id": group.id})
		return GroupActionResponse(group_id=group.id, status="removed")

	# Join requests

	async def list_join_requests(self, group_id: str, actor: AuthenticatedUser) -> list[JoinRequestResponse]:
		group = await self._require_manager(group_id, actor)
		requests = await self.repo.list_join_requests(group.id)
		return [JoinRequestResponse.model_validate(request) for request in requests]

	async def accept_join_request(self, group_id: str, request_id: str, actor: AuthenticatedUser) -> GroupActionResponse:
		group = await self._require_manager(group_id, actor)
		accepted = await self.repo.accept_join_request(group.id, request_id)
		if accepted is None:
			raise NotFoundError("request_not_found")
		_LOG.info("groups.join_request_accepted", extra={"group_id": group.id})
		return GroupActionResponse(group_id=group.id, status="accepted")

	async def reject_join_request(self, group_id: str, request_id: str, actor: AuthenticatedUser) -> GroupActionResponse:
		group = await self._require_manager(group_id, actor)
		if not await self.repo.reject_join_request(group.id, request_id):
			raise NotFoundError("request_not_found")
		_LOG.info("groups.join_request_rejected", extra={"group_id": group.id})
		return GroupActionResponse(group_id=group.id, status="rejected")

	# Ownership transfer

	async def create_ownership_transfer(
		self,
		group_id: str,
		to_user_id: str,
		actor: AuthenticatedUser,
	) -> OwnershipTransferResponse:
		"""Offer the group to a member; a newer offer replaces an open one."""
		group = await self._require_owner(group_id, actor)
		if to_user_id == actor.id:
			raise ConflictError("already_owner")
		if not await self.repo.is_member(group.id, to_user_id):
			raise ConflictError("not_a_member")
		transfer = await self.repo.upsert_ownership_transfer(group.id, actor.id, to_user_id)
		_LOG.info("groups.transfer_requested", extra={"group_id": group.id})
		return _transfer_response(transfer, group.name)

	async def accept_ownership_transfer(self, transfer_id: str, user: AuthenticatedUser) -> GroupActionResponse:
		transfer = await self.repo.accept_ownership_transfer(transfer_id, user.id)
		if transfer is None:
			raise NotFoundError("transfer_not_found")
		_LOG.info("groups.transfer_accepted", extra={"group_id": transfer.group_id})
		return GroupActionResponse(group_id=transfer.group_id, status="accepted")

	async def decline_ownership_transfer(self, transfer_id: str, user: AuthenticatedUser) -> GroupActionResponse:
		group_id = await self.repo.decline_ownership_transfer(transfer_id, user.id)
		if group_id is None:
			raise NotFoundError("transfer_not_found")
		return GroupActionResponse(group_id=group_id, status="declined")

	async def list_pending_transfers(self, user: AuthenticatedUser) -> list[OwnershipTransferResponse]:
		transfers = await self.repo.list_pending_transfers(user.id)
		return [_transfer_response(transfer) for transfer in transfers]

	# Admin invites

	async def create_admin_invite(self, group_id: str, invitee_id: str, actor: AuthenticatedUser) -> AdminInviteResponse:
		group = await self._require_owner(group_id, actor)
		if invitee_id == group.organizer_id or await self.repo.is_admin(group.id, invitee_id):
			raise ConflictError("already_admin")
		if not await self.repo.is_member(group.id, invitee_id):
			raise ConflictError("not_a_member")
		invite = await self.repo.create_admin_invite(group.id, invitee_id, actor.id)
		if invite is None:
			raise ConflictError("already_invited")
		_LOG.info("groups.admin_invited", extra={"group_id": group.id})
		return _invite_response(invite, group.name)

	async def accept_admin_invite(self, invite_id: str, user: AuthenticatedUser) -> GroupActionResponse:
		invite = await self.repo.accept_admin_invite(invite_id, user.id)
		if invite is None:
			raise NotFoundError("invite_not_found")
		_LOG.info("groups.admin_invite_accepted", extra={"group_id": invite.group_id})
		return GroupActionResponse(group_id=invite.group_id, status="accepted")

	async def decline_admin_invite(self, invite_id: str, user: AuthenticatedUser) -> GroupActionResponse:
		group_id = await self.repo.decline_admin_invite(invite_id, user.id)
		if group_id is None:
			raise NotFoundError("invite_not_found")
		return GroupActionResponse(group_id=group_id, status="declined")

	async def list_pending_admin_invites(self, user: AuthenticatedUser) -> list[AdminInviteResponse]:
		invites = await self.repo.list_pending_admin_invites(user.id)
		return [_invite_response(invite) for invite in invites]


def _transfer_response(transfer: OwnershipTransfer, group_name: Optional[str] = None) -> OwnershipTransferResponse:
	return OwnershipTransferResponse(
		id=transfer.id,
		group_id=transfer.group_id,
		group_name=group_name or transfer.group_name or "Group",
		from_user_id=transfer.from_user_id,
		from_name=transfer.from_name,
		to_user_id=transfer.to_user_id,
		created_at=transfer.created_at,
	)


def _invite_response(invite: AdminInvite, group_name: Optional[str] = None) -> AdminInviteResponse:
	return AdminInviteResponse(
		id=invite.id,
		group_id=invite.group_id,
		group_name=group_name or invite.group_name or "Group",
		user_id=invite.user_id,
		invited_by=invite.invited_by,
		invited_by_name=invite.invited_by_name,
		created_at=invite.created_at,
	)


__all__ = ["GroupsService", "to_response"]
