"""REST endpoints for groups."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from undongjang.api.errors import to_http_error
from undongjang.domain.events.schemas import EventResponse
from undongjang.domain.events.service import EventsService
from undongjang.domain.groups.schemas import (
	AdminInviteCreateRequest,
	AdminInviteResponse,
	GroupActionResponse,
	GroupDetailResponse,
	GroupMemberResponse,
	GroupResponse,
	JoinGroupResponse,
	JoinRequestResponse,
	OwnershipTransferCreateRequest,
	OwnershipTransferResponse,
)
from undongjang.domain.groups.service import GroupsService
from undongjang.infra.auth import AuthenticatedUser, get_current_user, get_session

router = APIRouter(prefix="/api/groups", tags=["groups"])

_service = GroupsService()
_events = EventsService(groups=_service)


@router.get("", response_model=list[GroupResponse])
async def list_groups_endpoint(
	limit: int = Query(default=24, ge=1, le=100),
	offset: int = Query(default=0, ge=0),
) -> list[GroupResponse]:
	try:
		return await _service.list_groups(limit=limit, offset=offset)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/mine", response_model=list[GroupResponse])
async def list_my_groups_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[GroupResponse]:
	try:
		return await _service.list_my_groups(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/ownership-transfers", response_model=list[OwnershipTransferResponse])
async def list_pending_transfers_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[OwnershipTransferResponse]:
	try:
		return await _service.list_pending_transfers(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/ownership-transfers/{transfer_id}/accept", response_model=GroupActionResponse)
async def accept_transfer_endpoint(
	transfer_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.accept_ownership_transfer(transfer_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/ownership-transfers/{transfer_id}/decline", response_model=GroupActionResponse)
async def decline_transfer_endpoint(
	transfer_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.decline_ownership_transfer(transfer_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/admin-invites", response_model=list[AdminInviteResponse])
async def list_pending_admin_invites_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[AdminInviteResponse]:
	try:
		return await _service.list_pending_admin_invites(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/admin-invites/{invite_id}/accept", response_model=GroupActionResponse)
async def accept_admin_invite_endpoint(
	invite_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.accept_admin_invite(invite_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/admin-invites/{invite_id}/decline", response_model=GroupActionResponse)
async def decline_admin_invite_endpoint(
	invite_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.decline_admin_invite(invite_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group_endpoint(
	group_id: str,
	viewer: Optional[AuthenticatedUser] = Depends(get_session),
) -> GroupDetailResponse:
	try:
		return await _service.get_group(group_id, viewer)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/join", response_model=JoinGroupResponse)
async def join_group_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> JoinGroupResponse:
	try:
		return await _service.join_group(group_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/join-requests", response_model=JoinGroupResponse)
async def request_to_join_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> JoinGroupResponse:
	try:
		return await _service.request_to_join(group_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{group_id}/members", response_model=list[GroupMemberResponse])
async def list_members_endpoint(group_id: str) -> list[GroupMemberResponse]:
	try:
		return await _service.list_members(group_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{group_id}/members/{member_id}", response_model=GroupActionResponse)
async def kick_member_endpoint(
	group_id: str,
	member_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.kick_member(group_id, member_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{group_id}/join-requests", response_model=list[JoinRequestResponse])
async def list_join_requests_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[JoinRequestResponse]:
	try:
		return await _service.list_join_requests(group_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/join-requests/{request_id}/accept", response_model=GroupActionResponse)
async def accept_join_request_endpoint(
	group_id: str,
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.accept_join_request(group_id, request_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/join-requests/{request_id}/reject", response_model=GroupActionResponse)
async def reject_join_request_endpoint(
	group_id: str,
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> GroupActionResponse:
	try:
		return await _service.reject_join_request(group_id, request_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/ownership-transfer", response_model=OwnershipTransferResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer_endpoint(
	group_id: str,
	payload: OwnershipTransferCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> OwnershipTransferResponse:
	try:
		return await _service.create_ownership_transfer(group_id, payload.to_user_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{group_id}/admin-invites", response_model=AdminInviteResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_invite_endpoint(
	group_id: str,
	payload: AdminInviteCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> AdminInviteResponse:
	try:
		return await _service.create_admin_invite(group_id, payload.user_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{group_id}/events", response_model=list[EventResponse])
async def list_group_events_endpoint(
	group_id: str,
	limit: int = Query(default=24, ge=1, le=100),
) -> list[EventResponse]:
	try:
		await _service.require_group(group_id)
		return await _events.list_events(limit=limit, host_group_id=group_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
