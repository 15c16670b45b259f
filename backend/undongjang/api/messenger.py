"""REST endpoints for member-organizer conversations."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from undongjang.api.errors import to_http_error
from undongjang.domain.messenger.schemas import (
	ConversationResponse,
	ConversationSummary,
	CreateConversationRequest,
	MessagePage,
	ReadStateResponse,
	SendMessageRequest,
	SendMessageResponse,
	UnreadCountsResponse,
)
from undongjang.domain.messenger.service import MessengerService
from undongjang.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api", tags=["messenger"])

_service = MessengerService()


@router.post("/conversations", response_model=ConversationResponse)
async def create_conversation_endpoint(
	payload: CreateConversationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ConversationResponse:
	try:
		return await _service.create_or_get_conversation(
			auth_user,
			group_id=payload.group_id,
			event_id=payload.event_id,
		)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/conversations", response_model=list[ConversationSummary])
async def list_conversations_endpoint(
	group_id: Optional[str] = Query(default=None),
	event_id: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[ConversationSummary]:
	"""The caller's own threads, or an organizer inbox when a subject is given."""
	try:
		if group_id:
			return await _service.list_conversations_for_group(group_id, auth_user)
		if event_id:
			return await _service.list_conversations_for_event(event_id, auth_user)
		return await _service.list_conversations_for_user(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation_endpoint(
	conversation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ConversationResponse:
	try:
		return await _service.get_conversation(conversation_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/conversations/{conversation_id}/messages", response_model=MessagePage)
async def list_messages_endpoint(
	conversation_id: str,
	cursor: Optional[str] = Query(default=None),
	limit: int = Query(default=50, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MessagePage:
	try:
		return await _service.get_messages(conversation_id, auth_user, cursor=cursor, limit=limit)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post(
	"/conversations/{conversation_id}/messages",
	response_model=SendMessageResponse,
	status_code=status.HTTP_201_CREATED,
)
async def send_message_endpoint(
	conversation_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SendMessageResponse:
	try:
		return await _service.send_message(conversation_id, auth_user, payload.content)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/read", response_model=ReadStateResponse)
async def mark_read_endpoint(
	conversation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ReadStateResponse:
	try:
		return await _service.mark_conversation_read(conversation_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/messages/unread", response_model=UnreadCountsResponse)
async def unread_counts_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> UnreadCountsResponse:
	try:
		return await _service.get_unread_counts(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
