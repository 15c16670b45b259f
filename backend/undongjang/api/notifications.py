"""REST endpoints for organizer notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from undongjang.api.errors import to_http_error
from undongjang.domain.notifications.schemas import NotificationReadResponse, NotificationResponse
from undongjang.domain.notifications.service import NotificationsService
from undongjang.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

_service = NotificationsService()


@router.get("", response_model=list[NotificationResponse])
async def list_unread_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[NotificationResponse]:
	try:
		return await _service.get_unread_notifications(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{notification_id}/read", response_model=NotificationReadResponse)
async def mark_read_endpoint(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> NotificationReadResponse:
	try:
		return await _service.mark_notification_read(notification_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
