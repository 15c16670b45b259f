"""REST endpoints for events, attendance and event media."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from undongjang.api.errors import to_http_error
from undongjang.domain.events.schemas import (
	AttendeeResponse,
	EventDetailResponse,
	EventForm,
	EventResponse,
	MapLinkResponse,
	OccurrenceResponse,
	PhotoResponse,
	RsvpRequest,
	RsvpResponse,
)
from undongjang.domain.events.service import EventsService
from undongjang.infra.auth import AuthenticatedUser, get_current_user, get_session

router = APIRouter(prefix="/api/events", tags=["events"])

_service = EventsService()


@router.get("", response_model=list[EventResponse])
async def list_events_endpoint(
	limit: int = Query(default=24, ge=1, le=100),
	host_group_id: Optional[str] = Query(default=None),
) -> list[EventResponse]:
	try:
		return await _service.list_events(limit=limit, host_group_id=host_group_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
	form: EventForm,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
	try:
		return await _service.create_event(auth_user, form)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(
	event_id: str,
	viewer: Optional[AuthenticatedUser] = Depends(get_session),
) -> EventDetailResponse:
	try:
		return await _service.get_event(event_id, viewer)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
	event_id: str,
	form: EventForm,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
	try:
		return await _service.update_event(event_id, auth_user, form)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event_endpoint(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
	try:
		return await _service.cancel_event(event_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{event_id}/occurrences", response_model=list[OccurrenceResponse])
async def list_occurrences_endpoint(
	event_id: str,
	count: int = Query(default=5, ge=1, le=52),
	viewer: Optional[AuthenticatedUser] = Depends(get_session),
) -> list[OccurrenceResponse]:
	try:
		return await _service.list_occurrences(event_id, viewer, count=count)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{event_id}/rsvp", response_model=RsvpResponse)
async def rsvp_endpoint(
	event_id: str,
	payload: Optional[RsvpRequest] = Body(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RsvpResponse:
	occurrence = payload.occurrence_start_at if payload else None
	try:
		return await _service.rsvp(event_id, auth_user, occurrence_start_at=occurrence)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{event_id}/rsvp", response_model=RsvpResponse)
async def cancel_rsvp_endpoint(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> RsvpResponse:
	try:
		return await _service.cancel_rsvp(event_id, auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{event_id}/attendees", response_model=list[AttendeeResponse])
async def list_attendees_endpoint(
	event_id: str,
	viewer: Optional[AuthenticatedUser] = Depends(get_session),
) -> list[AttendeeResponse]:
	try:
		return await _service.list_attendees(event_id, viewer)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{event_id}/photos", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def add_photo_endpoint(
	event_id: str,
	request: Request,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> PhotoResponse:
	content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
	data = await request.body()
	try:
		return await _service.add_photo(event_id, auth_user, data=data, content_type=content_type)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{event_id}/map", response_model=MapLinkResponse)
async def map_link_endpoint(
	event_id: str,
	viewer: Optional[AuthenticatedUser] = Depends(get_session),
) -> MapLinkResponse:
	try:
		return await _service.map_link(event_id, viewer)
	except Exception as exc:
		raise to_http_error(exc) from exc
