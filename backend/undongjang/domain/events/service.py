"""Event lifecycle, visibility and attendance logic."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from undongjang.domain.events import recurrence
from undongjang.domain.events import repo as repo_module
from undongjang.domain.events.formatting import (
	ONLINE_ADDRESS,
	display_timezone,
	format_event_location,
	format_event_time,
)
from undongjang.domain.events.maps import build_map_link
from undongjang.domain.events.models import Event, Privacy
from undongjang.domain.events.schemas import (
	AttendeeResponse,
	EventDetailResponse,
	EventForm,
	EventResponse,
	MapLinkResponse,
	OccurrenceResponse,
	PhotoResponse,
	RsvpResponse,
)
from undongjang.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from undongjang.domain.groups.service import GroupsService
from undongjang.infra import storage
from undongjang.infra.auth import AuthenticatedUser
from undongjang.obs import metrics as obs_metrics
from undongjang.settings import settings

_LOG = logging.getLogger(__name__)

_NO_RECURRENCE = {
	"recurrence_interval": None,
	"recurrence_time": None,
	"recurrence_weekday": None,
	"recurrence_week_of_month": None,
	"recurrence_start_date": None,
}


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def to_response(event: Event) -> EventResponse:
	return EventResponse(
		id=event.id,
		title=event.title,
		description=event.description,
		kind=event.kind.value,
		privacy=event.privacy.value,
		start_at=event.start_at,
		end_at=event.end_at,
		time_label=format_event_time(event.start_at, event.end_at),
		location=format_event_location(event.address, event.location_name),
		address=event.address,
		location_name=event.location_name,
		is_online=event.is_online,
		is_recurring=event.is_recurring,
		attendee_limit=event.attendee_limit,
		host_group_id=event.host_group_id,
		host_group_name=event.host_group_name,
		banner_image_url=event.banner_image_url,
		cancelled=event.is_cancelled,
		created_by=event.created_by,
	)


class EventsService:
	"""Create, read, update and attend events."""

	def __init__(
		self,
		*,
		repository: repo_module.EventsRepository | None = None,
		groups: GroupsService | None = None,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.repo = repository or repo_module.EventsRepository()
		self.groups = groups or GroupsService()
		self._now = clock or _utcnow

	# --- Permissions ------------------------------------------------------

	async def can_manage_event(self, event: Event, user_id: str) -> bool:
		if event.created_by == user_id:
			return True
		if await self.repo.is_event_admin(event.id, user_id):
			return True
		if event.host_group_id:
			return await self.groups.can_manage_group(event.host_group_id, user_id)
		return False

	async def can_view_event(self, event: Event, viewer: Optional[AuthenticatedUser]) -> bool:
		"""Exclusive events are limited to host group members and organizers."""
		if event.privacy is not Privacy.EXCLUSIVE:
			return True
		if viewer is None:
			return False
		if await self.can_manage_event(event, viewer.id):
			return True
		if event.host_group_id:
			return await self.groups.is_member(event.host_group_id, viewer.id)
		return False

	async def _require_event(self, event_id: str) -> Event:
		event = await self.repo.get_event(event_id)
		if event is None:
			raise NotFoundError("event_not_found")
		return event

	async def _require_visible(self, event_id: str, viewer: Optional[AuthenticatedUser]) -> Event:
		event = await self._require_event(event_id)
		if not await self.can_view_event(event, viewer):
			raise ForbiddenError()
		return event

	async def _require_manager(self, event_id: str, user: AuthenticatedUser) -> Event:
		event = await self._require_event(event_id)
		if not await self.can_manage_event(event, user.id):
			raise ForbiddenError()
		return event

	# --- Form handling ----------------------------------------------------

	async def _values_from_form(self, form: EventForm, user: AuthenticatedUser) -> dict[str, Any]:
		errors = form.field_errors()
		if errors:
			raise ValidationError(errors=errors)
		if form.host_group_id and not await self.groups.can_manage_group(form.host_group_id, user.id):
			raise ValidationError(errors={"host_group_id": "You can only host events for groups you manage."})

		tz = display_timezone()
		rule = form.recurrence_rule()
		values: dict[str, Any] = {
			"title": form.title,
			"description": form.description or None,
			"event_type": form.event_type,
			"privacy": form.privacy,
			"location_name": form.location_name or None,
			"attendee_limit": form.parsed_attendee_limit(),
			"host_group_id": form.host_group_id or None,
			"banner_image_url": form.banner_image_url or None,
		}
		if rule is not None:
			# Recurring events keep their first derived occurrence as start_time.
			first = recurrence.first_occurrence(rule, self._now(), tz=tz)
			start_at = first.start_at
			end_at = None
			end_time = form.end_time_of_day()
			if end_time is not None:
				end_at = datetime.combine(start_at.date(), end_time, tzinfo=tz)
				if end_at < start_at:
					end_at += timedelta(days=1)
			values.update(rule.to_record())
		else:
			start_at = form.start_at(tz)
			end_at = form.end_at(tz)
			values.update(_NO_RECURRENCE)
		values["start_time"] = start_at
		values["end_time"] = end_at

		if form.location_type == "online":
			values["address"] = ONLINE_ADDRESS
			values["meeting_url"] = form.meeting_url
		else:
			values["address"] = form.address
			values["meeting_url"] = None
		return values

	# --- Operations -------------------------------------------------------

	async def create_event(self, user: AuthenticatedUser, form: EventForm) -> EventResponse:
		values = await self._values_from_form(form, user)
		values["created_by"] = user.id
		event = await self.repo.create_event(values)
		obs_metrics.inc_event_created(event.kind.value)
		_LOG.info("events.created", extra={"event_id": event.id, "kind": event.kind.value})
		return to_response(event)

	async def list_events(self, *, limit: int = 24, host_group_id: Optional[str] = None) -> list[EventResponse]:
		events = await self.repo.list_upcoming_events(
			now=self._now(),
			limit=max(1, min(limit, 100)),
			host_group_id=host_group_id,
		)
		return [to_response(event) for event in events]

	async def get_event(self, event_id: str, viewer: Optional[AuthenticatedUser] = None) -> EventDetailResponse:
		event = await self._require_visible(event_id, viewer)
		attendees = await self.repo.list_attendees(event.id)
		viewer_id = viewer.id if viewer else None
		is_attending = viewer_id is not None and any(item.user_id == viewer_id for item in attendees)
		can_manage = viewer_id is not None and await self.can_manage_event(event, viewer_id)
		return EventDetailResponse(
			**to_response(event).model_dump(),
			meeting_url=event.meeting_url if (is_attending or can_manage) else None,
			attendee_count=len(attendees),
			attendees=[AttendeeResponse.model_validate(item) for item in attendees],
			is_attending=is_attending,
			can_manage=can_manage,
			next_occurrences=self.next_occurrences(event),
		)

	def next_occurrences(self, event: Event, count: Optional[int] = None) -> list[OccurrenceResponse]:
		if event.recurrence is None or event.is_cancelled:
			return []
		occurrences = recurrence.compute_next_occurrences(
			event.recurrence,
			self._now(),
			count if count is not None else settings.occurrence_preview_count,
		)
		return [OccurrenceResponse(start_at=item.start_at, label=item.label) for item in occurrences]

	async def list_occurrences(
		self,
		event_id: str,
		viewer: Optional[AuthenticatedUser] = None,
		*,
		count: Optional[int] = None,
	) -> list[OccurrenceResponse]:
		event = await self._require_visible(event_id, viewer)
		return self.next_occurrences(event, count)

	async def update_event(self, event_id: str, user: AuthenticatedUser, form: EventForm) -> EventResponse:
		"""Replace the event's editable fields; concurrent edits resolve last-write-wins."""
		await self._require_manager(event_id, user)
		values = await self._values_from_form(form, user)
		event = await self.repo.update_event(event_id, values)
		_LOG.info("events.updated", extra={"event_id": event.id})
		return to_response(event)

	async def cancel_event(self, event_id: str, user: AuthenticatedUser) -> EventResponse:
		await self._require_manager(event_id, user)
		event = await self.repo.cancel_event(event_id)
		_LOG.info("events.cancelled", extra={"event_id": event.id})
		return to_response(event)

	async def rsvp(
		self,
		event_id: str,
		user: AuthenticatedUser,
		*,
		occurrence_start_at: Optional[datetime] = None,
	) -> RsvpResponse:
		"""Attend an event, optionally a specific occurrence of a recurring one."""
		event = await self._require_visible(event_id, user)
		if event.is_cancelled:
			raise ConflictError("event_cancelled")
		if occurrence_start_at is not None:
			self._check_occurrence(event, occurrence_start_at)
		count = await self.repo.add_attendee(
			event.id,
			user.id,
			occurrence_start_at=occurrence_start_at,
			attendee_limit=event.attendee_limit,
		)
		obs_metrics.inc_event_rsvp("going")
		return RsvpResponse(
			event_id=event.id,
			user_id=user.id,
			status="going",
			attendee_count=count,
			occurrence_start_at=occurrence_start_at,
		)

	def _check_occurrence(self, event: Event, occurrence_start_at: datetime) -> None:
		field = "occurrence_start_at"
		if event.recurrence is None:
			raise ValidationError(errors={field: "This event does not repeat."})
		if occurrence_start_at.tzinfo is None:
			occurrence_start_at = occurrence_start_at.replace(tzinfo=timezone.utc)
		if occurrence_start_at <= self._now():
			raise ValidationError(errors={field: "That occurrence has already started."})
		if not recurrence.is_occurrence(event.recurrence, occurrence_start_at):
			raise ValidationError(errors={field: "That time is not one of this event's occurrences."})

	async def cancel_rsvp(self, event_id: str, user: AuthenticatedUser) -> RsvpResponse:
		event = await self._require_event(event_id)
		count = await self.repo.remove_attendee(event.id, user.id)
		obs_metrics.inc_event_rsvp("not_going")
		return RsvpResponse(event_id=event.id, user_id=user.id, status="not_going", attendee_count=count)

	async def list_attendees(self, event_id: str, viewer: Optional[AuthenticatedUser] = None) -> list[AttendeeResponse]:
		event = await self._require_visible(event_id, viewer)
		attendees = await self.repo.list_attendees(event.id)
		return [AttendeeResponse.model_validate(item) for item in attendees]

	async def map_link(self, event_id: str, viewer: Optional[AuthenticatedUser] = None) -> MapLinkResponse:
		event = await self._require_visible(event_id, viewer)
		return build_map_link(event)

	async def add_photo(
		self,
		event_id: str,
		user: AuthenticatedUser,
		*,
		data: bytes,
		content_type: str,
	) -> PhotoResponse:
		event = await self._require_manager(event_id, user)
		try:
			storage.validate_upload(content_type, len(data))
			url = await storage.upload(storage.build_key("events", event.id, content_type), data, content_type)
		except storage.StorageValidationError as exc:
			obs_metrics.inc_upload("rejected")
			raise ValidationError(str(exc)) from exc
		row = await self.repo.add_photo(event.id, url=url, uploaded_by=user.id)
		obs_metrics.inc_upload("stored")
		return PhotoResponse(id=str(row["id"]), event_id=event.id, url=row["image_url"], created_at=row["created_at"])

	async def managed_event_ids(self, user_id: str) -> list[str]:
		return await self.repo.list_managed_event_ids(user_id)


__all__ = ["EventsService", "to_response"]
