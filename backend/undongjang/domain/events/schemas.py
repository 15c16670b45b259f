"""Pydantic schemas for the events API, including the event form."""

from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from undongjang.domain.events.models import RecurrenceRule, RepeatInterval

_FORM_EVENT_TYPES = ("lightning", "standard")
_PRIVACY_VALUES = ("public", "private", "exclusive")
_LOCATION_TYPES = ("online", "address")
_RULE_FIELDS = {
	"time_of_day": "start_time_time",
	"weekday": "recurrence_weekday",
	"week_of_month": "recurrence_week_of_month",
	"start_date": "recurrence_start_date",
}


def _blank(value: Optional[str]) -> bool:
	return value is None or not str(value).strip()


def _parse_local_datetime(value: str, tz: tzinfo) -> datetime:
	parsed = datetime.fromisoformat(value.strip())
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=tz)
	return parsed


def _parse_time(value: str) -> time:
	return time.fromisoformat(value.strip())


class EventForm(BaseModel):
	"""Raw event form values as submitted by the create/edit page.

	Fields stay strings so that every problem can be reported next to the
	field it belongs to instead of failing the whole request.
	"""

	model_config = ConfigDict(str_strip_whitespace=True)

	title: Optional[str] = None
	description: Optional[str] = None
	event_type: Optional[str] = None
	privacy: Optional[str] = None
	start_time: Optional[str] = None
	end_time: Optional[str] = None
	repeat_interval: Optional[str] = None
	recurrence_start_date: Optional[str] = None
	recurrence_weekday: Optional[str] = None
	recurrence_week_of_month: Optional[str] = None
	start_time_time: Optional[str] = None
	end_time_time: Optional[str] = None
	location_type: Optional[str] = None
	meeting_url: Optional[str] = None
	address: Optional[str] = None
	location_name: Optional[str] = None
	attendee_limit: Optional[str] = None
	host_group_id: Optional[str] = None
	banner_image_url: Optional[str] = None

	@field_validator("attendee_limit", "recurrence_weekday", "recurrence_week_of_month", mode="before")
	@classmethod
	def _numbers_as_text(cls, value):
		if isinstance(value, bool):
			return str(value).lower()
		if isinstance(value, (int, float)):
			return str(int(value)) if float(value).is_integer() else str(value)
		return value

	@property
	def is_recurring(self) -> bool:
		return self.event_type == "standard" and self.repeat_interval in {item.value for item in RepeatInterval}

	def field_errors(self) -> dict[str, str]:
		"""Return field -> message for every rule the values break."""
		errors: dict[str, str] = {}
		if _blank(self.title):
			errors["title"] = "Title is required."
		if self.event_type not in _FORM_EVENT_TYPES:
			errors["event_type"] = "Choose an event type."
		if self.privacy not in _PRIVACY_VALUES:
			errors["privacy"] = "Choose who can see this event."
		if self.location_type not in _LOCATION_TYPES:
			errors["location_type"] = "Choose online or an address."
		elif self.location_type == "online" and _blank(self.meeting_url):
			errors["meeting_url"] = "A meeting link is required for online events."
		elif self.location_type == "address" and _blank(self.address):
			errors["address"] = "An address is required."
		if not _blank(self.attendee_limit):
			text = str(self.attendee_limit).strip()
			if not (text.isascii() and text.isdecimal()):
				errors["attendee_limit"] = "Attendee limit must be a number."
			elif int(text) <= 0:
				errors["attendee_limit"] = "Attendee limit must be greater than zero."
		if not _blank(self.end_time_time):
			try:
				_parse_time(self.end_time_time or "")
			except ValueError:
				errors["end_time_time"] = "Enter a valid end time."
		if self.event_type == "standard":
			errors.update(self._recurrence_errors())
		if not self.is_recurring:
			if _blank(self.start_time):
				errors["start_time"] = "Start time is required."
			else:
				errors.update(self._datetime_errors())
		return errors

	def _recurrence_errors(self) -> dict[str, str]:
		errors: dict[str, str] = {}
		interval = self.repeat_interval
		if interval not in {item.value for item in RepeatInterval}:
			errors["repeat_interval"] = "Choose how often the event repeats."
			return errors
		time_missing = _blank(self.start_time_time)
		if interval == RepeatInterval.DAILY.value and (_blank(self.recurrence_start_date) or time_missing):
			errors["recurrence_start_date"] = "Start date and time are required."
		if interval == RepeatInterval.WEEKLY.value and (_blank(self.recurrence_weekday) or time_missing):
			errors["recurrence_weekday"] = "Day of week and time are required."
		if interval == RepeatInterval.MONTHLY.value and (
			_blank(self.recurrence_week_of_month) or _blank(self.recurrence_weekday) or time_missing
		):
			errors["recurrence_week_of_month"] = "Week, day of week and time are required."
		if errors:
			return errors
		try:
			rule = self._build_rule()
		except ValueError:
			errors["start_time_time"] = "Enter a valid date and time."
			return errors
		for field, message in rule.missing_fields().items():
			errors[_RULE_FIELDS[field]] = message
		return errors

	def _datetime_errors(self) -> dict[str, str]:
		errors: dict[str, str] = {}
		try:
			start = _parse_local_datetime(self.start_time or "", timezone.utc)
		except ValueError:
			errors["start_time"] = "Enter a valid start time."
			return errors
		if not _blank(self.end_time):
			try:
				end = _parse_local_datetime(self.end_time or "", timezone.utc)
			except ValueError:
				errors["end_time"] = "Enter a valid end time."
				return errors
			if end.replace(tzinfo=None) < start.replace(tzinfo=None):
				errors["end_time"] = "End time must be after the start time."
		return errors

	def _build_rule(self) -> RecurrenceRule:
		return RecurrenceRule(
			interval=RepeatInterval(self.repeat_interval),
			time_of_day=_parse_time(self.start_time_time) if not _blank(self.start_time_time) else None,
			weekday=int(self.recurrence_weekday) if not _blank(self.recurrence_weekday) else None,
			week_of_month=int(self.recurrence_week_of_month) if not _blank(self.recurrence_week_of_month) else None,
			start_date=date.fromisoformat(self.recurrence_start_date.strip()) if not _blank(self.recurrence_start_date) else None,
		)

	def recurrence_rule(self) -> Optional[RecurrenceRule]:
		if not self.is_recurring:
			return None
		return self._build_rule()

	def start_at(self, tz: tzinfo) -> Optional[datetime]:
		if _blank(self.start_time):
			return None
		return _parse_local_datetime(self.start_time or "", tz)

	def end_at(self, tz: tzinfo) -> Optional[datetime]:
		if _blank(self.end_time):
			return None
		return _parse_local_datetime(self.end_time or "", tz)

	def end_time_of_day(self) -> Optional[time]:
		if _blank(self.end_time_time):
			return None
		return _parse_time(self.end_time_time or "")

	def parsed_attendee_limit(self) -> Optional[int]:
		if _blank(self.attendee_limit):
			return None
		return int(str(self.attendee_limit).strip())


class OccurrenceResponse(BaseModel):
	start_at: datetime
	label: str


class EventResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	title: str
	description: Optional[str] = None
	kind: str
	privacy: str
	start_at: datetime
	end_at: Optional[datetime] = None
	time_label: str
	location: Optional[str] = None
	address: Optional[str] = None
	location_name: Optional[str] = None
	is_online: bool = False
	is_recurring: bool = False
	attendee_limit: Optional[int] = None
	host_group_id: Optional[str] = None
	host_group_name: Optional[str] = None
	banner_image_url: Optional[str] = None
	cancelled: bool = False
	created_by: str


class AttendeeResponse(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	user_id: str
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None
	joined_at: datetime
	occurrence_start_at: Optional[datetime] = None


class EventDetailResponse(EventResponse):
	meeting_url: Optional[str] = None
	attendee_count: int = 0
	attendees: list[AttendeeResponse] = Field(default_factory=list)
	is_attending: bool = False
	can_manage: bool = False
	next_occurrences: list[OccurrenceResponse] = Field(default_factory=list)


class RsvpRequest(BaseModel):
	occurrence_start_at: Optional[datetime] = None


class RsvpResponse(BaseModel):
	event_id: str
	user_id: str
	status: Literal["going", "not_going"]
	attendee_count: int
	occurrence_start_at: Optional[datetime] = None


class MapLinkResponse(BaseModel):
	status: Literal["ready", "no-key", "no-location"]
	embed_url: Optional[str] = None
	link_url: Optional[str] = None
	query: Optional[str] = None


class PhotoResponse(BaseModel):
	id: str
	event_id: str
	url: str
	created_at: datetime
