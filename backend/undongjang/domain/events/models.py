"""Domain models for events, recurrence and attendance."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping, Optional

from undongjang.domain.exceptions import InvalidRuleError

LAST_WEEK_OF_MONTH = 5


class EventKind(str, Enum):
	FLAGSHIP = "flagship"
	STANDARD = "standard"
	LIGHTNING = "lightning"


class Privacy(str, Enum):
	PUBLIC = "public"
	PRIVATE = "private"
	EXCLUSIVE = "exclusive"


class RepeatInterval(str, Enum):
	DAILY = "daily"
	WEEKLY = "weekly"
	MONTHLY = "monthly"


@dataclass(slots=True, frozen=True)
class RecurrenceRule:
	"""How a recurring event repeats.

	``weekday`` counts from 0 = Sunday. ``week_of_month`` is 1..4, or 5 for
	the last such weekday of the month.
	"""

	interval: RepeatInterval
	time_of_day: Optional[time] = None
	weekday: Optional[int] = None
	week_of_month: Optional[int] = None
	start_date: Optional[date] = None

	def missing_fields(self) -> dict[str, str]:
		errors: dict[str, str] = {}
		if self.time_of_day is None:
			errors["time_of_day"] = "Time is required."
		if self.interval is RepeatInterval.DAILY and self.start_date is None:
			errors["start_date"] = "Start date is required for daily events."
		if self.interval in (RepeatInterval.WEEKLY, RepeatInterval.MONTHLY):
			if self.weekday is None:
				errors["weekday"] = "Day of week is required."
			elif not 0 <= self.weekday <= 6:
				errors["weekday"] = "Day of week must be between 0 (Sunday) and 6 (Saturday)."
		if self.interval is RepeatInterval.MONTHLY:
			if self.week_of_month is None:
				errors["week_of_month"] = "Week of month is required."
			elif not 1 <= self.week_of_month <= LAST_WEEK_OF_MONTH:
				errors["week_of_month"] = "Week of month must be 1-4 or 5 for the last week."
		return errors

	def validate(self) -> "RecurrenceRule":
		errors = self.missing_fields()
		if errors:
			raise InvalidRuleError(errors=errors)
		return self

	def to_record(self) -> dict[str, Any]:
		return {
			"recurrence_interval": self.interval.value,
			"recurrence_time": self.time_of_day,
			"recurrence_weekday": self.weekday,
			"recurrence_week_of_month": self.week_of_month,
			"recurrence_start_date": self.start_date,
		}

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> Optional["RecurrenceRule"]:
		interval = record.get("recurrence_interval")
		if not interval:
			return None
		return cls(
			interval=RepeatInterval(interval),
			time_of_day=record.get("recurrence_time"),
			weekday=record.get("recurrence_weekday"),
			week_of_month=record.get("recurrence_week_of_month"),
			start_date=record.get("recurrence_start_date"),
		)


@dataclass(slots=True, frozen=True)
class Occurrence:
	start_at: datetime
	label: str


@dataclass(slots=True)
class Event:
	id: str
	title: str
	start_at: datetime
	kind: EventKind
	privacy: Privacy
	created_by: str
	description: Optional[str] = None
	end_at: Optional[datetime] = None
	recurrence: Optional[RecurrenceRule] = None
	address: Optional[str] = None
	location_name: Optional[str] = None
	meeting_url: Optional[str] = None
	attendee_limit: Optional[int] = None
	host_group_id: Optional[str] = None
	banner_image_url: Optional[str] = None
	cancelled_at: Optional[datetime] = None
	created_at: Optional[datetime] = None
	host_group_name: Optional[str] = None

	@property
	def is_recurring(self) -> bool:
		return self.recurrence is not None

	@property
	def is_online(self) -> bool:
		return bool(self.meeting_url)

	@property
	def is_cancelled(self) -> bool:
		return self.cancelled_at is not None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Event":
		return cls(
			id=str(record["id"]),
			title=record["title"],
			start_at=record["start_time"],
			end_at=record.get("end_time"),
			kind=EventKind(record["event_type"]),
			privacy=Privacy(record["privacy"]),
			created_by=str(record["created_by"]),
			description=record.get("description"),
			recurrence=RecurrenceRule.from_record(record),
			address=record.get("address"),
			location_name=record.get("location_name"),
			meeting_url=record.get("meeting_url"),
			attendee_limit=record.get("attendee_limit"),
			host_group_id=str(record["host_group_id"]) if record.get("host_group_id") else None,
			banner_image_url=record.get("banner_image_url"),
			cancelled_at=record.get("cancelled_at"),
			created_at=record.get("created_at"),
			host_group_name=record.get("host_group_name"),
		)


@dataclass(slots=True)
class Attendee:
	user_id: str
	joined_at: datetime
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None
	occurrence_start_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Attendee":
		return cls(
			user_id=str(record["user_id"]),
			joined_at=record["joined_at"],
			display_name=record.get("display_name"),
			avatar_url=record.get("avatar_url"),
			occurrence_start_at=record.get("occurrence_start_time"),
		)
