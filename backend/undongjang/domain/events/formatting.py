"""Human readable renderings of event times and locations."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from undongjang.settings import settings

_ONLINE_MARKERS = {"remote", "온라인"}
ONLINE_ADDRESS = "온라인"


def display_timezone(name: Optional[str] = None) -> tzinfo:
	"""Return the zone event times are shown and scheduled in."""
	try:
		return ZoneInfo(name or settings.display_timezone)
	except (ZoneInfoNotFoundError, ValueError):
		return timezone.utc


def _clock(value: datetime) -> str:
	hour = value.hour % 12 or 12
	meridiem = "AM" if value.hour < 12 else "PM"
	return f"{hour}:{value.minute:02d} {meridiem}"


def format_clock_time(value: datetime, tz: Optional[tzinfo] = None) -> str:
	return _clock(value.astimezone(tz or display_timezone()))


def format_occurrence_label(value: datetime, tz: Optional[tzinfo] = None) -> str:
	"""Render e.g. ``Fri, Feb 23, 7:00 PM`` in the display zone."""
	local = value.astimezone(tz or display_timezone())
	return f"{local:%a}, {local:%b} {local.day}, {_clock(local)}"


def format_event_time(start: datetime, end: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
	zone = tz or display_timezone()
	label = format_occurrence_label(start, zone)
	if end is None:
		return label
	return f"{label} to {_clock(end.astimezone(zone))}"


def is_online_address(address: Optional[str]) -> bool:
	return bool(address) and address.strip().lower() in _ONLINE_MARKERS


def format_event_location(address: Optional[str], location_name: Optional[str] = None) -> Optional[str]:
	"""Prefer the venue name, fall back to the address; online markers read ``Online``."""
	if location_name:
		return location_name
	if address:
		return "Online" if is_online_address(address) else address
	return None
