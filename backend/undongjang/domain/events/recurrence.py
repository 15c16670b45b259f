"""Derive upcoming occurrences of recurring events.

Dates are stepped on the civil calendar and the rule's wall-clock time is
attached in the display zone with ``fold=0``. Around DST changes this means:

- an ambiguous wall time (clocks fall back) resolves to its first instant;
- a wall time that does not exist (clocks spring forward) is read with the
  pre-transition offset, so it lands one hour later on the local clock.

All comparisons happen in UTC so occurrences are strictly increasing even
when two of them share a wall-clock reading.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator, Optional

from undongjang.domain.events.formatting import display_timezone, format_occurrence_label
from undongjang.domain.events.models import LAST_WEEK_OF_MONTH, Occurrence, RecurrenceRule, RepeatInterval

# Bound on months scanned by the monthly walk; every month has a 1st-4th and last weekday.
_MAX_MONTHS = 1200


def to_python_weekday(weekday: int) -> int:
	"""Map 0 = Sunday numbering onto ``date.weekday()`` (0 = Monday)."""
	return (weekday - 1) % 7


def nth_weekday_in_month(year: int, month: int, ordinal: int, weekday: int) -> date:
	"""Return the ``ordinal``-th ``weekday`` of a month; ordinal 5 means the last one."""
	target = to_python_weekday(weekday)
	if ordinal == LAST_WEEK_OF_MONTH:
		last = date(year, month, calendar.monthrange(year, month)[1])
		return last - timedelta(days=(last.weekday() - target) % 7)
	if not 1 <= ordinal < LAST_WEEK_OF_MONTH:
		raise ValueError(f"ordinal must be 1-5, got {ordinal}")
	first = date(year, month, 1)
	return first + timedelta(days=(target - first.weekday()) % 7 + 7 * (ordinal - 1))


def _at(day: date, at: time, tz: tzinfo) -> datetime:
	return datetime.combine(day, at.replace(tzinfo=None, fold=0), tzinfo=tz)


def _utc(value: datetime) -> datetime:
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def _daily(rule: RecurrenceRule, local_from: datetime, tz: tzinfo) -> Iterator[datetime]:
	assert rule.start_date is not None and rule.time_of_day is not None
	day = max(rule.start_date, local_from.date())
	while True:
		yield _at(day, rule.time_of_day, tz)
		day += timedelta(days=1)


def _weekly(rule: RecurrenceRule, local_from: datetime, tz: tzinfo) -> Iterator[datetime]:
	assert rule.weekday is not None and rule.time_of_day is not None
	start = local_from.date()
	day = start + timedelta(days=(to_python_weekday(rule.weekday) - start.weekday()) % 7)
	while True:
		yield _at(day, rule.time_of_day, tz)
		day += timedelta(days=7)


def _monthly(rule: RecurrenceRule, local_from: datetime, tz: tzinfo) -> Iterator[datetime]:
	assert rule.weekday is not None and rule.week_of_month is not None and rule.time_of_day is not None
	year, month = local_from.year, local_from.month
	for _ in range(_MAX_MONTHS):
		day = nth_weekday_in_month(year, month, rule.week_of_month, rule.weekday)
		yield _at(day, rule.time_of_day, tz)
		month += 1
		if month > 12:
			year, month = year + 1, 1


_GENERATORS = {
	RepeatInterval.DAILY: _daily,
	RepeatInterval.WEEKLY: _weekly,
	RepeatInterval.MONTHLY: _monthly,
}


def compute_next_occurrences(
	rule: RecurrenceRule,
	from_time: datetime,
	count: int,
	*,
	tz: Optional[tzinfo] = None,
) -> list[Occurrence]:
	"""Return the next ``count`` occurrences strictly after ``from_time``.

	Naive ``from_time`` values are read as UTC. Raises ``InvalidRuleError``
	when the rule lacks a field its interval needs.
	"""
	rule.validate()
	if count <= 0:
		return []
	zone = tz or display_timezone()
	threshold = _utc(from_time)
	local_from = threshold.astimezone(zone)
	result: list[Occurrence] = []
	last: Optional[datetime] = None
	for candidate in _GENERATORS[rule.interval](rule, local_from, zone):
		instant = _utc(candidate)
		if instant <= threshold or (last is not None and instant <= last):
			continue
		local = instant.astimezone(zone)
		result.append(Occurrence(start_at=local, label=format_occurrence_label(local, zone)))
		last = instant
		if len(result) >= count:
			break
	return result


def first_occurrence(rule: RecurrenceRule, from_time: datetime, *, tz: Optional[tzinfo] = None) -> Occurrence:
	occurrences = compute_next_occurrences(rule, from_time, 1, tz=tz)
	if not occurrences:  # pragma: no cover - generators are unbounded within range
		raise ValueError("rule produced no occurrences")
	return occurrences[0]


def is_occurrence(rule: RecurrenceRule, instant: datetime, *, tz: Optional[tzinfo] = None) -> bool:
	"""True when ``instant`` is exactly one of the rule's occurrences."""
	target = _utc(instant)
	candidate = first_occurrence(rule, target - timedelta(seconds=1), tz=tz)
	return _utc(candidate.start_at) == target
