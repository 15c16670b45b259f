from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from undongjang.domain.events.models import RecurrenceRule, RepeatInterval
from undongjang.domain.events.recurrence import compute_next_occurrences, is_occurrence, nth_weekday_in_month
from undongjang.domain.exceptions import InvalidRuleError

CHICAGO = ZoneInfo("America/Chicago")
FRIDAY = 5
WEDNESDAY = 3


def test_last_friday_of_february_2024():
	assert nth_weekday_in_month(2024, 2, 5, FRIDAY) == date(2024, 2, 23)
	assert nth_weekday_in_month(2024, 3, 5, FRIDAY) == date(2024, 3, 29)
	# May 2024 has five Fridays; the last one is the 5th.
	assert nth_weekday_in_month(2024, 5, 5, FRIDAY) == date(2024, 5, 31)


def test_nth_weekday_counts_from_first_of_month():
	assert nth_weekday_in_month(2024, 2, 1, FRIDAY) == date(2024, 2, 2)
	assert nth_weekday_in_month(2024, 2, 4, FRIDAY) == date(2024, 2, 23)
	assert nth_weekday_in_month(2024, 9, 1, 0) == date(2024, 9, 1)


def test_nth_weekday_rejects_bad_ordinal():
	with pytest.raises(ValueError):
		nth_weekday_in_month(2024, 2, 6, FRIDAY)


def test_monthly_last_friday_sequence():
	rule = RecurrenceRule(
		interval=RepeatInterval.MONTHLY,
		time_of_day=time(19, 0),
		weekday=FRIDAY,
		week_of_month=5,
	)
	occurrences = compute_next_occurrences(rule, datetime(2024, 2, 1, tzinfo=CHICAGO), 2, tz=CHICAGO)
	assert [item.start_at.date() for item in occurrences] == [date(2024, 2, 23), date(2024, 3, 29)]
	assert occurrences[0].label == "Fri, Feb 23, 7:00 PM"
	assert occurrences[0].start_at.hour == 19


def test_monthly_skips_current_month_once_passed():
	rule = RecurrenceRule(interval=RepeatInterval.MONTHLY, time_of_day=time(19, 0), weekday=FRIDAY, week_of_month=5)
	after = datetime(2024, 2, 23, 20, 0, tzinfo=CHICAGO)
	occurrences = compute_next_occurrences(rule, after, 1, tz=CHICAGO)
	assert occurrences[0].start_at.date() == date(2024, 3, 29)


def test_weekly_occurrences_are_seven_days_apart_on_the_weekday():
	rule = RecurrenceRule(interval=RepeatInterval.WEEKLY, time_of_day=time(18, 30), weekday=WEDNESDAY)
	occurrences = compute_next_occurrences(rule, datetime(2024, 2, 20, 12, tzinfo=CHICAGO), 8, tz=CHICAGO)
	assert len(occurrences) == 8
	starts = [item.start_at for item in occurrences]
	for previous, current in zip(starts, starts[1:]):
		assert current > previous
		assert current.date() - previous.date() == timedelta(days=7)
	assert all(start.weekday() == 2 for start in starts)
	assert all((start.hour, start.minute) == (18, 30) for start in starts)


def test_weekly_same_day_after_time_moves_to_next_week():
	rule = RecurrenceRule(interval=RepeatInterval.WEEKLY, time_of_day=time(9, 0), weekday=WEDNESDAY)
	wednesday_noon = datetime(2024, 2, 21, 12, tzinfo=CHICAGO)
	occurrences = compute_next_occurrences(rule, wednesday_noon, 1, tz=CHICAGO)
	assert occurrences[0].start_at.date() == date(2024, 2, 28)


def test_daily_starts_no_earlier_than_start_date():
	rule = RecurrenceRule(interval=RepeatInterval.DAILY, time_of_day=time(9, 0), start_date=date(2024, 5, 10))
	occurrences = compute_next_occurrences(rule, datetime(2024, 5, 1, tzinfo=CHICAGO), 3, tz=CHICAGO)
	assert [item.start_at.date() for item in occurrences] == [date(2024, 5, 10), date(2024, 5, 11), date(2024, 5, 12)]


def test_daily_is_strictly_after_reference():
	rule = RecurrenceRule(interval=RepeatInterval.DAILY, time_of_day=time(9, 0), start_date=date(2024, 1, 1))
	at_nine = datetime(2024, 5, 1, 9, 0, tzinfo=CHICAGO)
	occurrences = compute_next_occurrences(rule, at_nine, 1, tz=CHICAGO)
	assert occurrences[0].start_at.date() == date(2024, 5, 2)


def test_spring_forward_gap_uses_pre_transition_offset():
	# 2:30 AM does not exist in Chicago on 2024-03-10.
	rule = RecurrenceRule(interval=RepeatInterval.DAILY, time_of_day=time(2, 30), start_date=date(2024, 3, 9))
	occurrences = compute_next_occurrences(rule, datetime(2024, 3, 8, tzinfo=CHICAGO), 3, tz=CHICAGO)
	utc = [item.start_at.astimezone(timezone.utc) for item in occurrences]
	assert utc[0] == datetime(2024, 3, 9, 8, 30, tzinfo=timezone.utc)
	assert utc[1] == datetime(2024, 3, 10, 8, 30, tzinfo=timezone.utc)
	assert (occurrences[1].start_at.hour, occurrences[1].start_at.minute) == (3, 30)
	assert utc[2] == datetime(2024, 3, 11, 7, 30, tzinfo=timezone.utc)
	assert utc == sorted(utc)


def test_fall_back_ambiguity_uses_first_instant():
	# 1:30 AM happens twice in Chicago on 2024-11-03.
	rule = RecurrenceRule(interval=RepeatInterval.DAILY, time_of_day=time(1, 30), start_date=date(2024, 11, 3))
	occurrences = compute_next_occurrences(rule, datetime(2024, 11, 1, tzinfo=CHICAGO), 1, tz=CHICAGO)
	assert occurrences[0].start_at.astimezone(timezone.utc) == datetime(2024, 11, 3, 6, 30, tzinfo=timezone.utc)
	assert occurrences[0].label == "Sun, Nov 3, 1:30 AM"


def test_naive_reference_time_is_utc():
	rule = RecurrenceRule(interval=RepeatInterval.DAILY, time_of_day=time(9, 0), start_date=date(2024, 1, 1))
	aware = compute_next_occurrences(rule, datetime(2024, 5, 1, 15, tzinfo=timezone.utc), 2, tz=CHICAGO)
	naive = compute_next_occurrences(rule, datetime(2024, 5, 1, 15), 2, tz=CHICAGO)
	assert aware == naive


def test_malformed_rule_is_rejected():
	rule = RecurrenceRule(interval=RepeatInterval.MONTHLY, time_of_day=time(19, 0), weekday=FRIDAY)
	with pytest.raises(InvalidRuleError) as excinfo:
		compute_next_occurrences(rule, datetime(2024, 2, 1, tzinfo=CHICAGO), 2, tz=CHICAGO)
	assert "week_of_month" in excinfo.value.errors


def test_out_of_range_weekday_is_rejected():
	rule = RecurrenceRule(interval=RepeatInterval.WEEKLY, time_of_day=time(19, 0), weekday=7)
	with pytest.raises(InvalidRuleError):
		compute_next_occurrences(rule, datetime(2024, 2, 1, tzinfo=CHICAGO), 1, tz=CHICAGO)


def test_zero_count_returns_nothing():
	rule = RecurrenceRule(interval=RepeatInterval.WEEKLY, time_of_day=time(19, 0), weekday=FRIDAY)
	assert compute_next_occurrences(rule, datetime(2024, 2, 1, tzinfo=CHICAGO), 0, tz=CHICAGO) == []


def test_is_occurrence_matches_only_generated_instants():
	rule = RecurrenceRule(interval=RepeatInterval.MONTHLY, time_of_day=time(19, 0), weekday=FRIDAY, week_of_month=5)
	assert is_occurrence(rule, datetime(2024, 3, 29, 19, 0, tzinfo=CHICAGO), tz=CHICAGO)
	assert not is_occurrence(rule, datetime(2024, 3, 22, 19, 0, tzinfo=CHICAGO), tz=CHICAGO)
	assert not is_occurrence(rule, datetime(2024, 3, 29, 18, 0, tzinfo=CHICAGO), tz=CHICAGO)
